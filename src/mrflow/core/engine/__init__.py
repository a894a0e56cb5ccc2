# src/mrflow/core/engine/__init__.py
"""
Engine do mrflow.

Este pacote contém a montagem do grafo de jobs e sua execução.

Componentes principais:
    - graph   → nós imutáveis com validação de estágio (`source`, `JobNode.map`, ...)
    - planner → fecho transitivo de jobs e ondas topológicas
    - engine  → execução concorrente com fail-fast e rastreabilidade

Princípios fundamentais:
    - Construção do grafo e execução são responsabilidades separadas
    - Um job só roda após o sucesso de todas as suas dependências
    - Jobs independentes rodam concorrentemente

Limites explícitos:
    - Não contém lógica de tasks de domínio
    - Não reexecuta jobs falhos
"""

from .engine import Engine, execute
from .graph import JobNode, map_inputs, partition_maps, source
from .planner import CycleDetectedError, collect_jobs, plan_waves

__all__ = [
    "Engine",
    "execute",
    "JobNode",
    "map_inputs",
    "partition_maps",
    "source",
    "CycleDetectedError",
    "collect_jobs",
    "plan_waves",
]
