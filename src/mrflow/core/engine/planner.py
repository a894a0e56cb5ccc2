# src/mrflow/core/engine/planner.py
"""
Planejador de execução do grafo de jobs.

A partir dos nós folha informados pelo chamador, o planner descobre o
fecho transitivo de jobs (nós OUTPUT) e os agrupa em ondas
topológicas: um job pertence à onda `k` quando a mais longa cadeia de
dependências até ele tem comprimento `k`.

Princípios fundamentais:
    - O grafo deve ser um DAG (garantido por construção; validado aqui)
    - A ordem é determinística para o mesmo grafo
    - Empates são resolvidos pela ordem de descoberta a partir das folhas

Limites explícitos:
    - Não executa jobs
    - Não materializa configurações
    - Não decide políticas de execução
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from mrflow.core.exceptions import StageSequenceError
from mrflow.core.pipeline.types import Stage

from .graph import JobNode


class CycleDetectedError(ValueError):
    """
    Exceção levantada quando o grafo de dependências contém um ciclo.

    Invariantes:
        - A existência de um ciclo invalida o planejamento
        - Nenhuma execução parcial é permitida em presença de ciclos
    """


def flatten_leaves(leaves: Iterable) -> List[JobNode]:
    """Achata folhas aninhadas (ex.: tuplas retornadas por `output` com dux)."""
    out: List[JobNode] = []
    for leaf in leaves:
        if isinstance(leaf, JobNode):
            out.append(leaf)
        elif isinstance(leaf, (list, tuple)):
            out.extend(flatten_leaves(leaf))
        else:
            raise StageSequenceError(
                message="Folha do grafo deve ser um nó de job",
                details={"received": type(leaf).__name__},
            )
    return out


def collect_jobs(leaves: Iterable[JobNode]) -> List[JobNode]:
    """
    Fecho transitivo de jobs alcançáveis a partir das folhas.

    Folhas INPUT contribuem com suas dependências; folhas OUTPUT são
    jobs em si. Folhas em estágio intermediário são rejeitadas.

    Returns:
        List[JobNode]: jobs em ordem de descoberta (dependências primeiro).

    Raises:
        StageSequenceError: Se uma folha não for INPUT nem OUTPUT.
    """
    order: List[JobNode] = []
    seen: Dict[int, JobNode] = {}

    def visit(node: JobNode) -> None:
        if id(node) in seen:
            return
        seen[id(node)] = node
        for dep in node.deps:
            visit(dep)
        if node.stage is Stage.OUTPUT:
            order.append(node)

    for leaf in leaves:
        if leaf.stage not in (Stage.INPUT, Stage.OUTPUT):
            raise StageSequenceError(
                message=f"Folha em estágio '{leaf.stage.value}' não representa um job completo",
                details={"received": leaf.stage.value, "expected": ["input", "output"]},
                hint="Feche o nó com `output(dsink)` antes de executar.",
            )
        visit(leaf)
    return order


def plan_waves(jobs: List[JobNode]) -> List[List[JobNode]]:
    """
    Agrupa jobs em ondas topológicas (Kahn por níveis).

    Raises:
        CycleDetectedError: Se houver ciclo entre os jobs.
    """
    index = {id(j): i for i, j in enumerate(jobs)}
    incoming = {id(j): len([d for d in j.deps if id(d) in index]) for j in jobs}
    outgoing: Dict[int, List[JobNode]] = {id(j): [] for j in jobs}
    for job in jobs:
        for dep in job.deps:
            if id(dep) in outgoing:
                outgoing[id(dep)].append(job)

    waves: List[List[JobNode]] = []
    ready = [j for j in jobs if incoming[id(j)] == 0]
    placed = 0
    while ready:
        waves.append(ready)
        placed += len(ready)
        nxt: List[JobNode] = []
        for job in ready:
            for child in outgoing[id(job)]:
                incoming[id(child)] -= 1
                if incoming[id(child)] == 0:
                    nxt.append(child)
        ready = sorted(nxt, key=lambda j: index[id(j)])

    if placed != len(jobs):
        raise CycleDetectedError("Cycle detected in job dependency graph")
    return waves
