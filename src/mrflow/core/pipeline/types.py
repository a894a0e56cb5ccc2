# src/mrflow/core/pipeline/types.py
"""
Tipos canônicos do grafo de jobs.

Componentes principais:
    - Stage     → enum de estágios de um nó do grafo
    - JobStatus → enum de estados finais de um job
    - JobResult → resultado imutável da submissão de um job

Invariantes:
    - Enums possuem valores textuais canônicos (serializáveis em JSON)
    - JobResult é imutável
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict


class Stage(str, Enum):
    """
    Estágios de um nó do grafo de jobs.

    Transições permitidas (estágio exigido do predecessor):
        - INPUT: nenhum predecessor
        - MAP: um ou mais nós INPUT
        - PARTITION: um ou mais nós MAP
        - COMBINE: um nó PARTITION
        - REDUCE: um nó PARTITION ou COMBINE
        - OUTPUT: um nó MAP ou REDUCE
    """
    INPUT = "input"
    MAP = "map"
    PARTITION = "partition"
    COMBINE = "combine"
    REDUCE = "reduce"
    OUTPUT = "output"


class JobStatus(str, Enum):
    """Estados finais de um job dentro de uma chamada a `execute`."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class JobResult:
    """
    Resultado imutável da submissão de um job ao runtime.

    Campos:
        - job: nome do job
        - status: estado final
        - counters: contadores agregados por grupo → nome → valor
    """
    job: str
    status: JobStatus = JobStatus.SUCCESS
    counters: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def counter(self, group: str, name: str) -> int:
        return int(self.counters.get(group, {}).get(name, 0))
