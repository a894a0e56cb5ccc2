# src/mrflow/core/pipeline/__init__.py
"""
# Pipeline Core - mrflow

Este pacote define as peças composicionais sobre as quais o grafo de
jobs é montado.

## Componentes

- **cstep**
  - `apply`: aplica um ConfigStep (função, mapeamento ou sequência) a um `JobConf`
  - `compose`: agrupa ConfigSteps em um único ConfigStep

- **registry**
  - `Registry`: tabela estática de componentes por identificador

- **types**
  - `Stage`: estágios de um nó do grafo
  - `JobStatus` / `JobResult`: estado e resultado de um job

## Invariantes

- ConfigSteps não observam steps aplicados depois deles
- Componentes são referenciados na configuração apenas por identificador
"""

from .cstep import ConfigStep, apply, applied, compose
from .registry import DuplicateRegistrationError, Registry
from .types import JobResult, JobStatus, Stage

__all__ = [
    "ConfigStep",
    "apply",
    "applied",
    "compose",
    "DuplicateRegistrationError",
    "Registry",
    "JobResult",
    "JobStatus",
    "Stage",
]
