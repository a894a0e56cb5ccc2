"""
mrflow - Exceções canônicas

Este módulo define as exceções tipadas levantadas pela montagem do grafo
de jobs, pelo engine de execução e pelo acesso local a fontes/destinos.

Regras:
- Exceções carregam dados estruturados (serializáveis) em `details`.
- Erros de configuração vivem em `mrflow.core.config.errors`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True, eq=False)
class MrflowException(Exception):
    """Base class para exceções estruturadas do mrflow.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, eq=False)
class StageSequenceError(MrflowException):
    """Transição de estágio aplicada a um nó cujo estágio não a permite."""


@dataclass(frozen=True, eq=False)
class JobExecutionFailure(MrflowException):
    """Falha reportada pelo runtime de execução para um job do grafo.

    `job` é o nome do job que falhou; `node` referencia o nó do grafo.
    A exceção original fica disponível em `__cause__`.
    """

    job: str = ""
    node: Any = field(default=None, repr=False)

    def __str__(self) -> str:
        return f"[{self.job}] {self.message}" if self.job else self.message


@dataclass(frozen=True, eq=False)
class ResourceError(MrflowException):
    """Falha ao abrir/fechar fonte ou destino local, ou ao construir um writer."""
