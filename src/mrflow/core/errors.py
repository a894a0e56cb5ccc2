"""
mrflow - Estruturas canônicas de erro

Erros registrados no manifest de execução são convertidos para um
payload serializável com código estável, mensagem curta e detalhes
estruturados.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from mrflow.core.config.errors import ConfigurationError
from mrflow.core.exceptions import (
    JobExecutionFailure,
    MrflowException,
    ResourceError,
    StageSequenceError,
)


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Payload canônico de erro.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo de tipos de erro
# ---------------------------------------------------------------------------

CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
STAGE_SEQUENCE_ERROR = "STAGE_SEQUENCE_ERROR"
JOB_EXECUTION_FAILURE = "JOB_EXECUTION_FAILURE"
RESOURCE_ERROR = "RESOURCE_ERROR"

_CODES = (
    (ConfigurationError, CONFIGURATION_ERROR),
    (StageSequenceError, STAGE_SEQUENCE_ERROR),
    (ResourceError, RESOURCE_ERROR),
    (JobExecutionFailure, JOB_EXECUTION_FAILURE),
)


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def job_execution_failure(
    *,
    job: str,
    exc_type: Optional[str] = None,
    exc_message: Optional[str] = None,
    hint: str = "Verifique os logs do runtime para o job indicado. Nenhum retry é aplicado automaticamente.",
) -> ErrorPayload:
    return ErrorPayload(
        type=JOB_EXECUTION_FAILURE,
        message="Falha na execução do job",
        details={
            "job": job,
            "exc_type": exc_type,
            "exc_message": exc_message,
        },
        hint=hint,
    )


def stage_sequence_error(
    *,
    transition: str,
    expected: list,
    received: str,
    hint: str = "Aplique as transições na ordem input → map → partition → (combine) → reduce → output.",
) -> ErrorPayload:
    return ErrorPayload(
        type=STAGE_SEQUENCE_ERROR,
        message=f"Transição '{transition}' inválida para nó em estágio '{received}'",
        details={"transition": transition, "expected": expected, "received": received},
        hint=hint,
    )


def exception_to_error(exc: BaseException, *, job: Optional[str] = None) -> ErrorPayload:
    """Converte uma exceção qualquer em `ErrorPayload`, sem stack trace.

    - MrflowException: reaproveita message/details/hint.
    - ConfigurationError: código de configuração com a mensagem original.
    - Outras exceções: encapsuladas como JOB_EXECUTION_FAILURE.
    """
    code = next((c for cls, c in _CODES if isinstance(exc, cls)), None)

    if isinstance(exc, MrflowException):
        details = dict(exc.details or {})
        if job is not None:
            details.setdefault("job", job)
        return ErrorPayload(
            type=code or exc.__class__.__name__,
            message=str(exc.message) or "Erro de execução",
            details=details,
            hint=exc.hint,
        )

    if code is not None:
        return ErrorPayload(
            type=code,
            message=str(exc) or exc.__class__.__name__,
            details={"job": job, "exception_class": exc.__class__.__name__},
        )

    return job_execution_failure(
        job=job or "",
        exc_type=exc.__class__.__name__,
        exc_message=str(exc),
    )
