# tests/core/test_error_payloads.py
"""
Testes dos payloads canônicos de erro.

Os testes asseguram que:
- exceções estruturadas preservam message/details/hint
- erros de configuração recebem código estável
- exceções arbitrárias são encapsuladas como falha de job
- `JobExecutionFailure` identifica o job na mensagem
"""

import pytest

try:
    from mrflow.core.config import MissingConfigKeyError
    from mrflow.core.errors import (
        CONFIGURATION_ERROR,
        JOB_EXECUTION_FAILURE,
        RESOURCE_ERROR,
        STAGE_SEQUENCE_ERROR,
        exception_to_error,
        stage_sequence_error,
    )
    from mrflow.core.exceptions import JobExecutionFailure, ResourceError
except Exception as e:  # noqa: BLE001
    exception_to_error = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing error payload API. Import error: {_IMPORT_ERR}")


def test_structured_exception_keeps_details():
    _require_imports()
    exc = ResourceError(message="falhou", details={"path": "/x"}, hint="verifique")

    payload = exception_to_error(exc, job="wc[1/1]")

    assert payload.type == RESOURCE_ERROR
    assert payload.message == "falhou"
    assert payload.details == {"path": "/x", "job": "wc[1/1]"}
    assert payload.hint == "verifique"


def test_configuration_error_has_stable_code():
    _require_imports()
    payload = exception_to_error(MissingConfigKeyError("Config key ausente: x"), job="j")

    assert payload.type == CONFIGURATION_ERROR
    assert payload.details["exception_class"] == "MissingConfigKeyError"


def test_arbitrary_exception_is_job_failure():
    _require_imports()
    payload = exception_to_error(ValueError("bad value"), job="j")

    assert payload.type == JOB_EXECUTION_FAILURE
    assert payload.details == {"job": "j", "exc_type": "ValueError", "exc_message": "bad value"}
    assert payload.to_dict()["hint"]


def test_stage_sequence_payload():
    _require_imports()
    payload = stage_sequence_error(transition="reduce", expected=["partition"], received="map")

    assert payload.type == STAGE_SEQUENCE_ERROR
    assert "reduce" in payload.message
    assert payload.details["received"] == "map"


def test_job_execution_failure_str_includes_job():
    _require_imports()
    exc = JobExecutionFailure(message="boom", job="wc[2/3]")

    assert str(exc) == "[wc[2/3]] boom"
    assert str(JobExecutionFailure(message="boom")) == "boom"
