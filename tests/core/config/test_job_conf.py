# tests/core/config/test_job_conf.py
"""
Testes do JobConf (acesso tipado, clone, diff e merge).

Os testes asseguram que:
- chaves ausentes e valores mal tipados falham no ponto de acesso
- `None` em `set` remove a chave
- clones são independentes do original
- `merge(base.diff(other))` reproduz `other` a partir de um clone de `base`

Limites explícitos:
    - Não valida carregamento de arquivos (ver test_config_loader)
"""

import pytest

try:
    from mrflow.core.config import JobConf
    from mrflow.core.config.errors import (
        ConfigurationError,
        ConfigValueTypeError,
        MissingConfigKeyError,
    )
except Exception as e:  # noqa: BLE001
    JobConf = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing JobConf API. Import error: {_IMPORT_ERR}")


def test_get_missing_key_raises_configuration_error():
    _require_imports()
    conf = JobConf()

    with pytest.raises(MissingConfigKeyError) as exc:
        conf.get("mrflow.reduce.tasks")

    assert isinstance(exc.value, ConfigurationError)
    assert conf.get("mrflow.reduce.tasks", 3) == 3


def test_typed_getters_coerce_strings_and_reject_mismatches():
    _require_imports()
    conf = JobConf({"n": "7", "flag": "true", "ratio": 2, "paths": "a, b", "name": 1})

    assert conf.get_int("n") == 7
    assert conf.get_bool("flag") is True
    assert conf.get_float("ratio") == 2.0
    assert conf.get_list("paths") == ["a", "b"]

    with pytest.raises(ConfigValueTypeError):
        conf.get_str("name")
    with pytest.raises(ConfigValueTypeError):
        conf.get_int("flag")


def test_unsupported_value_type_is_rejected_on_set():
    _require_imports()
    conf = JobConf()

    with pytest.raises(ConfigValueTypeError):
        conf.set("obj", object())
    with pytest.raises(ConfigValueTypeError):
        conf.set("bad", {1: "non-str key"})


def test_set_none_unsets_key():
    _require_imports()
    conf = JobConf({"a": 1})
    conf.set("a", None)

    assert "a" not in conf
    assert len(conf) == 0


def test_clone_is_independent():
    _require_imports()
    conf = JobConf({"a": [1, 2], "b": {"x": 1}})
    child = conf.clone()
    child.set("a", [3])
    child.get("b")["x"] = 99

    assert conf.get("a") == [1, 2]
    assert conf.get("b") == {"x": 1}
    assert child.get("b") == {"x": 1}


def test_diff_reports_changed_new_and_removed_keys():
    _require_imports()
    base = JobConf({"keep": 1, "change": "old", "drop": True})
    other = base.clone().set("change", "new").set("add", 2.5).unset("drop")

    assert base.diff(other) == {"change": "new", "add": 2.5, "drop": None}


def test_merge_of_diff_reproduces_other():
    _require_imports()
    base = JobConf({"keep": 1, "change": "old", "drop": True, "nested": {"a": 1}})
    other = base.clone().set("change", "new").set("add", [1, 2]).unset("drop")

    rebuilt = base.clone().merge(base.diff(other))

    assert rebuilt == other


def test_json_round_trip_preserves_key_order():
    _require_imports()
    conf = JobConf()
    conf.set_json("j", {"z": 1, "a": 2})

    assert list(conf.get_json("j")) == ["z", "a"]
    assert conf.get_json("missing", None) is None
