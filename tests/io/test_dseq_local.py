# tests/io/test_dseq_local.py
"""
Testes de leitura local de DSeqs.

Os testes asseguram que:
- coleções em memória são lidas integralmente, em ordem de splits
- `reduce` e `collect` liberam os leitores ao final
- abandono antecipado da iteração fecha o leitor corrente
- falhas de I/O são reportadas como `ResourceError`
- um DSeq é imutável após construído
"""

import pytest

try:
    from mrflow.core.config import ConfigValueTypeError, JobConf
    from mrflow.core.exceptions import ResourceError
    from mrflow.io import DSeq, mem, text
except Exception as e:  # noqa: BLE001
    DSeq = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing DSeq API. Import error: {_IMPORT_ERR}")


def test_mem_collect_preserves_records_across_splits(numbers):
    _require_imports()
    for splits in (1, 3, 10, 50):
        assert mem.dseq(numbers, splits=splits).collect() == numbers


def test_mem_reduce_folds_sequentially(numbers):
    _require_imports()
    total = mem.dseq(numbers, splits=4).reduce(lambda acc, kv: acc + kv[1], 0)

    assert total == sum(range(10))


def test_mem_preserves_structured_values():
    _require_imports()
    records = [(("a", 1), {"x": [1, 2]}), (b"raw", None), (3, 4.5)]

    assert mem.dseq(records).collect() == records


def test_empty_mem_dseq_yields_nothing():
    _require_imports()
    assert mem.dseq([]).collect() == []


def test_mem_dseq_rejects_non_pairs_and_bad_splits():
    _require_imports()
    with pytest.raises(ConfigValueTypeError):
        mem.dseq([("a", 1, 2)])
    with pytest.raises(ConfigValueTypeError):
        mem.dseq([("a", 1)], splits=0)


def test_dseq_step_is_frozen():
    _require_imports()
    step = {"mrflow.input.format": "mem"}
    ds = DSeq(step)
    step["mrflow.input.format"] = "text"

    assert ds.as_config_step()["mrflow.input.format"] == "mem"
    with pytest.raises(TypeError):
        ds.as_config_step()["other"] = 1


def test_local_read_does_not_mutate_base_conf(numbers):
    _require_imports()
    base = JobConf({"app.x": 1})
    mem.dseq(numbers).collect(base)

    assert base.to_dict() == {"app.x": 1}


def test_collect_closes_every_reader(resource_log):
    _require_imports()
    ds = DSeq({"mrflow.input.format": "test.tracked", "mrflow.mem.splits": 3})

    assert len(ds.collect()) == 9
    assert resource_log.opened == 3
    assert resource_log.closed == 3


def test_early_abandon_closes_current_reader(resource_log):
    _require_imports()
    ds = DSeq({"mrflow.input.format": "test.tracked", "mrflow.mem.splits": 3})

    with ds.open_local() as source:
        it = iter(source)
        assert next(it) == (0, 0)

    assert resource_log.opened == 1
    assert resource_log.closed == 1


def test_error_during_iteration_still_closes_reader(resource_log):
    _require_imports()
    ds = DSeq({"mrflow.input.format": "test.tracked", "mrflow.mem.splits": 2})

    with pytest.raises(RuntimeError):
        with ds.open_local() as source:
            for _record in source:
                raise RuntimeError("consumer failed")

    assert resource_log.opened == resource_log.closed == 1


def test_closed_source_cannot_be_iterated(numbers):
    _require_imports()
    source = mem.dseq(numbers).open_local()
    source.close()
    source.close()

    with pytest.raises(ResourceError):
        iter(source)


def test_missing_input_path_raises_resource_error(tmp_path):
    _require_imports()
    with pytest.raises(ResourceError) as exc:
        text.dseq(tmp_path / "does-not-exist").collect()

    assert "path" in exc.value.details
