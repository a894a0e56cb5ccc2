# tests/io/test_dux_outputs.py
"""
Testes do dux (saídas nomeadas múltiplas).

Os testes asseguram que:
- cada saída nomeada é escrita com a configuração do seu próprio DSink
- contadores por nome registram a quantidade de registros escritos
- o espelho do DSink composto é o mux dos espelhos componentes
- saídas desconhecidas falham com erro de configuração
- um writer nomeado é construído no máximo uma vez, mesmo sob concorrência
- fechar a task fecha todos os writers nomeados realizados
- a configuração de cada saída mantém seu formato mesmo quando a base já o define
- um writer realizado durante o fechamento da task também é fechado
"""

import threading

import pytest

try:
    from mrflow.core.config import ConfigValueTypeError, JobConf, UnknownComponentError
    from mrflow.core.exceptions import ResourceError
    from mrflow.io import DSink, dux, jsonl, text
    from mrflow.runtime import TaskContext
    from tests.fixtures import tasks as fixtures
except Exception as e:  # noqa: BLE001
    dux = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing dux API. Import error: {_IMPORT_ERR}")


def _sinks(tmp_path):
    return {
        "words": jsonl.dsink(tmp_path / "words"),
        "lines": text.dsink(tmp_path / "lines"),
    }


def test_named_outputs_use_component_formats(tmp_path):
    _require_imports()
    sink = dux.dsink(_sinks(tmp_path))

    with sink.open_local() as local:
        local.write("words", ("a", 1))
        local.write("lines", ("b", 2))
        local.write("words", ("c", 3))
        counters = local.counters

    assert (tmp_path / "words" / "part-m-00000.jsonl").exists()
    assert (tmp_path / "lines" / "part-m-00000").read_text(encoding="utf-8") == "b\t2\n"
    assert counters.get(dux.COUNTER_GROUP, "words").value == 2
    assert counters.get(dux.COUNTER_GROUP, "lines").value == 1


def test_dux_conf_preserves_declaration_order(tmp_path):
    _require_imports()
    sinks = _sinks(tmp_path)
    conf = dux.dsink(sinks).conf()

    assert dux.names(conf) == ["words", "lines"]
    assert dux.output_paths(conf) == [str(tmp_path / "words"), str(tmp_path / "lines")]
    assert dux.subconf(conf, "lines").get_str("mrflow.output.format") == "text"


def test_dux_mirror_reads_union_of_components(tmp_path):
    _require_imports()
    sinks = {"a": jsonl.dsink(tmp_path / "a"), "b": jsonl.dsink(tmp_path / "b")}
    sink = dux.dsink(sinks)

    with sink.open_local() as local:
        local.write("a", ("x", 1))
        local.write("b", ("y", 2))

    assert sorted(sink.mirror().collect()) == [("x", 1), ("y", 2)]


def test_basename_override_writes_separate_files(tmp_path):
    _require_imports()
    sink = dux.dsink({"words": jsonl.dsink(tmp_path / "words")})

    with sink.open_local() as local:
        local.write(("words", "short"), ("a", 1))
        local.write(("words", "long"), ("abcdef", 1))

    names = sorted(p.name for p in (tmp_path / "words").iterdir())
    assert names == ["long-m-00000.jsonl", "short-m-00000.jsonl"]


def test_unknown_output_name_fails(tmp_path):
    _require_imports()
    sink = dux.dsink(_sinks(tmp_path))

    with sink.open_local() as local:
        with pytest.raises(UnknownComponentError):
            local.write("missing", ("a", 1))


def test_empty_dux_is_rejected():
    _require_imports()
    with pytest.raises(ConfigValueTypeError):
        dux.dsink({})


def test_subconfs_empty_for_plain_output(tmp_path):
    _require_imports()
    assert dux.get_subconfs(jsonl.dsink(tmp_path).conf()) == {}


def test_concurrent_first_writes_build_single_writer(resource_log):
    _require_imports()
    slow = DSink({"mrflow.output.format": "test.slow"}, None)
    conf = dux.dsink({"slow": slow}).conf()
    context = TaskContext(conf, "m-00000")
    start = threading.Barrier(8)

    def worker(i):
        start.wait()
        dux.write(context, "slow", i, i)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert resource_log.writers_built == 1
    assert sorted(k for k, _ in resource_log.written) == list(range(8))
    assert context.get_counter(dux.COUNTER_GROUP, "slow").value == 8

    context.close()
    assert resource_log.closed == 1
    with pytest.raises(ResourceError):
        dux.write(context, "slow", 99, 99)


def test_key_only_fan_out_counts_per_name(tmp_path):
    _require_imports()
    sinks = {"a": jsonl.dsink(tmp_path / "a"), "b": jsonl.dsink(tmp_path / "b")}
    sink = dux.dsink(sinks)

    with sink.open_local() as local:
        dux.named_keys(local.context, [("a", 1), ("b", 2), ("a", 3)])
        counters = local.counters

    assert {k for k, _ in sinks["a"].mirror().collect()} == {1, 3}
    assert {k for k, _ in sinks["b"].mirror().collect()} == {2}
    assert counters.get(dux.COUNTER_GROUP, "a").value == 2
    assert counters.get(dux.COUNTER_GROUP, "b").value == 1


def test_output_keeps_format_already_set_in_base_conf(tmp_path):
    _require_imports()
    base = JobConf({"mrflow.output.format": "jsonl"})
    conf = dux.dsink({"a": jsonl.dsink(tmp_path / "a")}).conf(base)

    assert conf.get_str("mrflow.output.format") == "dux"
    assert dux.subconf(conf, "a").get_str("mrflow.output.format") == "jsonl"

    context = TaskContext(conf, "m-00000")
    dux.write(context, "a", "k", 1)
    context.close()

    assert jsonl.dsink(tmp_path / "a").mirror().collect() == [("k", 1)]


def test_writer_realized_during_close_is_closed(resource_log):
    _require_imports()
    fixtures.GATE.clear()
    fixtures.BUILDING.clear()
    gated = DSink({"mrflow.output.format": "test.gated"}, None)
    context = TaskContext(dux.dsink({"gated": gated}).conf(), "m-00000")
    errors = []

    def worker():
        try:
            dux.get_sink(context, "gated")
        except ResourceError as e:
            errors.append(e)

    t = threading.Thread(target=worker)
    t.start()
    try:
        assert fixtures.BUILDING.wait(timeout=5)
        context.close()
    finally:
        fixtures.GATE.set()
        t.join(timeout=5)

    assert len(errors) == 1
    assert resource_log.writers_built == 1
    assert resource_log.closed == 1
