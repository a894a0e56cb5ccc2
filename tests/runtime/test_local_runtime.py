# tests/runtime/test_local_runtime.py
"""
Testes do runtime local (map → shuffle → reduce in-process).

Os testes asseguram que:
- jobs map-only escrevem via sink do map, uma saída por split
- jobs com reduce agrupam valores por chave entre partições
- combiners são aplicados por task de map
- contadores de task são agregados no `JobResult`
- codecs de shuffle rejeitam chaves/valores incompatíveis
- o contexto de task registra eventos e fecha recursos uma única vez
"""

import pytest

try:
    from mrflow.core.config import ConfigValueTypeError, JobConf, keys
    from mrflow.core.exceptions import ResourceError
    from mrflow.core.pipeline import applied
    from mrflow.io import jsonl, mem
    from mrflow.runtime import LocalRuntime, TaskContext, task_spec
    from mrflow.runtime import local as local_rt
except Exception as e:  # noqa: BLE001
    LocalRuntime = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing runtime API. Import error: {_IMPORT_ERR}")


def _conf(*steps):
    conf = applied(list(steps))
    conf.set(keys.JOB_NAME, "job")
    return conf


def _json_step(key, value):
    return lambda conf: conf.set_json(key, value)


def test_map_only_job_writes_one_file_per_split(tmp_path, numbers):
    _require_imports()
    out = tmp_path / "out"
    conf = _conf(
        mem.dseq(numbers, splits=3),
        _json_step(keys.MAP_TASK, task_spec("test.add", 100)),
        {keys.REDUCE_TASKS: 0},
        jsonl.dsink(out),
    )

    result = LocalRuntime().submit(conf)

    assert sorted(p.name for p in out.iterdir()) == [
        "part-m-00000.jsonl",
        "part-m-00001.jsonl",
        "part-m-00002.jsonl",
    ]
    assert sorted(jsonl.dseq(out).collect()) == sorted((k, v + 100) for k, v in numbers)
    assert result.job == "job"
    assert result.counter(local_rt.TASK_GROUP, local_rt.MAP_INPUT_RECORDS) == 10


def test_reduce_groups_values_across_splits(tmp_path):
    _require_imports()
    out = tmp_path / "out"
    records = [("a", 1), ("b", 2), ("a", 3), ("c", 4), ("b", 5)]
    conf = _conf(
        mem.dseq(records, splits=2),
        _json_step(keys.REDUCE_TASK, task_spec("test.sum")),
        {keys.REDUCE_TASKS: 3},
        jsonl.dsink(out),
    )

    result = LocalRuntime().submit(conf)

    assert sorted(jsonl.dseq(out).collect()) == [("a", 4), ("b", 7), ("c", 4)]
    assert len(list(out.iterdir())) == 3
    assert result.counter(local_rt.TASK_GROUP, local_rt.MAP_OUTPUT_RECORDS) == 5
    assert result.counter(local_rt.TASK_GROUP, local_rt.REDUCE_INPUT_GROUPS) == 3
    assert result.counter(local_rt.TASK_GROUP, local_rt.REDUCE_OUTPUT_RECORDS) == 3


def test_combiner_runs_per_map_task(tmp_path):
    _require_imports()
    out = tmp_path / "out"
    records = [("a", 1)] * 4 + [("b", 1)] * 2
    conf = _conf(
        mem.dseq(records, splits=2),
        _json_step(keys.COMBINE_TASK, task_spec("test.sum")),
        _json_step(keys.REDUCE_TASK, task_spec("test.sum")),
        jsonl.dsink(out),
    )

    result = LocalRuntime().submit(conf)

    assert sorted(jsonl.dseq(out).collect()) == [("a", 4), ("b", 2)]
    # split 0: a,a,a → (a,3); split 1: a,b,b → (a,1),(b,2)
    assert result.counter(local_rt.TASK_GROUP, local_rt.COMBINE_OUTPUT_RECORDS) == 3


def test_identity_defaults_pass_records_through(tmp_path, numbers):
    _require_imports()
    out = tmp_path / "out"
    conf = _conf(mem.dseq(numbers), jsonl.dsink(out))

    LocalRuntime().submit(conf)

    assert sorted(jsonl.dseq(out).collect()) == sorted(numbers)


def test_empty_input_still_creates_reduce_outputs(tmp_path):
    _require_imports()
    out = tmp_path / "out"
    conf = _conf(mem.dseq([]), {keys.REDUCE_TASKS: 2}, jsonl.dsink(out))

    LocalRuntime().submit(conf)

    assert sorted(p.name for p in out.iterdir()) == ["part-r-00000.jsonl", "part-r-00001.jsonl"]
    assert jsonl.dseq(out).collect() == []


def test_shuffle_codec_rejects_incompatible_keys(tmp_path, numbers):
    _require_imports()
    conf = _conf(
        mem.dseq(numbers),
        {keys.SHUFFLE_KEY_CODEC: "int", keys.SHUFFLE_VALUE_CODEC: "int"},
        jsonl.dsink(tmp_path / "out"),
    )

    with pytest.raises(ConfigValueTypeError):
        LocalRuntime().submit(conf)


def test_negative_reduce_tasks_is_rejected(tmp_path, numbers):
    _require_imports()
    conf = _conf(mem.dseq(numbers), {keys.REDUCE_TASKS: -1}, jsonl.dsink(tmp_path / "out"))

    with pytest.raises(ConfigValueTypeError):
        LocalRuntime().submit(conf)


def test_partition_is_deterministic():
    _require_imports()
    assert local_rt.partition_for("word", 7) == local_rt.partition_for("word", 7)
    assert 0 <= local_rt.partition_for(("t", 1), 3) < 3


def test_task_context_log_and_idempotent_close():
    _require_imports()
    built = []

    class Writer:
        def write(self, key, val):
            built.append((key, val))

        def close(self):
            built.append("closed")

    ctx = TaskContext(JobConf(), "r-00001", writer_factory=lambda c: Writer())
    ctx.write("k", "v")
    ctx.log(level="info", message="hello", rows=1)
    ctx.close()
    ctx.close()

    assert built == [("k", "v"), "closed"]
    assert ctx.events[0]["task_id"] == "r-00001"
    assert ctx.events[0]["rows"] == 1
    with pytest.raises(ResourceError):
        ctx.write("k", "v")


def test_task_context_without_writer_factory_fails():
    _require_imports()
    with pytest.raises(ResourceError):
        TaskContext(JobConf()).record_writer()
