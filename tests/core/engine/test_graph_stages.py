# tests/core/engine/test_graph_stages.py
"""
Testes das transições de estágio do grafo de jobs.

Os testes asseguram que:
- cada transição só é aceita a partir dos estágios permitidos
- nós são imutáveis e transições sempre criam novos nós
- `output` fecha o job e devolve nós INPUT que dependem dele
- múltiplas entradas/maps são unidas via mux
- tasks e codecs desconhecidos falham na construção do grafo
"""

import dataclasses

import pytest

try:
    from mrflow.core.config import UnknownComponentError, keys
    from mrflow.core.engine import JobNode, map_inputs, partition_maps, source
    from mrflow.core.exceptions import StageSequenceError
    from mrflow.core.pipeline import Stage, applied
    from mrflow.io import jsonl, mem, mux
except Exception as e:  # noqa: BLE001
    JobNode = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing job graph API. Import error: {_IMPORT_ERR}")


def _src():
    return source(mem.dseq([("a", 1), ("b", 2)]))


def test_full_chain_reaches_output(tmp_path):
    _require_imports()
    node = _src().map("test.identity").partition(reducers=3)
    assert node.stage is Stage.PARTITION

    node = node.combine("test.sum")
    assert node.stage is Stage.COMBINE

    node = node.reduce("test.sum")
    assert node.stage is Stage.REDUCE

    sink = jsonl.dsink(tmp_path / "out")
    nxt = node.output(sink)

    assert nxt.stage is Stage.INPUT
    assert nxt.dseq is sink.dseq
    [job] = nxt.deps
    assert job.stage is Stage.OUTPUT
    assert job.dsinks == (sink,)

    conf = applied(job.steps)
    assert conf.get_int(keys.REDUCE_TASKS) == 3
    assert conf.get_json(keys.MAP_TASK) == {"id": "test.identity", "args": []}
    assert conf.get_json(keys.COMBINE_TASK)["id"] == "test.sum"
    assert conf.get_str(keys.OUTPUT_DIR) == str(tmp_path / "out")


@pytest.mark.parametrize(
    "build",
    [
        lambda n: n.reduce("test.sum"),
        lambda n: n.partition(),
        lambda n: n.combine("test.sum"),
        lambda n: n.map("test.identity").map("test.identity"),
        lambda n: n.map("test.identity").combine("test.sum"),
        lambda n: n.map("test.identity").partition().output(None),
    ],
)
def test_invalid_transitions_raise(build):
    _require_imports()
    with pytest.raises(StageSequenceError) as exc:
        build(_src())

    assert exc.value.details


def test_output_of_map_is_map_only(tmp_path):
    _require_imports()
    nxt = _src().map("test.add", 1).output(jsonl.dsink(tmp_path / "out"))

    assert applied(nxt.deps[0].steps).get_int(keys.REDUCE_TASKS) == 0


def test_output_mapping_returns_one_input_per_sink(tmp_path):
    _require_imports()
    sinks = {"x": jsonl.dsink(tmp_path / "x"), "y": jsonl.dsink(tmp_path / "y")}
    x, y = _src().map("test.identity").output(sinks)

    assert x.dseq is sinks["x"].dseq
    assert y.dseq is sinks["y"].dseq
    assert x.deps[0] is y.deps[0]
    assert applied(x.deps[0].steps).get_str(keys.OUTPUT_FORMAT) == "dux"


def test_nodes_are_immutable_and_transitions_create_new_nodes():
    _require_imports()
    src = _src()
    mapped = src.map("test.identity")

    assert mapped is not src
    assert src.stage is Stage.INPUT
    with pytest.raises(dataclasses.FrozenInstanceError):
        src.stage = Stage.MAP


def test_config_keeps_stage_and_appends_steps():
    _require_imports()
    node = _src().map("test.identity").config({"app.x": 1}, {"app.x": 2})

    assert node.stage is Stage.MAP
    assert applied(node.steps).get_int("app.x") == 2


def test_multiple_inputs_are_joined_with_mux(tmp_path):
    _require_imports()
    a = _src()
    b = source(mem.dseq([("c", 3)]))
    node = map_inputs([a, b], "test.identity")

    conf = applied(node.steps)
    assert conf.get_str(keys.INPUT_FORMAT) == "mux"
    assert len(mux.get_subconfs(conf)) == 2


def test_partition_of_multiple_maps_keeps_branch_tasks():
    _require_imports()
    left = _src().map("test.add", 1)
    right = _src().map("test.tag", "r")
    node = partition_maps([left, right])

    conf = applied(node.steps)
    branches = [mux.subconf(conf, i).get_json(keys.MAP_TASK)["id"] for i in range(2)]
    assert branches == ["test.add", "test.tag"]


def test_dependencies_are_unioned(tmp_path):
    _require_imports()
    a = _src().map("test.identity").output(jsonl.dsink(tmp_path / "a"))
    b = _src().map("test.identity").output(jsonl.dsink(tmp_path / "b"))
    node = map_inputs([a, b, a], "test.identity")

    assert node.deps == (a.deps[0], b.deps[0])


def test_unknown_task_and_codec_fail_at_construction():
    _require_imports()
    with pytest.raises(UnknownComponentError):
        _src().map("test.nope")
    with pytest.raises(UnknownComponentError):
        _src().map("test.identity").partition(shuffle=("str", "nope"))


def test_shuffle_codec_pair_is_recorded():
    _require_imports()
    node = _src().map("test.identity").partition(shuffle=("str", "int"))

    conf = applied(node.steps)
    assert conf.get_str(keys.SHUFFLE_KEY_CODEC) == "str"
    assert conf.get_str(keys.SHUFFLE_VALUE_CODEC) == "int"


def test_empty_node_list_is_rejected():
    _require_imports()
    with pytest.raises(StageSequenceError):
        map_inputs([], "test.identity")
