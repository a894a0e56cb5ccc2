# src/mrflow/core/config/keys.py
"""
Chaves canônicas de configuração controladas pelo próprio mrflow.

Todas as chaves usadas pelo framework vivem aqui, para que formatos,
combinadores (mux/dux), engine e runtime concordem sobre o mesmo
namespace.
"""

JOB_NAME = "mrflow.job.name"

INPUT_FORMAT = "mrflow.input.format"
INPUT_PATHS = "mrflow.input.paths"

OUTPUT_FORMAT = "mrflow.output.format"
OUTPUT_DIR = "mrflow.output.dir"
OUTPUT_BASENAME = "mrflow.output.basename"

# Chaves internas dos combinadores (excluídas dos diffs de sub-configuração)
MUX_CONFS = "mrflow.mux.confs"
DUX_CONFS = "mrflow.dux.confs"

MEM_RECORDS = "mrflow.mem.records"
MEM_SPLITS = "mrflow.mem.splits"

MAP_TASK = "mrflow.map.task"
MAP_SINK = "mrflow.map.sink"
COMBINE_TASK = "mrflow.combine.task"
REDUCE_TASK = "mrflow.reduce.task"
REDUCE_SINK = "mrflow.reduce.sink"
REDUCE_TASKS = "mrflow.reduce.tasks"

SHUFFLE_KEY_CODEC = "mrflow.shuffle.key.codec"
SHUFFLE_VALUE_CODEC = "mrflow.shuffle.value.codec"

DEFAULT_BASENAME = "part"

BOOKKEEPING_KEYS = frozenset({MUX_CONFS, DUX_CONFS})
