# src/mrflow/runtime/__init__.py
"""
# Runtime - mrflow

Execução de jobs descritos por `JobConf`.

## Componentes

- **context**: `TaskContext`, `Counter`, `Counters`
- **tasks**: registros de tasks e sinks (`task`, `sink`, `TASKS`, `SINKS`)
- **local**: `Runtime` (contrato) e `LocalRuntime` (execução in-process)
"""

from .context import Counter, Counters, TaskContext
from .tasks import SINKS, TASKS, load_sink, load_task, sink, sink_spec, task, task_spec
from .local import LocalRuntime, Runtime

__all__ = [
    "Counter",
    "Counters",
    "TaskContext",
    "SINKS",
    "TASKS",
    "load_sink",
    "load_task",
    "sink",
    "sink_spec",
    "task",
    "task_spec",
    "LocalRuntime",
    "Runtime",
]
