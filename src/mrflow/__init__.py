# src/mrflow/__init__.py
"""
mrflow: composição e orquestração de pipelines MapReduce.

Este pacote raiz define o namespace público do mrflow. Um pipeline é
montado a partir de ConfigSteps composicionais, fontes (`DSeq`) e
destinos (`DSink`) distribuídos, e executado como um grafo de jobs com
o máximo de concorrência permitido pelas dependências.

Arquitetura em alto nível:
    - core.config       → JobConf e carregamento de configuração base
    - core.pipeline     → ConfigSteps, registros e tipos
    - core.engine       → grafo de jobs e execução
    - core.traceability → RunManifest e Event Log
    - io                → DSeq/DSink, formatos, mux e dux
    - runtime           → TaskContext, registro de tasks e runtime local

Limites explícitos:
    - Não gera código nem carrega classes dinamicamente
    - Não reexecuta jobs falhos
"""

from ._version import __version__
from .core.config import JobConf, load_job_conf
from .core.engine import Engine, JobNode, execute, map_inputs, partition_maps, source
from .io import DSeq, DSink, dux, jsonl, mem, mux, parquet, text
from .runtime import LocalRuntime, TaskContext, sink, task

__all__ = [
    "__version__",
    "JobConf",
    "load_job_conf",
    "Engine",
    "JobNode",
    "execute",
    "map_inputs",
    "partition_maps",
    "source",
    "DSeq",
    "DSink",
    "dux",
    "jsonl",
    "mem",
    "mux",
    "parquet",
    "text",
    "LocalRuntime",
    "TaskContext",
    "sink",
    "task",
]
