# src/mrflow/io/__init__.py
"""
# I/O - mrflow

Fontes e destinos distribuídos.

## Componentes

- **dseq / dsink**: `DSeq` (entrada) e `DSink` (saída + espelho)
- **formats**: contratos e registros de formatos de entrada/saída
- **serde**: codecs de valores para formas JSON
- **mem / text / jsonl / parquet**: formatos concretos
- **mux**: união de entradas heterogêneas
- **dux**: saídas nomeadas múltiplas

A importação deste pacote registra todos os formatos embutidos.
"""

from . import serde
from . import formats
from .dseq import DSeq, Source
from .dsink import DSink, LocalSink
from . import mem, text, jsonl, parquet, mux, dux

__all__ = [
    "serde",
    "formats",
    "DSeq",
    "Source",
    "DSink",
    "LocalSink",
    "mem",
    "text",
    "jsonl",
    "parquet",
    "mux",
    "dux",
]
