# src/mrflow/io/mem.py
"""
Formato de entrada em memória.

Os registros são serializados (via `serde`) na própria configuração do
job e divididos em `mrflow.mem.splits` splits contíguos. Útil para
testes e para injetar pequenas coleções em um grafo.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, List

from mrflow.core.config import keys
from mrflow.core.config.conf import JobConf
from mrflow.core.config.errors import ConfigValueTypeError

from . import serde
from .dseq import DSeq
from .formats import INPUT_FORMATS, InputFormat, IteratorReader


@dataclass(frozen=True)
class MemSplit:
    index: int
    start: int
    end: int


@INPUT_FORMATS.register("mem")
class MemInputFormat(InputFormat):
    def _records(self, conf: JobConf) -> List[Any]:
        return json.loads(conf.get_str(keys.MEM_RECORDS))

    def list_splits(self, conf: JobConf) -> List[MemSplit]:
        total = len(self._records(conf))
        n = max(1, min(conf.get_int(keys.MEM_SPLITS, 1), max(total, 1)))
        size, extra = divmod(total, n)
        splits, start = [], 0
        for i in range(n):
            end = start + size + (1 if i < extra else 0)
            splits.append(MemSplit(i, start, end))
            start = end
        return splits

    def open_reader(self, split: MemSplit, conf: JobConf) -> IteratorReader:
        chunk = self._records(conf)[split.start:split.end]
        return IteratorReader(tuple(serde.decode(pair)) for pair in chunk)


def dseq(records: Iterable[Any], splits: int = 1) -> DSeq:
    """DSeq sobre uma coleção local de pares `(key, val)`."""
    encoded = []
    for record in records:
        if not isinstance(record, (tuple, list)) or len(record) != 2:
            raise ConfigValueTypeError(f"Registro em memória deve ser um par (key, val): {record!r}")
        encoded.append([serde.encode(record[0]), serde.encode(record[1])])
    if int(splits) < 1:
        raise ConfigValueTypeError(f"Número de splits deve ser >= 1, recebido {splits}")
    return DSeq(
        {
            keys.INPUT_FORMAT: "mem",
            keys.MEM_RECORDS: json.dumps(encoded, ensure_ascii=False),
            keys.MEM_SPLITS: int(splits),
        }
    )
