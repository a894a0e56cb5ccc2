# src/mrflow/io/jsonl.py
"""
Formato JSON Lines.

Cada registro é uma linha `[key, val]` com ambos os lados na forma JSON
do `serde`, o que preserva tuplas, bytes e dicionários na leitura.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator, Tuple, Union

from mrflow.core.config import keys
from mrflow.core.config.conf import JobConf

from . import serde
from .dseq import DSeq
from .dsink import DSink
from .formats import (
    INPUT_FORMATS,
    OUTPUT_FORMATS,
    ClosedWriterMixin,
    FileInputFormat,
    FileOutputFormat,
)

PathLike = Union[str, Path]


class JsonLinesReader:
    def __init__(self, path: str):
        self._fh = open(path, "r", encoding="utf-8")

    def __iter__(self) -> Iterator[Tuple[Any, Any]]:
        for line in self._fh:
            if not line.strip():
                continue
            key, val = json.loads(line)
            yield serde.decode(key), serde.decode(val)

    def close(self) -> None:
        self._fh.close()


class JsonLinesWriter(ClosedWriterMixin):
    def __init__(self, path: Path):
        self.path = path
        self._fh = open(path, "w", encoding="utf-8")

    def write(self, key: Any, val: Any) -> None:
        self._check_open()
        line = json.dumps([serde.encode(key), serde.encode(val)], ensure_ascii=False)
        self._fh.write(line + "\n")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._fh.close()


@INPUT_FORMATS.register("jsonl")
class JsonLinesInputFormat(FileInputFormat):
    def open_reader(self, split: str, conf: JobConf) -> JsonLinesReader:
        return JsonLinesReader(split)


@OUTPUT_FORMATS.register("jsonl")
class JsonLinesOutputFormat(FileOutputFormat):
    extension = ".jsonl"

    def get_record_writer(self, context: Any) -> JsonLinesWriter:
        return JsonLinesWriter(self.task_file(context))


def dseq(*paths: PathLike) -> DSeq:
    return DSeq({keys.INPUT_FORMAT: "jsonl", keys.INPUT_PATHS: [str(p) for p in paths]})


def dsink(path: PathLike) -> DSink:
    return DSink({keys.OUTPUT_FORMAT: "jsonl", keys.OUTPUT_DIR: str(path)}, dseq(path))
