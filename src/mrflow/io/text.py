# src/mrflow/io/text.py
"""
Formato texto (linhas).

Entrada:
    Cada linha gera o registro `(offset, line)`, onde `offset` é a
    posição em bytes do início da linha e `line` não inclui o
    terminador.

Saída:
    Cada registro é escrito como `key<TAB>val`. Um lado `None` é
    omitido junto com o separador; registros `(None, None)` não geram
    linha.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator, Tuple, Union

from mrflow.core.config import keys
from mrflow.core.config.conf import JobConf

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


class TextReader:
    def __init__(self, path: str):
        self._fh = open(path, "rb")

    def __iter__(self) -> Iterator[Tuple[int, str]]:
        offset = 0
        for raw in self._fh:
            line = raw.decode("utf-8").rstrip("\r\n")
            yield offset, line
            offset += len(raw)

    def close(self) -> None:
        self._fh.close()


class TextWriter(ClosedWriterMixin):
    def __init__(self, path: Path):
        self.path = path
        self._fh = open(path, "w", encoding="utf-8")

    def write(self, key: Any, val: Any) -> None:
        self._check_open()
        parts = [str(x) for x in (key, val) if x is not None]
        if parts:
            self._fh.write("\t".join(parts) + "\n")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._fh.close()


@INPUT_FORMATS.register("text")
class TextInputFormat(FileInputFormat):
    def open_reader(self, split: str, conf: JobConf) -> TextReader:
        return TextReader(split)


@OUTPUT_FORMATS.register("text")
class TextOutputFormat(FileOutputFormat):
    def get_record_writer(self, context: Any) -> TextWriter:
        return TextWriter(self.task_file(context))


def dseq(*paths: PathLike) -> DSeq:
    """DSeq sobre arquivos (ou diretórios) de texto."""
    return DSeq({keys.INPUT_FORMAT: "text", keys.INPUT_PATHS: [str(p) for p in paths]})


def dsink(path: PathLike) -> DSink:
    """DSink em texto escrito sob o diretório `path`."""
    return DSink({keys.OUTPUT_FORMAT: "text", keys.OUTPUT_DIR: str(path)}, dseq(path))
