# src/mrflow/io/parquet.py
"""
Formato Parquet (colunas `key` / `val`).

Leitura e escrita via pandas; requer um engine parquet instalado
(pyarrow ou fastparquet). O writer acumula os registros da task e
materializa um único arquivo no `close`.

Limites explícitos:
    - Valores devem ser representáveis pelo engine parquet
    - Não há leitura parcial de row groups
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Tuple, Union

from mrflow.core.config import keys
from mrflow.core.config.conf import JobConf
from mrflow.core.exceptions import ResourceError

from .dseq import DSeq
from .dsink import DSink
from .formats import (
    INPUT_FORMATS,
    OUTPUT_FORMATS,
    ClosedWriterMixin,
    FileInputFormat,
    FileOutputFormat,
    IteratorReader,
)

PathLike = Union[str, Path]


def _pandas():
    try:
        import pandas as pd  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ResourceError(
            message="Suporte a parquet requer pandas + engine parquet (pyarrow ou fastparquet).",
        ) from e
    return pd


class ParquetWriter(ClosedWriterMixin):
    def __init__(self, path: Path):
        self.path = path
        self._rows: List[Tuple[Any, Any]] = []

    def write(self, key: Any, val: Any) -> None:
        self._check_open()
        self._rows.append((key, val))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        pd = _pandas()
        df = pd.DataFrame(
            {"key": [r[0] for r in self._rows], "val": [r[1] for r in self._rows]},
            columns=["key", "val"],
        )
        df.to_parquet(self.path, index=False)


@INPUT_FORMATS.register("parquet")
class ParquetInputFormat(FileInputFormat):
    def open_reader(self, split: str, conf: JobConf) -> IteratorReader:
        pd = _pandas()
        df = pd.read_parquet(split)
        return IteratorReader(list(zip(df["key"].tolist(), df["val"].tolist())))


@OUTPUT_FORMATS.register("parquet")
class ParquetOutputFormat(FileOutputFormat):
    extension = ".parquet"

    def get_record_writer(self, context: Any) -> ParquetWriter:
        return ParquetWriter(self.task_file(context))


def dseq(*paths: PathLike) -> DSeq:
    return DSeq({keys.INPUT_FORMAT: "parquet", keys.INPUT_PATHS: [str(p) for p in paths]})


def dsink(path: PathLike) -> DSink:
    return DSink({keys.OUTPUT_FORMAT: "parquet", keys.OUTPUT_DIR: str(path)}, dseq(path))
