# src/mrflow/io/formats.py
"""
Contratos de formatos de entrada e saída.

Um formato de entrada descreve como listar os splits de uma fonte e
como abrir um leitor de registros `(key, val)` para cada split. Um
formato de saída descreve como obter um record writer para uma task e
quais caminhos uma configuração materializa.

Formatos são selecionados pela configuração (`mrflow.input.format`,
`mrflow.output.format`) e resolvidos por consulta aos registros
`INPUT_FORMATS` / `OUTPUT_FORMATS`; cada entrada é uma fábrica sem
argumentos que devolve uma instância do formato.

Decisões arquiteturais:
    - Formatos são stateless; todo estado vive na configuração ou na task
    - `task_conf` permite que um formato especialize a configuração de
      uma task a partir do split (usado pelo mux)
    - Formatos baseados em arquivo compartilham a mesma convenção de
      nomes: `<basename>-<task_id><ext>` dentro de `mrflow.output.dir`
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, List, Optional, Protocol, Tuple

from mrflow.core.config import keys
from mrflow.core.config.conf import JobConf
from mrflow.core.exceptions import ResourceError
from mrflow.core.pipeline.registry import Registry

Record = Tuple[Any, Any]


class RecordReader(Protocol):
    def __iter__(self) -> Iterator[Record]: ...

    def close(self) -> None: ...


class RecordWriter(Protocol):
    def write(self, key: Any, val: Any) -> None: ...

    def close(self) -> None: ...


class InputFormat:
    """Contrato base de formato de entrada."""

    def list_splits(self, conf: JobConf) -> List[Any]:
        raise NotImplementedError

    def open_reader(self, split: Any, conf: JobConf) -> RecordReader:
        raise NotImplementedError

    def task_conf(self, split: Any, conf: JobConf) -> JobConf:
        return conf


class OutputFormat:
    """Contrato base de formato de saída."""

    def get_record_writer(self, context: Any) -> RecordWriter:
        raise NotImplementedError

    def list_output_paths(self, conf: JobConf) -> List[str]:
        return []

    def setup_job(self, conf: JobConf) -> None:
        """Prepara os destinos do job antes da primeira task (padrão: nada)."""


INPUT_FORMATS: Registry[Callable[[], InputFormat]] = Registry("input format")
OUTPUT_FORMATS: Registry[Callable[[], OutputFormat]] = Registry("output format")


def input_format(conf: JobConf) -> InputFormat:
    return INPUT_FORMATS.get(conf.get_str(keys.INPUT_FORMAT))()


def output_format(conf: JobConf) -> OutputFormat:
    return OUTPUT_FORMATS.get(conf.get_str(keys.OUTPUT_FORMAT))()


def writer_for(context: Any) -> RecordWriter:
    """Fábrica de record writer principal a partir da configuração da task."""
    return output_format(context.conf).get_record_writer(context)


# ---------------------------------------------------------------------------
# Leitores/writers utilitários
# ---------------------------------------------------------------------------

class IteratorReader:
    """Adapta um iterável e um callback de fechamento ao contrato de leitor."""

    def __init__(self, records: Iterable[Record], on_close: Optional[Callable[[], None]] = None):
        self._records = records
        self._on_close = on_close
        self._closed = False

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._on_close is not None:
            self._on_close()


# ---------------------------------------------------------------------------
# Formatos baseados em arquivo
# ---------------------------------------------------------------------------

def _visible(path: Path) -> bool:
    return not path.name.startswith(("_", "."))


class FileInputFormat(InputFormat):
    """
    Entrada a partir de `mrflow.input.paths`.

    Cada arquivo é um split. Diretórios são expandidos para seus
    arquivos visíveis (nomes sem prefixo `_` ou `.`) em ordem
    lexicográfica.
    """

    extension = ""

    def list_splits(self, conf: JobConf) -> List[str]:
        splits: List[str] = []
        for raw in conf.get_list(keys.INPUT_PATHS):
            path = Path(raw)
            if path.is_dir():
                splits.extend(
                    str(p) for p in sorted(path.iterdir()) if p.is_file() and _visible(p)
                )
            elif path.is_file():
                splits.append(str(path))
            else:
                raise ResourceError(
                    message="Caminho de entrada não existe",
                    details={"path": str(path)},
                    hint="Verifique se o job produtor foi executado.",
                )
        return splits


class FileOutputFormat(OutputFormat):
    """Saída em arquivos por task dentro de `mrflow.output.dir`."""

    extension = ""

    def list_output_paths(self, conf: JobConf) -> List[str]:
        return [conf.get_str(keys.OUTPUT_DIR)]

    def setup_job(self, conf: JobConf) -> None:
        self._output_dir(conf)

    def _output_dir(self, conf: JobConf) -> Path:
        out_dir = Path(conf.get_str(keys.OUTPUT_DIR))
        try:
            os.makedirs(out_dir, exist_ok=True)
        except OSError as e:
            raise ResourceError(
                message="Falha ao criar diretório de saída",
                details={"path": str(out_dir), "error": str(e)},
            ) from e
        return out_dir

    def task_file(self, context: Any) -> Path:
        conf = context.conf
        basename = conf.get_str(keys.OUTPUT_BASENAME, keys.DEFAULT_BASENAME)
        out_dir = self._output_dir(conf)
        return out_dir / f"{basename}-{context.task_id}{self.extension}"


class ClosedWriterMixin:
    """Rejeita escrita após `close` com `ResourceError`."""

    _closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise ResourceError(message="Escrita em record writer fechado")
