# src/mrflow/io/dseq.py
"""
DSeq: sequência distribuída de registros.

Um DSeq é um valor imutável que envolve um ConfigStep responsável por
configurar o formato de entrada de um job. Ele pode ser usado como
entrada de jobs (via `as_config_step`) ou lido localmente.

Responsabilidades:
    - Expor o ConfigStep de entrada
    - Abrir uma fonte local com escopo (`open_local`) que libera todos
      os leitores ao final, inclusive em abandono ou erro
    - Redução sequencial local (`reduce` / `collect`)

Invariantes:
    - Um DSeq nunca muda após construído
    - Leitura local não altera a configuração recebida
    - Toda falha de I/O local é reportada como `ResourceError`

Limites explícitos:
    - Não executa jobs
    - A ordem de leitura segue a ordem dos splits, sem outra garantia
"""

from __future__ import annotations

import functools
from types import MappingProxyType
from typing import Any, Callable, Generator, Iterator, List, Mapping, Optional

from mrflow.core.config.conf import JobConf
from mrflow.core.exceptions import ResourceError
from mrflow.core.pipeline.cstep import applied

from .formats import InputFormat, RecordReader, input_format


def _freeze(step: Any) -> Any:
    if isinstance(step, Mapping):
        return MappingProxyType(dict(step))
    if isinstance(step, list):
        return tuple(step)
    return step


class DSeq:
    """
    Sequência distribuída definida por um ConfigStep de entrada.

    Exemplo:
        >>> from mrflow.io import mem
        >>> mem.dseq([("a", 1), ("b", 2)]).collect()
        [('a', 1), ('b', 2)]
    """

    __slots__ = ("_step",)

    def __init__(self, step: Any):
        self._step = _freeze(step)

    def as_config_step(self) -> Any:
        return self._step

    def conf(self, base: Optional[JobConf] = None) -> JobConf:
        """Configuração de entrada materializada sobre um clone de `base`."""
        return applied(self._step, base)

    def open_local(self, conf: Optional[JobConf] = None) -> "Source":
        return Source(self.conf(conf))

    def reduce(self, fn: Callable[[Any, Any], Any], init: Any, conf: Optional[JobConf] = None) -> Any:
        with self.open_local(conf) as source:
            return functools.reduce(fn, source, init)

    def collect(self, conf: Optional[JobConf] = None) -> List[Any]:
        with self.open_local(conf) as source:
            return list(source)

    def __repr__(self) -> str:
        return f"DSeq({self._step!r})"


class Source:
    """
    Fonte local com escopo.

    Os splits são lidos preguiçosamente, um leitor por vez. `close`
    libera o leitor corrente (e quaisquer outros ainda abertos) e pode
    ser chamado a qualquer momento, inclusive antes do fim da iteração.
    """

    def __init__(self, conf: JobConf):
        self.conf = conf
        self._format: InputFormat = input_format(conf)
        self._readers: List[RecordReader] = []
        self._records: Optional[Generator[Any, None, None]] = None
        self._closed = False

    def __enter__(self) -> "Source":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[Any]:
        if self._closed:
            raise ResourceError(message="Leitura de fonte local já fechada")
        if self._records is None:
            self._records = self._read()
        return self._records

    def _read(self) -> Generator[Any, None, None]:
        try:
            splits = self._format.list_splits(self.conf)
        except OSError as e:
            raise ResourceError(message="Falha ao listar splits", details={"error": str(e)}) from e

        for split in splits:
            reader = self._open(split)
            try:
                yield from reader
            finally:
                self._release(reader)

    def _open(self, split: Any) -> RecordReader:
        try:
            task_conf = self._format.task_conf(split, self.conf)
            reader = self._format.open_reader(split, task_conf)
        except OSError as e:
            raise ResourceError(
                message="Falha ao abrir leitor local",
                details={"split": repr(split), "error": str(e)},
            ) from e
        self._readers.append(reader)
        return reader

    def _release(self, reader: RecordReader) -> None:
        if reader in self._readers:
            self._readers.remove(reader)
        try:
            reader.close()
        except OSError as e:
            raise ResourceError(message="Falha ao fechar leitor local", details={"error": str(e)}) from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._records is not None:
            self._records.close()
        while self._readers:
            self._release(self._readers[-1])
