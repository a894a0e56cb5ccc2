# src/mrflow/io/dsink.py
"""
DSink: destino distribuído de registros.

Um DSink pareia o ConfigStep que configura o formato de saída de um job
com o DSeq que lê de volta o que foi escrito (o "espelho").

Invariantes:
    - `dsink.dseq` lê exatamente os caminhos que o DSink escreve
    - Um sink local fechado rejeita novas escritas com `ResourceError`
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Tuple

from mrflow.core.config.conf import JobConf
from mrflow.core.exceptions import ResourceError
from mrflow.core.pipeline.cstep import applied
from mrflow.runtime.context import TaskContext

from .dseq import DSeq, _freeze
from .formats import output_format, writer_for


class DSink:
    __slots__ = ("_step", "_dseq")

    def __init__(self, step: Any, dseq: DSeq):
        self._step = _freeze(step)
        self._dseq = dseq

    def as_config_step(self) -> Any:
        return self._step

    @property
    def dseq(self) -> DSeq:
        return self._dseq

    def mirror(self) -> DSeq:
        return self._dseq

    def conf(self, base: Optional[JobConf] = None) -> JobConf:
        return applied(self._step, base)

    def output_paths(self, conf: Optional[JobConf] = None) -> List[str]:
        """Caminhos de saída materializados por este DSink."""
        out_conf = self.conf(conf)
        return output_format(out_conf).list_output_paths(out_conf)

    def open_local(self, conf: Optional[JobConf] = None, task_id: str = "m-00000") -> "LocalSink":
        return LocalSink(self.conf(conf), task_id)

    def __repr__(self) -> str:
        return f"DSink({self._step!r})"


class LocalSink:
    """
    Destino local com escopo.

    Abre o record writer do formato de saída em um `TaskContext`
    dedicado. Fechar o sink fecha o writer principal e o estado do
    committer (ex.: writers do dux).
    """

    def __init__(self, conf: JobConf, task_id: str = "m-00000"):
        self.context = TaskContext(conf, task_id, writer_factory=writer_for)
        try:
            self.context.record_writer()
        except OSError as e:
            raise ResourceError(
                message="Falha ao abrir destino local",
                details={"error": str(e)},
            ) from e

    @property
    def counters(self):
        return self.context.counters

    def __enter__(self) -> "LocalSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def write(self, key: Any, val: Any) -> None:
        try:
            self.context.write(key, val)
        except OSError as e:
            raise ResourceError(message="Falha de escrita local", details={"error": str(e)}) from e

    def write_all(self, records: Iterable[Tuple[Any, Any]]) -> None:
        for key, val in records:
            self.write(key, val)

    def close(self) -> None:
        self.context.close()
