# src/mrflow/runtime/context.py
"""
TaskContext: contexto de execução de uma task.

O TaskContext é passado para sinks e writers durante a execução de uma
task (local ou dentro do runtime) e consolida:
    - a configuração ativa do job
    - contadores nomeados (grupo → nome)
    - o slot de estado do output committer (hospeda o estado do dux)
    - o record writer principal do job, aberto sob demanda
    - log estruturado de eventos da task

Invariantes:
    - O slot do committer é criado no máximo uma vez por contexto
    - `close` fecha o writer principal e o estado do committer uma única vez
    - Contadores são seguros para incremento concorrente

Limites explícitos:
    - Não escolhe formato de saída (recebe uma fábrica de writer)
    - Não executa tasks
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from mrflow.core.config.conf import JobConf
from mrflow.core.exceptions import ResourceError


class Counter:
    """Contador monotônico com incremento atômico."""

    __slots__ = ("_value", "_lock")

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def increment(self, n: int = 1) -> None:
        with self._lock:
            self._value += int(n)

    @property
    def value(self) -> int:
        return self._value


class Counters:
    """Conjunto de contadores indexado por (grupo, nome)."""

    def __init__(self) -> None:
        self._groups: Dict[str, Dict[str, Counter]] = {}
        self._lock = threading.Lock()

    def get(self, group: str, name: str) -> Counter:
        with self._lock:
            counters = self._groups.setdefault(group, {})
            if name not in counters:
                counters[name] = Counter()
            return counters[name]

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        with self._lock:
            return {
                group: {name: c.value for name, c in counters.items()}
                for group, counters in self._groups.items()
            }


WriterFactory = Callable[["TaskContext"], Any]


class TaskContext:
    """
    Contexto de uma tentativa de task.

    Args:
        conf (JobConf): Configuração ativa do job (exclusiva da task).
        task_id (str): Identificador da task (ex.: "m-00000", "r-00001").
        counters (Counters): Contadores compartilhados com o job.
        writer_factory: Fábrica do record writer principal (`ctx -> RecordWriter`).
    """

    def __init__(
        self,
        conf: JobConf,
        task_id: str = "m-00000",
        *,
        counters: Optional[Counters] = None,
        writer_factory: Optional[WriterFactory] = None,
        events: Optional[List[Dict[str, Any]]] = None,
    ):
        self.conf = conf
        self.task_id = task_id
        self.counters = counters if counters is not None else Counters()
        self.events: List[Dict[str, Any]] = events if events is not None else []
        self._writer_factory = writer_factory
        self._writer: Any = None
        self._committer_state: Any = None
        self._lock = threading.RLock()
        self._closed = False

    # -----------------------------
    # Counters
    # -----------------------------
    def get_counter(self, group: str, name: str) -> Counter:
        return self.counters.get(group, name)

    # -----------------------------
    # Output committer slot
    # -----------------------------
    def committer_state(self, factory: Callable[[], Any]) -> Any:
        """Retorna o estado do committer, criando-o via `factory` na primeira chamada."""
        with self._lock:
            if self._committer_state is None:
                self._committer_state = factory()
            return self._committer_state

    # -----------------------------
    # Escrita
    # -----------------------------
    def record_writer(self) -> Any:
        with self._lock:
            if self._closed:
                raise ResourceError(
                    message="Escrita após fechamento da task",
                    details={"task_id": self.task_id},
                )
            if self._writer is None:
                if self._writer_factory is None:
                    raise ResourceError(
                        message="Task sem record writer configurado",
                        details={"task_id": self.task_id},
                    )
                self._writer = self._writer_factory(self)
            return self._writer

    def write(self, key: Any, val: Any) -> None:
        self.record_writer().write(key, val)

    def with_conf(self, conf: JobConf) -> "TaskContext":
        """Contexto derivado com outra configuração e os mesmos contadores/eventos."""
        return TaskContext(conf, self.task_id, counters=self.counters, events=self.events)

    # -----------------------------
    # Logging
    # -----------------------------
    def log(self, *, level: str, message: str, **extra: Any) -> None:
        event = {
            "task_id": self.task_id,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    # -----------------------------
    # Encerramento
    # -----------------------------
    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            writer, state = self._writer, self._committer_state

        errors: List[BaseException] = []
        for resource in (writer, state):
            close = getattr(resource, "close", None)
            if close is None:
                continue
            try:
                close()
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        if errors:
            raise ResourceError(
                message="Falha ao fechar recursos da task",
                details={"task_id": self.task_id, "errors": [str(e) for e in errors]},
            ) from errors[0]
