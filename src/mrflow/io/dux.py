# src/mrflow/io/dux.py
"""
Dux: saídas nomeadas múltiplas a partir de um único job.

Cada saída nomeada é registrada como um diff de configuração relativo à
configuração do job. Durante a task, o estado do dux (hospedado no slot
do committer do `TaskContext`) cria sob demanda um record writer por
par `(nome, basename)`, usando o formato de saída da sub-configuração.

Responsabilidades:
    - Acumular sub-configurações nomeadas (`add_subconf` / `add_substep`)
    - Compor DSinks nomeados em um único DSink (`dsink`)
    - Criar writers sob demanda, exatamente uma vez por chave
    - Contar registros escritos por nome no grupo
      "Demultiplexing Output"
    - Fechar todos os writers criados quando a task termina

Invariantes:
    - Um writer é construído no máximo uma vez por (nome, basename),
      mesmo com primeira escrita concorrente
    - Cada escrita incrementa o contador do nome exatamente uma vez
    - `close` é idempotente
    - Nome desconhecido falha com `UnknownComponentError`

Decisões arquiteturais:
    - O record writer principal do formato "dux" apenas roteia
      `write((nome, base) | nome, (key, val))` para o writer nomeado
    - Sinks `named_*` roteiam pelo nome presente em cada registro;
      sinks `prefix_*` usam um nome fixo
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from mrflow.core.config import keys
from mrflow.core.config.conf import JobConf
from mrflow.core.config.errors import ConfigValueTypeError, UnknownComponentError
from mrflow.core.exceptions import ResourceError
from mrflow.core.pipeline.cstep import apply
from mrflow.runtime.tasks import sink

from . import mux
from .dsink import DSink
from .formats import OUTPUT_FORMATS, OutputFormat, RecordWriter, output_format

COUNTER_GROUP = "Demultiplexing Output"
_EMPTY = "{}"


# ---------------------------------------------------------------------------
# Sub-configurações
# ---------------------------------------------------------------------------

def _is_dux(conf: JobConf) -> bool:
    return conf.get(keys.OUTPUT_FORMAT, None) == "dux"


def get_subconfs(conf: JobConf) -> Dict[str, Dict[str, Any]]:
    """Diffs nomeados registrados (vazio se a saída não é dux)."""
    if not _is_dux(conf):
        return {}
    diffs = conf.get_json(keys.DUX_CONFS, {})
    if not isinstance(diffs, dict):
        raise ConfigValueTypeError(f"Config '{keys.DUX_CONFS}' deve ser um mapa nome → diff")
    return diffs


def _empty(conf: JobConf) -> JobConf:
    # base dux vazia: o formato de cada saída sempre entra no seu diff
    return conf.clone().set(keys.OUTPUT_FORMAT, "dux").set(keys.DUX_CONFS, _EMPTY)


def add_subconf(conf: JobConf, name: str, sub: JobConf) -> JobConf:
    """Registra `sub` como a saída `name`, guardando apenas o diff sobre `conf`."""
    if not isinstance(name, str) or not name:
        raise ConfigValueTypeError(f"Nome de saída dux deve ser str não vazia: {name!r}")
    diff = _empty(conf).diff(sub)
    diff.pop(keys.DUX_CONFS, None)
    diffs = get_subconfs(conf)
    diffs[name] = diff
    conf.set(keys.OUTPUT_FORMAT, "dux")
    return conf.set_json(keys.DUX_CONFS, diffs)


def add_substep(conf: JobConf, name: str, step: Any) -> JobConf:
    return add_subconf(conf, name, apply(_empty(conf), step))


def subconf(conf: JobConf, name: str) -> JobConf:
    """Reconstrói a configuração da saída `name`."""
    diffs = get_subconfs(conf)
    if name not in diffs:
        raise UnknownComponentError(
            f"Saída dux desconhecida: {name!r}. Conhecidas: {list(diffs)}"
        )
    return _empty(conf).merge(diffs[name])


def names(conf: JobConf) -> List[str]:
    return list(get_subconfs(conf))


def output_paths(conf: JobConf) -> List[str]:
    """Caminhos materializados por todas as saídas nomeadas, na ordem de declaração."""
    paths: List[str] = []
    for name in get_subconfs(conf):
        sub = subconf(conf, name)
        paths.extend(output_format(sub).list_output_paths(sub))
    return paths


def dsink(dsinks: Mapping[str, DSink]) -> DSink:
    """
    Compõe DSinks nomeados em um único DSink.

    O espelho do DSink resultante é o mux dos espelhos dos componentes.
    """
    items = list(dsinks.items())
    if not items:
        raise ConfigValueTypeError("dux.dsink requer pelo menos uma saída nomeada")

    def step(conf: JobConf) -> None:
        for name, ds in items:
            add_substep(conf, name, ds)

    return DSink(step, mux.dseq(*(ds.dseq for _, ds in items)))


# ---------------------------------------------------------------------------
# Estado por task
# ---------------------------------------------------------------------------

class NamedSink:
    """Writer nomeado: record writer do formato da saída + contador."""

    def __init__(self, conf: JobConf, writer: RecordWriter, counter: Any):
        self.conf = conf
        self._writer = writer
        self._counter = counter
        self._lock = threading.Lock()
        self._closed = False

    def write(self, key: Any, val: Any) -> None:
        with self._lock:
            self._writer.write(key, val)
            self._counter.increment(1)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._writer.close()


class _Lazy:
    """Valor construído uma única vez, na primeira chamada bem-sucedida a `get`."""

    __slots__ = ("_factory", "_lock", "value", "realized")

    def __init__(self, factory: Callable[[], NamedSink]):
        self._factory = factory
        self._lock = threading.Lock()
        self.value: Optional[NamedSink] = None
        self.realized = False

    def get(self) -> NamedSink:
        with self._lock:
            if not self.realized:
                self.value = self._factory()
                self.realized = True
            return self.value  # type: ignore[return-value]


class DuxState:
    """Tabela de writers nomeados de uma task."""

    def __init__(self, context: Any):
        self._context = context
        self._lock = threading.Lock()
        self._handles: Dict[Tuple[str, Optional[str]], _Lazy] = {}
        self._closed = False

    def get_sink(self, name: str, base: Optional[str] = None) -> NamedSink:
        key = (name, base)
        with self._lock:
            if self._closed:
                raise ResourceError(
                    message="Escrita em saída dux após fechamento da task",
                    details={"name": name},
                )
            handle = self._handles.get(key)
            if handle is None:
                handle = self._handles[key] = _Lazy(lambda: self._new_sink(name, base))
        named = handle.get()
        with self._lock:
            closed = self._closed
        if closed:
            # writer realizado após um close concorrente
            named.close()
            raise ResourceError(
                message="Escrita em saída dux após fechamento da task",
                details={"name": name},
            )
        return named

    def _new_sink(self, name: str, base: Optional[str]) -> NamedSink:
        conf = subconf(self._context.conf, name)
        if base is not None:
            conf.set(keys.OUTPUT_BASENAME, base)
        try:
            writer = output_format(conf).get_record_writer(self._context.with_conf(conf))
        except OSError as e:
            raise ResourceError(
                message="Falha ao construir writer de saída dux",
                details={"name": name, "base": base, "error": str(e)},
            ) from e
        return NamedSink(conf, writer, self._context.get_counter(COUNTER_GROUP, name))

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            handles = list(self._handles.values())

        errors: List[BaseException] = []
        for handle in handles:
            if not handle.realized:
                continue
            try:
                handle.value.close()  # type: ignore[union-attr]
            except Exception as e:  # noqa: BLE001
                errors.append(e)
        if errors:
            raise ResourceError(
                message="Falha ao fechar writers dux",
                details={"errors": [str(e) for e in errors]},
            ) from errors[0]


def state(context: Any) -> DuxState:
    return context.committer_state(lambda: DuxState(context))


def get_sink(context: Any, name: str, base: Optional[str] = None) -> NamedSink:
    return state(context).get_sink(name, base)


def write(context: Any, name: str, key: Any, val: Any, base: Optional[str] = None) -> None:
    """Escreve `(key, val)` na saída nomeada `name` (opcionalmente com basename `base`)."""
    get_sink(context, name, base).write(key, val)


class DuxRecordWriter:
    """Writer principal do formato dux: `write(nome | (nome, base), (key, val))`."""

    def __init__(self, context: Any):
        self._context = context

    def write(self, key: Any, val: Any) -> None:
        name, base = key if isinstance(key, tuple) else (key, None)
        k, v = val
        write(self._context, name, k, v, base)

    def close(self) -> None:
        state(self._context).close()


@OUTPUT_FORMATS.register("dux")
class DuxOutputFormat(OutputFormat):
    def get_record_writer(self, context: Any) -> DuxRecordWriter:
        return DuxRecordWriter(context)

    def list_output_paths(self, conf: JobConf) -> List[str]:
        return output_paths(conf)

    def setup_job(self, conf: JobConf) -> None:
        for name in get_subconfs(conf):
            sub = subconf(conf, name)
            output_format(sub).setup_job(sub)


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------

def _route(target: Any) -> Tuple[str, Optional[str]]:
    if isinstance(target, (tuple, list)):
        return target[0], target[1]
    return target, None


@sink("dux.named_keyvals")
def named_keyvals(context, coll, oname=None) -> None:
    """Registros `(nome, (key, val))`; com `oname`, registros `(key, val)` vão para `oname`."""
    for record in coll:
        if oname is None:
            name, (key, val) = record
        else:
            name, (key, val) = oname, record
        target, base = _route(name)
        write(context, target, key, val, base)


@sink("dux.named_keys")
def named_keys(context, coll, oname=None) -> None:
    for record in coll:
        name, key = (record if oname is None else (oname, record))
        target, base = _route(name)
        write(context, target, key, None, base)


@sink("dux.named_vals")
def named_vals(context, coll, oname=None) -> None:
    for record in coll:
        name, val = (record if oname is None else (oname, record))
        target, base = _route(name)
        write(context, target, None, val, base)


@sink("dux.prefix_keyvals")
def prefix_keyvals(context, coll, oname) -> None:
    """Registros `(base, (key, val))` escritos na saída fixa `oname` com basename `base`."""
    for base, (key, val) in coll:
        write(context, oname, key, val, base)


@sink("dux.prefix_keys")
def prefix_keys(context, coll, oname) -> None:
    for base, key in coll:
        write(context, oname, key, None, base)


@sink("dux.prefix_vals")
def prefix_vals(context, coll, oname) -> None:
    for base, val in coll:
        write(context, oname, None, val, base)
