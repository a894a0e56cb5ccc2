# src/mrflow/runtime/local.py
"""
Runtime local de execução de jobs.

O `LocalRuntime` executa, no processo corrente, um job MapReduce
completamente descrito por um `JobConf`:

    input splits → map → (combine) → partition/shuffle → reduce → sink

Responsabilidades:
    - Preparar os destinos do job (`OutputFormat.setup_job`), de modo que
      toda saída declarada exista mesmo sem registros
    - Ler cada split com a configuração da task (`InputFormat.task_conf`),
      o que permite que um mux despache cada split para o map task da
      sua sub-entrada
    - Validar a tipagem do shuffle contra os codecs configurados
    - Particionar por hash estável em `mrflow.reduce.tasks` partições
    - Agrupar e ordenar chaves por partição
    - Fechar todos os writers de cada task (inclusive os do dux)
    - Agregar contadores do job

Invariantes:
    - `mrflow.reduce.tasks == 0` produz um job map-only
    - Cada task possui seu próprio `TaskContext`
    - Falhas são propagadas (sem retry)

Limites explícitos:
    - Não executa tasks em paralelo
    - Não persiste dados intermediários
"""

from __future__ import annotations

import zlib
from collections import defaultdict
from typing import Any, Callable, Dict, Iterable, Iterator, List, Protocol, Tuple

from mrflow.core.config import keys
from mrflow.core.config.conf import JobConf
from mrflow.core.config.errors import ConfigValueTypeError
from mrflow.core.pipeline.types import JobResult
from mrflow.io.formats import input_format, output_format, writer_for
from mrflow.io.serde import CODECS

from .context import Counters, TaskContext
from .tasks import load_sink, load_task

TASK_GROUP = "mrflow.TaskCounter"
MAP_INPUT_RECORDS = "MAP_INPUT_RECORDS"
MAP_OUTPUT_RECORDS = "MAP_OUTPUT_RECORDS"
COMBINE_OUTPUT_RECORDS = "COMBINE_OUTPUT_RECORDS"
REDUCE_INPUT_GROUPS = "REDUCE_INPUT_GROUPS"
REDUCE_OUTPUT_RECORDS = "REDUCE_OUTPUT_RECORDS"


class Runtime(Protocol):
    """Contrato do runtime: submete um job e bloqueia até seu término."""

    def submit(self, conf: JobConf) -> JobResult: ...


def partition_for(key: Any, partitions: int) -> int:
    return zlib.crc32(repr(key).encode("utf-8")) % partitions


def _identity_map(records: Iterable[Any]) -> Iterator[Any]:
    return iter(records)


def _identity_reduce(groups: Iterable[Tuple[Any, List[Any]]]) -> Iterator[Tuple[Any, Any]]:
    for key, vals in groups:
        for val in vals:
            yield key, val


def _counting(records: Iterable[Any], counter) -> Iterator[Any]:
    for record in records:
        counter.increment(1)
        yield record


def _sorted_groups(groups: Dict[Any, List[Any]]) -> List[Tuple[Any, List[Any]]]:
    try:
        order = sorted(groups)
    except TypeError:
        order = list(groups)
    return [(key, groups[key]) for key in order]


def _group(records: Iterable[Tuple[Any, Any]]) -> Dict[Any, List[Any]]:
    groups: Dict[Any, List[Any]] = defaultdict(list)
    for key, val in records:
        groups[key].append(val)
    return groups


def _resolve(conf: JobConf, key: str, default: Callable[..., Any]) -> Tuple[Callable[..., Any], List[Any]]:
    return load_task(conf, key) or (default, [])


class LocalRuntime:
    """Runtime in-process; ver docstring do módulo."""

    def submit(self, conf: JobConf) -> JobResult:
        job = conf.get_str(keys.JOB_NAME, "mrflow")
        counters = Counters()
        reducers = conf.get_int(keys.REDUCE_TASKS, 1)
        if reducers < 0:
            raise ConfigValueTypeError(f"Config '{keys.REDUCE_TASKS}' deve ser >= 0, recebido {reducers}")

        output_format(conf).setup_job(conf)
        fmt = input_format(conf)
        splits = fmt.list_splits(conf)
        partitions: List[Dict[Any, List[Any]]] = [defaultdict(list) for _ in range(reducers)]

        for index, split in enumerate(splits):
            task_conf = fmt.task_conf(split, conf)
            self._run_map(fmt, split, task_conf, f"m-{index:05d}", counters, partitions)

        for index in range(reducers):
            self._run_reduce(conf, f"r-{index:05d}", counters, partitions[index])

        return JobResult(job=job, counters=counters.to_dict())

    # -----------------------------
    # Map
    # -----------------------------
    def _run_map(
        self,
        fmt,
        split: Any,
        conf: JobConf,
        task_id: str,
        counters: Counters,
        partitions: List[Dict[Any, List[Any]]],
    ) -> None:
        mapper, args = _resolve(conf, keys.MAP_TASK, _identity_map)
        context = TaskContext(conf, task_id, counters=counters, writer_factory=writer_for)
        reader = fmt.open_reader(split, conf)
        try:
            records = _counting(reader, context.get_counter(TASK_GROUP, MAP_INPUT_RECORDS))
            output = mapper(records, *args)

            if not partitions:
                sink, sink_args = load_sink(conf, keys.MAP_SINK)
                context.record_writer()
                sink(context, output, *sink_args)
                return

            shuffled = list(self._validate(conf, output))
            context.get_counter(TASK_GROUP, MAP_OUTPUT_RECORDS).increment(len(shuffled))

            combiner = load_task(conf, keys.COMBINE_TASK)
            if combiner is not None:
                fn, cargs = combiner
                shuffled = list(self._validate(conf, fn(iter(_sorted_groups(_group(shuffled))), *cargs)))
                context.get_counter(TASK_GROUP, COMBINE_OUTPUT_RECORDS).increment(len(shuffled))

            for key, val in shuffled:
                partitions[partition_for(key, len(partitions))][key].append(val)
        finally:
            try:
                reader.close()
            finally:
                context.close()

    def _validate(self, conf: JobConf, records: Iterable[Any]) -> Iterator[Tuple[Any, Any]]:
        key_codec = CODECS.get(conf.get_str(keys.SHUFFLE_KEY_CODEC, "object"))
        val_codec = CODECS.get(conf.get_str(keys.SHUFFLE_VALUE_CODEC, "object"))
        for record in records:
            try:
                key, val = record
            except (TypeError, ValueError) as e:
                raise ConfigValueTypeError(f"Saída do map deve ser um par (key, val): {record!r}") from e
            if not key_codec.accepts(key):
                raise ConfigValueTypeError(
                    f"Chave {key!r} incompatível com codec de shuffle '{key_codec.name}'"
                )
            if not val_codec.accepts(val):
                raise ConfigValueTypeError(
                    f"Valor {val!r} incompatível com codec de shuffle '{val_codec.name}'"
                )
            yield key, val

    # -----------------------------
    # Reduce
    # -----------------------------
    def _run_reduce(
        self,
        conf: JobConf,
        task_id: str,
        counters: Counters,
        groups: Dict[Any, List[Any]],
    ) -> None:
        reducer, args = _resolve(conf, keys.REDUCE_TASK, _identity_reduce)
        sink, sink_args = load_sink(conf, keys.REDUCE_SINK)
        context = TaskContext(conf, task_id, counters=counters, writer_factory=writer_for)
        try:
            context.record_writer()
            ordered = _sorted_groups(groups)
            context.get_counter(TASK_GROUP, REDUCE_INPUT_GROUPS).increment(len(ordered))
            output = reducer(iter(ordered), *args)
            sink(context, _counting(output, context.get_counter(TASK_GROUP, REDUCE_OUTPUT_RECORDS)), *sink_args)
        finally:
            context.close()
