# src/mrflow/io/mux.py
"""
Mux: união de várias entradas heterogêneas em um único job.

Cada sub-entrada é registrada como um diff de configuração relativo à
configuração do job no momento em que foi adicionada. Em tempo de
leitura, cada split é marcado com o índice da sub-entrada de origem e
lido sob a sub-configuração reconstruída (`conf` atual + diff).

Responsabilidades:
    - Acumular diffs de sub-configuração (`add_subconf` / `add_substep`)
    - Listar splits de todas as sub-entradas (marcados por índice)
    - Abrir cada split com o formato da sua sub-entrada
    - Entregar a sub-configuração por split para o runtime (`task_conf`)

Invariantes:
    - A chave interna do mux nunca vaza para os diffs calculados pelo
      próprio mux sobre a configuração do job
    - A ordem dos splits é a ordem de declaração das sub-entradas
    - Sub-entradas podem ser, elas próprias, um mux (aninhamento)

Limites explícitos:
    - Não intercala registros; a união é concatenação por split
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from mrflow.core.config import keys
from mrflow.core.config.conf import JobConf
from mrflow.core.config.errors import ConfigValueTypeError
from mrflow.core.pipeline.cstep import apply

from .dseq import DSeq
from .formats import INPUT_FORMATS, InputFormat, RecordReader, input_format

_EMPTY = "[]"


@dataclass(frozen=True)
class MuxSplit:
    tag: int
    split: Any


def _is_mux(conf: JobConf) -> bool:
    return conf.get(keys.INPUT_FORMAT, None) == "mux"


def get_subconfs(conf: JobConf) -> List[Dict[str, Any]]:
    """Diffs de sub-configuração registrados (vazio se a entrada não é mux)."""
    if not _is_mux(conf):
        return []
    diffs = conf.get_json(keys.MUX_CONFS, [])
    if not isinstance(diffs, list):
        raise ConfigValueTypeError(f"Config '{keys.MUX_CONFS}' deve ser uma lista de diffs")
    return diffs


def _empty(conf: JobConf) -> JobConf:
    return conf.clone().set(keys.INPUT_FORMAT, "mux").set(keys.MUX_CONFS, _EMPTY)


def add_subconf(conf: JobConf, diff: Dict[str, Any]) -> JobConf:
    diffs = get_subconfs(conf)
    diffs.append(dict(diff))
    conf.set(keys.INPUT_FORMAT, "mux")
    return conf.set_json(keys.MUX_CONFS, diffs)


def add_substep(conf: JobConf, step: Any) -> JobConf:
    """Registra `step` como sub-entrada, calculando seu diff sobre `conf`."""
    base = _empty(conf)
    sub = apply(base.clone(), step)
    return add_subconf(conf, base.diff(sub))


def subconf(conf: JobConf, index: int) -> JobConf:
    """Reconstrói a configuração da sub-entrada `index`."""
    diffs = get_subconfs(conf)
    if not 0 <= index < len(diffs):
        raise ConfigValueTypeError(f"Sub-entrada de mux inexistente: {index}")
    return _empty(conf).merge(diffs[index])


def substeps(*steps: Any):
    """ConfigStep que transforma a entrada do job na união de `steps`."""

    def step(conf: JobConf) -> None:
        for s in steps:
            add_substep(conf, s)

    return step


def dseq(*dseqs: DSeq) -> DSeq:
    """DSeq cuja leitura é a união (multiconjunto) das leituras de `dseqs`."""
    return DSeq(substeps(*dseqs))


@INPUT_FORMATS.register("mux")
class MuxInputFormat(InputFormat):
    def list_splits(self, conf: JobConf) -> List[MuxSplit]:
        splits: List[MuxSplit] = []
        for index in range(len(get_subconfs(conf))):
            sub = subconf(conf, index)
            splits.extend(MuxSplit(index, s) for s in input_format(sub).list_splits(sub))
        return splits

    def _resolve(self, split: MuxSplit, conf: JobConf):
        sub = subconf(conf, split.tag)
        fmt = input_format(sub)
        if isinstance(fmt, MuxInputFormat):
            return fmt._resolve(split.split, sub)
        return split.split, fmt.task_conf(split.split, sub)

    def task_conf(self, split: MuxSplit, conf: JobConf) -> JobConf:
        return self._resolve(split, conf)[1]

    def open_reader(self, split: MuxSplit, conf: JobConf) -> RecordReader:
        # `conf` pode ser a configuração do job ou a já resolvida por `task_conf`
        if _is_mux(conf):
            leaf, conf = self._resolve(split, conf)
        else:
            leaf = split
            while isinstance(leaf, MuxSplit):
                leaf = leaf.split
        return input_format(conf).open_reader(leaf, conf)
