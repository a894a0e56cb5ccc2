# src/mrflow/core/engine/graph.py
"""
Grafo de jobs: nós imutáveis com estágio e ConfigSteps acumulados.

Cada transição de estágio (`map`, `partition`, `combine`, `reduce`,
`output`) retorna um NOVO nó que carrega os steps do predecessor mais os
steps da transição. Um nó OUTPUT representa um job completo; o nó
INPUT retornado por `output` lê o que esse job escreve e depende dele.

Responsabilidades:
    - Validar a sequência de estágios no momento da construção
    - Acumular ConfigSteps na ordem em que foram declarados
    - Unir várias entradas (mux) no map e vários maps no partition
    - Registrar dependências entre jobs (nós OUTPUT)

Invariantes:
    - Nós são imutáveis e comparados por identidade
    - Transição inválida levanta `StageSequenceError` sem efeitos
      colaterais
    - `deps` de qualquer nó contém apenas nós OUTPUT

Limites explícitos:
    - Não materializa configurações (ver `engine`)
    - Não executa jobs
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from mrflow.core.config import keys
from mrflow.core.errors import stage_sequence_error
from mrflow.core.exceptions import StageSequenceError
from mrflow.core.pipeline.types import Stage
from mrflow.io import dux, mux
from mrflow.io.dseq import DSeq
from mrflow.io.dsink import DSink
from mrflow.io.serde import CODECS
from mrflow.runtime.tasks import sink_spec, task_spec


def _check(nodes: Sequence["JobNode"], transition: str, expected: Tuple[Stage, ...]) -> None:
    if not nodes:
        raise StageSequenceError(
            message=f"Transição '{transition}' requer ao menos um nó",
            details={"transition": transition},
        )
    for node in nodes:
        if node.stage not in expected:
            payload = stage_sequence_error(
                transition=transition,
                expected=[s.value for s in expected],
                received=node.stage.value,
            )
            raise StageSequenceError(message=payload.message, details=payload.details, hint=payload.hint)


def _union_deps(nodes: Iterable["JobNode"]) -> Tuple["JobNode", ...]:
    seen: List[JobNode] = []
    for node in nodes:
        for dep in node.deps:
            if not any(dep is s for s in seen):
                seen.append(dep)
    return tuple(seen)


def _joined_steps(nodes: Sequence["JobNode"]) -> Tuple[Any, ...]:
    if len(nodes) == 1:
        return nodes[0].steps
    return (mux.substeps(*(n.steps for n in nodes)),)


def _task_step(key: str, task: Any, args: Tuple[Any, ...]) -> Dict[str, Any]:
    return {key: task_spec(task, *args)}


def _shuffle_step(shuffle: Any) -> Any:
    if isinstance(shuffle, (tuple, list)) and len(shuffle) == 2 and all(isinstance(c, str) for c in shuffle):
        key_codec, val_codec = shuffle
        CODECS.get(key_codec)
        CODECS.get(val_codec)
        return {keys.SHUFFLE_KEY_CODEC: key_codec, keys.SHUFFLE_VALUE_CODEC: val_codec}
    return shuffle


@dataclass(frozen=True, eq=False)
class JobNode:
    """
    Nó imutável do grafo de jobs.

    Campos:
        - stage: estágio do nó
        - steps: ConfigSteps acumulados (aplicados em ordem)
        - deps: jobs (nós OUTPUT) dos quais este nó depende
        - dseq: DSeq lido por um nó INPUT
        - dsinks: DSinks escritos por um nó OUTPUT (ordem de declaração)
    """

    stage: Stage
    steps: Tuple[Any, ...] = ()
    deps: Tuple["JobNode", ...] = ()
    dseq: Optional[DSeq] = None
    dsinks: Tuple[DSink, ...] = ()

    def _next(self, stage: Stage, *steps: Any) -> "JobNode":
        return JobNode(stage=stage, steps=self.steps + steps, deps=self.deps)

    # -----------------------------
    # Transições
    # -----------------------------
    def map(self, task: Any, *args: Any, sink: Any = None) -> "JobNode":
        return map_inputs([self], task, *args, sink=sink)

    def partition(self, shuffle: Any = None, reducers: Optional[int] = None) -> "JobNode":
        return partition_maps([self], shuffle, reducers)

    def combine(self, task: Any, *args: Any) -> "JobNode":
        _check([self], "combine", (Stage.PARTITION,))
        return self._next(Stage.COMBINE, _task_step(keys.COMBINE_TASK, task, args))

    def reduce(self, task: Any, *args: Any, sink: Any = None) -> "JobNode":
        _check([self], "reduce", (Stage.PARTITION, Stage.COMBINE))
        steps: List[Any] = [_task_step(keys.REDUCE_TASK, task, args)]
        if sink is not None:
            steps.append({keys.REDUCE_SINK: sink_spec(sink)})
        return self._next(Stage.REDUCE, *steps)

    def output(self, dsinks: Union[DSink, Mapping[str, DSink]]) -> Union["JobNode", Tuple["JobNode", ...]]:
        """
        Fecha o job escrevendo em `dsinks`.

        Um único DSink retorna um nó INPUT que lê o espelho do DSink. Um
        mapeamento nome → DSink compõe as saídas via dux e retorna uma
        tupla de nós INPUT, um por DSink, na ordem de declaração.
        """
        _check([self], "output", (Stage.MAP, Stage.REDUCE))
        steps: List[Any] = []
        if self.stage is Stage.MAP:
            steps.append({keys.REDUCE_TASKS: 0})

        if isinstance(dsinks, DSink):
            sinks: Tuple[DSink, ...] = (dsinks,)
            steps.append(dsinks)
        elif isinstance(dsinks, Mapping):
            sinks = tuple(dsinks.values())
            steps.append(dux.dsink(dsinks))
        else:
            raise StageSequenceError(
                message="output requer um DSink ou um mapeamento nome → DSink",
                details={"received": type(dsinks).__name__},
            )

        out = JobNode(stage=Stage.OUTPUT, steps=self.steps + tuple(steps), deps=self.deps, dsinks=sinks)
        inputs = tuple(source(ds.dseq, deps=(out,)) for ds in sinks)
        return inputs[0] if isinstance(dsinks, DSink) else inputs

    def config(self, *steps: Any) -> "JobNode":
        """Acrescenta ConfigSteps arbitrários sem mudar o estágio."""
        return JobNode(
            stage=self.stage,
            steps=self.steps + steps,
            deps=self.deps,
            dseq=self.dseq,
            dsinks=self.dsinks,
        )


# ---------------------------------------------------------------------------
# Construtores
# ---------------------------------------------------------------------------

def source(dseq: DSeq, deps: Tuple[JobNode, ...] = ()) -> JobNode:
    """Nó INPUT que lê `dseq`."""
    return JobNode(stage=Stage.INPUT, steps=(dseq,), deps=deps, dseq=dseq)


def map_inputs(nodes: Sequence[JobNode], task: Any, *args: Any, sink: Any = None) -> JobNode:
    """Nó MAP sobre um ou mais nós INPUT (vários nós são unidos por mux)."""
    nodes = list(nodes)
    _check(nodes, "map", (Stage.INPUT,))
    steps: List[Any] = list(_joined_steps(nodes))
    steps.append(_task_step(keys.MAP_TASK, task, args))
    if sink is not None:
        steps.append({keys.MAP_SINK: sink_spec(sink)})
    return JobNode(stage=Stage.MAP, steps=tuple(steps), deps=_union_deps(nodes))


def partition_maps(nodes: Sequence[JobNode], shuffle: Any = None, reducers: Optional[int] = None) -> JobNode:
    """
    Nó PARTITION sobre um ou mais nós MAP.

    `shuffle` é um par `(codec_chave, codec_valor)` ou um ConfigStep
    arbitrário. Vários nós MAP são unidos por mux: cada split é lido
    e mapeado com a configuração do seu próprio ramo.
    """
    nodes = list(nodes)
    _check(nodes, "partition", (Stage.MAP,))
    steps: List[Any] = list(_joined_steps(nodes))
    if shuffle is not None:
        steps.append(_shuffle_step(shuffle))
    if reducers is not None:
        steps.append({keys.REDUCE_TASKS: int(reducers)})
    return JobNode(stage=Stage.PARTITION, steps=tuple(steps), deps=_union_deps(nodes))
