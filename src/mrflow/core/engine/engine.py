# src/mrflow/core/engine/engine.py
"""
Engine de execução do grafo de jobs do mrflow.

O Engine recebe os nós folha de um grafo, descobre os jobs dos quais
eles dependem, materializa a configuração de cada job e submete os
jobs ao runtime com a maior concorrência que as dependências permitem.

Política de execução:
    - Um job só é submetido após TODAS as suas dependências terem
      concluído com sucesso
    - Jobs independentes rodam em workers distintos (threads)
    - Um job só é entregue ao pool quando há worker ocioso
    - Na primeira falha, nenhum job novo é submetido; jobs já em voo
      terminam normalmente e a falha original é propagada como
      `JobExecutionFailure`, identificando o job
    - Configurações de todos os jobs são materializadas antes da
      primeira submissão (erros de configuração não têm efeito colateral)

Rastreabilidade:
    - Eventos run_started, job_started, job_finished, job_failed,
      job_skipped, run_finished e run_failed são registrados no
      `RunManifest` do Engine; cada chamada a `execute` começa um
      manifest novo

Limites explícitos:
    - Não reexecuta jobs (sem retry)
    - Não cancela jobs em voo
    - Não impõe timeout (delegado ao runtime)
"""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Union

from mrflow._version import __version__
from mrflow.core.config import keys
from mrflow.core.config.conf import JobConf
from mrflow.core.config.hashing import compute_config_hash
from mrflow.core.errors import exception_to_error
from mrflow.core.exceptions import JobExecutionFailure
from mrflow.core.pipeline.cstep import apply
from mrflow.core.pipeline.types import JobResult, JobStatus, Stage
from mrflow.core.traceability.manifest import (
    RunManifest,
    add_event,
    create_manifest,
    job_failed,
    job_finished,
    job_skipped,
    job_started,
)
from mrflow.runtime.local import LocalRuntime

from .graph import JobNode
from .planner import collect_jobs, flatten_leaves, plan_waves

Leaf = Union[JobNode, Sequence[JobNode]]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Engine:
    """
    Engine canônico do mrflow (planner + executor concorrente).

    Args:
        runtime: Objeto com `submit(conf) -> JobResult` (padrão: `LocalRuntime`).
        base_conf (JobConf): Configuração base clonada para cada job.
        name (str): Nome base dos jobs (`name[i/n]`).
        max_workers (int): Limite de jobs simultâneos.
    """

    def __init__(
        self,
        *,
        runtime: Any = None,
        base_conf: Optional[JobConf] = None,
        name: str = "mrflow",
        max_workers: Optional[int] = None,
    ):
        self.runtime = runtime if runtime is not None else LocalRuntime()
        self.base_conf = base_conf if base_conf is not None else JobConf()
        self.name = name
        self.max_workers = max_workers
        self._lock = threading.Lock()
        self._reset()

    def _reset(self) -> None:
        """Manifest e resultados novos: cada `execute` é uma execução independente."""
        self.results: Dict[str, JobResult] = {}
        self.manifest: RunManifest = create_manifest(
            run_id=self.name,
            started_at=_now(),
            mrflow_version=__version__,
            config_hash=compute_config_hash(self.base_conf),
        )

    # -----------------------------
    # Materialização
    # -----------------------------
    def job_conf(self, job: JobNode, job_name: str) -> JobConf:
        """Configuração completa do job: base + steps acumulados + nome."""
        conf = apply(self.base_conf.clone(), job.steps)
        return conf.set(keys.JOB_NAME, job_name)

    # -----------------------------
    # Execução de um job (worker)
    # -----------------------------
    def _run_job(self, job: JobNode, job_name: str, conf: JobConf, wave: int) -> JobResult:
        with self._lock:
            job_started(self.manifest, job=job_name, ts=_now(), wave=wave)

        try:
            result = self.runtime.submit(conf)
        except Exception as e:
            error = exception_to_error(e, job=job_name)
            with self._lock:
                job_failed(self.manifest, job=job_name, ts=_now(), error=error.to_dict())
            raise JobExecutionFailure(
                message=str(e) or e.__class__.__name__,
                details=error.details,
                hint=error.hint,
                job=job_name,
                node=job,
            ) from e

        if not isinstance(result, JobResult):
            result = JobResult(job=job_name)
        with self._lock:
            job_finished(self.manifest, job=job_name, ts=_now(), counters=result.counters)
            self.results[job_name] = result
        return result

    # -----------------------------
    # Execução do grafo
    # -----------------------------
    def execute(self, leaves: Sequence[Leaf]) -> List[Any]:
        """
        Executa o grafo enraizado em `leaves`.

        Returns:
            List: para cada folha, na ordem recebida, o DSeq associado
            (ou a lista de DSeqs de uma folha com múltiplas saídas).

        Raises:
            StageSequenceError: Se uma folha não representar um job completo.
            ConfigurationError: Se a configuração de algum job for inválida.
            JobExecutionFailure: Na primeira falha reportada pelo runtime.
        """
        leaves = list(leaves)
        jobs = collect_jobs(flatten_leaves(leaves))
        waves = plan_waves(jobs)
        wave_of = {id(j): w for w, wave in enumerate(waves) for j in wave}
        total = len(jobs)
        names = {id(j): f"{self.name}[{i}/{total}]" for i, j in enumerate(jobs, start=1)}
        confs = {id(j): self.job_conf(j, names[id(j)]) for j in jobs}
        self._reset()

        with self._lock:
            add_event(
                self.manifest,
                event_type="run_started",
                ts=_now(),
                payload={"jobs": total, "waves": len(waves)},
            )

        failure = self._run_graph(jobs, names, confs, wave_of)

        with self._lock:
            if failure is not None:
                for job in jobs:
                    name = names[id(job)]
                    if name not in self.manifest.jobs:
                        job_skipped(self.manifest, job=name, ts=_now(), reason="upstream failure")
                        self.results[name] = JobResult(job=name, status=JobStatus.SKIPPED)
                add_event(self.manifest, event_type="run_failed", ts=_now(), job=failure.job)
            else:
                add_event(self.manifest, event_type="run_finished", ts=_now())

        if failure is not None:
            raise failure
        return [self._leaf_output(leaf) for leaf in leaves]

    def _run_graph(
        self,
        jobs: List[JobNode],
        names: Dict[int, str],
        confs: Dict[int, JobConf],
        wave_of: Dict[int, int],
    ) -> Optional[JobExecutionFailure]:
        if not jobs:
            return None

        pending = {id(j): {id(d) for d in j.deps} for j in jobs}
        dependents: Dict[int, List[JobNode]] = {id(j): [] for j in jobs}
        for job in jobs:
            for dep in job.deps:
                dependents[id(dep)].append(job)

        ready = [j for j in jobs if not pending[id(j)]]
        running: Dict[Future, JobNode] = {}
        failure: Optional[JobExecutionFailure] = None
        workers = self.max_workers or min(32, len(jobs))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=self.name) as pool:
            while running or (ready and failure is None):
                # só entrega ao pool jobs que encontram um worker ocioso
                while failure is None and ready and len(running) < workers:
                    job = ready.pop(0)
                    jid = id(job)
                    fut = pool.submit(self._run_job, job, names[jid], confs[jid], wave_of[jid])
                    running[fut] = job

                if not running:
                    break
                done, _ = wait(list(running), return_when=FIRST_COMPLETED)
                for fut in done:
                    job = running.pop(fut)
                    try:
                        fut.result()
                    except JobExecutionFailure as e:
                        if failure is None:
                            failure = e
                        continue
                    if failure is not None:
                        continue
                    for child in dependents[id(job)]:
                        pending[id(child)].discard(id(job))
                        if not pending[id(child)]:
                            ready.append(child)
        return failure

    @staticmethod
    def _leaf_output(leaf: Leaf) -> Any:
        if isinstance(leaf, JobNode):
            if leaf.stage is Stage.INPUT:
                return leaf.dseq
            seqs = [ds.dseq for ds in leaf.dsinks]
            return seqs[0] if len(seqs) == 1 else seqs
        return [Engine._leaf_output(node) for node in leaf]


def execute(
    leaves: Union[Leaf, Sequence[Leaf]],
    base_conf: Optional[JobConf] = None,
    name: str = "mrflow",
    *,
    runtime: Any = None,
    max_workers: Optional[int] = None,
) -> List[Any]:
    """
    Executa o grafo de jobs enraizado em `leaves`.

    Atalho para `Engine(...).execute(leaves)`; uma folha isolada é
    tratada como uma lista de uma folha.
    """
    if isinstance(leaves, JobNode):
        leaves = [leaves]
    engine = Engine(runtime=runtime, base_conf=base_conf, name=name, max_workers=max_workers)
    return engine.execute(leaves)
