# src/mrflow/core/traceability/manifest.py
"""
RunManifest: rastreabilidade de uma chamada a `execute`.

O RunManifest consolida, de forma determinística e auditável:
    - metadados da execução (run)
    - hash semântico da configuração base
    - estado incremental de cada job do grafo
    - Event Log ordenado de eventos explícitos

Princípios fundamentais:
    - Nenhum evento é emitido implicitamente
    - Toda mutação ocorre por chamadas explícitas da API
    - A ordem do Event Log reflete a ordem real de conclusão dos jobs
    - O RunManifest é serializável e reconstruível (round-trip)

Decisões arquiteturais:
    - UTC é o timezone canônico para todos os timestamps
    - O formato de persistência é JSON determinístico
    - O RunManifest não conhece o engine; o engine é quem o alimenta

Limites explícitos:
    - Não executa jobs
    - Não decide políticas de execução (fail-fast, skip)
    - Não sincroniza acesso concorrente (responsabilidade do chamador)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


def _ensure_tzaware_utc(dt: datetime) -> datetime:
    """Normaliza um timestamp para timezone-aware em UTC (naive é assumido UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: datetime) -> str:
    return _ensure_tzaware_utc(dt).isoformat()


def _ms_between(start: datetime, end: datetime) -> int:
    s = _ensure_tzaware_utc(start)
    e = _ensure_tzaware_utc(end)
    return max(0, int((e - s).total_seconds() * 1000))


@dataclass
class RunManifest:
    """
    Registro de uma execução de grafo de jobs.

    Campos principais:
        - run: metadados da execução (run_id, started_at, mrflow_version)
        - inputs: hash semântico da configuração base
        - jobs: estado incremental de cada job, indexado pelo nome do job
        - events: Event Log ordenado

    Invariantes:
        - `jobs` é sempre um dicionário indexado por nome de job
        - `events` é sempre uma lista ordenada
        - A estrutura completa é serializável
    """

    run: Dict[str, Any]
    inputs: Dict[str, Any]
    jobs: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run": dict(self.run),
            "inputs": dict(self.inputs),
            "jobs": {k: dict(v) for k, v in self.jobs.items()},
            "events": [dict(e) for e in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunManifest":
        """Reconstrução permissiva: campos ausentes iniciam vazios."""
        return cls(
            run=dict(data.get("run", {})),
            inputs=dict(data.get("inputs", {})),
            jobs={k: dict(v) for k, v in (data.get("jobs", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
        )

    def statuses(self) -> Dict[str, str]:
        return {name: str(job.get("status")) for name, job in self.jobs.items()}


def create_manifest(
    *,
    run_id: str,
    started_at: datetime,
    mrflow_version: str,
    config_hash: str,
) -> RunManifest:
    """
    Cria o RunManifest inicial de uma execução.

    ⚠️ Importante: esta função **não emite eventos implicitamente**.

    Args:
        run_id (str): Identificador da execução (nome base dos jobs).
        started_at (datetime): Timestamp de início.
        mrflow_version (str): Versão do mrflow utilizada.
        config_hash (str): Hash semântico da configuração base.

    Returns:
        RunManifest: Manifest com `jobs` e `events` vazios.
    """
    started_at = _ensure_tzaware_utc(started_at)
    return RunManifest(
        run={
            "run_id": run_id,
            "started_at": _iso(started_at),
            "mrflow_version": mrflow_version,
        },
        inputs={"config_hash": config_hash},
        jobs={},
        events=[],
    )


def add_event(
    manifest: RunManifest,
    *,
    event_type: str,
    ts: datetime,
    job: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """Adiciona exatamente um evento ao Event Log, na ordem de chamada."""
    ev: Dict[str, Any] = {"event_type": event_type, "timestamp": _iso(ts)}
    if job is not None:
        ev["job"] = job
    if payload is not None:
        ev["payload"] = dict(payload)
    manifest.events.append(ev)


def job_started(manifest: RunManifest, *, job: str, ts: datetime, wave: int = 0) -> None:
    ts = _ensure_tzaware_utc(ts)
    manifest.jobs.setdefault(job, {})
    manifest.jobs[job].update(
        {
            "job": job,
            "status": "running",
            "wave": wave,
            "started_at": _iso(ts),
        }
    )
    add_event(manifest, event_type="job_started", ts=ts, job=job, payload={"wave": wave})


def job_finished(
    manifest: RunManifest,
    *,
    job: str,
    ts: datetime,
    counters: Optional[Dict[str, Dict[str, int]]] = None,
    status: str = "success",
) -> None:
    """
    Registra a conclusão de um job.

    A duração é calculada a partir de `started_at` quando disponível.
    """
    ts = _ensure_tzaware_utc(ts)
    j = manifest.jobs.setdefault(job, {"job": job})
    started_iso = j.get("started_at")
    try:
        started_dt = datetime.fromisoformat(started_iso) if started_iso else ts
    except ValueError:
        started_dt = ts

    j.update(
        {
            "status": status,
            "finished_at": _iso(ts),
            "duration_ms": _ms_between(started_dt, ts),
            "counters": {g: dict(c) for g, c in (counters or {}).items()},
        }
    )
    add_event(
        manifest,
        event_type="job_finished",
        ts=ts,
        job=job,
        payload={"status": status, "duration_ms": j["duration_ms"]},
    )


def job_failed(manifest: RunManifest, *, job: str, ts: datetime, error: Dict[str, Any]) -> None:
    """Marca o job como `failed` e associa o payload de erro serializável."""
    ts = _ensure_tzaware_utc(ts)
    j = manifest.jobs.setdefault(job, {"job": job})
    j.update({"status": "failed", "finished_at": _iso(ts), "error": dict(error)})
    add_event(manifest, event_type="job_failed", ts=ts, job=job, payload={"error": dict(error)})


def job_skipped(manifest: RunManifest, *, job: str, ts: datetime, reason: str) -> None:
    ts = _ensure_tzaware_utc(ts)
    j = manifest.jobs.setdefault(job, {"job": job})
    j.update({"status": "skipped", "reason": reason})
    add_event(manifest, event_type="job_skipped", ts=ts, job=job, payload={"reason": reason})


def save_manifest(manifest: RunManifest, path: Path) -> None:
    """Persiste o RunManifest em JSON determinístico (indentado, chaves ordenadas)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(manifest.to_dict(), ensure_ascii=False, indent=2, sort_keys=True),
        encoding="utf-8",
    )


def load_manifest(path: Path) -> RunManifest:
    """
    Carrega um RunManifest persistido.

    Raises:
        FileNotFoundError: Se o arquivo não existir.
        json.JSONDecodeError: Em caso de JSON inválido.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return RunManifest.from_dict(data)
