# src/mrflow/core/traceability/__init__.py
"""
Rastreabilidade de execuções do mrflow.

Componentes:
    - manifest → RunManifest, Event Log e persistência JSON
"""

from .manifest import (
    RunManifest,
    add_event,
    create_manifest,
    job_failed,
    job_finished,
    job_skipped,
    job_started,
    load_manifest,
    save_manifest,
)

__all__ = [
    "RunManifest",
    "add_event",
    "create_manifest",
    "job_failed",
    "job_finished",
    "job_skipped",
    "job_started",
    "load_manifest",
    "save_manifest",
]
