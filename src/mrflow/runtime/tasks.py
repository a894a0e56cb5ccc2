# src/mrflow/runtime/tasks.py
"""
Registro de tasks e sinks.

Tasks (map, combine, reduce) e sinks são funções registradas por um
identificador estável. A configuração do job guarda apenas a
especificação serializável `{"id": ..., "args": [...]}`; o runtime
resolve a função por consulta ao registro.

Assinaturas:
    - task:  `fn(records, *args) -> iterável de (key, val)`
      (reduce e combine recebem pares `(key, [vals])`)
    - sink:  `fn(context, coll, *args) -> None`
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

from mrflow.core.config.conf import JobConf
from mrflow.core.config.errors import ConfigValueTypeError
from mrflow.core.pipeline.registry import Registry

TASKS: Registry[Callable[..., Any]] = Registry("task")
SINKS: Registry[Callable[..., Any]] = Registry("sink")

DEFAULT_SINK = "keyvals"


def task(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator que registra uma task sob `name`."""

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        TASKS.add(name, fn)
        fn.task_id = name  # type: ignore[attr-defined]
        return fn

    return decorator


def sink(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator que registra um sink sob `name`."""

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        SINKS.add(name, fn)
        fn.sink_id = name  # type: ignore[attr-defined]
        return fn

    return decorator


def _spec(ref: Any, args: Tuple[Any, ...], registry: Registry, attr: str) -> Dict[str, Any]:
    if isinstance(ref, (tuple, list)) and ref:
        ref, args = ref[0], tuple(ref[1:]) + tuple(args)
    if callable(ref):
        name = getattr(ref, attr, None)
        if name is None:
            raise ConfigValueTypeError(
                f"{registry.kind} {getattr(ref, '__name__', ref)!r} não está registrado"
            )
        ref = name
    if not isinstance(ref, str):
        raise ConfigValueTypeError(f"Referência de {registry.kind} inválida: {ref!r}")
    registry.get(ref)
    return {"id": ref, "args": list(args)}


def task_spec(ref: Any, *args: Any) -> Dict[str, Any]:
    """Especificação serializável de uma task (`id`, função registrada ou tupla)."""
    return _spec(ref, args, TASKS, "task_id")


def sink_spec(ref: Any, *args: Any) -> Dict[str, Any]:
    """Especificação serializável de um sink (`id`, função registrada ou tupla)."""
    return _spec(ref, args, SINKS, "sink_id")


def _load(conf: JobConf, key: str, registry: Registry) -> Optional[Tuple[Callable[..., Any], List[Any]]]:
    spec = conf.get_json(key, None)
    if spec is None:
        return None
    if not isinstance(spec, dict) or "id" not in spec:
        raise ConfigValueTypeError(f"Config '{key}' não contém especificação de {registry.kind}")
    return registry.get(spec["id"]), list(spec.get("args") or [])


def load_task(conf: JobConf, key: str) -> Optional[Tuple[Callable[..., Any], List[Any]]]:
    return _load(conf, key, TASKS)


def load_sink(conf: JobConf, key: str) -> Tuple[Callable[..., Any], List[Any]]:
    return _load(conf, key, SINKS) or (SINKS.get(DEFAULT_SINK), [])


# ---------------------------------------------------------------------------
# Sinks básicos
# ---------------------------------------------------------------------------

@sink("keyvals")
def keyvals(context, coll) -> None:
    for key, val in coll:
        context.write(key, val)


@sink("keys")
def keys(context, coll) -> None:
    for key in coll:
        context.write(key, None)


@sink("vals")
def vals(context, coll) -> None:
    for val in coll:
        context.write(None, val)
