# src/mrflow/core/pipeline/cstep.py
"""
ConfigStep: unidade composicional de configuração de job.

Um ConfigStep é qualquer valor que, aplicado a um `JobConf`, o modifica.
Formas canônicas:
    - função unária `step(conf)`; o retorno é descartado
    - mapeamento chave → valor, aplicado como `conf.set` tipado
    - sequência (list/tuple) de ConfigSteps, aplicada da esquerda para a direita
    - objeto que expõe `as_config_step()` (ex.: DSeq, DSink)
    - `None`, que não faz nada

Invariantes:
    - Uma sequência de ConfigSteps também é um ConfigStep
    - A ordem dentro de uma sequência é a única garantia de ordenação
    - `apply` sempre devolve o mesmo `JobConf` recebido

Limites explícitos:
    - Não garante idempotência de steps funcionais
    - Não clona a configuração
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence, Union

from mrflow.core.config.conf import JobConf
from mrflow.core.config.errors import ConfigValueTypeError

ConfigStep = Union[
    None,
    Callable[[JobConf], Any],
    Mapping[str, Any],
    Sequence[Any],
]


def apply(conf: JobConf, step: Any) -> JobConf:
    """
    Aplica `step` sobre `conf` (mutando-o) e retorna `conf`.

    Raises:
        ConfigValueTypeError: Se `step` não tiver uma forma reconhecida.
    """
    if step is None:
        return conf

    as_step = getattr(step, "as_config_step", None)
    if as_step is not None and callable(as_step):
        return apply(conf, as_step())

    if isinstance(step, Mapping):
        for key, value in step.items():
            conf.set(key, value)
        return conf

    if isinstance(step, (list, tuple)):
        for s in step:
            apply(conf, s)
        return conf

    if callable(step):
        step(conf)
        return conf

    raise ConfigValueTypeError(f"ConfigStep inválido: {type(step).__name__}")


def compose(*steps: Any) -> tuple:
    """Agrupa steps em um único ConfigStep sequencial."""
    return tuple(steps)


def applied(step: Any, conf: JobConf | None = None) -> JobConf:
    """Retorna um novo JobConf (ou clone de `conf`) com `step` aplicado."""
    base = JobConf() if conf is None else conf.clone()
    return apply(base, step)
