# src/mrflow/core/config/hashing.py
"""
Hashing canônico de configuração.

O hash representa a identidade estrutural de uma configuração de job e
é registrado no manifest de execução.

Política de hashing:
    - Serialização JSON canônica (chaves ordenadas, separadores compactos)
    - Codificação UTF-8
    - SHA-256
"""

import hashlib
import json
from typing import Any, Dict, Union

from .conf import JobConf


def compute_config_hash(config: Union[JobConf, Dict[str, Any]]) -> str:
    """
    Gera um hash SHA-256 determinístico da configuração.

    Args:
        config (JobConf | Dict[str, Any]): Configuração a identificar.

    Returns:
        str: Hash hexadecimal de 64 caracteres.

    Raises:
        TypeError: Se o objeto fornecido não for JobConf nem dict.
    """
    if isinstance(config, JobConf):
        config = config.to_dict()

    if not isinstance(config, dict):
        raise TypeError(
            f"Config para hashing deve ser dict ou JobConf, recebido: {type(config).__name__}"
        )

    canonical_json = json.dumps(
        config,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )

    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()
