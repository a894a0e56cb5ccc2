# src/mrflow/core/config/__init__.py
"""
Camada de configuração do mrflow.

Este pacote contém o `JobConf` (namespace mutável de parâmetros de um
job) e os utilitários que carregam, mesclam e identificam configurações.

Responsabilidades do pacote:
    - Acesso tipado, clone, diff e merge de configurações de job
    - Carregamento de arquivos de configuração base (defaults + overrides)
    - Deep-merge determinístico e achatamento em chaves pontuadas
    - Hash canônico para rastreabilidade

Limites explícitos:
    - Não executa jobs
    - Não conhece estágios do grafo
"""

from .conf import JobConf
from .errors import (
    ConfigurationError,
    ConfigTypeConflictError,
    ConfigValueTypeError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    MissingConfigKeyError,
    UnknownComponentError,
    UnsupportedConfigFormatError,
)
from .hashing import compute_config_hash
from .loader import load_config, load_job_conf
from .merge import deep_merge, flatten

__all__ = [
    "JobConf",
    "ConfigurationError",
    "ConfigTypeConflictError",
    "ConfigValueTypeError",
    "DefaultsNotFoundError",
    "InvalidConfigRootTypeError",
    "MissingConfigKeyError",
    "UnknownComponentError",
    "UnsupportedConfigFormatError",
    "compute_config_hash",
    "load_config",
    "load_job_conf",
    "deep_merge",
    "flatten",
]
