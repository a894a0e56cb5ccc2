# src/mrflow/core/config/conf.py
"""
Configuração de job (JobConf).

Este módulo define o `JobConf`, o namespace mutável de parâmetros
compartilhado por referência entre todos os ConfigSteps aplicados a um
mesmo job.

Responsabilidades do módulo:
    - Acesso tipado (get/set) com erros explícitos no ponto de acesso
    - Clonagem para derivação de configurações irmãs
    - Diff estrutural entre duas configurações
    - Merge de um diff previamente calculado

Política de valores:
    - `None` em `set` remove a chave
    - Escalares suportados: str, int, float, bool
    - Listas/tuplas de valores suportados são armazenadas como listas
    - Dicionários são aceitos se chaves forem str e valores suportados

Invariantes:
    - Todo valor armazenado é serializável em JSON
    - `merge(base.diff(other))` aplicado a um clone de `base` reproduz
      `other` em todas as chaves que diferem
    - Um JobConf nunca é compartilhado entre jobs concorrentes

Limites explícitos:
    - Não carrega arquivos (ver `loader`)
    - Não conhece formatos, tasks ou estágios
"""

from __future__ import annotations

import copy
import json
from typing import Any, Dict, Iterator, List, Mapping, Optional

from .errors import ConfigValueTypeError, MissingConfigKeyError

_MISSING = object()
_SCALARS = (str, int, float, bool)


def _normalize(key: str, value: Any) -> Any:
    if isinstance(value, _SCALARS):
        return value
    if isinstance(value, (list, tuple)):
        return [_normalize(key, v) for v in value]
    if isinstance(value, Mapping):
        out: Dict[str, Any] = {}
        for k, v in value.items():
            if not isinstance(k, str):
                raise ConfigValueTypeError(
                    f"Config '{key}': chaves de dicionário devem ser str, recebido {type(k).__name__}"
                )
            out[k] = None if v is None else _normalize(key, v)
        return out
    raise ConfigValueTypeError(
        f"Config '{key}': tipo de valor não suportado: {type(value).__name__}"
    )


class JobConf:
    """
    Namespace mutável de parâmetros de um job, indexado por string.

    Um JobConf é criado de forma transitória no momento da execução
    (um por nó do grafo, ou um por sub-componente de mux/dux) e
    descartado após o job rodar.

    Exemplo:
        >>> conf = JobConf({"mrflow.reduce.tasks": 2})
        >>> child = conf.clone()
        >>> child.set("mrflow.output.dir", "/tmp/out")
        >>> conf.diff(child)
        {'mrflow.output.dir': '/tmp/out'}
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        self._values: Dict[str, Any] = {}
        for key, value in (values or {}).items():
            self.set(key, value)

    # -----------------------------
    # Acesso básico
    # -----------------------------
    def set(self, key: str, value: Any) -> "JobConf":
        if not isinstance(key, str) or not key:
            raise ConfigValueTypeError(f"Config key deve ser str não vazia, recebido: {key!r}")
        if value is None:
            self._values.pop(key, None)
        else:
            self._values[key] = _normalize(key, value)
        return self

    def unset(self, key: str) -> "JobConf":
        self._values.pop(key, None)
        return self

    def get(self, key: str, default: Any = _MISSING) -> Any:
        if key in self._values:
            return copy.deepcopy(self._values[key])
        if default is _MISSING:
            raise MissingConfigKeyError(f"Config key ausente: {key}")
        return default

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def keys(self) -> List[str]:
        return sorted(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JobConf):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"JobConf({self._values!r})"

    # -----------------------------
    # Acesso tipado
    # -----------------------------
    def get_str(self, key: str, default: Any = _MISSING) -> str:
        if key not in self._values:
            return self.get(key, default)
        value = self.get(key)
        if not isinstance(value, str):
            raise ConfigValueTypeError(f"Config '{key}' deve ser str, recebido {type(value).__name__}")
        return value

    def get_int(self, key: str, default: Any = _MISSING) -> int:
        if key not in self._values:
            return self.get(key, default)
        value = self.get(key)
        if isinstance(value, bool):
            raise ConfigValueTypeError(f"Config '{key}' deve ser int, recebido bool")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
        raise ConfigValueTypeError(f"Config '{key}' deve ser int, recebido {value!r}")

    def get_float(self, key: str, default: Any = _MISSING) -> float:
        if key not in self._values:
            return self.get(key, default)
        value = self.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                pass
        raise ConfigValueTypeError(f"Config '{key}' deve ser float, recebido {value!r}")

    def get_bool(self, key: str, default: Any = _MISSING) -> bool:
        if key not in self._values:
            return self.get(key, default)
        value = self.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
            return value.strip().lower() == "true"
        raise ConfigValueTypeError(f"Config '{key}' deve ser bool, recebido {value!r}")

    def get_list(self, key: str, default: Any = _MISSING) -> List[Any]:
        if key not in self._values:
            return self.get(key, default)
        value = self.get(key)
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        raise ConfigValueTypeError(f"Config '{key}' deve ser lista, recebido {value!r}")

    def get_json(self, key: str, default: Any = _MISSING) -> Any:
        """Lê um valor serializado em JSON (string) ou já estruturado."""
        if key not in self._values:
            return self.get(key, default)
        value = self.get(key)
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError as e:
                raise ConfigValueTypeError(f"Config '{key}' não contém JSON válido: {e}") from e
        return value

    def set_json(self, key: str, value: Any) -> "JobConf":
        """Armazena `value` serializado como string JSON (ordem de chaves preservada)."""
        return self.set(key, json.dumps(value, ensure_ascii=False))

    # -----------------------------
    # Derivação (clone / diff / merge)
    # -----------------------------
    def clone(self) -> "JobConf":
        other = JobConf()
        other._values = copy.deepcopy(self._values)
        return other

    def diff(self, other: "JobConf") -> Dict[str, Any]:
        """
        Mapa mínimo de overrides que transforma `self` em `other`.

        Chaves novas ou alteradas carregam o valor de `other`; chaves
        removidas em `other` são mapeadas para `None`.
        """
        out: Dict[str, Any] = {}
        for key, value in other._values.items():
            if self._values.get(key, _MISSING) != value:
                out[key] = copy.deepcopy(value)
        for key in self._values:
            if key not in other._values:
                out[key] = None
        return out

    def merge(self, diff: Mapping[str, Any]) -> "JobConf":
        for key, value in diff.items():
            self.set(key, value)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._values)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JobConf":
        return cls(data)
