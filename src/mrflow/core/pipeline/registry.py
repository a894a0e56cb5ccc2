# src/mrflow/core/pipeline/registry.py
"""
Registro explícito de componentes.

Formatos de entrada/saída, tasks, sinks e codecs de valores são
referenciados na configuração por um identificador serializável e
resolvidos por consulta a um `Registry`. Não existe carga dinâmica de
classes nem geração de código.

Invariantes:
    - Cada identificador é registrado no máximo uma vez
    - A ordem de registro é preservada
    - Identificadores desconhecidos falham com `UnknownComponentError`
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, List, TypeVar

from mrflow.core.config.errors import UnknownComponentError

T = TypeVar("T")


class DuplicateRegistrationError(ValueError):
    """
    Exceção levantada quando um identificador já está registrado.

    Invariantes:
        - Um identificador duplicado invalida o registro
        - Nenhuma substituição silenciosa é realizada
    """


@dataclass
class Registry(Generic[T]):
    """
    Tabela estática de componentes indexada por identificador.

    Exemplo:
        >>> formats = Registry("input format")
        >>> @formats.register("text")
        ... class TextInputFormat: ...
        >>> formats.get("text") is TextInputFormat
        True
    """

    kind: str
    _items: Dict[str, T] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)

    def add(self, name: str, item: T) -> T:
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"{self.kind} id must be a non-empty string")

        if name in self._items:
            raise DuplicateRegistrationError(f"Duplicate {self.kind} id: {name}")

        self._items[name] = item
        self._order.append(name)
        return item

    def register(self, name: str) -> Callable[[T], T]:
        def decorator(item: T) -> T:
            return self.add(name, item)

        return decorator

    def get(self, name: str) -> T:
        if name not in self._items:
            raise UnknownComponentError(
                f"Unknown {self.kind} id: {name!r}. Known: {self._order}"
            )
        return self._items[name]

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def names(self) -> List[str]:
        return list(self._order)
