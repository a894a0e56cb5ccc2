# src/mrflow/io/serde.py
"""
Codecs de valores (wrapper/unwrapper).

Registros que atravessam a configuração (mem dseq, diffs do mux) ou
arquivos JSON Lines precisam de uma forma JSON estável. Cada `Codec`
declara, para uma família de tipos Python:
    - `rewrap`: valor nativo → forma JSON
    - `unwrap`: forma JSON → valor nativo
    - `new_instance`: valor vazio do tipo
    - `accepts`: verificação de tipo usada na validação do shuffle

Formas JSON:
    - None, str, int, float, bool: representados diretamente
    - list: lista JSON com elementos codificados
    - dict com chaves str: objeto JSON com valores codificados
    - tuple, bytes e dicts com chaves não-str usam um envelope
      `{"$type": <codec>, "value": ...}`

Invariantes:
    - `decode(encode(v)) == v` para todo valor suportado
    - Tipos sem codec falham com `UnknownComponentError`
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

from mrflow.core.config.errors import UnknownComponentError
from mrflow.core.pipeline.registry import Registry

TYPE_TAG = "$type"


@dataclass(frozen=True)
class Codec:
    name: str
    types: Tuple[type, ...]
    rewrap: Callable[[Any], Any]
    unwrap: Callable[[Any], Any]
    new_instance: Callable[[], Any]

    def accepts(self, value: Any) -> bool:
        if self.name == "object":
            return True
        if isinstance(value, bool) and bool not in self.types:
            return False
        return isinstance(value, self.types)


CODECS: Registry[Codec] = Registry("codec")
_BY_TYPE: Dict[type, Codec] = {}


def register_codec(codec: Codec) -> Codec:
    CODECS.add(codec.name, codec)
    for t in codec.types:
        if t is not object:
            _BY_TYPE.setdefault(t, codec)
    return codec


def codec_for(value: Any) -> Codec:
    codec = _BY_TYPE.get(type(value))
    if codec is None:
        raise UnknownComponentError(f"Nenhum codec registrado para o tipo {type(value).__name__}")
    return codec


def encode(value: Any) -> Any:
    """Converte `value` para sua forma JSON."""
    return codec_for(value).rewrap(value)


def decode(obj: Any) -> Any:
    """Reconstrói o valor nativo a partir da forma JSON."""
    if isinstance(obj, list):
        return [decode(v) for v in obj]
    if isinstance(obj, dict):
        if TYPE_TAG in obj:
            return CODECS.get(obj[TYPE_TAG]).unwrap(obj.get("value"))
        return {k: decode(v) for k, v in obj.items()}
    return obj


def _tagged(name: str, value: Any) -> Dict[str, Any]:
    return {TYPE_TAG: name, "value": value}


def _identity(value: Any) -> Any:
    return value


def _rewrap_dict(value: dict) -> Any:
    if all(isinstance(k, str) for k in value) and TYPE_TAG not in value:
        return {k: encode(v) for k, v in value.items()}
    return _tagged("dict", [[encode(k), encode(v)] for k, v in value.items()])


def _unwrap_dict(value: Any) -> dict:
    if isinstance(value, dict):
        return {k: decode(v) for k, v in value.items()}
    return {decode(k): decode(v) for k, v in value}


register_codec(Codec("none", (type(None),), _identity, _identity, lambda: None))
register_codec(Codec("bool", (bool,), _identity, bool, bool))
register_codec(Codec("int", (int,), _identity, int, int))
register_codec(Codec("float", (float,), _identity, float, float))
register_codec(Codec("str", (str,), _identity, str, str))
register_codec(
    Codec(
        "bytes",
        (bytes, bytearray),
        lambda v: _tagged("bytes", base64.b64encode(bytes(v)).decode("ascii")),
        lambda v: base64.b64decode(v),
        bytes,
    )
)
register_codec(
    Codec(
        "tuple",
        (tuple,),
        lambda v: _tagged("tuple", [encode(x) for x in v]),
        lambda v: tuple(decode(x) for x in v),
        tuple,
    )
)
register_codec(Codec("list", (list,), lambda v: [encode(x) for x in v], decode, list))
register_codec(Codec("dict", (dict,), _rewrap_dict, _unwrap_dict, dict))
register_codec(Codec("object", (object,), encode, decode, lambda: None))
