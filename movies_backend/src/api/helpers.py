from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Generic, Mapping, Optional, Sequence, TypeVar, Union

from fastapi import Request, Response
from pydantic_core import PydanticSerializationError, to_jsonable_python

from .errors import InvalidIdentifier, SerializationFailure

T = TypeVar("T")

HeaderValue = Union[str, Sequence[str]]

_ID_RE = re.compile(r"[+-]?[0-9]+")
_MAX_ID = 2**63 - 1


# PUBLIC_INTERFACE
def parse_id(token: Optional[str]) -> int:
    """
    Convert a routing token into a movie identifier.

    Only an optionally signed run of ASCII decimal digits that fits a signed
    64-bit integer and is at least 1 is accepted. Everything else (missing,
    empty, non-numeric, zero, negative, overflowing) raises InvalidIdentifier.
    """
    if token is None or not _ID_RE.fullmatch(token):
        raise InvalidIdentifier()
    value = int(token)
    if value < 1 or value > _MAX_ID:
        raise InvalidIdentifier()
    return value


# PUBLIC_INTERFACE
def read_id_param(request: Request) -> int:
    """Return the validated 'id' path parameter of the current request."""
    return parse_id(request.path_params.get("id"))


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Envelope(Generic[T]):
    """
    A response body with exactly one top-level key naming the payload.

    Envelope("movie", movie) serializes as {"movie": {...}}.
    """

    key: str
    payload: T

    def as_dict(self) -> Dict[str, T]:
        return {self.key: self.payload}


def _encode_fallback(value: Any) -> Any:
    encode = getattr(value, "__json__", None)
    if encode is None:
        raise SerializationFailure(f"cannot encode value of type {type(value).__name__}")
    return encode()


def _marshal(data: Union[Envelope[Any], Mapping[str, Any]]) -> bytes:
    if isinstance(data, Envelope):
        body: Mapping[str, Any] = data.as_dict()
    else:
        body = {k: data[k] for k in sorted(data)}
    try:
        obj = to_jsonable_python(body, fallback=_encode_fallback)
        text = json.dumps(obj, indent="\t", ensure_ascii=False, allow_nan=False)
    except SerializationFailure:
        raise
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise SerializationFailure(str(e)) from e
    return text.encode("utf-8") + b"\n"


# PUBLIC_INTERFACE
def write_json(
    status: int,
    data: Union[Envelope[Any], Mapping[str, Any]],
    headers: Optional[Mapping[str, HeaderValue]] = None,
) -> Response:
    """
    Build a JSON response from an envelope.

    The body is tab-indented UTF-8 JSON followed by a single newline. Extra
    headers replace any existing header of the same name; Content-Type is
    always application/json. If the payload cannot be encoded,
    SerializationFailure is raised and no response is produced.
    """
    body = _marshal(data)

    response = Response(content=body, status_code=status)
    for name, value in (headers or {}).items():
        if isinstance(value, str):
            response.headers[name] = value
            continue
        if name in response.headers:
            del response.headers[name]
        for v in value:
            response.headers.append(name, v)
    response.headers["content-type"] = "application/json"
    return response
