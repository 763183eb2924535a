from __future__ import annotations

import json
import re
from typing import Any, Union

from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic.json_schema import JsonSchemaValue
from pydantic_core import core_schema

from .errors import MalformedDuration

_RUNTIME_RE = re.compile(r"(-?[0-9]+) mins")


# PUBLIC_INTERFACE
class Runtime:
    """
    Running time of a movie, in whole minutes.

    In JSON a Runtime is always the quoted text "<N> mins" (e.g. "102 mins"),
    never a number. Decoding accepts exactly that shape.
    """

    __slots__ = ("minutes",)

    def __init__(self, minutes: int = 0) -> None:
        if isinstance(minutes, bool) or not isinstance(minutes, int):
            raise TypeError("Runtime minutes must be an int")
        self.minutes = minutes

    def __int__(self) -> int:
        return self.minutes

    def __bool__(self) -> bool:
        return self.minutes != 0

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Runtime):
            return self.minutes == other.minutes
        if isinstance(other, int) and not isinstance(other, bool):
            return self.minutes == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.minutes)

    def __repr__(self) -> str:
        return f"Runtime({self.minutes})"

    def __str__(self) -> str:
        return f"{self.minutes} mins"

    def __json__(self) -> str:
        return str(self)

    # PUBLIC_INTERFACE
    def marshal_json(self) -> bytes:
        """Return the JSON token for this runtime, quotes included."""
        return json.dumps(str(self)).encode("utf-8")

    # PUBLIC_INTERFACE
    @classmethod
    def parse(cls, text: str) -> "Runtime":
        """Parse the unquoted '<integer> mins' form."""
        m = _RUNTIME_RE.fullmatch(text)
        if m is None:
            raise MalformedDuration(f"invalid runtime format: {text!r}")
        return cls(int(m.group(1)))

    # PUBLIC_INTERFACE
    @classmethod
    def unmarshal_json(cls, data: Union[bytes, str]) -> "Runtime":
        """Decode a JSON token; only a string of the form '<integer> mins' is accepted."""
        try:
            value = json.loads(data)
        except ValueError as e:
            raise MalformedDuration("invalid runtime format") from e
        if not isinstance(value, str):
            raise MalformedDuration("invalid runtime format")
        return cls.parse(value)

    @classmethod
    def _validate(cls, value: Any) -> "Runtime":
        if isinstance(value, Runtime):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        raise MalformedDuration("invalid runtime format")

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: GetCoreSchemaHandler) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda r: str(r), when_used="json"
            ),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, schema: core_schema.CoreSchema, handler: GetJsonSchemaHandler
    ) -> JsonSchemaValue:
        return {"type": "string", "pattern": f"^{_RUNTIME_RE.pattern}$", "examples": ["102 mins"]}
