"""JSON serialization boundary — live values in, JSON text out, exactly once."""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from serialize_to_javascript.escape import escape_json_parse
from serialize_to_javascript.options import RenderOptions

logger = logging.getLogger(__name__)


class SerializationError(ValueError):
    """The JSON encoder rejected a value (unsupported type, cycle, NaN, ...)."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field
        if field is not None:
            message = f"Could not serialize field {field!r}: {message}"
        super().__init__(message)


def _encode_default(value: Any) -> Any:
    # Dataclass instances are encoded as their field mapping; everything
    # else json can't handle natively is rejected.
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(value: Any) -> str:
    """Encode ``value`` as compact JSON text.

    Non-ASCII characters are kept as-is; NaN and infinities are rejected.
    """
    try:
        return json.dumps(
            value,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
            default=_encode_default,
        )
    except (TypeError, ValueError, RecursionError) as exc:
        raise SerializationError(str(exc)) from exc


@dataclass(frozen=True)
class Serialized:
    """JSON text for a value that has been serialized exactly once."""

    text: str

    @classmethod
    def from_value(cls, value: Any) -> Serialized:
        return cls(to_json(value))

    def to_javascript_literal(self, options: RenderOptions | None = None) -> str:
        """Transform the serialized data into a JavaScript ``JSON.parse`` expression."""
        return escape_json_parse(self.text, options)


@dataclass(frozen=True)
class NotYetSerialized:
    """A live value that has yet to be serialized."""

    value: Any

    def serialize(self, field: Optional[str] = None) -> Serialized:
        try:
            return Serialized.from_value(self.value)
        except SerializationError as exc:
            logger.debug("Serialization failed for field %s: %s", field, exc)
            if field is None:
                raise
            raise SerializationError(str(exc), field=field) from exc.__cause__
