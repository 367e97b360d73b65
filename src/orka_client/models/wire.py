"""Field parsers shared by the wire models."""

import re
from datetime import datetime
from typing import Any

import pydantic

from ..api.connection import OrkaConnection
from ..api.exceptions import MalformedResponse

_ISO8601 = re.compile(
    r"(?P<date>\d{4}-\d{2}-\d{2})[Tt]"
    r"(?P<time>\d{2}:\d{2}(?::\d{2})?)"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})?"
)


def lenient_int(value: Any) -> int:
    """Parse a display field such as a port, falling back to 0.

    Args:
        value: Raw wire value (int, numeric string, None or garbage)

    Returns:
        Parsed integer, or 0 when the value is absent or not numeric
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return 0


def strict_iso8601(value: Any) -> datetime:
    """Parse an ISO-8601 date-time, rejecting anything else.

    A date alone, or a space instead of the 'T' separator, is rejected.

    Raises:
        ValueError: If the value is not an ISO-8601 string
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"expected an ISO-8601 string, got {type(value).__name__}")
    match = _ISO8601.fullmatch(value.strip())
    if match is None:
        raise ValueError(f"not an ISO-8601 date-time: {value!r}")
    text = f"{match['date']}T{match['time']}"
    if match["fraction"]:
        # fromisoformat only takes 3 or 6 fractional digits before 3.11
        text += "." + match["fraction"][:6].ljust(6, "0")
    offset = match["offset"]
    if offset:
        text += "+00:00" if offset in ("Z", "z") else offset
    return datetime.fromisoformat(text)


def wire_context(info: pydantic.ValidationInfo) -> tuple[OrkaConnection, bool]:
    """Return the connection and admin flag a model is being decoded with."""
    context = info.context or {}
    if "conn" not in context:
        raise ValueError("models must be decoded with a connection in the validation context")
    return context["conn"], bool(context.get("admin", False))


def decode(model: type, raw: Any, conn: OrkaConnection, admin: bool = False) -> Any:
    """Validate a wire payload into ``model``.

    Args:
        model: Pydantic model class
        raw: Decoded JSON object from the server
        conn: Connection bound into nested lazy references
        admin: Whether follow-up requests act with administrative scope

    Returns:
        Model instance

    Raises:
        MalformedResponse: If required fields are missing or unparsable
    """
    if not isinstance(raw, dict):
        raise MalformedResponse(
            f"{model.__name__}: expected an object, got {type(raw).__name__}"
        )
    try:
        return model.model_validate(raw, context={"conn": conn, "admin": admin})
    except pydantic.ValidationError as e:
        raise MalformedResponse(f"{model.__name__}: {e}") from e


class WireModel(pydantic.BaseModel):
    """Immutable model decoded from an Orka API payload.

    Unknown keys are ignored so newer servers can add fields.
    """

    model_config = pydantic.ConfigDict(frozen=True, extra="ignore")

    @classmethod
    def from_wire(cls, raw: Any, conn: OrkaConnection, admin: bool = False) -> Any:
        """Decode a server payload into this model.

        Raises:
            MalformedResponse: If required fields are missing or unparsable
        """
        return decode(cls, raw, conn, admin=admin)
