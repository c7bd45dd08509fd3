"""Type checks for JSON request fields.

JSON booleans and ids arrive as Python ``bool`` and ``int``. Strings
such as ``"false"`` or ``"1"`` are rejected rather than coerced.
"""
from __future__ import annotations

from typing import Any, Optional

from brewnear.errors import ValidationError


def boolean_field(data: dict, key: str, default: Optional[bool] = None) -> Optional[bool]:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be true or false", fields={key: "invalid"})
    return value


def id_field(value: Any, key: str) -> int:
    """Return ``value`` as a record id; ``True`` is not an id."""
    if value is None:
        raise ValidationError(f"{key} is required", fields={key: "required"})
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Invalid {key}", fields={key: "invalid"})
    return value
