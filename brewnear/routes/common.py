"""
Request helpers shared by the API blueprints.

Identity comes from the JWT subject (the user's id as a string). Query
string helpers raise ``ValidationError`` so a malformed parameter
produces the usual JSON 400 instead of a stack trace.
"""

from __future__ import annotations

from typing import Optional

from flask import current_app, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from ..errors import ValidationError

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")


def current_user_id() -> int:
    """Id of the authenticated user. Call inside ``@jwt_required()`` views."""
    return int(get_jwt_identity())


def optional_user_id() -> Optional[int]:
    """Id of the caller when a valid token was sent, otherwise ``None``."""
    verify_jwt_in_request(optional=True)
    identity = get_jwt_identity()
    return int(identity) if identity is not None else None


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def arg_float(name: str, default: Optional[float] = None, required: bool = False) -> Optional[float]:
    raw = request.args.get(name)
    if raw in (None, ""):
        if required:
            raise ValidationError(f"Query parameter '{name}' is required.", fields={name: "required"})
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"Query parameter '{name}' must be a number.", fields={name: raw})


def arg_int(name: str, default: Optional[int] = None, minimum: int = 1, maximum: int = 100) -> Optional[int]:
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"Query parameter '{name}' must be an integer.", fields={name: raw})
    if not minimum <= value <= maximum:
        raise ValidationError(
            f"Query parameter '{name}' must be between {minimum} and {maximum}.", fields={name: raw}
        )
    return value


def arg_bool(name: str) -> Optional[bool]:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    lowered = raw.lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValidationError(f"Query parameter '{name}' must be true or false.", fields={name: raw})


def uploaded_file(field: str = "file"):
    upload = request.files.get(field)
    if upload is None or not upload.filename:
        raise ValidationError("No file uploaded.", fields={field: "required"})
    return upload


def storage():
    return current_app.extensions["storage"]
