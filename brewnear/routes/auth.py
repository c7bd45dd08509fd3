"""
Authentication routes for BrewNear.

Provides endpoints for registering new users and logging in to obtain
JSON Web Tokens (JWTs). These tokens are required for accessing
protected resources throughout the API.
"""

from __future__ import annotations

from flask import Blueprint
from flask_jwt_extended import create_access_token

from ..models import User
from ..schemas import UserSchema
from ..services import user_service
from .common import json_body


auth_bp = Blueprint("auth", __name__)


def _token_for(user: User) -> str:
    additional_claims = {"user_type": user.user_type.value}
    return create_access_token(identity=str(user.id), additional_claims=additional_claims)


@auth_bp.route("/register", methods=["POST"])
def register() -> tuple[dict, int]:
    """Register a new user.

    Expects JSON with ``email``, ``password``, ``name`` and optional
    ``user_type`` (``buyer`` or ``seller``) and ``phone``. If no type is
    provided, ``buyer`` is used. Emails must be unique. The response
    carries a token so the client is signed in straight away.
    """
    user = user_service.register_user(json_body())
    return {"access_token": _token_for(user), "user": UserSchema().dump(user)}, 201


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple[dict, int]:
    """Authenticate a user and return a JWT.

    Expects JSON with ``email`` and ``password``. Returns a JWT
    containing the user's ID and account type. Invalid credentials
    return 401.
    """
    data = json_body()
    user = user_service.authenticate(data.get("email"), data.get("password"))
    return {"access_token": _token_for(user), "user": UserSchema().dump(user)}, 200
