"""
Routes for the signed-in user's own account, and the public view of
anyone else's.
"""

from __future__ import annotations

from flask import Blueprint
from flask_jwt_extended import jwt_required

from ..schemas import ContactRequestSchema, PublicUserSchema, RatingDetailSchema, UserSchema
from ..services import contact_service, rating_service, user_service
from .common import current_user_id, json_body, storage, uploaded_file


users_bp = Blueprint("users", __name__)


@users_bp.route("/me", methods=["GET"])
@jwt_required()
def get_me() -> tuple[dict, int]:
    return UserSchema().dump(user_service.get_user(current_user_id())), 200


@users_bp.route("/me", methods=["PATCH"])
@jwt_required()
def update_me() -> tuple[dict, int]:
    """Update the caller's ``name``, ``phone`` or ``avatar_url``."""
    user = user_service.update_profile(current_user_id(), json_body())
    return UserSchema().dump(user), 200


@users_bp.route("/me", methods=["DELETE"])
@jwt_required()
def delete_me() -> tuple[str, int]:
    """Delete the caller's account and everything attached to it."""
    user_service.delete_account(current_user_id(), storage())
    return "", 204


@users_bp.route("/me/avatar", methods=["POST"])
@jwt_required()
def upload_my_avatar() -> tuple[dict, int]:
    """Upload an avatar image from the multipart ``file`` field."""
    url = user_service.upload_avatar(current_user_id(), uploaded_file(), storage())
    return {"avatar_url": url}, 201


@users_bp.route("/me/profile", methods=["GET"])
@jwt_required()
def get_my_profile() -> tuple[dict, int]:
    """Return the account together with review, favourite and contact counts."""
    profile = user_service.buyer_profile(current_user_id())
    return {"user": UserSchema().dump(profile["user"]), "stats": profile["stats"]}, 200


@users_bp.route("/me/ratings", methods=["GET"])
@jwt_required()
def get_my_ratings() -> tuple[list[dict], int]:
    ratings = rating_service.buyer_ratings(current_user_id())
    return RatingDetailSchema(many=True).dump(ratings), 200


@users_bp.route("/me/contact-requests", methods=["GET"])
@jwt_required()
def get_my_contact_requests() -> tuple[list[dict], int]:
    requests = contact_service.buyer_requests(current_user_id())
    return ContactRequestSchema(many=True).dump(requests), 200


@users_bp.route("/users/<int:user_id>", methods=["GET"])
def get_user(user_id: int) -> tuple[dict, int]:
    return PublicUserSchema().dump(user_service.public_profile(user_id)), 200
