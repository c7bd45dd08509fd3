"""
Routes for a buyer's saved sellers.
"""

from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from ..errors import ValidationError
from ..schemas import FavoriteSchema, SellerSummarySchema
from ..services import favorite_service
from ..util.validation import id_field
from .common import arg_bool, arg_int, current_user_id, json_body


favorites_bp = Blueprint("favorites", __name__)


@favorites_bp.route("/favorites", methods=["GET"])
@jwt_required()
def list_favorites() -> tuple[list[dict], int]:
    """List the caller's favourites, newest first.

    ``specialty`` narrows to one specialty (``both`` keeps all) and
    ``available=true`` keeps only sellers currently open.
    """
    buyer_id = current_user_id()
    if arg_bool("available"):
        favorites = favorite_service.available_favorites(buyer_id)
    else:
        favorites = favorite_service.list_favorites(buyer_id)
    specialty = request.args.get("specialty")
    if specialty:
        wanted = {f.id for f in favorite_service.by_specialty(buyer_id, specialty)}
        favorites = [f for f in favorites if f.id in wanted]
    return FavoriteSchema(many=True).dump(favorites), 200


@favorites_bp.route("/favorites/stats", methods=["GET"])
@jwt_required()
def favorite_stats() -> tuple[dict, int]:
    return favorite_service.stats(current_user_id()), 200


@favorites_bp.route("/favorites/recent", methods=["GET"])
@jwt_required()
def recent_favorites() -> tuple[list[dict], int]:
    favorites = favorite_service.recent_activity(current_user_id(), limit=arg_int("limit", 10))
    return FavoriteSchema(many=True).dump(favorites), 200


@favorites_bp.route("/favorites", methods=["POST"])
@jwt_required()
def add_favorite() -> tuple[dict, int]:
    seller_id = id_field(json_body().get("seller_id"), "seller_id")
    favorite = favorite_service.add(current_user_id(), seller_id)
    return FavoriteSchema().dump(favorite), 201


@favorites_bp.route("/favorites", methods=["DELETE"])
@jwt_required()
def bulk_remove_favorites() -> tuple[dict, int]:
    seller_ids = json_body().get("seller_ids")
    if not isinstance(seller_ids, list) or not all(isinstance(i, int) for i in seller_ids):
        raise ValidationError("seller_ids must be a list of ids", fields={"seller_ids": "invalid"})
    return {"removed": favorite_service.bulk_remove(current_user_id(), seller_ids)}, 200


@favorites_bp.route("/favorites/<int:seller_id>", methods=["GET"])
@jwt_required()
def is_favorite(seller_id: int) -> tuple[dict, int]:
    return {"seller_id": seller_id, "is_favorited": favorite_service.is_favorited(current_user_id(), seller_id)}, 200


@favorites_bp.route("/favorites/<int:seller_id>", methods=["DELETE"])
@jwt_required()
def remove_favorite(seller_id: int) -> tuple[str, int]:
    favorite_service.remove(current_user_id(), seller_id)
    return "", 204


@favorites_bp.route("/favorites/<int:seller_id>/toggle", methods=["POST"])
@jwt_required()
def toggle_favorite(seller_id: int) -> tuple[dict, int]:
    return {"seller_id": seller_id, "is_favorited": favorite_service.toggle(current_user_id(), seller_id)}, 200


@favorites_bp.route("/sellers/<int:seller_id>/favorites/count", methods=["GET"])
def seller_favorite_count(seller_id: int) -> tuple[dict, int]:
    return {"seller_id": seller_id, "count": favorite_service.seller_favorite_count(seller_id)}, 200


@favorites_bp.route("/sellers/most-favorited", methods=["GET"])
def most_favorited_sellers() -> tuple[list[dict], int]:
    schema = SellerSummarySchema()
    return [
        {**schema.dump(seller), "favorite_count": count}
        for seller, count in favorite_service.most_favorited(limit=arg_int("limit", 10))
    ], 200
