"""
Routes for drinks on seller menus.

Browsing is public. Creating, editing, deleting and uploading photos
are limited to the seller who owns the drink; the ownership checks
live in ``drink_service``.
"""

from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from ..errors import ValidationError
from ..schemas import DrinkDetailSchema, DrinkSchema
from ..services import drink_service
from .common import arg_bool, arg_float, arg_int, current_user_id, json_body, optional_user_id, storage, uploaded_file


drinks_bp = Blueprint("drinks", __name__)


@drinks_bp.route("/sellers/<int:seller_id>/drinks", methods=["GET"])
def list_seller_drinks(seller_id: int) -> tuple[list[dict], int]:
    """List a seller's menu, newest first.

    Unavailable drinks are included only when the owner asks for them
    with ``include_unavailable=true``.
    """
    include_unavailable = bool(arg_bool("include_unavailable")) and optional_user_id() == seller_id
    drinks = drink_service.list_for_seller(seller_id, include_unavailable=include_unavailable)
    return DrinkSchema(many=True).dump(drinks), 200


@drinks_bp.route("/sellers/<int:seller_id>/drinks/stats", methods=["GET"])
def seller_drink_stats(seller_id: int) -> tuple[dict, int]:
    return drink_service.stats(seller_id), 200


@drinks_bp.route("/drinks/search", methods=["GET"])
def search_drinks() -> tuple[list[dict], int]:
    drinks = drink_service.search(
        request.args.get("q", ""),
        category=request.args.get("category"),
        min_price=arg_float("min_price"),
        max_price=arg_float("max_price"),
        seller_id=arg_int("seller_id", minimum=1, maximum=2**31 - 1),
    )
    return DrinkDetailSchema(many=True).dump(drinks), 200


@drinks_bp.route("/drinks/popular", methods=["GET"])
def popular_drinks() -> tuple[list[dict], int]:
    drinks = drink_service.popular(limit=arg_int("limit", 20))
    return DrinkDetailSchema(many=True).dump(drinks), 200


@drinks_bp.route("/drinks/categories", methods=["GET"])
def drink_categories() -> tuple[list[str], int]:
    """Categories that currently have at least one available drink."""
    return drink_service.categories(), 200


@drinks_bp.route("/drinks/category/<string:category>", methods=["GET"])
def drinks_by_category(category: str) -> tuple[list[dict], int]:
    return DrinkDetailSchema(many=True).dump(drink_service.by_category(category)), 200


@drinks_bp.route("/drinks", methods=["POST"])
@jwt_required()
def create_drink() -> tuple[dict, int]:
    """Add a drink to the caller's menu.

    Expects JSON with ``name`` (2-100 chars), ``description`` (10-500
    chars), ``price`` (1 to 10,000 MAD, two decimals at most) and
    ``category``.
    """
    drink = drink_service.create_drink(current_user_id(), json_body())
    return DrinkSchema().dump(drink), 201


@drinks_bp.route("/drinks/bulk", methods=["PATCH"])
@jwt_required()
def bulk_update_drinks() -> tuple[list[dict], int]:
    """Apply ``{"updates": [{"id": 1, "updates": {...}}, ...]}`` atomically."""
    items = json_body().get("updates")
    if not isinstance(items, list):
        raise ValidationError("'updates' must be a list", fields={"updates": "invalid"})
    drinks = drink_service.bulk_update(current_user_id(), items)
    return DrinkSchema(many=True).dump(drinks), 200


@drinks_bp.route("/drinks/<int:drink_id>", methods=["GET"])
def get_drink(drink_id: int) -> tuple[dict, int]:
    return DrinkDetailSchema().dump(drink_service.get_drink(drink_id)), 200


@drinks_bp.route("/drinks/<int:drink_id>", methods=["PATCH"])
@jwt_required()
def update_drink(drink_id: int) -> tuple[dict, int]:
    drink = drink_service.update_drink(current_user_id(), drink_id, json_body())
    return DrinkSchema().dump(drink), 200


@drinks_bp.route("/drinks/<int:drink_id>", methods=["DELETE"])
@jwt_required()
def delete_drink(drink_id: int) -> tuple[str, int]:
    drink_service.delete_drink(current_user_id(), drink_id, storage())
    return "", 204


@drinks_bp.route("/drinks/<int:drink_id>/photo", methods=["POST"])
@jwt_required()
def upload_drink_photo(drink_id: int) -> tuple[dict, int]:
    url = drink_service.upload_photo(current_user_id(), drink_id, uploaded_file(), storage())
    return {"photo_url": url}, 201


@drinks_bp.route("/drinks/<int:drink_id>/toggle-availability", methods=["POST"])
@jwt_required()
def toggle_drink_availability(drink_id: int) -> tuple[dict, int]:
    return {"id": drink_id, "is_available": drink_service.toggle_availability(current_user_id(), drink_id)}, 200
