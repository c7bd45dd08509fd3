"""
Routes for order history.

Buyers place, list, cancel and repeat their orders; sellers list the
orders sent to their storefront and update their status. An order is
only visible to its buyer and its seller.
"""

from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from ..errors import PermissionDeniedError
from ..schemas import OrderDetailSchema, OrderSchema
from ..services import order_service
from .common import current_user_id, json_body


orders_bp = Blueprint("orders", __name__)


@orders_bp.route("/orders", methods=["POST"])
@jwt_required()
def create_order() -> tuple[dict, int]:
    """Place an order.

    Expects JSON with ``seller_id``, ``items`` (each with ``name``,
    ``price`` and ``quantity``) and ``contact_method`` (``whatsapp`` or
    ``phone``); ``total_amount``, ``pickup_time`` and
    ``special_instructions`` are optional.
    """
    order = order_service.create_order(current_user_id(), json_body())
    return OrderDetailSchema().dump(order), 201


@orders_bp.route("/me/orders", methods=["GET"])
@jwt_required()
def my_orders() -> tuple[list[dict], int]:
    orders = order_service.buyer_orders(current_user_id(), status=request.args.get("status"))
    return OrderDetailSchema(many=True).dump(orders), 200


@orders_bp.route("/me/orders/stats", methods=["GET"])
@jwt_required()
def my_order_stats() -> tuple[dict, int]:
    return order_service.buyer_stats(current_user_id()), 200


@orders_bp.route("/orders/search", methods=["GET"])
@jwt_required()
def search_orders() -> tuple[list[dict], int]:
    orders = order_service.search_orders(current_user_id(), request.args.get("q", ""))
    return OrderDetailSchema(many=True).dump(orders), 200


@orders_bp.route("/orders/<int:order_id>", methods=["GET"])
@jwt_required()
def get_order(order_id: int) -> tuple[dict, int]:
    return OrderDetailSchema().dump(order_service.get_order(current_user_id(), order_id)), 200


@orders_bp.route("/orders/<int:order_id>/status", methods=["PATCH"])
@jwt_required()
def update_order_status(order_id: int) -> tuple[dict, int]:
    order = order_service.update_status(current_user_id(), order_id, json_body().get("status"))
    return OrderSchema().dump(order), 200


@orders_bp.route("/orders/<int:order_id>/cancel", methods=["POST"])
@jwt_required()
def cancel_order(order_id: int) -> tuple[dict, int]:
    order = order_service.cancel_order(current_user_id(), order_id, json_body().get("reason"))
    return OrderSchema().dump(order), 200


@orders_bp.route("/orders/<int:order_id>/reorder", methods=["POST"])
@jwt_required()
def reorder(order_id: int) -> tuple[dict, int]:
    order = order_service.reorder(current_user_id(), order_id)
    return OrderDetailSchema().dump(order), 201


@orders_bp.route("/sellers/<int:seller_id>/orders", methods=["GET"])
@jwt_required()
def seller_orders(seller_id: int) -> tuple[list[dict], int]:
    if current_user_id() != seller_id:
        raise PermissionDeniedError("You can only manage your own storefront")
    orders = order_service.seller_orders(seller_id, status=request.args.get("status"))
    return OrderDetailSchema(many=True).dump(orders), 200


@orders_bp.route("/sellers/<int:seller_id>/orders/stats", methods=["GET"])
@jwt_required()
def seller_order_stats(seller_id: int) -> tuple[dict, int]:
    if current_user_id() != seller_id:
        raise PermissionDeniedError("You can only manage your own storefront")
    return order_service.seller_stats(seller_id), 200
