"""
Routes for buyer ratings of sellers.
"""

from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from ..schemas import RatingDetailSchema, RatingSchema
from ..services import rating_service
from .common import arg_int, current_user_id, json_body


ratings_bp = Blueprint("ratings", __name__)


@ratings_bp.route("/sellers/<int:seller_id>/ratings", methods=["GET"])
def list_seller_ratings(seller_id: int) -> tuple[list[dict], int]:
    ratings = rating_service.seller_ratings(seller_id, limit=arg_int("limit"))
    return RatingDetailSchema(many=True, exclude=("seller",)).dump(ratings), 200


@ratings_bp.route("/sellers/<int:seller_id>/ratings/stats", methods=["GET"])
def seller_rating_stats(seller_id: int) -> tuple[dict, int]:
    stats = rating_service.seller_stats(seller_id)
    stats["recent_ratings"] = RatingDetailSchema(many=True, exclude=("seller",)).dump(stats["recent_ratings"])
    return stats, 200


@ratings_bp.route("/sellers/<int:seller_id>/ratings/trends", methods=["GET"])
def seller_rating_trends(seller_id: int) -> tuple[dict, int]:
    return rating_service.rating_trends(seller_id, months=arg_int("months", 6, maximum=24)), 200


@ratings_bp.route("/sellers/<int:seller_id>/ratings/mine", methods=["GET"])
@jwt_required()
def my_seller_rating(seller_id: int) -> tuple[dict, int]:
    """The caller's rating of this seller, or ``{"rating": null}``."""
    rating = rating_service.get_rating(current_user_id(), seller_id)
    return {"rating": RatingSchema().dump(rating) if rating else None}, 200


@ratings_bp.route("/ratings/recent", methods=["GET"])
def recent_ratings() -> tuple[list[dict], int]:
    return RatingDetailSchema(many=True).dump(rating_service.recent_ratings(limit=arg_int("limit", 20))), 200


@ratings_bp.route("/ratings/search", methods=["GET"])
def search_ratings() -> tuple[list[dict], int]:
    ratings = rating_service.search_ratings(
        request.args.get("q", ""), seller_id=arg_int("seller_id", minimum=1, maximum=2**31 - 1)
    )
    return RatingDetailSchema(many=True).dump(ratings), 200


@ratings_bp.route("/ratings", methods=["POST"])
@jwt_required()
def submit_rating() -> tuple[dict, int]:
    """Rate a seller from 1 to 5 with an optional comment.

    Submitting again replaces the caller's previous rating (200);
    a first rating returns 201.
    """
    rating, created = rating_service.submit_rating(current_user_id(), json_body())
    return RatingSchema().dump(rating), 201 if created else 200


@ratings_bp.route("/ratings/<int:rating_id>", methods=["DELETE"])
@jwt_required()
def delete_rating(rating_id: int) -> tuple[str, int]:
    rating_service.delete_rating(current_user_id(), rating_id)
    return "", 204


@ratings_bp.route("/ratings/<int:rating_id>/report", methods=["POST"])
@jwt_required()
def report_rating(rating_id: int) -> tuple[dict, int]:
    rating_service.report_rating(rating_id, json_body().get("reason", ""), current_user_id())
    return {"status": "reported"}, 202
