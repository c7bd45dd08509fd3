"""
Routes for seller storefronts.

Anyone may browse storefronts: the nearby search behind the map, text
search, the top-rated list and individual profiles. Creating and
editing a storefront, uploading its photo, reading its analytics and
its contact requests are reserved for the seller who owns it. A signed
in viewer's visit is recorded as a profile view.
"""

from __future__ import annotations

from datetime import timezone

from dateutil.parser import parse as parse_date  # type: ignore
from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required

from ..directions import ROUTING_PROFILES
from ..errors import PermissionDeniedError, ValidationError
from ..geo import Coordinates
from ..schemas import (
    ContactRequestSchema,
    NearbySellerSchema,
    SellerDetailSchema,
    SellerSchema,
    SellerSummarySchema,
)
from ..services import analytics_service, contact_service, seller_service
from ..util.validation import boolean_field
from .common import (
    arg_bool,
    arg_float,
    arg_int,
    current_user_id,
    json_body,
    optional_user_id,
    storage,
    uploaded_file,
)


sellers_bp = Blueprint("sellers", __name__)


def _require_owner(seller_id: int) -> int:
    user_id = current_user_id()
    if user_id != seller_id:
        raise PermissionDeniedError("You can only manage your own storefront")
    return user_id


@sellers_bp.route("/sellers/nearby", methods=["GET"])
def nearby_sellers() -> tuple[list[dict], int]:
    """Storefronts around ``lat``/``lng`` within ``radius_km``, nearest first.

    Optional filters: ``specialty`` (``coffee``, ``matcha`` or ``both``),
    ``available`` and ``min_rating``.
    """
    sellers = seller_service.find_nearby(
        arg_float("lat", required=True),
        arg_float("lng", required=True),
        radius_km=arg_float("radius_km", current_app.config["DEFAULT_SEARCH_RADIUS_KM"]),
        specialty=request.args.get("specialty"),
        is_available=arg_bool("available"),
        min_rating=arg_float("min_rating"),
    )
    return NearbySellerSchema(many=True).dump(sellers), 200


@sellers_bp.route("/sellers/search", methods=["GET"])
def search_sellers() -> tuple[list[dict], int]:
    sellers = seller_service.search(
        request.args.get("q", ""),
        specialty=request.args.get("specialty"),
        is_available=arg_bool("available"),
        min_rating=arg_float("min_rating"),
    )
    return SellerSchema(many=True).dump(sellers), 200


@sellers_bp.route("/sellers/top-rated", methods=["GET"])
def top_rated_sellers() -> tuple[list[dict], int]:
    sellers = seller_service.top_rated(limit=arg_int("limit", 10))
    return SellerSummarySchema(many=True).dump(sellers), 200


@sellers_bp.route("/sellers", methods=["POST"])
@jwt_required()
def create_seller() -> tuple[dict, int]:
    """Create the caller's storefront.

    Returns 201 when created and 200 with the existing storefront when
    one was already there.
    """
    seller, created = seller_service.create_profile(current_user_id(), json_body())
    return SellerSchema().dump(seller), 201 if created else 200


@sellers_bp.route("/sellers/me", methods=["GET"])
@jwt_required()
def my_storefront() -> tuple[dict, int]:
    seller = seller_service.get_seller(current_user_id())
    return SellerDetailSchema().dump(seller), 200


@sellers_bp.route("/sellers/<int:seller_id>/exists", methods=["GET"])
def seller_exists(seller_id: int) -> tuple[dict, int]:
    return {"exists": seller_service.profile_exists(seller_id)}, 200


@sellers_bp.route("/sellers/<int:seller_id>", methods=["GET"])
def get_seller(seller_id: int) -> tuple[dict, int]:
    """Retrieve a storefront with its menu.

    Unavailable drinks are only listed for the owner.
    """
    viewer_id = optional_user_id()
    seller = seller_service.get_seller(seller_id, viewer_id=viewer_id)
    data = SellerDetailSchema().dump(seller)
    if viewer_id != seller_id:
        data["drinks"] = [drink for drink in data["drinks"] if drink["is_available"]]
    return data, 200


@sellers_bp.route("/sellers/<int:seller_id>", methods=["PATCH"])
@jwt_required()
def update_seller(seller_id: int) -> tuple[dict, int]:
    seller = seller_service.update_profile(current_user_id(), seller_id, json_body())
    return SellerSchema().dump(seller), 200


@sellers_bp.route("/sellers/<int:seller_id>/availability", methods=["PUT"])
@jwt_required()
def set_availability(seller_id: int) -> tuple[dict, int]:
    available = boolean_field(json_body(), "is_available")
    seller = seller_service.set_available(current_user_id(), seller_id, available)
    return {"id": seller.id, "is_available": seller.is_available}, 200


@sellers_bp.route("/sellers/<int:seller_id>/photo", methods=["POST"])
@jwt_required()
def upload_seller_photo(seller_id: int) -> tuple[dict, int]:
    """Upload a storefront photo from the multipart ``file`` field."""
    url = seller_service.upload_photo(current_user_id(), seller_id, uploaded_file(), storage())
    return {"photo_url": url}, 201


@sellers_bp.route("/sellers/<int:seller_id>/completeness", methods=["GET"])
def seller_completeness(seller_id: int) -> tuple[dict, int]:
    return seller_service.completeness(seller_id), 200


@sellers_bp.route("/sellers/<int:seller_id>/analytics", methods=["GET"])
@jwt_required()
def seller_analytics(seller_id: int) -> tuple[dict, int]:
    """Dashboard figures for the owner.

    The window is the last ``days`` days (default 30) unless an explicit
    ``since`` date is given.
    """
    _require_owner(seller_id)
    since = None
    if request.args.get("since"):
        try:
            since = parse_date(request.args["since"])
        except (ValueError, OverflowError):
            raise ValidationError("Invalid 'since' date.", fields={"since": request.args["since"]})
        if since.tzinfo is not None:
            since = since.astimezone(timezone.utc).replace(tzinfo=None)
    days = arg_int("days", 30, maximum=365)
    return analytics_service.seller_analytics(seller_id, days=days, since=since), 200


@sellers_bp.route("/sellers/<int:seller_id>/contact-requests", methods=["GET"])
@jwt_required()
def seller_contact_requests(seller_id: int) -> tuple[list[dict], int]:
    _require_owner(seller_id)
    requests = contact_service.seller_requests(seller_id, status=request.args.get("status"))
    return ContactRequestSchema(many=True).dump(requests), 200


@sellers_bp.route("/sellers/<int:seller_id>/directions", methods=["GET"])
def seller_directions(seller_id: int) -> tuple[dict, int]:
    """Route from ``lat``/``lng`` to the storefront.

    ``profile`` accepts an OpenRouteService profile (``foot-walking``)
    or its short name (``walking``).
    """
    seller = seller_service.get_seller(seller_id)
    start = Coordinates(arg_float("lat", required=True), arg_float("lng", required=True))
    profile = request.args.get("profile")
    if profile:
        profile = ROUTING_PROFILES.get(profile, profile)
    route = current_app.extensions["directions"].route(
        start, Coordinates(seller.latitude, seller.longitude), profile=profile
    )
    return {"seller_id": seller.id, **route.to_dict()}, 200
