"""Seller storefronts.

Covers the nearby search behind the map, storefront creation and
editing by its owner, photo uploads, text search and the top-rated
list. A storefront shares its id with the seller's user account, so
"owner" checks compare the two directly.
"""
from __future__ import annotations

import logging
import time
from typing import Optional

from sqlalchemy import func, or_

from brewnear.db import commit, db
from brewnear.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    friendly_message,
)
from brewnear.geo import bounding_box, default_coordinates, haversine_km, is_valid_coordinates
from brewnear.models import Rating, Seller, Specialty, User, UserType
from brewnear.storage import SELLER_PHOTOS, BucketStorage, file_extension
from brewnear.util.phone import validate_moroccan_phone
from brewnear.util.profile import check_seller_profile
from brewnear.util.query import LIKE_ESCAPE, like_pattern
from brewnear.util.sanitization import sanitize_text
from brewnear.util.validation import boolean_field

from . import analytics_service

logger = logging.getLogger(__name__)

DEFAULT_HOURS = "Mon-Fri: 9AM-5PM"
DEFAULT_RADIUS_KM = 10.0
SEARCH_LIMIT = 20
TOP_RATED_MIN_COUNT = 5

EDITABLE_FIELDS = (
    "name",
    "business_name",
    "address",
    "latitude",
    "longitude",
    "phone",
    "hours",
    "description",
    "specialty",
    "is_available",
)


def parse_specialty(value) -> Optional[Specialty]:
    """Parse a specialty filter; ``None``/empty means no filter."""
    if value in (None, ""):
        return None
    try:
        return Specialty(str(value).lower())
    except ValueError:
        raise ValidationError(
            "Invalid specialty. Choose 'coffee', 'matcha' or 'both'.", fields={"specialty": value}
        )


def get_seller(seller_id: int, viewer_id: Optional[int] = None) -> Seller:
    """Return a storefront, recording a profile view when a viewer is given."""
    seller = db.session.get(Seller, seller_id)
    if seller is None:
        raise NotFoundError(friendly_message("PGRST301"))
    if viewer_id is not None:
        analytics_service.track_seller_view(seller_id, viewer_id)
    return seller


def profile_exists(seller_id: int) -> bool:
    return db.session.get(Seller, seller_id) is not None


def _owned_seller(actor_id: int, seller_id: int) -> Seller:
    seller = get_seller(seller_id)
    if seller.id != actor_id:
        raise PermissionDeniedError("You can only manage your own storefront")
    return seller


def _text(data: dict, key: str, max_len: int, min_len: int = 0, label: str | None = None) -> Optional[str]:
    raw = data.get(key)
    if raw is None:
        if min_len:
            raise ValidationError(f"{label or key} is required", fields={key: "required"})
        return None
    if not isinstance(raw, str):
        raise ValidationError(f"Invalid {label or key}", fields={key: "invalid"})
    value = sanitize_text(raw)
    if len(value) < min_len or len(value) > max_len:
        raise ValidationError(
            f"{label or key} must be between {min_len} and {max_len} characters", fields={key: "length"}
        )
    return value or None


def _phone(value) -> str:
    result = validate_moroccan_phone(value)
    if not result.is_valid:
        raise ValidationError(result.error, fields={"phone": "invalid"})
    return result.normalized


def _coordinates(data: dict) -> tuple[Optional[float], Optional[float]]:
    lat, lng = data.get("latitude"), data.get("longitude")
    if lat is None and lng is None:
        return None, None
    try:
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError):
        raise ValidationError("Invalid coordinates provided", fields={"latitude": lat, "longitude": lng})
    if not is_valid_coordinates(lat, lng):
        raise ValidationError("Invalid coordinates provided", fields={"latitude": lat, "longitude": lng})
    return lat, lng


def create_profile(user_id: int, data: dict) -> tuple[Seller, bool]:
    """Create the storefront for ``user_id``.

    Idempotent: if the storefront already exists it is returned unchanged.
    Returns ``(seller, created)``.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(friendly_message("PGRST301"))
    existing = db.session.get(Seller, user_id)
    if existing is not None:
        return existing, False
    if user.user_type is not UserType.SELLER:
        raise PermissionDeniedError("Only seller accounts can create a storefront")

    business_name = _text(data, "business_name", 100, 2, "Business name")
    address = _text(data, "address", 255, 3, "Address")
    if not data.get("phone"):
        raise ValidationError("Phone number is required", fields={"phone": "required"})
    lat, lng = _coordinates(data)
    if lat is None:
        lat, lng = default_coordinates(address)

    seller = Seller(
        id=user_id,
        name=_text(data, "name", 100) or business_name,
        business_name=business_name,
        address=address,
        phone=_phone(data["phone"]),
        specialty=parse_specialty(data.get("specialty")) or Specialty.COFFEE,
        hours=_text(data, "hours", 255) or DEFAULT_HOURS,
        description=_text(data, "description", 1000),
        is_available=boolean_field(data, "is_available", True),
        rating_average=0.0,
        rating_count=0,
        latitude=lat,
        longitude=lng,
    )
    db.session.add(seller)
    try:
        commit()
    except ConflictError:
        # Created concurrently by another request.
        existing = db.session.get(Seller, user_id)
        if existing is not None:
            return existing, False
        raise
    logger.info("Created storefront %s (%s)", seller.id, seller.business_name)
    return seller, True


def update_profile(actor_id: int, seller_id: int, updates: dict) -> Seller:
    seller = _owned_seller(actor_id, seller_id)
    unknown = sorted(set(updates) - set(EDITABLE_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(unknown)}", fields={f: "unknown" for f in unknown})

    if "name" in updates:
        seller.name = _text(updates, "name", 100, 2, "Name")
    if "business_name" in updates:
        seller.business_name = _text(updates, "business_name", 100, 2, "Business name")
    if "address" in updates:
        seller.address = _text(updates, "address", 255, 3, "Address")
    if "latitude" in updates or "longitude" in updates:
        merged = {
            "latitude": updates.get("latitude", seller.latitude),
            "longitude": updates.get("longitude", seller.longitude),
        }
        seller.latitude, seller.longitude = _coordinates(merged)
    if "phone" in updates:
        seller.phone = _phone(updates["phone"])
    if "hours" in updates:
        seller.hours = _text(updates, "hours", 255)
    if "description" in updates:
        seller.description = _text(updates, "description", 1000)
    if "specialty" in updates:
        seller.specialty = parse_specialty(updates["specialty"]) or seller.specialty
    if "is_available" in updates:
        seller.is_available = boolean_field(updates, "is_available")
    commit()
    logger.info("Updated storefront %s", seller.id)
    return seller


def set_available(actor_id: int, seller_id: int, available: bool = True) -> Seller:
    seller = _owned_seller(actor_id, seller_id)
    seller.is_available = available
    commit()
    return seller


def upload_photo(actor_id: int, seller_id: int, upload, storage: BucketStorage) -> str:
    """Store a profile photo and point the storefront at it.

    ``upload`` is a werkzeug ``FileStorage``. The returned URL carries a
    ``?t=`` cache-busting timestamp.
    """
    seller = _owned_seller(actor_id, seller_id)
    ext = file_extension(upload.filename or "")
    timestamp = int(time.time() * 1000)
    path = storage.upload(SELLER_PHOTOS, f"{seller.id}/profile-{timestamp}.{ext}", upload.stream, upsert=True)

    previous = storage.path_from_url(SELLER_PHOTOS, seller.photo_url) if seller.photo_url else None
    seller.photo_url = f"{storage.public_url(SELLER_PHOTOS, path)}?t={timestamp}"
    try:
        commit()
    except Exception:
        if path != previous:
            storage.remove(SELLER_PHOTOS, [path])
        raise
    if previous and previous != path:
        storage.remove(SELLER_PHOTOS, [previous])
    return seller.photo_url


def find_nearby(latitude: float, longitude: float, radius_km: float = DEFAULT_RADIUS_KM,
                specialty=None, is_available: Optional[bool] = None,
                min_rating: Optional[float] = None) -> list[Seller]:
    """Storefronts within ``radius_km`` of a point, nearest first.

    Each returned seller carries a transient ``distance_km`` attribute.
    A ``"both"`` specialty filter matches every storefront.
    """
    if not is_valid_coordinates(latitude, longitude):
        raise ValidationError("Invalid coordinates provided", fields={"latitude": latitude, "longitude": longitude})
    if radius_km is None or radius_km <= 0:
        raise ValidationError("Radius must be a positive number of kilometres", fields={"radius_km": radius_km})

    min_lat, max_lat, min_lng, max_lng = bounding_box(latitude, longitude, radius_km)
    query = Seller.query.filter(Seller.latitude.between(min_lat, max_lat))
    if -180.0 <= min_lng and max_lng <= 180.0:
        query = query.filter(Seller.longitude.between(min_lng, max_lng))
    # otherwise the box crosses the antimeridian; rely on the exact distance below

    wanted = parse_specialty(specialty) if not isinstance(specialty, Specialty) else specialty
    if wanted is not None and wanted is not Specialty.BOTH:
        query = query.filter(Seller.specialty == wanted)
    if is_available is not None:
        query = query.filter(Seller.is_available.is_(is_available))
    if min_rating:
        query = query.filter(Seller.rating_average >= min_rating)

    results = []
    for seller in query.all():
        distance = haversine_km(latitude, longitude, seller.latitude, seller.longitude)
        if distance <= radius_km:
            seller.distance_km = round(distance, 3)
            results.append(seller)
    results.sort(key=lambda s: s.distance_km)
    return results


def search(query_text: str, specialty=None, is_available: Optional[bool] = None,
           min_rating: Optional[float] = None, limit: int = SEARCH_LIMIT) -> list[Seller]:
    """Match business name, address or description, best rated first."""
    term = (query_text or "").strip()
    query = Seller.query
    if term:
        pattern = like_pattern(term)
        query = query.filter(or_(
            Seller.business_name.ilike(pattern, escape=LIKE_ESCAPE),
            Seller.address.ilike(pattern, escape=LIKE_ESCAPE),
            Seller.description.ilike(pattern, escape=LIKE_ESCAPE),
        ))
    wanted = parse_specialty(specialty)
    if wanted is not None and wanted is not Specialty.BOTH:
        query = query.filter(Seller.specialty == wanted)
    if is_available is not None:
        query = query.filter(Seller.is_available.is_(is_available))
    if min_rating:
        query = query.filter(Seller.rating_average >= min_rating)
    return query.order_by(Seller.rating_average.desc(), Seller.id.asc()).limit(limit).all()


def top_rated(limit: int = 10, min_count: int = TOP_RATED_MIN_COUNT) -> list[Seller]:
    return (
        Seller.query
        .filter(Seller.is_available.is_(True), Seller.rating_count >= min_count)
        .order_by(Seller.rating_average.desc(), Seller.rating_count.desc())
        .limit(limit)
        .all()
    )


def recompute_rating(seller_id: int) -> Optional[Seller]:
    """Refresh ``rating_average``/``rating_count`` from the ratings table.

    Changes are flushed, not committed; the caller owns the transaction.
    """
    seller = db.session.get(Seller, seller_id)
    if seller is None:
        return None
    count, average = (
        db.session.query(func.count(Rating.id), func.avg(Rating.rating))
        .filter(Rating.seller_id == seller_id)
        .one()
    )
    seller.rating_count = count or 0
    seller.rating_average = round(float(average), 2) if average is not None else 0.0
    db.session.flush()
    return seller


def completeness(seller_id: int) -> dict:
    return check_seller_profile(db.session.get(Seller, seller_id)).to_dict()
