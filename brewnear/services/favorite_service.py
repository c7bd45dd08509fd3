"""Sellers saved by buyers."""
from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import func

from brewnear.db import commit, db
from brewnear.errors import ConflictError, NotFoundError, friendly_message
from brewnear.models import Favorite, Seller, Specialty

from .seller_service import parse_specialty

logger = logging.getLogger(__name__)


def list_favorites(buyer_id: int) -> list[Favorite]:
    return (
        Favorite.query.filter(Favorite.buyer_id == buyer_id)
        .order_by(Favorite.created_at.desc(), Favorite.id.desc())
        .all()
    )


def is_favorited(buyer_id: int, seller_id: int) -> bool:
    return Favorite.query.filter_by(buyer_id=buyer_id, seller_id=seller_id).first() is not None


def add(buyer_id: int, seller_id: int) -> Favorite:
    if db.session.get(Seller, seller_id) is None:
        raise NotFoundError(friendly_message("PGRST301"))
    if is_favorited(buyer_id, seller_id):
        raise ConflictError(friendly_message("23505"))
    favorite = Favorite(buyer_id=buyer_id, seller_id=seller_id)
    db.session.add(favorite)
    commit()
    return favorite


def remove(buyer_id: int, seller_id: int) -> bool:
    """Remove a favourite; returns whether one existed."""
    # Deleted through the session, not a bulk query, so the change feed sees it.
    favorite = Favorite.query.filter_by(buyer_id=buyer_id, seller_id=seller_id).first()
    if favorite is None:
        return False
    db.session.delete(favorite)
    commit()
    return True


def toggle(buyer_id: int, seller_id: int) -> bool:
    """Flip the favourite state and return whether the seller is now a favourite."""
    if remove(buyer_id, seller_id):
        return False
    add(buyer_id, seller_id)
    return True


def seller_favorite_count(seller_id: int) -> int:
    return db.session.query(func.count(Favorite.id)).filter(Favorite.seller_id == seller_id).scalar() or 0


def most_favorited(limit: int = 10) -> list[tuple[Seller, int]]:
    """Available sellers with the most favourites, as ``(seller, count)``."""
    count = func.count(Favorite.id).label("favorite_count")
    rows = (
        db.session.query(Seller, count)
        .outerjoin(Favorite, Favorite.seller_id == Seller.id)
        .filter(Seller.is_available.is_(True))
        .group_by(Seller.id)
        .order_by(count.desc(), Seller.rating_average.desc())
        .limit(limit)
        .all()
    )
    return [(seller, favorites) for seller, favorites in rows]


def recent_activity(buyer_id: int, limit: int = 10) -> list[Favorite]:
    return list_favorites(buyer_id)[:limit]


def by_specialty(buyer_id: int, specialty) -> list[Favorite]:
    wanted = parse_specialty(specialty)
    favorites = list_favorites(buyer_id)
    if wanted is None or wanted is Specialty.BOTH:
        return favorites
    return [f for f in favorites if f.seller.specialty is wanted]


def available_favorites(buyer_id: int) -> list[Favorite]:
    return [f for f in list_favorites(buyer_id) if f.seller.is_available]


def bulk_remove(buyer_id: int, seller_ids: Iterable[int]) -> int:
    ids = list(seller_ids)
    if not ids:
        return 0
    favorites = Favorite.query.filter(Favorite.buyer_id == buyer_id, Favorite.seller_id.in_(ids)).all()
    for favorite in favorites:
        db.session.delete(favorite)
    commit()
    logger.info("Buyer %s removed %d favourites", buyer_id, len(favorites))
    return len(favorites)


def stats(buyer_id: int) -> dict:
    favorites = list_favorites(buyer_id)
    breakdown: dict[str, int] = {}
    rated = []
    for favorite in favorites:
        specialty = favorite.seller.specialty.value
        breakdown[specialty] = breakdown.get(specialty, 0) + 1
        if favorite.seller.rating_average:
            rated.append(favorite.seller.rating_average)
    return {
        "total_favorites": len(favorites),
        "available_favorites": sum(1 for f in favorites if f.seller.is_available),
        "specialty_breakdown": breakdown,
        "average_rating": round(sum(rated) / len(rated), 2) if rated else 0,
    }
