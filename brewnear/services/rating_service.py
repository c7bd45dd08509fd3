"""Buyer ratings of sellers.

Each buyer holds at most one rating per seller; submitting again
replaces it. The seller's ``rating_average`` and ``rating_count`` are
recomputed in the same transaction as every change.
"""
from __future__ import annotations

import logging
from typing import Optional

from dateutil.relativedelta import relativedelta

from brewnear.db import commit, db
from brewnear.errors import NotFoundError, PermissionDeniedError, ValidationError, friendly_message
from brewnear.models import Rating, Seller, utcnow
from brewnear.util.query import LIKE_ESCAPE, like_pattern
from brewnear.util.sanitization import sanitize_text
from brewnear.util.validation import id_field

from . import seller_service

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 500
SEARCH_LIMIT = 50
TREND_THRESHOLD = 0.2


def seller_ratings(seller_id: int, limit: Optional[int] = None) -> list[Rating]:
    query = Rating.query.filter(Rating.seller_id == seller_id).order_by(Rating.created_at.desc(), Rating.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def get_rating(buyer_id: int, seller_id: int) -> Optional[Rating]:
    return Rating.query.filter_by(buyer_id=buyer_id, seller_id=seller_id).first()


def _clean_score(value) -> int:
    if (isinstance(value, bool) or not isinstance(value, (int, float))
            or (isinstance(value, float) and not value.is_integer())):
        raise ValidationError("Rating must be a whole number between 1 and 5", fields={"rating": "invalid"})
    score = int(value)
    if not 1 <= score <= 5:
        raise ValidationError("Rating must be a whole number between 1 and 5", fields={"rating": "range"})
    return score


def _clean_comment(value) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Invalid comment", fields={"comment": "invalid"})
    comment = sanitize_text(value)
    if len(comment) > MAX_COMMENT_LENGTH:
        raise ValidationError(
            f"Comment must be at most {MAX_COMMENT_LENGTH} characters", fields={"comment": "length"}
        )
    return comment or None


def submit_rating(actor_id: int, data: dict) -> tuple[Rating, bool]:
    """Create or replace the actor's rating of ``data["seller_id"]``.

    Returns ``(rating, created)``.
    """
    buyer_id = data.get("buyer_id", actor_id)
    if buyer_id != actor_id:
        raise PermissionDeniedError("You can only submit ratings for yourself")
    seller_id = id_field(data.get("seller_id"), "seller_id")
    if db.session.get(Seller, seller_id) is None:
        raise NotFoundError(friendly_message("PGRST301"))
    if seller_id == actor_id:
        raise PermissionDeniedError("You cannot rate your own storefront")

    score = _clean_score(data.get("rating"))
    comment = _clean_comment(data.get("comment"))
    order_items = data.get("order_items")
    if order_items is not None and not isinstance(order_items, list):
        raise ValidationError("order_items must be a list", fields={"order_items": "invalid"})

    rating = get_rating(actor_id, seller_id)
    created = rating is None
    if created:
        rating = Rating(buyer_id=actor_id, seller_id=seller_id)
        db.session.add(rating)
    rating.rating = score
    rating.comment = comment
    rating.order_items = order_items
    rating.created_at = utcnow()
    db.session.flush()
    seller_service.recompute_rating(seller_id)
    commit()
    logger.info("Buyer %s rated seller %s: %s", actor_id, seller_id, score)
    return rating, created


def delete_rating(actor_id: int, rating_id: int) -> None:
    rating = db.session.get(Rating, rating_id)
    if rating is None:
        raise NotFoundError("Rating not found")
    if rating.buyer_id != actor_id:
        raise PermissionDeniedError("Unauthorized: You can only delete your own ratings")
    seller_id = rating.seller_id
    db.session.delete(rating)
    db.session.flush()
    seller_service.recompute_rating(seller_id)
    commit()


def seller_stats(seller_id: int) -> dict:
    ratings = seller_ratings(seller_id)
    total = len(ratings)
    distribution = {score: 0 for score in range(1, 6)}
    for rating in ratings:
        distribution[rating.rating] = distribution.get(rating.rating, 0) + 1
    average = sum(r.rating for r in ratings) / total if total else 0
    return {
        "average_rating": round(average, 2),
        "total_ratings": total,
        "rating_distribution": distribution,
        "recent_ratings": ratings[:5],
    }


def buyer_ratings(buyer_id: int) -> list[Rating]:
    return Rating.query.filter(Rating.buyer_id == buyer_id).order_by(Rating.created_at.desc()).all()


def recent_ratings(limit: int = 20) -> list[Rating]:
    return Rating.query.order_by(Rating.created_at.desc(), Rating.id.desc()).limit(limit).all()


def search_ratings(query_text: str, seller_id: Optional[int] = None) -> list[Rating]:
    query = Rating.query.filter(
        Rating.comment.isnot(None),
        Rating.comment.ilike(like_pattern((query_text or "").strip()), escape=LIKE_ESCAPE),
    )
    if seller_id:
        query = query.filter(Rating.seller_id == seller_id)
    return query.order_by(Rating.created_at.desc()).limit(SEARCH_LIMIT).all()


def rating_trends(seller_id: int, months: int = 6) -> dict:
    """Monthly averages over the last ``months`` months and the overall trend.

    The trend compares the mean of the first half of the months with
    the second half (the middle month counts in both when odd).
    """
    start = utcnow() - relativedelta(months=months)
    ratings = (
        Rating.query
        .filter(Rating.seller_id == seller_id, Rating.created_at >= start)
        .order_by(Rating.created_at.asc())
        .all()
    )

    buckets: dict[str, list[int]] = {}
    labels: dict[str, str] = {}
    for rating in ratings:
        key = rating.created_at.strftime("%Y-%m")
        buckets.setdefault(key, []).append(rating.rating)
        labels[key] = rating.created_at.strftime("%b %Y")

    monthly = [
        {"month": labels[key], "average": round(sum(scores) / len(scores), 2), "count": len(scores)}
        for key, scores in sorted(buckets.items())
    ]

    trend = "stable"
    if len(monthly) >= 2:
        first = monthly[:(len(monthly) + 1) // 2]
        second = monthly[len(monthly) // 2:]
        first_avg = sum(m["average"] for m in first) / len(first)
        second_avg = sum(m["average"] for m in second) / len(second)
        if second_avg > first_avg + TREND_THRESHOLD:
            trend = "improving"
        elif second_avg < first_avg - TREND_THRESHOLD:
            trend = "declining"

    return {"monthly_averages": monthly, "overall_trend": trend}


def report_rating(rating_id: int, reason: str, reporter_id: int) -> None:
    """Flag a rating for moderation. Reports are only logged."""
    if db.session.get(Rating, rating_id) is None:
        raise NotFoundError("Rating not found")
    logger.warning("Rating %s reported by user %s: %s", rating_id, reporter_id, sanitize_text(reason or ""))
