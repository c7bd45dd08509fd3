"""Seller analytics.

Profile views and contact attempts are recorded as rows in
``seller_analytics``. Recording is best effort: a failure is logged
and never breaks the request that triggered it. The dashboard summary
combines these events with contact requests, ratings and favourites
over a trailing window.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from brewnear.db import db
from brewnear.models import (
    AnalyticsEvent,
    ContactRequest,
    Favorite,
    Seller,
    SellerAnalytics,
    utcnow,
)

logger = logging.getLogger(__name__)


def track_event(seller_id: int, event_type: AnalyticsEvent, viewer_id: Optional[int] = None,
                metadata: Optional[dict] = None) -> Optional[SellerAnalytics]:
    """Record an analytics event and commit it on its own.

    Returns the stored row, or ``None`` when recording failed.
    """
    record = SellerAnalytics(
        seller_id=seller_id, viewer_id=viewer_id, event_type=event_type, event_metadata=metadata
    )
    try:
        db.session.add(record)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.warning("Failed to track %s for seller %s: %s", event_type.value, seller_id, exc)
        return None
    return record


def track_seller_view(seller_id: int, viewer_id: Optional[int] = None) -> Optional[SellerAnalytics]:
    # Sellers looking at their own storefront are not counted.
    if viewer_id is not None and viewer_id == seller_id:
        return None
    return track_event(seller_id, AnalyticsEvent.PROFILE_VIEW, viewer_id)


def seller_analytics(seller_id: int, days: int = 30, since: Optional[datetime] = None) -> dict:
    """Summarise a seller's activity since ``since`` (default: ``days`` ago).

    Returns profile views, contact requests, the current rating
    aggregate, the favourite count and the combined recent activity,
    newest first.
    """
    start = since or (utcnow() - timedelta(days=days))
    events = (
        SellerAnalytics.query
        .filter(SellerAnalytics.seller_id == seller_id, SellerAnalytics.created_at >= start)
        .all()
    )
    contacts = (
        ContactRequest.query
        .filter(ContactRequest.seller_id == seller_id, ContactRequest.created_at >= start)
        .all()
    )
    seller = db.session.get(Seller, seller_id)
    favorite_count = (
        db.session.query(func.count(Favorite.id)).filter(Favorite.seller_id == seller_id).scalar() or 0
    )

    activity = [
        {
            "kind": "analytics",
            "event_type": event.event_type.value,
            "viewer_id": event.viewer_id,
            "created_at": event.created_at,
        }
        for event in events
    ] + [
        {
            "kind": "contact_request",
            "contact_type": contact.contact_type.value,
            "status": contact.status.value,
            "buyer_id": contact.buyer_id,
            "created_at": contact.created_at,
        }
        for contact in contacts
    ]
    activity.sort(key=lambda item: item["created_at"], reverse=True)
    for item in activity:
        item["created_at"] = item["created_at"].isoformat()

    return {
        "since": start.isoformat(),
        "profile_views": sum(1 for e in events if e.event_type is AnalyticsEvent.PROFILE_VIEW),
        "contact_requests": len(contacts),
        "average_rating": float(seller.rating_average) if seller else 0.0,
        "rating_count": seller.rating_count if seller else 0,
        "favorite_count": favorite_count,
        "recent_activity": activity,
    }
