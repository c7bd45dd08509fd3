"""Buyer to seller contact requests.

A request is stored as ``pending`` and also recorded as a
``contact_attempt`` analytics event, or an ``order_inquiry`` when it
is about a drink on the menu. WhatsApp requests come back with a
prefilled ``wa.me`` link the client can open directly.
"""
from __future__ import annotations

import logging
from typing import Optional

from brewnear.db import commit, db
from brewnear.errors import (
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ValidationError,
    friendly_message,
)
from brewnear.models import AnalyticsEvent, ContactRequest, ContactStatus, ContactType, Drink, Seller, User
from brewnear.util.rate_limit import RateLimiter
from brewnear.util.sanitization import sanitize_text
from brewnear.util.validation import id_field
from brewnear.util.whatsapp import (
    business_hours_message,
    location_message,
    order_inquiry_message,
    product_interest_message,
    quick_contact_message,
    whatsapp_link,
)

from . import analytics_service

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000
TEMPLATES = ("quick", "product", "order", "hours", "location")
DRINK_TEMPLATES = ("product", "order")


def _parse(enum_cls, value, field: str):
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field}. Valid values are: {choices}", fields={field: value})


def _seller_drink(seller_id: int, drink_id) -> Optional[Drink]:
    if drink_id is None:
        return None
    drink = db.session.get(Drink, id_field(drink_id, "drink_id"))
    if drink is None or drink.seller_id != seller_id:
        raise NotFoundError("Drink not found")
    return drink


def _template(template: Optional[str], drink: Optional[Drink]) -> str:
    if template is None:
        return "order" if drink is not None else "quick"
    if template not in TEMPLATES:
        raise ValidationError(
            f"Invalid template. Valid values are: {', '.join(TEMPLATES)}", fields={"template": template}
        )
    if template in DRINK_TEMPLATES and drink is None:
        raise ValidationError(f"The {template} template needs a drink_id", fields={"drink_id": "required"})
    return template


def _prefilled_message(template: str, seller: Seller, drink: Optional[Drink], customer_name: Optional[str]) -> str:
    specialty = seller.specialty.value
    if template == "product":
        return product_interest_message(drink.name, drink.price, specialty, customer_name)
    if template == "order":
        return order_inquiry_message(specialty, drink.name, customer_name)
    if template == "hours":
        return business_hours_message(specialty)
    if template == "location":
        return location_message(specialty)
    return quick_contact_message(specialty, customer_name)


def create_request(buyer_id: int, seller_id: int, contact_type, message: Optional[str] = None,
                   rate_limiter: Optional[RateLimiter] = None, drink_id: Optional[int] = None,
                   template: Optional[str] = None) -> tuple[ContactRequest, Optional[str]]:
    """Record a contact request from ``buyer_id`` to ``seller_id``.

    Returns ``(request, whatsapp_url)``; the URL is ``None`` unless the
    contact type is WhatsApp. Without a custom ``message`` the WhatsApp
    text comes from ``template``: ``quick`` (the default), ``hours``,
    ``location``, or ``product``/``order`` for a ``drink_id`` on the
    seller's menu. A request about a drink is tracked as an
    ``order_inquiry`` rather than a ``contact_attempt``.

    Only requests that pass validation count against the rate limit.
    """
    kind = _parse(ContactType, contact_type, "contact_type")
    seller = db.session.get(Seller, seller_id)
    if seller is None:
        raise NotFoundError(friendly_message("PGRST301"))
    if seller.id == buyer_id:
        raise ValidationError("You cannot contact your own storefront")

    text = sanitize_text(message) if isinstance(message, str) else None
    if text and len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError(
            f"Message must be at most {MAX_MESSAGE_LENGTH} characters", fields={"message": "length"}
        )
    drink = _seller_drink(seller_id, drink_id)
    template = _template(template, drink)

    if rate_limiter is not None and not rate_limiter.is_allowed(buyer_id):
        raise RateLimitError(retry_after=rate_limiter.retry_after(buyer_id))

    request = ContactRequest(
        buyer_id=buyer_id,
        seller_id=seller_id,
        contact_type=kind,
        message=text or None,
        status=ContactStatus.PENDING,
    )
    db.session.add(request)
    commit()
    if drink is not None:
        analytics_service.track_event(
            seller_id, AnalyticsEvent.ORDER_INQUIRY, buyer_id,
            {"contact_type": kind.value, "drink_id": drink.id, "drink_name": drink.name},
        )
    else:
        analytics_service.track_event(
            seller_id, AnalyticsEvent.CONTACT_ATTEMPT, buyer_id, {"contact_type": kind.value}
        )
    logger.info("Buyer %s contacted seller %s via %s", buyer_id, seller_id, kind.value)

    url = None
    if kind is ContactType.WHATSAPP:
        buyer = db.session.get(User, buyer_id)
        body = text or _prefilled_message(template, seller, drink, buyer.name if buyer else None)
        url = whatsapp_link(seller.phone, body)
    return request, url


def seller_requests(seller_id: int, status=None) -> list[ContactRequest]:
    query = ContactRequest.query.filter(ContactRequest.seller_id == seller_id)
    if status:
        query = query.filter(ContactRequest.status == _parse(ContactStatus, status, "status"))
    return query.order_by(ContactRequest.created_at.desc(), ContactRequest.id.desc()).all()


def buyer_requests(buyer_id: int) -> list[ContactRequest]:
    return (
        ContactRequest.query.filter(ContactRequest.buyer_id == buyer_id)
        .order_by(ContactRequest.created_at.desc(), ContactRequest.id.desc())
        .all()
    )


def update_status(actor_id: int, request_id: int, status) -> ContactRequest:
    request = db.session.get(ContactRequest, request_id)
    if request is None:
        raise NotFoundError(friendly_message("PGRST301"))
    if request.seller_id != actor_id:
        raise PermissionDeniedError("You can only update requests sent to your storefront")
    request.status = _parse(ContactStatus, status, "status")
    commit()
    return request
