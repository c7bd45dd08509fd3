"""Order history.

Buyers place orders with a seller (a list of items, a total and the
channel they will confirm it over) and can later cancel a pending order
or place the same order again. Sellers see the orders sent to their
storefront and move them along ``pending -> confirmed -> completed``;
either party may see an order, nobody else can.
"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import timezone
from typing import Optional

from dateutil.parser import parse as parse_date  # type: ignore
from dateutil.relativedelta import relativedelta
from sqlalchemy import or_

from brewnear.db import commit, db
from brewnear.errors import NotFoundError, PermissionDeniedError, ValidationError, friendly_message
from brewnear.models import AnalyticsEvent, ContactType, OrderHistory, OrderStatus, Seller, utcnow
from brewnear.util.sanitization import sanitize_text
from brewnear.util.validation import id_field

from . import analytics_service

logger = logging.getLogger(__name__)

MAX_ITEMS = 50
MAX_INSTRUCTIONS_LENGTH = 500
SEARCH_LIMIT = 50
STATS_MONTHS = 6
TOP_COUNT = 5
ORDER_CONTACT_METHODS = (ContactType.WHATSAPP, ContactType.PHONE)

# status -> statuses the seller may move it to
TRANSITIONS = {
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (OrderStatus.COMPLETED, OrderStatus.CANCELLED),
    OrderStatus.COMPLETED: (),
    OrderStatus.CANCELLED: (),
}


def parse_status(value) -> Optional[OrderStatus]:
    if value in (None, ""):
        return None
    try:
        return OrderStatus(str(value).lower())
    except ValueError:
        choices = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Invalid status. Valid values are: {choices}", fields={"status": value})


def _number(value) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, float))


def _clean_item(raw) -> dict:
    if not isinstance(raw, dict):
        raise ValidationError("Each item must be an object", fields={"items": "invalid"})
    name = sanitize_text(raw.get("name")) if isinstance(raw.get("name"), str) else ""
    if not name:
        raise ValidationError("Each item needs a name", fields={"items": "name"})
    price = raw.get("price")
    if not _number(price) or price < 0:
        raise ValidationError("Item prices must be zero or more", fields={"items": "price"})
    quantity = raw.get("quantity", 1)
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("Item quantities must be whole numbers of at least 1", fields={"items": "quantity"})
    item = {"name": name, "price": float(price), "quantity": quantity}
    if raw.get("id") is not None:
        item["id"] = raw["id"]
    notes = sanitize_text(raw.get("notes")) if isinstance(raw.get("notes"), str) else ""
    if notes:
        item["notes"] = notes
    return item


def _clean_items(value) -> list[dict]:
    if not isinstance(value, list) or not value:
        raise ValidationError("An order needs at least one item", fields={"items": "required"})
    if len(value) > MAX_ITEMS:
        raise ValidationError(f"An order can hold at most {MAX_ITEMS} items", fields={"items": "length"})
    return [_clean_item(raw) for raw in value]


def _clean_total(value, items: list[dict]) -> float:
    if value is None:
        value = sum(item["price"] * item["quantity"] for item in items)
    if not _number(value) or value <= 0:
        raise ValidationError("Total amount must be greater than 0", fields={"total_amount": "invalid"})
    return round(float(value), 2)


def _clean_contact_method(value) -> ContactType:
    try:
        method = ContactType(str(value).lower())
    except ValueError:
        method = None
    if method not in ORDER_CONTACT_METHODS:
        raise ValidationError(
            "Invalid contact_method. Choose 'whatsapp' or 'phone'.", fields={"contact_method": value}
        )
    return method


def _clean_pickup_time(value):
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise ValidationError("Invalid pickup_time", fields={"pickup_time": "invalid"})
    try:
        when = parse_date(value)
    except (ValueError, OverflowError):
        raise ValidationError("Invalid pickup_time", fields={"pickup_time": value})
    if when.tzinfo is not None:
        when = when.astimezone(timezone.utc).replace(tzinfo=None)
    return when


def _clean_instructions(value) -> Optional[str]:
    text = sanitize_text(value) if isinstance(value, str) else ""
    if len(text) > MAX_INSTRUCTIONS_LENGTH:
        raise ValidationError(
            f"Special instructions must be at most {MAX_INSTRUCTIONS_LENGTH} characters",
            fields={"special_instructions": "length"},
        )
    return text or None


def _place(buyer_id: int, seller_id: int, items: list[dict], total: float, method: ContactType,
           pickup_time=None, instructions: Optional[str] = None) -> OrderHistory:
    order = OrderHistory(
        buyer_id=buyer_id,
        seller_id=seller_id,
        items=items,
        total_amount=total,
        contact_method=method,
        pickup_time=pickup_time,
        special_instructions=instructions,
        status=OrderStatus.PENDING,
    )
    db.session.add(order)
    commit()
    analytics_service.track_event(
        seller_id, AnalyticsEvent.CONTACT_ATTEMPT, buyer_id,
        {"contact_type": method.value, "order_id": order.id},
    )
    logger.info("Buyer %s placed order %s with seller %s (%.2f)", buyer_id, order.id, seller_id, total)
    return order


def create_order(buyer_id: int, data: dict) -> OrderHistory:
    """Place an order from ``items``, ``contact_method`` and optionally
    ``total_amount`` (the item total by default), ``pickup_time`` and
    ``special_instructions``."""
    seller_id = id_field(data.get("seller_id"), "seller_id")
    if db.session.get(Seller, seller_id) is None:
        raise NotFoundError(friendly_message("PGRST301"))
    if seller_id == buyer_id:
        raise ValidationError("You cannot order from your own storefront")
    items = _clean_items(data.get("items"))
    return _place(
        buyer_id,
        seller_id,
        items,
        _clean_total(data.get("total_amount"), items),
        _clean_contact_method(data.get("contact_method")),
        pickup_time=_clean_pickup_time(data.get("pickup_time")),
        instructions=_clean_instructions(data.get("special_instructions")),
    )


def get_order(actor_id: int, order_id: int) -> OrderHistory:
    order = db.session.get(OrderHistory, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    if actor_id not in (order.buyer_id, order.seller_id):
        raise PermissionDeniedError("You can only view your own orders")
    return order


def buyer_orders(buyer_id: int, status=None) -> list[OrderHistory]:
    query = OrderHistory.query.filter(OrderHistory.buyer_id == buyer_id)
    wanted = parse_status(status)
    if wanted is not None:
        query = query.filter(OrderHistory.status == wanted)
    return query.order_by(OrderHistory.created_at.desc(), OrderHistory.id.desc()).all()


def seller_orders(seller_id: int, status=None) -> list[OrderHistory]:
    query = OrderHistory.query.filter(OrderHistory.seller_id == seller_id)
    wanted = parse_status(status)
    if wanted is not None:
        query = query.filter(OrderHistory.status == wanted)
    return query.order_by(OrderHistory.created_at.desc(), OrderHistory.id.desc()).all()


def update_status(actor_id: int, order_id: int, status) -> OrderHistory:
    """Move an order sent to the actor's storefront to ``status``."""
    order = db.session.get(OrderHistory, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    if order.seller_id != actor_id:
        raise PermissionDeniedError("You can only update orders sent to your storefront")
    wanted = parse_status(status)
    if wanted is None:
        raise ValidationError("status is required", fields={"status": "required"})
    if wanted is not order.status and wanted not in TRANSITIONS[order.status]:
        raise ValidationError(
            f"Cannot move a {order.status.value} order to {wanted.value}", fields={"status": wanted.value}
        )
    order.status = wanted
    commit()
    logger.info("Seller %s marked order %s %s", actor_id, order.id, wanted.value)
    return order


def cancel_order(actor_id: int, order_id: int, reason: Optional[str] = None) -> OrderHistory:
    """Let the buyer withdraw an order the seller has not confirmed yet."""
    order = db.session.get(OrderHistory, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    if order.buyer_id != actor_id:
        raise PermissionDeniedError("You can only cancel your own orders")
    if order.status is not OrderStatus.PENDING:
        raise ValidationError(f"A {order.status.value} order can no longer be cancelled")
    order.status = OrderStatus.CANCELLED
    commit()
    logger.info("Buyer %s cancelled order %s: %s", actor_id, order.id, sanitize_text(reason) or "no reason given")
    return order


def reorder(actor_id: int, order_id: int) -> OrderHistory:
    """Place a new pending order with the items of a previous one."""
    original = db.session.get(OrderHistory, order_id)
    if original is None or original.buyer_id != actor_id:
        raise NotFoundError("Original order not found or access denied")
    if db.session.get(Seller, original.seller_id) is None:
        raise NotFoundError(friendly_message("PGRST301"))
    return _place(
        actor_id,
        original.seller_id,
        list(original.items),
        original.total_amount,
        original.contact_method,
        instructions=original.special_instructions,
    )


def search_orders(actor_id: int, query_text: str) -> list[OrderHistory]:
    """Orders the actor bought or received whose instructions or item
    names contain ``query_text`` (case-insensitive)."""
    term = (query_text or "").strip().lower()
    if not term:
        return []
    orders = (
        OrderHistory.query.filter(or_(OrderHistory.buyer_id == actor_id, OrderHistory.seller_id == actor_id))
        .order_by(OrderHistory.created_at.desc(), OrderHistory.id.desc())
        .all()
    )
    found = [
        order for order in orders
        if term in (order.special_instructions or "").lower()
        or any(term in str(item.get("name", "")).lower() for item in order.items or [])
    ]
    return found[:SEARCH_LIMIT]


def _monthly_totals(orders: list[OrderHistory], months: int = STATS_MONTHS) -> list[dict]:
    start = utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    totals = []
    for offset in range(months - 1, -1, -1):
        month = start - relativedelta(months=offset)
        amount = sum(
            order.total_amount for order in orders
            if (order.created_at.year, order.created_at.month) == (month.year, month.month)
        )
        totals.append({"month": month.strftime("%b %Y"), "amount": round(amount, 2)})
    return totals


def _summary(orders: list[OrderHistory]) -> tuple[int, int, float, float]:
    total = round(sum(order.total_amount for order in orders), 2)
    count = len(orders)
    completed = sum(1 for order in orders if order.status is OrderStatus.COMPLETED)
    average = round(total / count, 2) if count else 0
    return count, completed, total, average


def buyer_stats(buyer_id: int) -> dict:
    orders = buyer_orders(buyer_id)
    count, completed, spent, average = _summary(orders)
    per_seller = Counter(order.seller_id for order in orders)
    return {
        "total_orders": count,
        "completed_orders": completed,
        "total_spent": spent,
        "average_order_value": average,
        "favorite_seller_ids": [seller_id for seller_id, _ in per_seller.most_common(TOP_COUNT)],
        "monthly_spending": _monthly_totals(orders),
    }


def seller_stats(seller_id: int) -> dict:
    orders = seller_orders(seller_id)
    count, completed, revenue, average = _summary(orders)
    per_item: Counter = Counter()
    for order in orders:
        for item in order.items or []:
            per_item[item.get("name")] += item.get("quantity", 1)
    return {
        "total_orders": count,
        "completed_orders": completed,
        "total_revenue": revenue,
        "average_order_value": average,
        "top_items": [{"name": name, "count": n} for name, n in per_item.most_common(TOP_COUNT)],
        "monthly_revenue": _monthly_totals(orders),
    }
