"""Menu items.

Drinks belong to a storefront and only its seller may create, edit or
remove them. Creation validates names, descriptions, prices and
categories; updates re-apply the same checks to the fields they touch.
"""
from __future__ import annotations

import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from brewnear.categories import is_valid_category, migrate_category, valid_category_values
from brewnear.db import commit, db
from brewnear.errors import NotFoundError, PermissionDeniedError, ValidationError, friendly_message
from brewnear.models import Drink, Seller
from brewnear.storage import DRINK_PHOTOS, BucketStorage, file_extension
from brewnear.util.query import LIKE_ESCAPE, like_pattern
from brewnear.util.validation import boolean_field

logger = logging.getLogger(__name__)

MIN_PRICE = 1
MAX_PRICE = 10000
SEARCH_LIMIT = 50
POPULAR_MIN_RATING = 4.0

UPDATABLE_FIELDS = ("name", "description", "price", "category", "is_available")


def _clean_name(value) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError("Invalid drink name", fields={"name": "invalid"})
    name = value.strip()
    if not 2 <= len(name) <= 100:
        raise ValidationError("Drink name must be between 2 and 100 characters", fields={"name": "length"})
    return name


def _clean_description(value) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError("Invalid drink description", fields={"description": "invalid"})
    description = value.strip()
    if not 10 <= len(description) <= 500:
        raise ValidationError(
            "Description must be between 10 and 500 characters", fields={"description": "length"}
        )
    return description


def _clean_price(value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValidationError("Invalid price", fields={"price": "invalid"})
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("Price must be a positive number", fields={"price": "invalid"})
    if not price.is_finite() or price <= 0:
        raise ValidationError("Price must be a positive number", fields={"price": "invalid"})
    if price < MIN_PRICE:
        raise ValidationError("Minimum price is 1 MAD", fields={"price": "too low"})
    if price > MAX_PRICE:
        raise ValidationError("Maximum price is 10,000 MAD", fields={"price": "too high"})
    if price != price.quantize(Decimal("0.01")):
        raise ValidationError("Price can have at most 2 decimal places", fields={"price": "precision"})
    return float(price.quantize(Decimal("0.01")))


def _clean_category(value) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError("Invalid category", fields={"category": "invalid"})
    category = migrate_category(value.strip())
    if not is_valid_category(category):
        raise ValidationError(
            f"Invalid category. Valid categories are: {', '.join(valid_category_values())}",
            fields={"category": value},
        )
    return category


def list_for_seller(seller_id: int, include_unavailable: bool = False) -> list[Drink]:
    query = Drink.query.filter(Drink.seller_id == seller_id)
    if not include_unavailable:
        query = query.filter(Drink.is_available.is_(True))
    return query.order_by(Drink.created_at.desc(), Drink.id.desc()).all()


def get_drink(drink_id: int) -> Drink:
    drink = db.session.get(Drink, drink_id)
    if drink is None:
        raise NotFoundError(friendly_message("PGRST301"))
    return drink


def _owned_drink(actor_id: int, drink_id: int) -> Drink:
    drink = get_drink(drink_id)
    if drink.seller_id != actor_id:
        raise PermissionDeniedError("You can only manage your own drinks")
    return drink


def create_drink(actor_id: int, data: dict) -> Drink:
    """Validate and add a drink to the actor's menu.

    ``data`` holds ``name``, ``description``, ``price``, ``category`` and
    optionally ``seller_id`` (which must be the actor) and
    ``is_available``.
    """
    name = _clean_name(data.get("name"))
    description = _clean_description(data.get("description"))
    price = _clean_price(data.get("price"))
    category = _clean_category(data.get("category"))

    seller_id = data.get("seller_id", actor_id)
    if seller_id != actor_id:
        raise PermissionDeniedError("You can only create drinks for yourself")
    if db.session.get(Seller, actor_id) is None:
        raise NotFoundError("Create your seller profile before adding drinks")

    drink = Drink(
        seller_id=actor_id,
        name=name,
        description=description,
        price=price,
        category=category,
        is_available=boolean_field(data, "is_available", True),
    )
    db.session.add(drink)
    commit()
    logger.info("Seller %s added drink %s (%s)", actor_id, drink.id, drink.name)
    return drink


def _apply_updates(drink: Drink, updates: dict) -> None:
    unknown = sorted(set(updates) - set(UPDATABLE_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(unknown)}", fields={f: "unknown" for f in unknown})
    if "name" in updates:
        drink.name = _clean_name(updates["name"])
    if "description" in updates:
        drink.description = _clean_description(updates["description"])
    if "price" in updates:
        drink.price = _clean_price(updates["price"])
    if "category" in updates:
        drink.category = _clean_category(updates["category"])
    if "is_available" in updates:
        drink.is_available = boolean_field(updates, "is_available")


def update_drink(actor_id: int, drink_id: int, updates: dict) -> Drink:
    drink = _owned_drink(actor_id, drink_id)
    _apply_updates(drink, updates)
    commit()
    return drink


def delete_drink(actor_id: int, drink_id: int, storage: Optional[BucketStorage] = None) -> None:
    """Delete a drink and, when it has one, its stored photo."""
    drink = _owned_drink(actor_id, drink_id)
    photo_path = None
    if storage is not None and drink.photo_url:
        photo_path = storage.path_from_url(DRINK_PHOTOS, drink.photo_url)
    db.session.delete(drink)
    commit()
    if photo_path:
        storage.remove(DRINK_PHOTOS, [photo_path])
    logger.info("Seller %s deleted drink %s", actor_id, drink_id)


def upload_photo(actor_id: int, drink_id: int, upload, storage: BucketStorage) -> str:
    drink = _owned_drink(actor_id, drink_id)
    ext = file_extension(upload.filename or "")
    timestamp = int(time.time() * 1000)
    path = storage.upload(DRINK_PHOTOS, f"{drink.id}-{timestamp}.{ext}", upload.stream, upsert=True)

    previous = storage.path_from_url(DRINK_PHOTOS, drink.photo_url) if drink.photo_url else None
    drink.photo_url = f"{storage.public_url(DRINK_PHOTOS, path)}?t={timestamp}"
    try:
        commit()
    except Exception:
        if path != previous:
            storage.remove(DRINK_PHOTOS, [path])
        raise
    if previous and previous != path:
        storage.remove(DRINK_PHOTOS, [previous])
    return drink.photo_url


def toggle_availability(actor_id: int, drink_id: int) -> bool:
    drink = _owned_drink(actor_id, drink_id)
    drink.is_available = not drink.is_available
    commit()
    return drink.is_available


def search(query_text: str = "", category: Optional[str] = None, min_price: Optional[float] = None,
           max_price: Optional[float] = None, seller_id: Optional[int] = None) -> list[Drink]:
    query = Drink.query.filter(Drink.is_available.is_(True))
    term = (query_text or "").strip()
    if term:
        query = query.filter(Drink.name.ilike(like_pattern(term), escape=LIKE_ESCAPE))
    if category:
        query = query.filter(Drink.category == category)
    if min_price:
        query = query.filter(Drink.price >= min_price)
    if max_price:
        query = query.filter(Drink.price <= max_price)
    if seller_id:
        query = query.filter(Drink.seller_id == seller_id)
    return query.order_by(Drink.created_at.desc(), Drink.id.desc()).limit(SEARCH_LIMIT).all()


def popular(limit: int = 20) -> list[Drink]:
    """Recent available drinks from available sellers rated 4.0 or better."""
    return (
        Drink.query.join(Seller)
        .filter(
            Drink.is_available.is_(True),
            Seller.is_available.is_(True),
            Seller.rating_average >= POPULAR_MIN_RATING,
        )
        .order_by(Drink.created_at.desc(), Drink.id.desc())
        .limit(limit)
        .all()
    )


def by_category(category: str) -> list[Drink]:
    return (
        Drink.query.join(Seller)
        .filter(Drink.is_available.is_(True), Drink.category == category, Seller.is_available.is_(True))
        .order_by(Drink.created_at.desc(), Drink.id.desc())
        .all()
    )


def categories() -> list[str]:
    """Distinct categories currently in use by available drinks."""
    rows = (
        db.session.query(Drink.category)
        .filter(Drink.is_available.is_(True), Drink.category.isnot(None))
        .distinct()
        .order_by(Drink.category)
        .all()
    )
    return [row[0] for row in rows if row[0]]


def bulk_update(actor_id: int, items: Iterable[dict]) -> list[Drink]:
    """Apply ``[{"id": ..., "updates": {...}}, ...]`` in one transaction.

    Any validation or ownership failure leaves every drink unchanged.
    """
    changed = []
    try:
        for item in items:
            if not isinstance(item, dict) or "id" not in item:
                raise ValidationError("Each bulk update needs an 'id' and 'updates'")
            drink = _owned_drink(actor_id, item["id"])
            _apply_updates(drink, item.get("updates") or {})
            changed.append(drink)
    except (ValidationError, NotFoundError, PermissionDeniedError):
        db.session.rollback()
        raise
    commit()
    return changed


def stats(seller_id: int) -> dict:
    drinks = list_for_seller(seller_id, include_unavailable=True)
    prices = [float(d.price) for d in drinks]
    category_counts: dict[str, int] = {}
    for drink in drinks:
        if drink.category:
            category_counts[drink.category] = category_counts.get(drink.category, 0) + 1
    return {
        "total_drinks": len(drinks),
        "available_drinks": sum(1 for d in drinks if d.is_available),
        "average_price": round(sum(prices) / len(prices), 2) if prices else 0,
        "price_range": {"min": min(prices) if prices else 0, "max": max(prices) if prices else 0},
        "category_counts": category_counts,
    }
