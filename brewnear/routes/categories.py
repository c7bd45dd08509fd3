"""
Routes exposing the drink category catalogue.
"""

from __future__ import annotations

from flask import Blueprint, request

from ..categories import (
    VALID_CATEGORIES,
    category_display,
    get_category,
    is_valid_category,
    migrate_category,
    needs_migration,
)
from ..errors import NotFoundError, ValidationError


categories_bp = Blueprint("categories", __name__)


@categories_bp.route("/categories", methods=["GET"])
def list_categories() -> tuple[list[dict], int]:
    return [{**category.to_dict(), "display": category_display(category.value)} for category in VALID_CATEGORIES], 200


@categories_bp.route("/categories/resolve", methods=["GET"])
def resolve_category() -> tuple[dict, int]:
    """Map a possibly legacy label (``?value=iced``) onto the current set."""
    value = (request.args.get("value") or "").strip()
    if not value:
        raise ValidationError("Query parameter 'value' is required.", fields={"value": "required"})
    migrated = migrate_category(value)
    return {
        "value": value,
        "category": migrated,
        "valid": is_valid_category(migrated),
        "needs_migration": needs_migration(value),
        "display": category_display(migrated),
    }, 200


@categories_bp.route("/categories/<string:value>", methods=["GET"])
def get_category_detail(value: str) -> tuple[dict, int]:
    category = get_category(value)
    if category is None:
        raise NotFoundError(f"Unknown category '{value}'.")
    return {**category.to_dict(), "display": category_display(value)}, 200
