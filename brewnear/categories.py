"""Drink categories.

The menu is grouped into a small fixed set of categories. Older clients
stored free-form labels (``"iced"``, ``"latte"``...), which are mapped
onto the current set by ``migrate_category``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Category:
    value: str
    label: str
    emoji: str
    description: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "value": self.value,
            "label": self.label,
            "emoji": self.emoji,
            "description": self.description,
        }


VALID_CATEGORIES = (
    Category("hot-drinks", "Hot Drinks", "☕", "Coffee, tea, hot chocolate, and other warm beverages"),
    Category("cold-drinks", "Cold Drinks", "\U0001f9ca", "Iced coffee, cold brew, smoothies, and refreshing beverages"),
    Category("snacks", "Snacks", "\U0001f36a", "Pastries, cookies, sandwiches, and light bites"),
    Category("desserts", "Desserts", "\U0001f9c1", "Cakes, muffins, sweet treats, and desserts"),
    Category("other", "Other", "\U0001f4e6", "Other food and beverage items"),
)

_BY_VALUE = {category.value: category for category in VALID_CATEGORIES}

LEGACY_CATEGORY_MAP = {
    "hot": "hot-drinks",
    "iced": "cold-drinks",
    "coffee": "hot-drinks",
    "matcha": "hot-drinks",
    "tea": "hot-drinks",
    "cold-brew": "cold-drinks",
    "specialty": "hot-drinks",
    "seasonal": "hot-drinks",
    "espresso": "hot-drinks",
    "latte": "hot-drinks",
    "cappuccino": "hot-drinks",
    "americano": "hot-drinks",
    "traditional": "hot-drinks",
    "bubble tea": "cold-drinks",
    "dessert": "desserts",
    "pastries": "snacks",
    "smoothies": "cold-drinks",
}


def valid_category_values() -> list[str]:
    return [category.value for category in VALID_CATEGORIES]


def get_category(value: str) -> Optional[Category]:
    return _BY_VALUE.get(value)


def is_valid_category(value: str) -> bool:
    return value in _BY_VALUE


def category_display(value: str) -> str:
    """Return ``"<emoji> <label>"`` for a known category, else the value itself."""
    category = get_category(value)
    if category is None:
        return value
    return f"{category.emoji} {category.label}"


def migrate_category(value: str) -> str:
    return LEGACY_CATEGORY_MAP.get(value, value)


def needs_migration(value: str) -> bool:
    return not is_valid_category(value) and value in LEGACY_CATEGORY_MAP
