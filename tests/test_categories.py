"""Drink category catalogue and legacy migration."""
from brewnear.categories import (
    category_display,
    get_category,
    is_valid_category,
    migrate_category,
    needs_migration,
    valid_category_values,
)


def test_valid_categories() -> None:
    assert valid_category_values() == ["hot-drinks", "cold-drinks", "snacks", "desserts", "other"]
    assert is_valid_category("snacks")
    assert not is_valid_category("iced")


def test_category_display() -> None:
    assert category_display("hot-drinks") == "☕ Hot Drinks"
    assert category_display("mystery") == "mystery"
    assert get_category("other").label == "Other"


def test_legacy_migration() -> None:
    assert migrate_category("iced") == "cold-drinks"
    assert migrate_category("hot") == "hot-drinks"
    assert migrate_category("pastries") == "snacks"
    assert migrate_category("desserts") == "desserts"
    assert needs_migration("latte")
    assert not needs_migration("hot-drinks")
    assert not needs_migration("unknown")


def test_categories_endpoint(client) -> None:
    response = client.get("/api/categories")
    assert response.status_code == 200
    values = [c["value"] for c in response.get_json()]
    assert values == valid_category_values()


def test_resolve_legacy_category(client) -> None:
    body = client.get("/api/categories/resolve?value=iced").get_json()
    assert body == {
        "value": "iced",
        "category": "cold-drinks",
        "valid": True,
        "needs_migration": True,
        "display": category_display("cold-drinks"),
    }


def test_unknown_category_is_404(client) -> None:
    assert client.get("/api/categories/espresso").status_code == 404
