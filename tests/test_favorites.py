"""Saved sellers for buyers."""
from brewnear import db
from brewnear.models import Seller


def test_add_check_and_remove(client, register, make_seller) -> None:
    _, seller_id = make_seller()
    headers, buyer_id = register()

    added = client.post("/api/favorites", json={"seller_id": seller_id}, headers=headers)
    assert added.status_code == 201
    body = added.get_json()
    assert body["buyer_id"] == buyer_id
    assert body["seller"]["id"] == seller_id

    duplicate = client.post("/api/favorites", json={"seller_id": seller_id}, headers=headers)
    assert duplicate.status_code == 409
    assert duplicate.get_json()["error"]["message"] == "This item already exists"

    check = client.get(f"/api/favorites/{seller_id}", headers=headers).get_json()
    assert check == {"seller_id": seller_id, "is_favorited": True}
    assert client.get(f"/api/sellers/{seller_id}/favorites/count").get_json()["count"] == 1

    assert client.delete(f"/api/favorites/{seller_id}", headers=headers).status_code == 204
    assert client.get(f"/api/favorites/{seller_id}", headers=headers).get_json()["is_favorited"] is False


def test_add_validation(client, register) -> None:
    headers, _ = register()
    assert client.post("/api/favorites", json={}, headers=headers).status_code == 400
    assert client.post("/api/favorites", json={"seller_id": 9999}, headers=headers).status_code == 404
    assert client.get("/api/favorites").status_code == 401


def test_toggle(client, register, make_seller) -> None:
    _, seller_id = make_seller()
    headers, _ = register()
    on = client.post(f"/api/favorites/{seller_id}/toggle", headers=headers).get_json()
    assert on["is_favorited"] is True
    off = client.post(f"/api/favorites/{seller_id}/toggle", headers=headers).get_json()
    assert off["is_favorited"] is False


def test_list_filters_and_stats(client, register, make_seller) -> None:
    _, coffee = make_seller(specialty="coffee")
    _, matcha = make_seller(specialty="matcha")
    _, closed = make_seller(specialty="matcha", is_available=False)
    headers, _ = register()
    for seller_id in (coffee, matcha, closed):
        client.post("/api/favorites", json={"seller_id": seller_id}, headers=headers)
    db.session.get(Seller, coffee).rating_average = 4.0
    db.session.get(Seller, matcha).rating_average = 5.0
    db.session.commit()

    listed = client.get("/api/favorites", headers=headers).get_json()
    assert len(listed) == 3
    available = client.get("/api/favorites?available=true", headers=headers).get_json()
    assert {f["seller_id"] for f in available} == {coffee, matcha}
    only_matcha = client.get("/api/favorites?specialty=matcha", headers=headers).get_json()
    assert {f["seller_id"] for f in only_matcha} == {matcha, closed}
    open_matcha = client.get("/api/favorites?specialty=matcha&available=true", headers=headers).get_json()
    assert [f["seller_id"] for f in open_matcha] == [matcha]
    assert client.get("/api/favorites?specialty=tea", headers=headers).status_code == 400

    stats = client.get("/api/favorites/stats", headers=headers).get_json()
    assert stats == {
        "total_favorites": 3,
        "available_favorites": 2,
        "specialty_breakdown": {"coffee": 1, "matcha": 2},
        "average_rating": 4.5,
    }
    assert len(client.get("/api/favorites/recent?limit=2", headers=headers).get_json()) == 2


def test_bulk_remove(client, register, make_seller) -> None:
    ids = [make_seller()[1] for _ in range(3)]
    headers, _ = register()
    for seller_id in ids:
        client.post("/api/favorites", json={"seller_id": seller_id}, headers=headers)

    response = client.delete("/api/favorites", json={"seller_ids": ids[:2] + [9999]}, headers=headers)
    assert response.get_json() == {"removed": 2}
    remaining = client.get("/api/favorites", headers=headers).get_json()
    assert [f["seller_id"] for f in remaining] == [ids[2]]
    assert client.delete("/api/favorites", json={"seller_ids": "all"}, headers=headers).status_code == 400


def test_most_favorited(client, register, make_seller) -> None:
    _, loved = make_seller()
    _, liked = make_seller()
    _, closed = make_seller(is_available=False)
    fans = [register()[0] for _ in range(2)]
    for headers in fans:
        client.post("/api/favorites", json={"seller_id": loved}, headers=headers)
        client.post("/api/favorites", json={"seller_id": closed}, headers=headers)
    client.post("/api/favorites", json={"seller_id": liked}, headers=fans[0])

    body = client.get("/api/sellers/most-favorited").get_json()
    assert [(s["id"], s["favorite_count"]) for s in body] == [(loved, 2), (liked, 1)]


def test_removing_a_favorite_reaches_the_change_feed(app, client, register, make_seller) -> None:
    _, seller_id = make_seller()
    headers, buyer_id = register()
    client.post("/api/favorites", json={"seller_id": seller_id}, headers=headers)
    deleted = []
    app.extensions["change_feed"].subscribe("test", "favorites", deleted.append, event="DELETE")

    client.delete(f"/api/favorites/{seller_id}", headers=headers)
    assert [(c.record["buyer_id"], c.record["seller_id"]) for c in deleted] == [(buyer_id, seller_id)]
