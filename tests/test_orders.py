"""Orders placed with sellers: placing, tracking, cancelling and repeating them."""
from dateutil.relativedelta import relativedelta

from brewnear import db
from brewnear.models import AnalyticsEvent, ContactType, OrderHistory, SellerAnalytics, utcnow
from brewnear.services import order_service

ITEMS = [
    {"id": 1, "name": "Iced Matcha", "price": 32, "quantity": 2},
    {"name": "Croissant", "price": 12.5, "quantity": 1, "notes": "warm <b>please</b>"},
]


def place(client, headers, seller_id, **extra):
    payload = {"seller_id": seller_id, "items": ITEMS, "contact_method": "whatsapp"}
    payload.update(extra)
    return client.post("/api/orders", json=payload, headers=headers)


def test_place_order(client, register, make_seller) -> None:
    _, seller_id = make_seller()
    headers, buyer_id = register(name="Salma")

    response = place(client, headers, seller_id, pickup_time="2026-05-01T10:30:00+01:00",
                     special_instructions="Less <i>ice</i>")
    assert response.status_code == 201
    body = response.get_json()
    assert body["buyer_id"] == buyer_id
    assert body["seller_id"] == seller_id
    assert body["status"] == "pending"
    assert body["contact_method"] == "whatsapp"
    assert body["total_amount"] == 76.5
    assert body["items"][1] == {"name": "Croissant", "price": 12.5, "quantity": 1, "notes": "warm please"}
    assert body["special_instructions"] == "Less ice"
    assert body["pickup_time"].startswith("2026-05-01T09:30:00")
    assert body["buyer"]["name"] == "Salma"
    assert body["seller"]["id"] == seller_id

    event = SellerAnalytics.query.filter_by(seller_id=seller_id).one()
    assert event.event_type is AnalyticsEvent.CONTACT_ATTEMPT
    assert event.event_metadata == {"contact_type": "whatsapp", "order_id": body["id"]}

    explicit = place(client, headers, seller_id, total_amount=70, contact_method="phone").get_json()
    assert explicit["total_amount"] == 70.0


def test_order_validation(client, register, make_seller) -> None:
    owner, seller_id = make_seller()
    headers, _ = register()

    assert place(client, headers, 9999).status_code == 404
    assert place(client, headers, str(seller_id)).status_code == 400
    own = place(client, owner, seller_id)
    assert own.status_code == 400
    assert own.get_json()["error"]["message"] == "You cannot order from your own storefront"
    assert place(client, headers, seller_id, items=[]).status_code == 400
    assert place(client, headers, seller_id, items=[{"name": "Latte", "price": -1}]).status_code == 400
    assert place(client, headers, seller_id, items=[{"name": "Latte", "price": 20, "quantity": 0}]).status_code == 400
    assert place(client, headers, seller_id, items=[{"price": 20}]).status_code == 400
    assert place(client, headers, seller_id, items=[{"name": "Water", "price": 0}]).status_code == 400
    assert place(client, headers, seller_id, total_amount=0).status_code == 400
    assert place(client, headers, seller_id, contact_method="inquiry").status_code == 400
    assert place(client, headers, seller_id, pickup_time="someday").status_code == 400
    assert place(client, headers, seller_id, special_instructions="x" * 501).status_code == 400
    assert OrderHistory.query.count() == 0


def test_buyer_and_seller_lists(client, register, make_seller) -> None:
    owner, seller_id = make_seller()
    other_owner, other_seller = make_seller()
    headers, _ = register()
    first = place(client, headers, seller_id).get_json()
    second = place(client, headers, seller_id).get_json()
    place(client, headers, other_seller)
    client.patch(f"/api/orders/{first['id']}/status", json={"status": "confirmed"}, headers=owner)

    mine = client.get("/api/me/orders", headers=headers).get_json()
    assert len(mine) == 3
    assert mine[0]["seller"]["business_name"]
    confirmed = client.get("/api/me/orders?status=confirmed", headers=headers).get_json()
    assert [o["id"] for o in confirmed] == [first["id"]]
    assert client.get("/api/me/orders?status=lost", headers=headers).status_code == 400

    inbox = client.get(f"/api/sellers/{seller_id}/orders", headers=owner).get_json()
    assert [o["id"] for o in inbox] == [second["id"], first["id"]]
    pending = client.get(f"/api/sellers/{seller_id}/orders?status=pending", headers=owner).get_json()
    assert [o["id"] for o in pending] == [second["id"]]
    assert client.get(f"/api/sellers/{seller_id}/orders", headers=other_owner).status_code == 403


def test_only_the_parties_see_an_order(client, register, make_seller) -> None:
    owner, seller_id = make_seller()
    headers, _ = register()
    stranger, _ = register()
    order_id = place(client, headers, seller_id).get_json()["id"]

    assert client.get(f"/api/orders/{order_id}", headers=headers).status_code == 200
    assert client.get(f"/api/orders/{order_id}", headers=owner).status_code == 200
    denied = client.get(f"/api/orders/{order_id}", headers=stranger)
    assert denied.status_code == 403
    assert denied.get_json()["error"]["message"] == "You can only view your own orders"
    assert client.get("/api/orders/9999", headers=headers).status_code == 404


def test_status_moves_forward_only(client, register, make_seller) -> None:
    owner, seller_id = make_seller()
    headers, _ = register()
    order_id = place(client, headers, seller_id).get_json()["id"]
    url = f"/api/orders/{order_id}/status"

    denied = client.patch(url, json={"status": "confirmed"}, headers=headers)
    assert denied.status_code == 403
    assert denied.get_json()["error"]["message"] == "You can only update orders sent to your storefront"

    assert client.patch(url, json={"status": "completed"}, headers=owner).status_code == 400
    assert client.patch(url, json={"status": "confirmed"}, headers=owner).get_json()["status"] == "confirmed"
    assert client.patch(url, json={"status": "completed"}, headers=owner).get_json()["status"] == "completed"
    stuck = client.patch(url, json={"status": "pending"}, headers=owner)
    assert stuck.status_code == 400
    assert stuck.get_json()["error"]["message"] == "Cannot move a completed order to pending"
    assert client.patch(url, json={}, headers=owner).status_code == 400


def test_buyer_cancels_pending_orders(client, register, make_seller, caplog) -> None:
    owner, seller_id = make_seller()
    headers, _ = register()
    pending = place(client, headers, seller_id).get_json()["id"]
    confirmed = place(client, headers, seller_id).get_json()["id"]
    client.patch(f"/api/orders/{confirmed}/status", json={"status": "confirmed"}, headers=owner)

    assert client.post(f"/api/orders/{pending}/cancel", json={}, headers=owner).status_code == 403
    with caplog.at_level("INFO", logger="brewnear.services.order_service"):
        cancelled = client.post(f"/api/orders/{pending}/cancel", json={"reason": "Plans changed"}, headers=headers)
    assert cancelled.get_json()["status"] == "cancelled"
    assert "Plans changed" in caplog.text

    late = client.post(f"/api/orders/{confirmed}/cancel", headers=headers)
    assert late.status_code == 400
    assert late.get_json()["error"]["message"] == "A confirmed order can no longer be cancelled"


def test_reorder(client, register, make_seller) -> None:
    owner, seller_id = make_seller()
    headers, _ = register()
    stranger, _ = register()
    original = place(client, headers, seller_id, special_instructions="No sugar").get_json()
    client.patch(f"/api/orders/{original['id']}/status", json={"status": "confirmed"}, headers=owner)

    again = client.post(f"/api/orders/{original['id']}/reorder", headers=headers)
    assert again.status_code == 201
    body = again.get_json()
    assert body["id"] != original["id"]
    assert body["status"] == "pending"
    assert body["items"] == original["items"]
    assert body["total_amount"] == original["total_amount"]
    assert body["special_instructions"] == "No sugar"

    denied = client.post(f"/api/orders/{original['id']}/reorder", headers=stranger)
    assert denied.status_code == 404
    assert denied.get_json()["error"]["message"] == "Original order not found or access denied"


def test_search_covers_both_sides(client, register, make_seller) -> None:
    owner, seller_id = make_seller()
    headers, _ = register()
    stranger, _ = register()
    place(client, headers, seller_id, items=[{"name": "Iced Matcha", "price": 30}])
    place(client, headers, seller_id, items=[{"name": "Cortado", "price": 18}], special_instructions="extra matcha shot")
    place(client, headers, seller_id, items=[{"name": "Cortado", "price": 18}])

    assert len(client.get("/api/orders/search?q=MATCHA", headers=headers).get_json()) == 2
    assert len(client.get("/api/orders/search?q=matcha", headers=owner).get_json()) == 2
    assert client.get("/api/orders/search?q=matcha", headers=stranger).get_json() == []
    assert client.get("/api/orders/search?q=", headers=headers).get_json() == []


def test_order_stats(app, client, register, make_seller) -> None:
    owner, seller_id = make_seller()
    _, other_seller = make_seller()
    headers, buyer_id = register()
    first = place(client, headers, seller_id, items=[{"name": "Latte", "price": 20, "quantity": 3}]).get_json()
    place(client, headers, seller_id, items=[{"name": "Mocha", "price": 40}])
    place(client, headers, other_seller, items=[{"name": "Latte", "price": 20}])
    client.patch(f"/api/orders/{first['id']}/status", json={"status": "confirmed"}, headers=owner)
    client.patch(f"/api/orders/{first['id']}/status", json={"status": "completed"}, headers=owner)
    db.session.add(OrderHistory(buyer_id=buyer_id, seller_id=seller_id, items=[{"name": "Latte", "price": 20}],
                                total_amount=20, contact_method=ContactType.PHONE,
                                created_at=utcnow() - relativedelta(years=1)))
    db.session.commit()

    buyer = client.get("/api/me/orders/stats", headers=headers).get_json()
    assert buyer["total_orders"] == 4
    assert buyer["completed_orders"] == 1
    assert buyer["total_spent"] == 140
    assert buyer["average_order_value"] == 35
    assert buyer["favorite_seller_ids"] == [seller_id, other_seller]
    assert len(buyer["monthly_spending"]) == 6
    assert buyer["monthly_spending"][-1] == {"month": utcnow().strftime("%b %Y"), "amount": 120}

    seller = order_service.seller_stats(seller_id)
    assert seller["total_revenue"] == 120
    assert seller["top_items"] == [{"name": "Latte", "count": 4}, {"name": "Mocha", "count": 1}]
    assert sum(m["amount"] for m in seller["monthly_revenue"]) == 100
    assert client.get(f"/api/sellers/{seller_id}/orders/stats", headers=owner).get_json() == seller
    assert client.get(f"/api/sellers/{seller_id}/orders/stats", headers=headers).status_code == 403
