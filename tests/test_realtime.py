"""Realtime change feed: registry, filters, session hooks and the SSE stream."""
import json

import pytest

from brewnear import db
from brewnear.errors import ValidationError
from brewnear.models import Seller
from brewnear.realtime import (
    Change,
    ChangeFeed,
    parse_filter,
    subscribe_to_new_sellers,
    subscribe_to_seller_availability,
)


def test_parse_filter() -> None:
    assert parse_filter("is_available=eq.true").value is True
    assert parse_filter("rating=gte.4").value == 4
    assert parse_filter("specialty=in.(coffee,matcha)").value == ("coffee", "matcha")
    with pytest.raises(ValidationError):
        parse_filter("is_available=like.true")
    with pytest.raises(ValidationError):
        parse_filter("garbage")


@pytest.mark.parametrize(
    "expression, record, expected",
    [
        ("seller_id=eq.3", {"seller_id": 3}, True),
        ("seller_id=neq.3", {"seller_id": 3}, False),
        ("rating=gt.3", {"rating": 4}, True),
        ("rating=lt.3", {"rating": 4}, False),
        ("rating=lte.4", {"rating": None}, False),
        ("specialty=in.(coffee,both)", {"specialty": "both"}, True),
        ("missing=eq.1", {"rating": 1}, False),
    ],
)
def test_filter_matching(expression, record, expected) -> None:
    assert parse_filter(expression).matches(record) is expected


def test_subscribe_publish_unsubscribe() -> None:
    feed = ChangeFeed()
    received = []
    sub = feed.subscribe("drinks-feed", "drinks", received.append, event="INSERT")
    assert sub.active

    assert feed.publish(Change("drinks", "INSERT", {"id": 1})) == 1
    assert feed.publish(Change("drinks", "UPDATE", {"id": 1})) == 0
    assert feed.publish(Change("sellers", "INSERT", {"id": 1})) == 0

    sub.unsubscribe()
    assert not sub.active
    assert feed.publish(Change("drinks", "INSERT", {"id": 2})) == 0
    assert [change.record["id"] for change in received] == [1]


def test_unknown_table_or_event_is_rejected() -> None:
    feed = ChangeFeed()
    with pytest.raises(ValidationError):
        feed.subscribe("c", "users", lambda change: None)
    with pytest.raises(ValidationError):
        feed.subscribe("c", "sellers", lambda change: None, event="TRUNCATE")


def test_failing_callback_does_not_stop_delivery() -> None:
    feed = ChangeFeed()
    received = []

    def explode(change):
        raise RuntimeError("boom")

    feed.subscribe("a", "ratings", explode)
    feed.subscribe("b", "ratings", received.append)
    assert feed.publish(Change("ratings", "INSERT", {"id": 1})) == 1
    assert len(received) == 1


def test_change_payload_shape() -> None:
    inserted = Change("sellers", "INSERT", {"id": 1}).to_dict()
    deleted = Change("sellers", "DELETE", {"id": 1}).to_dict()
    assert inserted["eventType"] == "INSERT" and inserted["new"] == {"id": 1} and inserted["old"] == {}
    assert deleted["new"] == {} and deleted["old"] == {"id": 1}


def test_committed_changes_are_published(app, make_seller) -> None:
    feed = app.extensions["change_feed"]
    new_sellers, available = [], []
    subscribe_to_new_sellers(feed, new_sellers.append)
    subscribe_to_seller_availability(feed, available.append)

    _, seller_id = make_seller(business_name="Feed Cafe")
    assert [c.record["business_name"] for c in new_sellers] == ["Feed Cafe"]
    assert new_sellers[0].record["specialty"] == "coffee"

    seller = db.session.get(Seller, seller_id)
    seller.is_available = False
    db.session.commit()
    assert available == []

    seller.is_available = True
    db.session.commit()
    assert [c.record["id"] for c in available] == [seller_id]


def test_rolled_back_changes_are_discarded(app, make_seller) -> None:
    feed = app.extensions["change_feed"]
    _, seller_id = make_seller()
    updates = []
    feed.subscribe("updates", "sellers", updates.append, event="UPDATE")

    seller = db.session.get(Seller, seller_id)
    seller.hours = "Always"
    db.session.flush()
    db.session.rollback()
    assert updates == []


def next_event(response) -> str:
    """First frame of an SSE response that is not a keep-alive comment."""
    for frame in response.response:
        frame = frame.decode() if isinstance(frame, bytes) else frame
        if not frame.startswith(":"):
            return frame
    raise AssertionError("stream ended without an event")


def test_sse_stream_delivers_and_cleans_up(app, client) -> None:
    feed = app.extensions["change_feed"]
    response = client.get("/api/realtime/sellers?event=UPDATE&filter=is_available=eq.true")
    assert response.status_code == 200
    assert response.mimetype == "text/event-stream"
    assert len(feed.subscriptions()) == 1

    feed.publish(Change("sellers", "UPDATE", {"id": 9, "is_available": False}))
    feed.publish(Change("sellers", "UPDATE", {"id": 7, "is_available": True}))
    frame = next_event(response)
    assert frame.startswith("event: UPDATE\ndata: ")
    payload = json.loads(frame.split("data: ", 1)[1])
    assert payload["new"]["id"] == 7

    response.close()
    assert feed.subscriptions() == []


def test_sse_heartbeat(app, client) -> None:
    response = client.get("/api/realtime/drinks")
    frame = next(iter(response.response))
    frame = frame.decode() if isinstance(frame, bytes) else frame
    assert frame == ": keep-alive\n\n"
    response.close()


def test_private_feeds_require_a_token(client, register) -> None:
    assert client.get("/api/realtime/favorites").status_code == 401
    headers, _ = register()
    response = client.get("/api/realtime/contact_requests?filter=seller_id=eq.1", headers=headers)
    assert response.status_code == 400


def test_private_feed_is_scoped_to_caller(app, client, register) -> None:
    headers, buyer_id = register()
    response = client.get("/api/realtime/favorites", headers=headers)
    feed = app.extensions["change_feed"]
    (sub,) = feed.subscriptions()
    assert sub.row_filter.column == "buyer_id"
    assert sub.row_filter.value == buyer_id
    response.close()


def test_new_orders_reach_the_seller_feed(app, client, register, make_seller) -> None:
    owner, seller_id = make_seller()
    headers, buyer_id = register()
    assert client.get("/api/realtime/order_history").status_code == 401

    response = client.get("/api/realtime/order_history?event=INSERT", headers=owner)
    feed = app.extensions["change_feed"]
    (sub,) = feed.subscriptions()
    assert (sub.row_filter.column, sub.row_filter.value) == ("seller_id", seller_id)
    client.post("/api/orders", json={"seller_id": seller_id, "contact_method": "phone",
                                     "items": [{"name": "Latte", "price": 20}]}, headers=headers)
    payload = json.loads(next_event(response).split("data: ", 1)[1])
    assert payload["new"]["buyer_id"] == buyer_id
    assert payload["new"]["status"] == "pending"
    response.close()


def test_unknown_feed_table(client) -> None:
    assert client.get("/api/realtime/users").status_code == 400
