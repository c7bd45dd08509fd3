"""Ratings: one per buyer and seller, with the seller aggregate kept in step."""
import pytest
from dateutil.relativedelta import relativedelta

from brewnear import db
from brewnear.models import Rating, Seller, utcnow
from brewnear.services import rating_service


def rate(client, headers, seller_id, score, **extra):
    return client.post("/api/ratings", json={"seller_id": seller_id, "rating": score, **extra}, headers=headers)


def test_submit_then_replace(client, register, make_seller) -> None:
    _, seller_id = make_seller()
    headers, buyer_id = register()

    first = rate(client, headers, seller_id, 4, comment="Great <b>flat white</b>", order_items=["Flat White"])
    assert first.status_code == 201
    body = first.get_json()
    assert body["buyer_id"] == buyer_id
    assert body["comment"] == "Great flat white"
    assert body["order_items"] == ["Flat White"]

    second = rate(client, headers, seller_id, 2)
    assert second.status_code == 200
    assert second.get_json()["id"] == body["id"]
    assert second.get_json()["comment"] is None
    assert Rating.query.count() == 1

    mine = client.get(f"/api/sellers/{seller_id}/ratings/mine", headers=headers).get_json()
    assert mine["rating"]["rating"] == 2


def test_seller_aggregate_follows_ratings(client, register, make_seller) -> None:
    _, seller_id = make_seller()
    a, _ = register()
    b, _ = register()
    rate(client, a, seller_id, 5)
    rate(client, b, seller_id, 2)

    seller = client.get(f"/api/sellers/{seller_id}").get_json()
    assert seller["rating_average"] == 3.5
    assert seller["rating_count"] == 2

    rating_id = client.get(f"/api/sellers/{seller_id}/ratings/mine", headers=b).get_json()["rating"]["id"]
    assert client.delete(f"/api/ratings/{rating_id}", headers=b).status_code == 204
    seller = db.session.get(Seller, seller_id)
    assert (seller.rating_average, seller.rating_count) == (5.0, 1)


@pytest.mark.parametrize("score", [0, 6, 3.5, True, "4", None])
def test_score_must_be_whole_1_to_5(client, register, make_seller, score) -> None:
    _, seller_id = make_seller()
    headers, _ = register()
    response = rate(client, headers, seller_id, score)
    assert response.status_code == 400
    assert response.get_json()["error"]["message"] == "Rating must be a whole number between 1 and 5"


def test_whole_float_score_accepted(client, register, make_seller) -> None:
    _, seller_id = make_seller()
    headers, _ = register()
    assert rate(client, headers, seller_id, 4.0).get_json()["rating"] == 4


def test_submit_rules(client, register, make_seller) -> None:
    owner, seller_id = make_seller()
    headers, buyer_id = register()

    own = rate(client, owner, seller_id, 5)
    assert own.status_code == 403
    assert own.get_json()["error"]["message"] == "You cannot rate your own storefront"

    spoofed = rate(client, headers, seller_id, 5, buyer_id=buyer_id + 1)
    assert spoofed.status_code == 403
    assert spoofed.get_json()["error"]["message"] == "You can only submit ratings for yourself"

    assert rate(client, headers, 9999, 5).status_code == 404
    assert client.post("/api/ratings", json={"rating": 5}, headers=headers).status_code == 400
    assert rate(client, headers, seller_id, 5, comment="x" * 501).status_code == 400
    assert rate(client, headers, seller_id, 5, order_items="latte").status_code == 400


def test_only_author_deletes(client, register, make_seller) -> None:
    _, seller_id = make_seller()
    author, _ = register()
    other, _ = register()
    rating_id = rate(client, author, seller_id, 3).get_json()["id"]

    denied = client.delete(f"/api/ratings/{rating_id}", headers=other)
    assert denied.status_code == 403
    assert denied.get_json()["error"]["message"] == "Unauthorized: You can only delete your own ratings"
    missing = client.delete("/api/ratings/9999", headers=author)
    assert missing.get_json()["error"]["message"] == "Rating not found"


def test_stats_listing_and_search(client, register, make_seller) -> None:
    _, seller_id = make_seller()
    _, other_seller = make_seller()
    for score, comment in ((5, "Best matcha in town"), (4, "Nice latte"), (5, None)):
        headers, _ = register()
        rate(client, headers, seller_id, score, comment=comment)
    headers, _ = register()
    rate(client, headers, other_seller, 1, comment="Matcha was cold")

    stats = client.get(f"/api/sellers/{seller_id}/ratings/stats").get_json()
    assert stats["average_rating"] == 4.67
    assert stats["total_ratings"] == 3
    assert stats["rating_distribution"] == {"1": 0, "2": 0, "3": 0, "4": 1, "5": 2}
    assert len(stats["recent_ratings"]) == 3
    assert "buyer" in stats["recent_ratings"][0]

    listed = client.get(f"/api/sellers/{seller_id}/ratings?limit=2").get_json()
    assert len(listed) == 2

    found = client.get("/api/ratings/search?q=MATCHA").get_json()
    assert {r["seller_id"] for r in found} == {seller_id, other_seller}
    scoped = client.get(f"/api/ratings/search?q=matcha&seller_id={seller_id}").get_json()
    assert [r["comment"] for r in scoped] == ["Best matcha in town"]

    assert len(client.get("/api/ratings/recent?limit=3").get_json()) == 3


def test_empty_stats(client, make_seller) -> None:
    _, seller_id = make_seller()
    stats = client.get(f"/api/sellers/{seller_id}/ratings/stats").get_json()
    assert stats["average_rating"] == 0
    assert stats["total_ratings"] == 0


def _backdated(seller_id, buyer_id, score, months_ago):
    db.session.add(Rating(seller_id=seller_id, buyer_id=buyer_id, rating=score,
                          created_at=utcnow() - relativedelta(months=months_ago, days=1)))


def test_rating_trends(app, register, make_seller) -> None:
    _, seller_id = make_seller()
    buyers = [register()[1] for _ in range(5)]
    _backdated(seller_id, buyers[0], 2, 4)
    _backdated(seller_id, buyers[1], 3, 3)
    _backdated(seller_id, buyers[2], 5, 1)
    _backdated(seller_id, buyers[3], 5, 0)
    db.session.add(Rating(seller_id=seller_id, buyer_id=buyers[4], rating=1,
                          created_at=utcnow() - relativedelta(months=9)))
    db.session.commit()

    trends = rating_service.rating_trends(seller_id)
    assert [m["count"] for m in trends["monthly_averages"]] == [1, 1, 1, 1]
    assert trends["monthly_averages"][0]["average"] == 2
    assert trends["overall_trend"] == "improving"

    assert rating_service.rating_trends(seller_id, months=1)["overall_trend"] == "stable"


def test_report_rating(client, register, make_seller, caplog) -> None:
    _, seller_id = make_seller()
    headers, _ = register()
    rating_id = rate(client, headers, seller_id, 1, comment="meh").get_json()["id"]

    with caplog.at_level("WARNING", logger="brewnear.services.rating_service"):
        response = client.post(f"/api/ratings/{rating_id}/report", json={"reason": "spam"}, headers=headers)
    assert response.status_code == 202
    assert response.get_json() == {"status": "reported"}
    assert "spam" in caplog.text
    assert client.post("/api/ratings/9999/report", json={}, headers=headers).status_code == 404


@pytest.mark.parametrize("as_sent", [str, float, bool])
def test_seller_id_must_be_an_integer(client, make_seller, as_sent) -> None:
    owner, seller_id = make_seller()
    response = rate(client, owner, as_sent(seller_id), 5)
    assert response.status_code == 400
    assert response.get_json()["error"]["message"] == "Invalid seller_id"
    seller = db.session.get(Seller, seller_id)
    assert (seller.rating_average, seller.rating_count) == (0.0, 0)
    assert Rating.query.count() == 0
