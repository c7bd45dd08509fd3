"""Seller dashboard analytics."""
from datetime import timedelta

from brewnear import db
from brewnear.models import AnalyticsEvent, SellerAnalytics, utcnow
from brewnear.services import analytics_service


def test_own_views_are_not_tracked(app, make_seller) -> None:
    _, seller_id = make_seller()
    assert analytics_service.track_seller_view(seller_id, seller_id) is None
    assert analytics_service.track_seller_view(seller_id) is not None
    assert SellerAnalytics.query.count() == 1


def test_dashboard_combines_activity(client, register, make_seller) -> None:
    owner, seller_id = make_seller()
    headers, buyer_id = register()
    client.get(f"/api/sellers/{seller_id}", headers=headers)
    client.post("/api/contact-requests", json={"seller_id": seller_id, "contact_type": "phone"}, headers=headers)
    client.post("/api/favorites", json={"seller_id": seller_id}, headers=headers)
    client.post("/api/ratings", json={"seller_id": seller_id, "rating": 4}, headers=headers)

    old = SellerAnalytics(seller_id=seller_id, event_type=AnalyticsEvent.PROFILE_VIEW,
                          created_at=utcnow() - timedelta(days=40))
    db.session.add(old)
    db.session.commit()

    body = client.get(f"/api/sellers/{seller_id}/analytics", headers=owner).get_json()
    assert body["profile_views"] == 1
    assert body["contact_requests"] == 1
    assert body["favorite_count"] == 1
    assert (body["average_rating"], body["rating_count"]) == (4.0, 1)
    kinds = sorted(item["kind"] for item in body["recent_activity"])
    # a view, a contact attempt event and the contact request itself
    assert kinds == ["analytics", "analytics", "contact_request"]
    assert all(item.get("buyer_id", item.get("viewer_id")) == buyer_id for item in body["recent_activity"])

    wide = client.get(f"/api/sellers/{seller_id}/analytics?days=60", headers=owner).get_json()
    assert wide["profile_views"] == 2
    assert client.get(f"/api/sellers/{seller_id}/analytics?days=0", headers=owner).status_code == 400
