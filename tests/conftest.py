"""Shared fixtures for the BrewNear test-suite.

Each test gets its own application bound to a throwaway SQLite
database and storage directory. Helper fixtures register accounts
through the API and hand back ``Authorization`` headers so tests read
like client sessions.
"""
from __future__ import annotations

import itertools

import pytest

from brewnear import create_app, db

CASABLANCA = (33.5731, -7.5898)


@pytest.fixture()
def app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
            "JWT_SECRET_KEY": "test-secret-key-that-is-long-enough-for-hs256",
            "STORAGE_DIR": str(tmp_path / "storage"),
            "ORS_API_KEY": "test-ors-key",
            "REALTIME_HEARTBEAT_SECONDS": 0.05,
            "LOG_LEVEL": "WARNING",
        }
    )
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def register(client):
    """Return ``register(user_type="buyer", **fields) -> (headers, user_id)``."""
    counter = itertools.count(1)

    def _register(user_type: str = "buyer", **fields):
        n = next(counter)
        payload = {
            "email": f"{user_type}{n}@example.com",
            "password": "correct-horse",
            "name": f"Test {user_type.title()} {n}",
            "user_type": user_type,
        }
        payload.update(fields)
        response = client.post("/api/register", json=payload)
        assert response.status_code == 201, response.get_json()
        body = response.get_json()
        return {"Authorization": f"Bearer {body['access_token']}"}, body["user"]["id"]

    return _register


@pytest.fixture()
def make_seller(client, register):
    """Return ``make_seller(**storefront) -> (headers, seller_id)``."""

    def _make_seller(**storefront):
        headers, user_id = register("seller")
        payload = {
            "business_name": f"Cafe {user_id}",
            "address": "1 Rue Test, Casablanca",
            "phone": "0612345678",
            "latitude": CASABLANCA[0],
            "longitude": CASABLANCA[1],
        }
        payload.update(storefront)
        response = client.post("/api/sellers", json=payload, headers=headers)
        assert response.status_code == 201, response.get_json()
        return headers, user_id

    return _make_seller


@pytest.fixture()
def make_drink(client):
    """Return ``make_drink(headers, **fields) -> drink dict``."""

    def _make_drink(headers, **fields):
        payload = {
            "name": "Spanish Latte",
            "description": "Espresso with sweetened condensed milk.",
            "price": 25,
            "category": "hot-drinks",
        }
        payload.update(fields)
        response = client.post("/api/drinks", json=payload, headers=headers)
        assert response.status_code == 201, response.get_json()
        return response.get_json()

    return _make_drink
