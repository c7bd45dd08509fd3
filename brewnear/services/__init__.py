"""Service layer for the BrewNear marketplace.

This package contains business logic that sits between the
Flask route handlers and the database models, one module per
entity. Keeping it here keeps the routes thin and makes the
validation and ownership rules easy to unit test.

Nothing in this package should perform any HTTP handling.
Instead, services return model instances or plain Python data
structures, and raise exceptions defined in ``brewnear.errors``
when something goes wrong.
"""

from . import (
    analytics_service,
    contact_service,
    drink_service,
    favorite_service,
    rating_service,
    seller_service,
    user_service,
)

__all__ = [
    "analytics_service",
    "contact_service",
    "drink_service",
    "favorite_service",
    "rating_service",
    "seller_service",
    "user_service",
]
