"""
Serialization schemas using Marshmallow for BrewNear.

These schemas convert SQLAlchemy models to JSON-friendly
representations. Sensitive fields, such as password hashes, are
excluded and enum columns are emitted by value (``"coffee"`` rather
than ``"COFFEE"``). Nested relationships are included where the client
needs them, but kept to summary fields to avoid deep recursion.
"""

from __future__ import annotations

from marshmallow import fields
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field

from .models import (
    AnalyticsEvent,
    ContactRequest,
    ContactStatus,
    ContactType,
    Drink,
    Favorite,
    OrderHistory,
    OrderStatus,
    Rating,
    Seller,
    SellerAnalytics,
    Specialty,
    User,
    UserType,
)

SELLER_SUMMARY_FIELDS = (
    "id",
    "business_name",
    "address",
    "photo_url",
    "specialty",
    "is_available",
    "rating_average",
    "rating_count",
    "phone",
)


class UserSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``User`` objects."""

    user_type = fields.Enum(UserType, by_value=True)

    class Meta:
        model = User
        load_instance = True
        # Exclude password_hash from the serialised output
        exclude = ("password_hash",)


class PublicUserSchema(SQLAlchemyAutoSchema):
    """Only what other users may see of an account."""

    class Meta:
        model = User
        fields = ("id", "name", "avatar_url")


class DrinkSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``Drink`` objects."""

    price = fields.Float()

    class Meta:
        model = Drink
        load_instance = True
        include_fk = True


class SellerSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``Seller`` objects."""

    specialty = fields.Enum(Specialty, by_value=True)

    class Meta:
        model = Seller
        load_instance = True
        include_fk = True


class SellerSummarySchema(SellerSchema):
    class Meta(SellerSchema.Meta):
        fields = SELLER_SUMMARY_FIELDS


class SellerDetailSchema(SellerSchema):
    """A seller together with its menu."""

    drinks = fields.Nested(DrinkSchema, many=True)


class NearbySellerSchema(SellerSchema):
    """A seller as returned by the nearby search, with its distance."""

    distance_km = fields.Float()


class DrinkDetailSchema(DrinkSchema):
    seller = fields.Nested(
        SellerSchema, only=("id", "business_name", "phone", "address", "is_available", "rating_average")
    )


class RatingSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``Rating`` objects."""

    comment = auto_field(allow_none=True)
    order_items = fields.Raw(allow_none=True)

    class Meta:
        model = Rating
        load_instance = True
        include_fk = True


class RatingDetailSchema(RatingSchema):
    buyer = fields.Nested(PublicUserSchema)
    seller = fields.Nested(SellerSchema, only=("id", "business_name", "photo_url"))


class FavoriteSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``Favorite`` objects with the saved seller."""

    seller = fields.Nested(SellerSummarySchema)

    class Meta:
        model = Favorite
        load_instance = True
        include_fk = True


class ContactRequestSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``ContactRequest`` objects."""

    contact_type = fields.Enum(ContactType, by_value=True)
    status = fields.Enum(ContactStatus, by_value=True)
    buyer = fields.Nested(PublicUserSchema)

    class Meta:
        model = ContactRequest
        load_instance = True
        include_fk = True


class SellerAnalyticsSchema(SQLAlchemyAutoSchema):
    event_type = fields.Enum(AnalyticsEvent, by_value=True)
    metadata = fields.Raw(attribute="event_metadata", allow_none=True)

    class Meta:
        model = SellerAnalytics
        include_fk = True
        exclude = ("event_metadata",)


class OrderSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``OrderHistory`` rows."""

    items = fields.Raw()
    total_amount = fields.Float()
    status = fields.Enum(OrderStatus, by_value=True)
    contact_method = fields.Enum(ContactType, by_value=True)

    class Meta:
        model = OrderHistory
        load_instance = True
        include_fk = True


class OrderDetailSchema(OrderSchema):
    """An order with both parties, as either of them sees it."""

    buyer = fields.Nested(PublicUserSchema)
    seller = fields.Nested(SellerSchema, only=("id", "business_name", "phone", "address", "photo_url"))
