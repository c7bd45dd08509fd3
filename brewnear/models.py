"""
Database models for the BrewNear marketplace.

The schema mirrors the marketplace tables: ``users`` (buyers and
sellers), ``sellers`` (one storefront per seller account, sharing the
user's id), ``drinks`` on a seller's menu, ``ratings`` and
``favorites`` left by buyers, ``contact_requests`` from buyers to
sellers, ``seller_analytics`` events and the ``order_history`` of
orders placed with sellers. A buyer may rate and favourite
each seller at most once; a seller's ``rating_average`` and
``rating_count`` are recomputed whenever its ratings change.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Optional, List

from werkzeug.security import generate_password_hash, check_password_hash

from . import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class UserType(enum.Enum):
    """Enumeration of account types."""
    BUYER = "buyer"
    SELLER = "seller"


class Specialty(enum.Enum):
    COFFEE = "coffee"
    MATCHA = "matcha"
    BOTH = "both"


class ContactType(enum.Enum):
    WHATSAPP = "whatsapp"
    PHONE = "phone"
    INQUIRY = "inquiry"


class ContactStatus(enum.Enum):
    PENDING = "pending"
    RESPONDED = "responded"
    COMPLETED = "completed"


class AnalyticsEvent(enum.Enum):
    PROFILE_VIEW = "profile_view"
    CONTACT_ATTEMPT = "contact_attempt"
    ORDER_INQUIRY = "order_inquiry"


class OrderStatus(enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def _enum(enum_cls: type[enum.Enum], name: str):
    # Persist the lowercase values rather than the member names.
    return db.Enum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])


class User(db.Model):
    """A marketplace account.

    Buyers browse, rate and favourite sellers; sellers additionally own a
    storefront in ``sellers``. Passwords are stored as salted hashes.
    """
    __allow_unmapped__ = True
    __tablename__ = "users"

    id: int = db.Column(db.Integer, primary_key=True)
    email: str = db.Column(db.String(120), unique=True, nullable=False)
    name: str = db.Column(db.String(100), nullable=False)
    phone: Optional[str] = db.Column(db.String(20))
    user_type: UserType = db.Column(_enum(UserType, "user_type"), default=UserType.BUYER, nullable=False)
    avatar_url: Optional[str] = db.Column(db.String(500))
    password_hash: str = db.Column(db.String(256), nullable=False)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at: datetime = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    seller: Optional[Seller] = db.relationship("Seller", back_populates="owner", uselist=False)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.user_type.value})>"


class Seller(db.Model):
    """A storefront. Its primary key is the owning user's id."""
    __allow_unmapped__ = True
    __tablename__ = "sellers"

    id: int = db.Column(db.Integer, db.ForeignKey("users.id"), primary_key=True)
    name: str = db.Column(db.String(100), nullable=False)
    business_name: str = db.Column(db.String(100), nullable=False)
    address: str = db.Column(db.String(255), nullable=False)
    latitude: float = db.Column(db.Float, nullable=False)
    longitude: float = db.Column(db.Float, nullable=False)
    phone: str = db.Column(db.String(20), nullable=False)
    hours: Optional[str] = db.Column(db.String(255))
    photo_url: Optional[str] = db.Column(db.String(500))
    specialty: Specialty = db.Column(_enum(Specialty, "specialty_type"), default=Specialty.COFFEE, nullable=False)
    is_available: bool = db.Column(db.Boolean, default=True, nullable=False)
    rating_average: float = db.Column(db.Float, default=0.0, nullable=False)
    rating_count: int = db.Column(db.Integer, default=0, nullable=False)
    description: Optional[str] = db.Column(db.Text)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at: datetime = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner: User = db.relationship("User", back_populates="seller")
    drinks: List[Drink] = db.relationship(
        "Drink", back_populates="seller", cascade="all, delete-orphan", order_by="Drink.created_at.desc()",
        uselist=True,
    )
    ratings: List[Rating] = db.relationship(
        "Rating", back_populates="seller", cascade="all, delete-orphan", uselist=True
    )
    favorites: List[Favorite] = db.relationship(
        "Favorite", back_populates="seller", cascade="all, delete-orphan", uselist=True
    )

    __table_args__ = (
        db.Index("ix_sellers_location", "latitude", "longitude"),
    )

    def __repr__(self) -> str:
        return f"<Seller {self.business_name}>"


class Drink(db.Model):
    """An item on a seller's menu."""
    __allow_unmapped__ = True
    __tablename__ = "drinks"

    id: int = db.Column(db.Integer, primary_key=True)
    seller_id: int = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)
    name: str = db.Column(db.String(100), nullable=False)
    description: Optional[str] = db.Column(db.String(500))
    price: float = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False)
    photo_url: Optional[str] = db.Column(db.String(500))
    category: Optional[str] = db.Column(db.String(50))
    is_available: bool = db.Column(db.Boolean, default=True, nullable=False)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at: datetime = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    seller: Seller = db.relationship("Seller", back_populates="drinks")

    def __repr__(self) -> str:
        return f"<Drink {self.name} seller={self.seller_id}>"


class Rating(db.Model):
    """A buyer's rating of a seller. One per buyer and seller."""
    __allow_unmapped__ = True
    __tablename__ = "ratings"

    id: int = db.Column(db.Integer, primary_key=True)
    seller_id: int = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)
    buyer_id: int = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    rating: int = db.Column(db.Integer, nullable=False)
    comment: Optional[str] = db.Column(db.String(500))
    order_items: Optional[list] = db.Column(db.JSON)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=utcnow)

    seller: Seller = db.relationship("Seller", back_populates="ratings")
    buyer: User = db.relationship("User")

    __table_args__ = (
        db.UniqueConstraint("buyer_id", "seller_id", name="uix_rating_buyer_seller"),
        db.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_rating_range"),
    )

    def __repr__(self) -> str:
        return f"<Rating seller={self.seller_id} buyer={self.buyer_id} rating={self.rating}>"


class Favorite(db.Model):
    """A seller saved by a buyer."""
    __allow_unmapped__ = True
    __tablename__ = "favorites"

    id: int = db.Column(db.Integer, primary_key=True)
    buyer_id: int = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    seller_id: int = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=utcnow)

    seller: Seller = db.relationship("Seller", back_populates="favorites")

    __table_args__ = (
        db.UniqueConstraint("buyer_id", "seller_id", name="uix_favorite_buyer_seller"),
    )

    def __repr__(self) -> str:
        return f"<Favorite buyer={self.buyer_id} seller={self.seller_id}>"


class ContactRequest(db.Model):
    """A buyer reaching out to a seller over WhatsApp, phone or an inquiry."""
    __allow_unmapped__ = True
    __tablename__ = "contact_requests"

    id: int = db.Column(db.Integer, primary_key=True)
    seller_id: int = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)
    buyer_id: int = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    contact_type: ContactType = db.Column(_enum(ContactType, "contact_type"), nullable=False)
    message: Optional[str] = db.Column(db.String(1000))
    status: ContactStatus = db.Column(
        _enum(ContactStatus, "contact_status"), default=ContactStatus.PENDING, nullable=False
    )
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at: datetime = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    buyer: User = db.relationship("User")
    seller: Seller = db.relationship("Seller")

    def __repr__(self) -> str:
        return f"<ContactRequest {self.contact_type.value} seller={self.seller_id} buyer={self.buyer_id}>"


class SellerAnalytics(db.Model):
    """A single analytics event recorded against a seller."""
    __allow_unmapped__ = True
    __tablename__ = "seller_analytics"

    id: int = db.Column(db.Integer, primary_key=True)
    seller_id: int = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)
    viewer_id: Optional[int] = db.Column(db.Integer, db.ForeignKey("users.id"))
    event_type: AnalyticsEvent = db.Column(_enum(AnalyticsEvent, "analytics_event"), nullable=False)
    # ``metadata`` is reserved on declarative classes
    event_metadata: Optional[dict] = db.Column("metadata", db.JSON)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<SellerAnalytics {self.event_type.value} seller={self.seller_id}>"


class OrderHistory(db.Model):
    """An order a buyer placed with a seller.

    ``items`` holds the ordered lines as ``{"name", "price", "quantity"}``
    objects (plus an optional drink ``id`` and ``notes``); the total is
    stored alongside so later menu price changes do not alter it.
    """
    __allow_unmapped__ = True
    __tablename__ = "order_history"

    id: int = db.Column(db.Integer, primary_key=True)
    buyer_id: int = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    seller_id: int = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)
    items: list = db.Column(db.JSON, nullable=False)
    total_amount: float = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False)
    status: OrderStatus = db.Column(_enum(OrderStatus, "order_status"), default=OrderStatus.PENDING, nullable=False)
    contact_method: ContactType = db.Column(_enum(ContactType, "contact_type"), nullable=False)
    pickup_time: Optional[datetime] = db.Column(db.DateTime)
    special_instructions: Optional[str] = db.Column(db.Text)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at: datetime = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    buyer: User = db.relationship("User")
    seller: Seller = db.relationship("Seller")

    __table_args__ = (
        db.CheckConstraint("total_amount > 0", name="ck_order_total_positive"),
    )

    def __repr__(self) -> str:
        return f"<OrderHistory {self.id} {self.status.value} seller={self.seller_id} buyer={self.buyer_id}>"
