"""Account profiles.

Registration and password checks back the token endpoints; the rest
reads and edits a user's own profile, uploads their avatar and deletes
the account. Other users only ever see the public fields of an
account. Phone numbers, when given, must be Moroccan mobiles and are
stored in E.164 form.
"""
from __future__ import annotations

import logging
import time
from typing import Optional

from sqlalchemy import func

from brewnear.db import commit, db
from brewnear.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError, friendly_message
from brewnear.models import ContactRequest, Favorite, OrderHistory, Rating, SellerAnalytics, User, UserType
from brewnear.storage import AVATARS, DRINK_PHOTOS, SELLER_PHOTOS, BucketStorage, file_extension
from brewnear.util.phone import validate_moroccan_phone
from brewnear.util.sanitization import sanitize_email, sanitize_text, sanitize_url

from . import seller_service

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def _clean_name(value) -> str:
    name = sanitize_text(value) if isinstance(value, str) else ""
    if not 2 <= len(name) <= 100:
        raise ValidationError("Name must be between 2 and 100 characters", fields={"name": "length"})
    return name


def _clean_phone(value) -> Optional[str]:
    if value in (None, ""):
        return None
    result = validate_moroccan_phone(value)
    if not result.is_valid:
        raise ValidationError(result.error, fields={"phone": "invalid"})
    return result.normalized


def register_user(data: dict) -> User:
    """Create an account from ``email``, ``password``, ``name`` and optional
    ``user_type`` (buyer by default) and ``phone``."""
    required = {"email", "password", "name"}
    missing = sorted(required - {k for k, v in data.items() if v})
    if missing:
        raise ValidationError(f"Missing fields: {', '.join(missing)}", fields={f: "required" for f in missing})

    email = sanitize_email(data["email"])
    if not email:
        raise ValidationError("Invalid email address", fields={"email": "invalid"})
    password = data["password"]
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", fields={"password": "too short"}
        )
    try:
        user_type = UserType(str(data.get("user_type") or "buyer").lower())
    except ValueError:
        raise ValidationError("Invalid user type. Choose 'buyer' or 'seller'.", fields={"user_type": "invalid"})

    if User.query.filter_by(email=email).first():
        raise ConflictError(friendly_message(message="User already registered"))

    user = User(
        email=email,
        name=_clean_name(data["name"]),
        phone=_clean_phone(data.get("phone")),
        user_type=user_type,
    )
    user.set_password(password)
    db.session.add(user)
    commit()
    logger.info("Registered %s account %s", user_type.value, user.id)
    return user


def authenticate(email: str, password: str) -> User:
    if not isinstance(email, str) or not isinstance(password, str):
        raise AuthenticationError(friendly_message(message="Invalid login credentials"))
    user = User.query.filter_by(email=email.strip().lower()).first()
    if not user or not user.check_password(password):
        raise AuthenticationError(friendly_message(message="Invalid login credentials"))
    return user


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(friendly_message("PGRST301"))
    return user


def update_profile(user_id: int, updates: dict) -> User:
    """Update ``name``, ``phone`` and/or ``avatar_url`` of the given user."""
    user = get_user(user_id)
    if "name" in updates:
        user.name = _clean_name(updates["name"])
    if "phone" in updates:
        user.phone = _clean_phone(updates["phone"])
    if "avatar_url" in updates:
        raw = updates["avatar_url"]
        url = sanitize_url(raw) if raw else ""
        if raw and not url:
            raise ValidationError("Invalid avatar URL", fields={"avatar_url": "invalid"})
        user.avatar_url = url or None
    commit()
    return user


def buyer_profile(user_id: int) -> dict:
    """Return the user together with their marketplace activity counts."""
    user = get_user(user_id)

    def _count(model) -> int:
        return db.session.query(func.count(model.id)).filter(model.buyer_id == user_id).scalar() or 0

    return {
        "user": user,
        "stats": {
            "review_count": _count(Rating),
            "favorite_count": _count(Favorite),
            "contact_request_count": _count(ContactRequest),
            "order_count": _count(OrderHistory),
        },
    }


def public_profile(user_id: int) -> User:
    """Return an account for display to other users."""
    return get_user(user_id)


def upload_avatar(user_id: int, upload, storage: BucketStorage) -> str:
    """Store the user's avatar at ``<id>/avatar.<ext>`` and return its URL.

    A previous avatar with another extension is removed once the new one
    is saved.
    """
    user = get_user(user_id)
    ext = file_extension(upload.filename or "")
    path = storage.upload(AVATARS, f"{user.id}/avatar.{ext}", upload.stream, upsert=True)
    previous = storage.path_from_url(AVATARS, user.avatar_url) if user.avatar_url else None
    user.avatar_url = f"{storage.public_url(AVATARS, path)}?t={int(time.time() * 1000)}"
    try:
        commit()
    except Exception:
        if path != previous:
            storage.remove(AVATARS, [path])
        raise
    if previous and previous != path:
        storage.remove(AVATARS, [previous])
    return user.avatar_url


def _stored_photos(user: User, storage: BucketStorage) -> list[tuple[str, str]]:
    urls = [(AVATARS, user.avatar_url)]
    if user.seller is not None:
        urls.append((SELLER_PHOTOS, user.seller.photo_url))
        urls.extend((DRINK_PHOTOS, drink.photo_url) for drink in user.seller.drinks)
    photos = []
    for bucket, url in urls:
        path = storage.path_from_url(bucket, url) if url else None
        if path:
            photos.append((bucket, path))
    return photos


def delete_account(user_id: int, storage: Optional[BucketStorage] = None) -> None:
    """Delete an account with everything that belongs to it.

    That is the user's ratings, favourites, contact requests and orders
    and, for sellers, the storefront with its menu and the activity
    recorded against it. Sellers the user had rated get their aggregate
    recomputed. Analytics events the user caused as a visitor are kept
    without the viewer id.
    """
    user = get_user(user_id)
    account_type = user.user_type.value
    photos = _stored_photos(user, storage) if storage is not None else []
    rated = [seller_id for (seller_id,) in db.session.query(Rating.seller_id).filter(Rating.buyer_id == user_id)]

    for model in (Rating, Favorite, ContactRequest, OrderHistory):
        model.query.filter(model.buyer_id == user_id).delete(synchronize_session="fetch")
    SellerAnalytics.query.filter(SellerAnalytics.viewer_id == user_id).update(
        {SellerAnalytics.viewer_id: None}, synchronize_session="fetch"
    )
    if user.seller is not None:
        for model in (ContactRequest, OrderHistory, SellerAnalytics):
            model.query.filter(model.seller_id == user_id).delete(synchronize_session="fetch")
        db.session.delete(user.seller)
    db.session.delete(user)
    db.session.flush()
    for seller_id in rated:
        seller_service.recompute_rating(seller_id)
    commit()

    for bucket, path in photos:
        storage.remove(bucket, [path])
    logger.info("Deleted %s account %s", account_type, user_id)
