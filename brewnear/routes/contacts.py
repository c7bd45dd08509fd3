"""
Routes for buyer to seller contact requests.

Requests are rate limited per buyer. WhatsApp requests return the
``wa.me`` link the client should open.
"""

from __future__ import annotations

from flask import Blueprint, current_app
from flask_jwt_extended import jwt_required

from ..errors import ValidationError
from ..schemas import ContactRequestSchema
from ..services import contact_service
from ..util.validation import id_field
from .common import current_user_id, json_body


contacts_bp = Blueprint("contacts", __name__)


@contacts_bp.route("/contact-requests", methods=["POST"])
@jwt_required()
def create_contact_request() -> tuple[dict, int]:
    """Contact a seller.

    Expects JSON with ``seller_id``, ``contact_type`` (``whatsapp``,
    ``phone`` or ``inquiry``) and optionally a ``message``, a
    ``drink_id`` from the seller's menu and a WhatsApp ``template``
    (``quick``, ``product``, ``order``, ``hours`` or ``location``).
    """
    data = json_body()
    seller_id = id_field(data.get("seller_id"), "seller_id")
    if not data.get("contact_type"):
        raise ValidationError("contact_type is required", fields={"contact_type": "required"})
    contact, whatsapp_url = contact_service.create_request(
        current_user_id(),
        seller_id,
        data["contact_type"],
        data.get("message"),
        rate_limiter=current_app.extensions.get("contact_rate_limiter"),
        drink_id=data.get("drink_id"),
        template=data.get("template"),
    )
    return {"request": ContactRequestSchema().dump(contact), "whatsapp_url": whatsapp_url}, 201


@contacts_bp.route("/contact-requests/<int:request_id>", methods=["PATCH"])
@jwt_required()
def update_contact_request(request_id: int) -> tuple[dict, int]:
    """Sellers move a request to ``responded`` or ``completed``."""
    status = json_body().get("status")
    if not status:
        raise ValidationError("status is required", fields={"status": "required"})
    contact = contact_service.update_status(current_user_id(), request_id, status)
    return ContactRequestSchema().dump(contact), 200
