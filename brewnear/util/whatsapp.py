"""WhatsApp deep links and prefilled messages.

Buyers contact sellers through ``https://wa.me/<number>?text=...``
links; these helpers build the link and the message templates the
client offers.
"""
from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from .phone import whatsapp_api_number

WA_BASE_URL = "https://wa.me"
SIGNATURE = "_Sent via BrewNear_"


def whatsapp_link(phone: str, message: str = "") -> str:
    """Build a ``wa.me`` link.

    Moroccan numbers are normalised first; anything else is reduced to
    its digits.
    """
    number = whatsapp_api_number(phone) or "".join(ch for ch in phone if ch.isdigit())
    if not message:
        return f"{WA_BASE_URL}/{number}"
    return f"{WA_BASE_URL}/{number}?text={quote(message, safe='')}"


def _sign(lines: list[str], customer_name: Optional[str], closing: str = "Thanks!") -> str:
    if customer_name:
        lines += [f"My name is {customer_name}.", ""]
    lines += [closing, SIGNATURE]
    return "\n".join(lines)


def quick_contact_message(specialty: str, customer_name: Optional[str] = None) -> str:
    lines = [
        f"Hi! I found your {specialty} business on BrewNear.",
        "",
        "I'm interested in your drinks menu. Could you please share more details about:",
        "• Available drinks and prices",
        "• Pickup/delivery options",
        "• Current availability",
        "",
    ]
    return _sign(lines, customer_name)


def product_interest_message(
    product_name: str, price: float, specialty: str, customer_name: Optional[str] = None
) -> str:
    lines = [
        f'Hi! I\'m interested in ordering "{product_name}" ({price:.2f} Dh) from your {specialty} business.',
        "",
        "Could you please confirm:",
        "• Current availability",
        "• Pickup/delivery options",
        "• Estimated preparation time",
        "",
    ]
    return _sign(lines, customer_name)


def order_inquiry_message(specialty: str, drink_name: str, customer_name: Optional[str] = None) -> str:
    lines = [
        f"Hi! I'd like to order from your {specialty} business.",
        "",
        f"*Interested in:* {drink_name}",
        "",
        "Could you please confirm:",
        "• Price and availability",
        "• Pickup time and location",
        "• Payment method",
        "",
    ]
    return _sign(lines, customer_name, closing="Thank you!")


def business_hours_message(specialty: str) -> str:
    return "\n".join([
        f"Hi! I found your {specialty} business on BrewNear.",
        "",
        "Could you please share your current business hours and availability?",
        "",
        "Thanks!",
        SIGNATURE,
    ])


def location_message(specialty: str) -> str:
    return "\n".join([
        f"Hi! I'm interested in visiting your {specialty} business.",
        "",
        "Could you please share:",
        "• Exact pickup location/address",
        "• Any specific directions or landmarks",
        "• Best time to visit",
        "",
        "Thank you!",
        SIGNATURE,
    ])
