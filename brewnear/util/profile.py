"""Seller profile completeness checks.

A storefront is listed on the map only once the buyer-facing
essentials are filled in. Business hours are optional and default on
creation, so they are not checked here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .phone import is_valid_moroccan_phone


def _non_blank(value: Any) -> bool:
    return bool(value and str(value).strip())


@dataclass(frozen=True)
class RequiredField:
    field: str
    label: str
    description: str
    validator: Callable[[Any], bool] = _non_blank


SELLER_REQUIRED_FIELDS = (
    RequiredField("business_name", "Business Name", "Your business or brand name that customers will see"),
    RequiredField("address", "Business Address", "Your business location where customers can find you"),
    RequiredField(
        "phone",
        "Phone Number",
        "Contact number for customers to reach you via WhatsApp",
        lambda value: _non_blank(value) and is_valid_moroccan_phone(value),
    ),
)


@dataclass
class CompletenessResult:
    is_complete: bool
    missing_fields: list[str] = field(default_factory=list)
    missing_fields_details: list[dict[str, str]] = field(default_factory=list)

    @property
    def summary(self) -> str:
        if self.is_complete:
            return "Profile is complete"
        labels = [detail["label"] for detail in self.missing_fields_details]
        if not labels:
            return "Profile needs to be created"
        if len(labels) == 1:
            return f"Missing: {labels[0]}"
        if len(labels) == 2:
            return f"Missing: {labels[0]} and {labels[1]}"
        return f"Missing: {', '.join(labels[:-1])}, and {labels[-1]}"

    def to_dict(self) -> dict:
        return {
            "is_complete": self.is_complete,
            "missing_fields": self.missing_fields,
            "missing_fields_details": self.missing_fields_details,
            "summary": self.summary,
        }


def check_seller_profile(seller: Optional[Any]) -> CompletenessResult:
    """Validate a seller row (or any object/dict with the same fields)."""
    missing = []
    for required in SELLER_REQUIRED_FIELDS:
        if seller is None:
            value = None
        elif isinstance(seller, dict):
            value = seller.get(required.field)
        else:
            value = getattr(seller, required.field, None)
        if not required.validator(value):
            missing.append(required)
    return CompletenessResult(
        is_complete=not missing,
        missing_fields=[r.field for r in missing],
        missing_fields_details=[
            {"field": r.field, "label": r.label, "description": r.description} for r in missing
        ],
    )
