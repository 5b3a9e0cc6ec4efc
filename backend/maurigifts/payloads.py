# Overview: Tagged variants for the free-form JSON columns on products and notifications.

"""
Product.meta and Notification.payload are stored as JSON, but every reader
and writer goes through these dataclasses. Known keys are typed fields;
anything else lands in `extra` and is written back untouched so older or
newer clients never lose data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .validation import ValidationError


@dataclass
class ProductMeta:
    title: str | None = None
    amount: str | int | float | None = None
    currency: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    KNOWN_KEYS = ("title", "amount", "currency")

    @classmethod
    def from_dict(cls, data: Any) -> "ProductMeta":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValidationError("meta must be an object")

        known = {}
        for key in cls.KNOWN_KEYS:
            value = data.get(key)
            if value is not None and (isinstance(value, bool) or not isinstance(value, (str, int, float))):
                raise ValidationError(f"meta.{key} must be a string or number")
            known[key] = value

        extra = {k: v for k, v in data.items() if k not in cls.KNOWN_KEYS}
        return cls(extra=extra, **known)

    def to_dict(self) -> dict:
        out = dict(self.extra)
        for key in self.KNOWN_KEYS:
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out


@dataclass
class NotificationPayload:
    """Structured payload attached to an in-app notification."""
    kind: str
    order_id: int | None = None
    delivery_code: str | None = None
    reason: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    KNOWN_KEYS = ("kind", "order_id", "delivery_code", "reason")

    # Known kinds
    ORDER_SUBMITTED = "order_submitted"
    ORDER_COMPLETED = "order_completed"
    ORDER_REJECTED = "order_rejected"
    GENERIC = "generic"

    @classmethod
    def from_dict(cls, data: dict | None) -> "NotificationPayload":
        data = data or {}
        extra = {k: v for k, v in data.items() if k not in cls.KNOWN_KEYS}
        return cls(
            kind=data.get("kind") or cls.GENERIC,
            order_id=data.get("order_id"),
            delivery_code=data.get("delivery_code"),
            reason=data.get("reason"),
            extra=extra,
        )

    def to_dict(self) -> dict:
        out = dict(self.extra)
        out["kind"] = self.kind
        for key in ("order_id", "delivery_code", "reason"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out
