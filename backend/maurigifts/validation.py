from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Prices are whole ouguiya (MRU); no minor units
MAX_PRICE_MRU = 100_000_000

PHONE_RE = re.compile(r"^\d{8}$")
PIN_RE = re.compile(r"^\d{4}$")
OTP_RE = re.compile(r"^\d{4,6}$")
URL_RE = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)

MAX_REJECT_REASON_LENGTH = 500

# Signed 64-bit: the widest INTEGER the supported databases store
MAX_DB_INT = 2 ** 63 - 1


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


class NotFoundError(LookupError):
    """404-level: referenced entity absent or not visible to the caller."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _in_db_range(value: int, field_name: str) -> int:
    if not -MAX_DB_INT - 1 <= value <= MAX_DB_INT:
        raise ValidationError(f"{field_name} is out of range")
    return value


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return _in_db_range(value, col.key)
        # Whole-number floats come from JSON clients that only have "number"
        if isinstance(value, float):
            if value.is_integer():
                return _in_db_range(int(value), col.key)
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped.lstrip("-").isdigit():
                raise ValidationError(f"{col.key} must be an integer")
            return _in_db_range(int(stripped), col.key)
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    # Default: leave as-is (JSON columns)
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_url(patch: dict, key: str) -> None:
    value = patch.get(key)
    if value and not URL_RE.match(value):
        raise ValidationError(f"{key} must be a valid URL")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "price_mru" in patch and patch["price_mru"] is not None:
        price = patch["price_mru"]
        if price <= 0:
            raise ValidationError("price_mru must be > 0")
        if price > MAX_PRICE_MRU:
            raise ValidationError(f"price_mru cannot exceed {MAX_PRICE_MRU}")


def enforce_rules_category(patch: dict) -> None:
    _check_url(patch, "image_url")


def enforce_rules_payment_method(patch: dict) -> None:
    from .vocab import VALID_PAYMENT_METHOD_STATUSES

    _check_url(patch, "logo_url")
    if "status" in patch and patch["status"] not in VALID_PAYMENT_METHOD_STATUSES:
        raise ValidationError("status must be active or inactive")


def enforce_rules_product_guide(patch: dict) -> None:
    if "step_number" in patch and patch["step_number"] is not None:
        if patch["step_number"] <= 0:
            raise ValidationError("step_number must be > 0")
    _check_url(patch, "image_url")
    _check_url(patch, "support_link")


def require_phone_number(value: Any) -> str:
    if not isinstance(value, str) or not PHONE_RE.match(value):
        raise ValidationError("phone_number must be exactly 8 digits")
    return value


def require_pin(value: Any, field_name: str = "pin") -> str:
    if not isinstance(value, str) or not PIN_RE.match(value):
        raise ValidationError(f"{field_name} must be exactly 4 digits")
    return value


def require_text(value: Any, field_name: str, max_length: int | None = None) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{field_name} exceeds max length {max_length}")
    return value


def require_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    if isinstance(value, int):
        return _in_db_range(value, field_name)
    if isinstance(value, str) and value.strip().isdigit():
        return _in_db_range(int(value.strip()), field_name)
    raise ValidationError(f"{field_name} must be an integer")
