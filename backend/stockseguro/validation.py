from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text


# Prices and tendered amounts, in minor units
MAX_PRICE_CENTS = 999_999_999

# Upper bound for a single cart line or adjustment
MAX_QUANTITY = 100_000


class ValidationError(ValueError):
    """Bad input; maps to 400."""


class ConflictError(ValueError):
    """Uniqueness clash such as a reused id or barcode; maps to 409."""


class NotFoundError(LookupError):
    """Entity missing or inactive; maps to 404."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which columns a client may write, and which a create must carry.

    Anything outside writable_fields is rejected, not ignored.
    """
    writable_fields: frozenset[str] | set[str]
    required_on_create: frozenset[str] | set[str] = field(default_factory=frozenset)


def _as_integer(key: str, value: Any) -> int:
    """Strict integer: ints and digit strings only (no bools, floats, '1e3', '2.5')."""
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be an integer")

    text = value.strip()
    digits = text[1:] if text[:1] in "+-" else text
    if not digits.isdigit():
        raise ValidationError(f"{key} must be a plain integer")
    return int(text)


def _clean_column_value(column, value: Any):
    kind = column.type
    if isinstance(kind, Boolean):
        if not isinstance(value, bool):
            raise ValidationError(f"{column.key} must be true or false")
        return value
    if isinstance(kind, Integer):
        return _as_integer(column.key, value)
    if isinstance(kind, (String, Text)):
        text = str(value).strip()
        if text == "" and not column.nullable:
            raise ValidationError(f"{column.key} cannot be blank")
        limit = getattr(kind, "length", None)
        if limit and len(text) > limit:
            raise ValidationError(f"{column.key} exceeds max length {limit}")
        return text
    return value


def validate_payload(*, model, payload: dict, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Turn a JSON body into a clean patch for ``model``.

    Column metadata drives the checks: nullability, integer/boolean
    types and String lengths. With partial=False the policy's
    required_on_create fields must all be present.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(set(policy.required_on_create) - payload.keys())
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}

    patch: dict = {}
    for key, raw in payload.items():
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}")
        column = columns.get(key)
        if column is None:
            raise ValidationError(f"Unknown field: {key}")

        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
        else:
            patch[key] = _clean_column_value(column, raw)

    return patch


def enforce_rules_product(patch: dict) -> None:
    """Price and stock bounds the column types cannot express."""
    price = patch.get("unit_price_cents")
    if price is not None and not 0 < price <= MAX_PRICE_CENTS:
        raise ValidationError(f"unit_price_cents must be between 1 and {MAX_PRICE_CENTS}")

    box_price = patch.get("box_price_cents")
    if box_price is not None and not 0 <= box_price <= MAX_PRICE_CENTS:
        raise ValidationError(f"box_price_cents must be between 0 and {MAX_PRICE_CENTS}")

    for key in ("stock", "min_stock"):
        if patch.get(key) is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")


def parse_positive_quantity(value: Any, *, field: str = "quantity") -> int:
    """
    Accept a positive, finite, whole quantity.

    2 and 2.0 are accepted; 1.5, 0, negatives, NaN/inf, booleans and
    non-numeric strings are rejected.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive whole number")

    if isinstance(value, str):
        stripped = value.strip()
        try:
            value = float(stripped) if any(c in stripped for c in ".eE") else int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be a positive whole number")

    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise ValidationError(f"{field} must be a positive whole number")
        value = int(value)

    if not isinstance(value, int):
        raise ValidationError(f"{field} must be a positive whole number")

    if value <= 0:
        raise ValidationError(f"{field} must be > 0")
    if value > MAX_QUANTITY:
        raise ValidationError(f"{field} cannot exceed {MAX_QUANTITY}")
    return value


def parse_optional_cents(value: Any, *, field: str) -> int | None:
    """Nullable non-negative integer amount in minor units."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        value = int(value)
    amount = _as_integer(field, value)
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if amount > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")
    return amount


def clean_text(value: Any) -> str:
    """Trimmed string; None becomes ''."""
    if value is None:
        return ""
    return str(value).strip()
