from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from stockbook.time_utils import business_day, parse_iso_datetime

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Column, Date, DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeMeta

from .models import PAYMENT_MODES, PAYMENT_STATUSES


# Ceilings keeping grams, cents and quantity x price inside a 64-bit integer
MAX_QUANTITY_KG = Decimal("999999999.999")
MAX_PRICE_PER_KG = Decimal("999999.99")

# Payload fields stored as integer grams / cents, validated at their
# external precision (3 decimal places for kg, 2 for money)
QUANTITY_KG = Column("quantity_kg", Numeric(12, 3), nullable=False)
PRICE_PER_KG = Column("price_per_kg", Numeric(12, 2), nullable=False)
TOTAL_STOCK = Column("total_stock", Numeric(12, 3), nullable=False)
REMAIN_STOCK = Column("remain_stock", Numeric(12, 3), nullable=False)


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate product code)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFoundError(LookupError):
    """404-level missing entity."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - virtual_fields: payload keys that are not columns of the model
      (e.g. product_code on a stock entry), validated as if they were
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    virtual_fields: tuple[Column, ...] = ()


def _columns_by_key(model: DeclarativeMeta, policy: ModelValidationPolicy) -> dict[str, Any]:
    mapper = model.__mapper__
    cols = {c.key: c for c in mapper.columns}
    for col in policy.virtual_fields:
        cols[col.key] = col
    return cols


def _coerce_decimal(col, value: Any) -> Decimal:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise ValidationError(f"{col.key} must be a number")
    if isinstance(value, (int, float, Decimal)):
        raw = str(value)
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
    else:
        raise ValidationError(f"{col.key} must be a number")

    try:
        dec = Decimal(raw)
    except InvalidOperation:
        raise ValidationError(f"{col.key} must be a number")
    if not dec.is_finite():
        raise ValidationError(f"{col.key} must be a finite number")

    scale = col.type.scale
    if scale is not None and dec.as_tuple().exponent < -scale:
        raise ValidationError(f"{col.key} allows at most {scale} decimal places")
    return dec


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Quantities (kg) and money
    if isinstance(coltype, Numeric):
        return _coerce_decimal(col, value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Calendar days (stock keys)
    if isinstance(coltype, Date):
        if isinstance(value, (str, date)):
            try:
                return business_day(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
        raise ValidationError(f"{col.key} must be a date")

    # Strings
    if isinstance(coltype, String):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    # Default: leave as-is
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
    - SQLAlchemy column metadata (nullable, type, String length, Numeric scale)
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

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model, policy)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable or k in policy.required_on_create:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, String) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_kg(patch: dict, key: str, *, allow_zero: bool) -> None:
    if key not in patch:
        return
    qty = patch[key]
    if allow_zero and qty < 0:
        raise ValidationError(f"{key} must be >= 0")
    if not allow_zero and qty <= 0:
        raise ValidationError(f"{key} must be > 0")
    if qty > MAX_QUANTITY_KG:
        raise ValidationError(f"{key} cannot exceed {MAX_QUANTITY_KG}")


def enforce_rules_stock(patch: dict) -> None:
    """
    Business rules for a direct stock write (create, upsert, update):
    both quantities non-negative and remain_stock never above total_stock.
    """
    _check_kg(patch, "total_stock", allow_zero=True)
    _check_kg(patch, "remain_stock", allow_zero=True)

    total = patch.get("total_stock")
    remain = patch.get("remain_stock")
    if total is not None and remain is not None and remain > total:
        raise ValidationError("remain_stock cannot exceed total_stock")


def enforce_rules_stock_receive(patch: dict) -> None:
    # RECEIVE adds a positive amount to both totals
    _check_kg(patch, "quantity_kg", allow_zero=False)


def enforce_rules_sale(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_kg(patch, "quantity_kg", allow_zero=False)

    if "price_per_kg" in patch:
        price = patch["price_per_kg"]
        if price < 0:
            raise ValidationError("price_per_kg must be >= 0")
        if price > MAX_PRICE_PER_KG:
            raise ValidationError(f"price_per_kg cannot exceed {MAX_PRICE_PER_KG}")

    if "payment_mode" in patch and patch["payment_mode"] not in PAYMENT_MODES:
        raise ValidationError(f"payment_mode must be one of: {', '.join(PAYMENT_MODES)}")

    if "payment_status" in patch and patch["payment_status"] not in PAYMENT_STATUSES:
        raise ValidationError(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")
