from __future__ import annotations
from datetime import datetime
from shopkeep.time_utils import parse_iso_datetime

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .money import to_cents
from .models.inventory import ITEM_CATEGORIES, UNIT_TYPES, STOCK_TYPES
from .models.parties import PARTY_TYPES


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer for the plain CRUD endpoints:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - money_fields: JSON key (major units) -> *_cents column
    - choices: closed vocabularies per column
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    money_fields: dict[str, str] = field(default_factory=dict)
    choices: dict[str, tuple[str, ...]] = field(default_factory=dict)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

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

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

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
    Returns a cleaned patch dict keyed by column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols and k not in policy.money_fields:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in policy.money_fields:
            column_key = policy.money_fields[k]
            if raw is None:
                if not cols[column_key].nullable:
                    raise ValidationError(f"{k} cannot be null")
                patch[column_key] = None
                continue
            patch[column_key] = to_cents(raw, k)
            continue

        col = cols[k]

        # NULL handling
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

        if k in policy.choices and isinstance(val, str):
            val = val.lower()
            if val not in policy.choices[k]:
                raise ValidationError(f"{k} must be one of: {', '.join(policy.choices[k])}")

        patch[k] = val

    return patch


ITEM_POLICY = ModelValidationPolicy(
    writable_fields={
        "item_name", "category", "unit_type", "bundle_count", "stock_type",
        "quantity_available", "purchase_price", "selling_price", "party_id",
    },
    required_on_create={"item_name", "category", "unit_type", "purchase_price", "selling_price"},
    money_fields={
        "purchase_price": "purchase_price_cents",
        "selling_price": "selling_price_cents",
    },
    choices={
        "category": ITEM_CATEGORIES,
        "unit_type": UNIT_TYPES,
        "stock_type": STOCK_TYPES,
    },
)

PARTY_POLICY = ModelValidationPolicy(
    writable_fields={
        "party_name", "party_type", "phone_number", "state", "city", "gst_number", "address",
    },
    required_on_create={"party_name", "party_type", "phone_number", "state", "city", "address"},
    choices={"party_type": PARTY_TYPES},
)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"customer_name", "phone", "email", "address", "notes"},
    required_on_create={"customer_name", "phone"},
)


def enforce_rules_item(patch: dict, *, creating: bool) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "bundle_count" in patch and patch["bundle_count"] is not None:
        if patch["bundle_count"] < 1:
            raise ValidationError("bundle_count must be >= 1")

    if "quantity_available" in patch:
        if not creating:
            raise ValidationError("quantity_available can only change through stock adjustments or invoices")
        if patch["quantity_available"] is None or patch["quantity_available"] < 0:
            raise ValidationError("quantity_available must be >= 0")

    if "party_id" in patch and patch["party_id"] is not None and patch["party_id"] < 1:
        raise ValidationError("party_id must be a positive integer")


def enforce_rules_party(patch: dict) -> None:
    phone = patch.get("phone_number")
    if phone is not None and not any(ch.isdigit() for ch in phone):
        raise ValidationError("phone_number must contain digits")


def enforce_rules_customer(patch: dict) -> None:
    phone = patch.get("phone")
    if phone is not None and not any(ch.isdigit() for ch in phone):
        raise ValidationError("phone must contain digits")

    email = patch.get("email")
    if email and "@" not in email:
        raise ValidationError("email must be a valid address")
