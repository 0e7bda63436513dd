# Overview: Typed request inputs for the invoice engine, settlements and stock adjustments.

"""
Each operation that moves stock, balances or ledger amounts takes one of these
frozen inputs instead of a raw JSON dict. from_payload() does all shape and
type checking up front, so a bad request is rejected before any transaction
starts. Cross-record checks (does the item exist, is there enough stock) stay
in the services.

JSON amounts are major units; the inputs carry integer cents.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .errors import InvalidSettlementError, ValidationError
from .money import to_cents
from .models.invoices import INVOICE_TYPES, PAYMENT_STATUSES, PAYMENT_MODES
from .models.ledger import TRANSACTION_TYPES, SETTLEMENT_MODES
from .time_utils import parse_iso_datetime, utcnow


def _require_dict(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _int_field(value: Any, field: str, *, minimum: int | None = None) -> int:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        parsed = int(value.strip())
    else:
        raise ValidationError(f"{field} must be an integer")
    if minimum is not None and parsed < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return parsed


def _id_field(value: Any, field: str) -> int:
    return _int_field(value, field, minimum=1)


def _choice(value: Any, field: str, choices: tuple[str, ...]) -> str:
    if not isinstance(value, str) or value.strip().lower() not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")
    return value.strip().lower()


def _text(value: Any, field: str, *, max_len: int, required: bool = False) -> str | None:
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    text = str(value).strip()
    if not text:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if len(text) > max_len:
        raise ValidationError(f"{field} must be at most {max_len} characters")
    return text


def _date(value: Any, field: str) -> datetime:
    if value is None or value == "":
        return utcnow()
    if isinstance(value, datetime):
        return value
    try:
        parsed = parse_iso_datetime(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an ISO-8601 date")
    if parsed is None:
        raise ValidationError(f"{field} must be an ISO-8601 date")
    return parsed


@dataclass(frozen=True)
class InvoiceLineInput:
    item_id: int
    quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    @classmethod
    def from_payload(cls, raw: Any, index: int) -> "InvoiceLineInput":
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        missing = [k for k in ("item_id", "quantity", "price_per_unit") if raw.get(k) is None]
        if missing:
            raise ValidationError(f"items[{index}] missing: {', '.join(missing)}")
        return cls(
            item_id=_id_field(raw["item_id"], f"items[{index}].item_id"),
            quantity=_int_field(raw["quantity"], f"items[{index}].quantity", minimum=1),
            unit_price_cents=to_cents(raw["price_per_unit"], f"items[{index}].price_per_unit"),
        )


def _lines(raw: Any) -> tuple[InvoiceLineInput, ...]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("items must be a non-empty list")
    return tuple(InvoiceLineInput.from_payload(entry, i) for i, entry in enumerate(raw))


def _total(lines: tuple[InvoiceLineInput, ...]) -> int:
    return sum(line.line_total_cents for line in lines)


@dataclass(frozen=True)
class CreateInvoiceInput:
    invoice_number: str
    invoice_date: datetime
    party_id: int
    invoice_type: str
    lines: tuple[InvoiceLineInput, ...]
    payment_status: str = "pending"
    payment_mode: str | None = None
    customer_id: int | None = None
    balance_cents: int | None = None
    notes: str | None = None

    @property
    def total_cents(self) -> int:
        return _total(self.lines)

    @classmethod
    def from_payload(cls, payload: Any) -> "CreateInvoiceInput":
        data = _require_dict(payload)

        missing = [k for k in ("invoice_number", "party_id", "invoice_type", "items") if data.get(k) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        balance = data.get("balance_amount")
        mode = data.get("payment_mode")
        customer = data.get("customer_id")

        return cls(
            invoice_number=_text(data["invoice_number"], "invoice_number", max_len=64, required=True),
            invoice_date=_date(data.get("invoice_date"), "invoice_date"),
            party_id=_id_field(data["party_id"], "party_id"),
            invoice_type=_choice(data["invoice_type"], "invoice_type", INVOICE_TYPES),
            lines=_lines(data["items"]),
            payment_status=_choice(data.get("payment_status") or "pending", "payment_status", PAYMENT_STATUSES),
            payment_mode=_choice(mode, "payment_mode", PAYMENT_MODES) if mode else None,
            customer_id=_id_field(customer, "customer_id") if customer is not None else None,
            balance_cents=to_cents(balance, "balance_amount") if balance is not None else None,
            notes=_text(data.get("notes"), "notes", max_len=2000),
        )


UPDATABLE_INVOICE_FIELDS = frozenset({
    "invoice_number", "invoice_date", "party_id", "customer_id", "invoice_type",
    "items", "payment_status", "payment_mode", "balance_amount", "notes",
})


@dataclass(frozen=True)
class UpdateInvoiceInput:
    """
    Partial update. `provided` names the JSON keys present in the request so
    an explicit null (clear customer_id) differs from an omitted key.
    """
    provided: frozenset[str]
    invoice_number: str | None = None
    invoice_date: datetime | None = None
    party_id: int | None = None
    customer_id: int | None = None
    invoice_type: str | None = None
    lines: tuple[InvoiceLineInput, ...] | None = None
    payment_status: str | None = None
    payment_mode: str | None = None
    balance_cents: int | None = None
    notes: str | None = None

    def has(self, field: str) -> bool:
        return field in self.provided

    @classmethod
    def from_payload(cls, payload: Any) -> "UpdateInvoiceInput":
        data = _require_dict(payload)

        # Server-owned fields are ignored rather than rejected so clients can
        # PUT back what they GET.
        provided = frozenset(k for k in data if k in UPDATABLE_INVOICE_FIELDS)
        if not provided:
            raise ValidationError("No updatable fields provided")

        for required in ("invoice_number", "party_id", "invoice_type", "items", "payment_status"):
            if required in provided and data[required] in (None, ""):
                raise ValidationError(f"{required} cannot be null")

        kwargs: dict[str, Any] = {"provided": provided}
        if "invoice_number" in provided:
            kwargs["invoice_number"] = _text(data["invoice_number"], "invoice_number", max_len=64, required=True)
        if "invoice_date" in provided:
            kwargs["invoice_date"] = _date(data["invoice_date"], "invoice_date")
        if "party_id" in provided:
            kwargs["party_id"] = _id_field(data["party_id"], "party_id")
        if "customer_id" in provided and data["customer_id"] is not None:
            kwargs["customer_id"] = _id_field(data["customer_id"], "customer_id")
        if "invoice_type" in provided:
            kwargs["invoice_type"] = _choice(data["invoice_type"], "invoice_type", INVOICE_TYPES)
        if "items" in provided:
            kwargs["lines"] = _lines(data["items"])
        if "payment_status" in provided:
            kwargs["payment_status"] = _choice(data["payment_status"], "payment_status", PAYMENT_STATUSES)
        if "payment_mode" in provided and data["payment_mode"]:
            kwargs["payment_mode"] = _choice(data["payment_mode"], "payment_mode", PAYMENT_MODES)
        if "balance_amount" in provided:
            if data["balance_amount"] is None:
                raise ValidationError("balance_amount cannot be null")
            kwargs["balance_cents"] = to_cents(data["balance_amount"], "balance_amount")
        if "notes" in provided:
            kwargs["notes"] = _text(data["notes"], "notes", max_len=2000)
        return cls(**kwargs)


@dataclass(frozen=True)
class SettlementInput:
    amount_cents: int
    mode: str = "cash"
    notes: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "SettlementInput":

        data = _require_dict(payload)
        raw = data.get("amount")
        if raw is None or raw == "" or raw == 0:
            raise InvalidSettlementError("Invalid settlement amount")
        try:
            cents = to_cents(raw, "amount", allow_negative=True)
        except ValidationError:
            raise InvalidSettlementError("Invalid settlement amount")
        if cents <= 0:
            raise InvalidSettlementError("Invalid settlement amount")

        mode = data.get("mode")
        return cls(
            amount_cents=cents,
            mode=_choice(mode, "mode", SETTLEMENT_MODES) if mode else "cash",
            notes=_text(data.get("notes"), "notes", max_len=2000),
        )


@dataclass(frozen=True)
class AdjustStockInput:
    item_id: int
    adjustment: int
    reason: str

    @classmethod
    def from_payload(cls, payload: Any) -> "AdjustStockInput":
        data = _require_dict(payload)
        missing = [k for k in ("item_id", "adjustment", "reason") if data.get(k) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        adjustment = _int_field(data["adjustment"], "adjustment")
        if adjustment == 0:
            raise ValidationError("adjustment must be non-zero")
        return cls(
            item_id=_id_field(data["item_id"], "item_id"),
            adjustment=adjustment,
            reason=_text(data["reason"], "reason", max_len=255, required=True),
        )


@dataclass(frozen=True)
class ManualLedgerEntryInput:
    party_id: int
    transaction_type: str
    original_cents: int
    description: str
    customer_id: int | None = None
    settled_cents: int = 0

    @classmethod
    def from_payload(cls, payload: Any) -> "ManualLedgerEntryInput":
        data = _require_dict(payload)
        missing = [
            k for k in ("party_id", "transaction_type", "original_amount", "description")
            if data.get(k) in (None, "")
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        if data.get("invoice_id") is not None:
            raise ValidationError("Invoice-linked ledger entries are created by the invoice workflow")

        original = to_cents(data["original_amount"], "original_amount")
        if original <= 0:
            raise ValidationError("original_amount must be > 0")
        settled_raw = data.get("settled_amount")
        settled = to_cents(settled_raw, "settled_amount") if settled_raw is not None else 0
        if settled > original:
            raise ValidationError("settled_amount cannot exceed original_amount")

        customer = data.get("customer_id")
        return cls(
            party_id=_id_field(data["party_id"], "party_id"),
            transaction_type=_choice(data["transaction_type"], "transaction_type", TRANSACTION_TYPES),
            original_cents=original,
            description=_text(data["description"], "description", max_len=255, required=True),
            customer_id=_id_field(customer, "customer_id") if customer is not None else None,
            settled_cents=settled,
        )
