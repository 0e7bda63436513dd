# Overview: Pytest coverage for amount parsing and typed request inputs.

import pytest

from shopkeep.errors import InvalidSettlementError, ValidationError
from shopkeep.money import from_cents, to_cents
from shopkeep.schemas import (
    AdjustStockInput,
    CreateInvoiceInput,
    ManualLedgerEntryInput,
    SettlementInput,
    UpdateInvoiceInput,
)
from shopkeep.services.invoice_service import resolve_payment_state


class TestMoney:

    @pytest.mark.parametrize(
        "value,cents",
        [
            (300, 30000),
            (0.1, 10),
            ("1,234.50", 123450),
            ("19.999", 2000),
            (" 7 ", 700),
        ],
    )
    def test_to_cents(self, value, cents):
        assert to_cents(value, "amount") == cents

    @pytest.mark.parametrize("value", [None, True, "abc", "", "nan", "inf", 10**12])
    def test_to_cents_rejects(self, value):
        with pytest.raises(ValidationError):
            to_cents(value, "amount")

    def test_negative_needs_opt_in(self):
        with pytest.raises(ValidationError, match="amount must be >= 0"):
            to_cents(-1, "amount")
        assert to_cents(-1, "amount", allow_negative=True) == -100

    def test_from_cents(self):
        assert from_cents(12345) == 123.45
        assert from_cents(None) is None


class TestCreateInvoiceInput:

    def _payload(self, **extra):
        payload = {
            "invoice_number": " INV-7 ",
            "party_id": "3",
            "invoice_type": "Sale",
            "items": [
                {"item_id": 1, "quantity": 2, "price_per_unit": 99.99},
                {"item_id": 2, "quantity": 1, "price_per_unit": "0.02"},
            ],
        }
        payload.update(extra)
        return payload

    def test_normalizes_and_totals(self):
        data = CreateInvoiceInput.from_payload(self._payload())
        assert data.invoice_number == "INV-7"
        assert data.party_id == 3
        assert data.invoice_type == "sale"
        assert data.payment_status == "pending"
        assert data.total_cents == 2 * 9999 + 2
        assert data.lines[0].line_total_cents == 19998

    def test_invoice_date_parsed(self):
        data = CreateInvoiceInput.from_payload(self._payload(invoice_date="2026-03-01T10:30:00+05:30"))
        assert (data.invoice_date.hour, data.invoice_date.minute) == (5, 0)

    @pytest.mark.parametrize(
        "extra",
        [
            {"party_id": 0},
            {"party_id": True},
            {"items": "nope"},
            {"items": [{"item_id": 1, "quantity": 1}]},
            {"payment_mode": "card"},
            {"invoice_date": "yesterday"},
        ],
    )
    def test_rejects(self, extra):
        with pytest.raises(ValidationError):
            CreateInvoiceInput.from_payload(self._payload(**extra))

    def test_rejects_non_object(self):
        with pytest.raises(ValidationError, match="Invalid JSON payload"):
            CreateInvoiceInput.from_payload(["not", "a", "dict"])


class TestUpdateInvoiceInput:

    def test_tracks_provided_keys(self):
        data = UpdateInvoiceInput.from_payload({"customer_id": None, "notes": "x", "id": 5})
        assert data.provided == frozenset({"customer_id", "notes"})
        assert data.has("customer_id")
        assert data.customer_id is None
        assert not data.has("balance_amount")

    def test_payment_fields(self):
        data = UpdateInvoiceInput.from_payload({"payment_status": "paid", "balance_amount": 0})
        assert data.has("payment_status")
        assert data.balance_cents == 0

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"total_amount": 10},
            {"party_id": None},
            {"balance_amount": None},
            {"items": []},
        ],
    )
    def test_rejects(self, payload):
        with pytest.raises(ValidationError):
            UpdateInvoiceInput.from_payload(payload)


class TestPaymentState:

    @pytest.mark.parametrize(
        "status,balance,expected",
        [
            ("pending", None, ("pending", 30000)),
            ("paid", None, ("paid", 0)),
            ("partial", 1000, ("partial", 1000)),
            ("paid", 0, ("paid", 0)),
        ],
    )
    def test_resolved(self, status, balance, expected):
        assert resolve_payment_state(30000, status, balance) == expected

    @pytest.mark.parametrize(
        "status,balance",
        [
            ("partial", None),
            ("paid", 1000),
            ("pending", 1000),
            ("pending", 40000),
        ],
    )
    def test_inconsistent(self, status, balance):
        with pytest.raises(ValidationError):
            resolve_payment_state(30000, status, balance)


class TestOtherInputs:

    def test_settlement_defaults(self):
        data = SettlementInput.from_payload({"amount": "150.25"})
        assert (data.amount_cents, data.mode, data.notes) == (15025, "cash", None)

    def test_settlement_invalid_is_settlement_error(self):
        with pytest.raises(InvalidSettlementError, match="Invalid settlement amount"):
            SettlementInput.from_payload({"amount": "-1"})

    def test_adjust_stock(self):
        data = AdjustStockInput.from_payload({"item_id": 4, "adjustment": "-3", "reason": " Count "})
        assert (data.item_id, data.adjustment, data.reason) == (4, -3, "Count")

    def test_manual_ledger_entry(self):
        data = ManualLedgerEntryInput.from_payload({
            "party_id": 1,
            "transaction_type": "receivable",
            "original_amount": "250",
            "settled_amount": 50,
            "description": "Old dues",
        })
        assert (data.original_cents, data.settled_cents) == (25000, 5000)
        assert data.customer_id is None
