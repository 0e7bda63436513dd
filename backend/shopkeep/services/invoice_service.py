# Overview: Service-layer operations for invoices; keeps stock, party balances and the ledger in step.

# backend/shopkeep/services/invoice_service.py
"""
Invoice transaction engine.

Creating, updating or deleting an invoice touches four records: item stock
(plus stock history), the party's balance and transaction list, the invoice
itself and its ledger entry. Each operation runs inside one session
transaction via run_atomic(): either every write commits or none does.

Create:
    forward stock per line -> party balance += total -> invoice -> ledger entry

Update (the original invoice is undone first, in the same transaction):
    reverse original stock -> party balance -= original total
    -> apply patch -> forward stock with new lines/type
    -> (new) party balance += new total -> sync existing ledger entry

Delete:
    reverse stock -> party balance -= total, drop reference
    -> delete ledger entry -> delete invoice

Stock direction: purchase adds, sale removes. Reversal applies the opposite
sign. On create and delete a step that would take an item below zero raises
InsufficientStockError. Update may pass through negative quantities and
checks only where each item ends up. Items missing at reversal time are
skipped; items missing or inactive on the forward path are rejected.

Conflicts with concurrent writers surface as ConflictError; they are not
retried here.
"""

import logging

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Invoice, InvoiceLine, Customer
from ..schemas import CreateInvoiceInput, UpdateInvoiceInput, InvoiceLineInput
from . import inventory_service, party_service, ledger_service
from .concurrency import lock_for_update, run_atomic

logger = logging.getLogger(__name__)


# =============================================================================
# HELPERS
# =============================================================================

def _status_for_balance(balance_cents: int, total_cents: int) -> str:
    if balance_cents == 0:
        return "paid"
    if balance_cents == total_cents:
        return "pending"
    return "partial"


def resolve_payment_state(total_cents: int, payment_status: str, balance_cents: int | None) -> tuple[str, int]:
    """
    Work out (payment_status, balance_cents) for a new invoice.

    Without an explicit balance: paid -> 0, pending -> total, and partial is
    rejected because the outstanding amount is unknown. An explicit balance
    must lie within [0, total] and agree with the given status.
    """
    if balance_cents is None:
        if payment_status == "paid":
            return "paid", 0
        if payment_status == "pending":
            return "pending", total_cents
        raise ValidationError("balance_amount is required when payment_status is partial")

    if balance_cents > total_cents:
        raise ValidationError("balance_amount cannot exceed total_amount")

    expected = _status_for_balance(balance_cents, total_cents)
    if payment_status != expected:
        raise ValidationError(
            f"payment_status '{payment_status}' does not match balance_amount (expected '{expected}')"
        )
    return payment_status, balance_cents


def _check_total(total_cents: int) -> None:
    if total_cents <= 0:
        raise ValidationError("Invoice total must be greater than zero")


def _check_number_free(invoice_number: str, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Invoice.id).filter(Invoice.invoice_number == invoice_number)
    if exclude_id is not None:
        q = q.filter(Invoice.id != exclude_id)
    if q.first() is not None:
        raise ValidationError(f"Invoice number {invoice_number} already exists")


def _lock_party(party_id: int):
    party = party_service.load_party(party_id, lock=True)
    if party is None:
        raise ValidationError(f"Party {party_id} not found")
    return party


def _check_customer(customer_id: int | None) -> None:
    if customer_id is not None and db.session.get(Customer, customer_id) is None:
        raise ValidationError(f"Customer {customer_id} not found")


def _stock_sign(invoice_type: str) -> int:
    return 1 if invoice_type == "purchase" else -1


def _apply_stock(lines, invoice_type: str, reason: str, touched: dict | None = None) -> None:
    """
    Forward stock movement for each line; every item must exist and be active.

    With a `touched` map (item id -> (item, quantity before the operation))
    the per-step check is skipped and the caller runs _check_net_stock().
    """
    sign = _stock_sign(invoice_type)
    for line in lines:
        item = inventory_service.load_item(line.item_id, lock=True)
        if item is None:
            raise ValidationError(f"Inventory item {line.item_id} not found")
        if not item.is_active:
            raise ValidationError(f"Inventory item {item.item_name} is inactive")
        if touched is not None:
            touched.setdefault(item.id, (item, item.quantity_available))
        inventory_service.record_stock_change(
            item, sign * line.quantity, reason, allow_negative=touched is not None
        )


def _reverse_stock(invoice: Invoice, reason: str, touched: dict | None = None) -> None:
    """Undo the stock movement of an invoice's current lines; missing items are skipped."""
    sign = -_stock_sign(invoice.invoice_type)
    for line in invoice.lines:
        item = inventory_service.load_item(line.item_id, lock=True)
        if item is None:
            logger.warning(
                "Invoice %s line references missing item %s; skipping stock reversal",
                invoice.invoice_number, line.item_id,
            )
            continue
        if touched is not None:
            touched.setdefault(item.id, (item, item.quantity_available))
        inventory_service.record_stock_change(
            item, sign * line.quantity, reason, allow_negative=touched is not None
        )


def _check_net_stock(touched: dict) -> None:
    """Every item an update moved must end at zero or above."""
    for item, before in touched.values():
        if item.quantity_available < 0:
            raise InsufficientStockError(
                item.item_name, available=before, required=before - item.quantity_available
            )


def _build_lines(lines: tuple[InvoiceLineInput, ...]) -> list[InvoiceLine]:
    return [
        InvoiceLine(
            item_id=line.item_id,
            position=position,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            line_total_cents=line.line_total_cents,
        )
        for position, line in enumerate(lines)
    ]


def _load_invoice(invoice_id: int, *, lock: bool = False) -> Invoice | None:
    query = db.session.query(Invoice).filter_by(id=invoice_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


# =============================================================================
# READS
# =============================================================================

def invoice_exists(invoice_id: int) -> bool:
    return db.session.query(Invoice.id).filter_by(id=invoice_id).first() is not None


def get_invoice(invoice_id: int) -> Invoice:
    invoice = _load_invoice(invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice not found")
    return invoice


def list_invoices(
    *,
    invoice_type: str | None = None,
    party_id: int | None = None,
    customer_id: int | None = None,
    payment_status: str | None = None,
) -> list[Invoice]:
    q = db.session.query(Invoice)
    if invoice_type:
        q = q.filter(Invoice.invoice_type == invoice_type)
    if party_id is not None:
        q = q.filter(Invoice.party_id == party_id)
    if customer_id is not None:
        q = q.filter(Invoice.customer_id == customer_id)
    if payment_status:
        q = q.filter(Invoice.payment_status == payment_status)
    return q.order_by(Invoice.invoice_date.desc(), Invoice.id.desc()).all()


# =============================================================================
# CREATE
# =============================================================================

def create_invoice(data: CreateInvoiceInput) -> Invoice:
    """
    Create an invoice and fan its effects out to stock, party and ledger.

    Raises ValidationError, InsufficientStockError or ConflictError; on any
    of them nothing has been written.
    """
    total = data.total_cents
    _check_total(total)
    payment_status, balance = resolve_payment_state(total, data.payment_status, data.balance_cents)

    def _op():
        _check_number_free(data.invoice_number)
        party = _lock_party(data.party_id)
        _check_customer(data.customer_id)

        invoice = Invoice(
            invoice_number=data.invoice_number,
            invoice_date=data.invoice_date,
            party_id=party.id,
            customer_id=data.customer_id,
            invoice_type=data.invoice_type,
            payment_status=payment_status,
            payment_mode=data.payment_mode,
            total_cents=total,
            balance_cents=balance,
            notes=data.notes,
        )
        invoice.lines = _build_lines(data.lines)
        db.session.add(invoice)
        db.session.flush()

        _apply_stock(data.lines, data.invoice_type, f"{data.invoice_type} Invoice #{data.invoice_number}")
        party_service.apply_invoice_to_party(party, invoice.id, total)
        ledger_service.create_entry_for_invoice(invoice, party)
        return invoice

    invoice = run_atomic(_op, description=f"Creating invoice {data.invoice_number}")
    logger.info(
        "Created %s invoice %s (id=%s) party=%s total_cents=%s status=%s",
        invoice.invoice_type, invoice.invoice_number, invoice.id,
        invoice.party_id, invoice.total_cents, invoice.payment_status,
    )
    return invoice


# =============================================================================
# UPDATE
# =============================================================================

def _next_payment_state(invoice: Invoice, data: UpdateInvoiceInput, new_total: int) -> tuple[str, int]:
    already_settled = invoice.total_cents - invoice.balance_cents

    if data.has("balance_amount"):
        status = data.payment_status if data.has("payment_status") else _status_for_balance(data.balance_cents, new_total)
        return resolve_payment_state(new_total, status, data.balance_cents)

    if data.has("payment_status"):
        if data.payment_status == "partial":
            balance = new_total - already_settled
            if not 0 < balance < new_total:
                raise ValidationError("balance_amount is required when payment_status is partial")
            return "partial", balance
        return resolve_payment_state(new_total, data.payment_status, None)

    # Keep whatever has already been paid against the invoice
    balance = new_total - already_settled
    if balance < 0:
        raise ValidationError("Invoice total cannot be less than the amount already settled")
    return _status_for_balance(balance, new_total), balance


def update_invoice(invoice_id: int, data: UpdateInvoiceInput) -> Invoice:
    """
    Reverse the stored invoice's effects, apply the patch, re-apply effects.

    All within one transaction. The ledger entry is updated if it exists and
    never created here.
    """
    def _op():
        invoice = _load_invoice(invoice_id, lock=True)
        if invoice is None:
            raise NotFoundError("Invoice not found")

        original_party_id = invoice.party_id
        original_total = invoice.total_cents
        new_party_id = data.party_id if data.has("party_id") else original_party_id
        party_changed = new_party_id != original_party_id

        # 1-2: undo the original invoice
        touched = {}
        _reverse_stock(invoice, f"Reversed {invoice.invoice_type} Invoice #{invoice.invoice_number}", touched)
        original_party = party_service.load_party(original_party_id, lock=True)
        if original_party is not None:
            party_service.reverse_invoice_from_party(
                original_party, original_total,
                invoice_id=invoice.id if party_changed else None,
            )
        else:
            logger.warning("Invoice %s references missing party %s", invoice.invoice_number, original_party_id)

        # 3: apply the patch
        if data.has("invoice_number") and data.invoice_number != invoice.invoice_number:
            _check_number_free(data.invoice_number, exclude_id=invoice.id)
            invoice.invoice_number = data.invoice_number
        if data.has("invoice_date"):
            invoice.invoice_date = data.invoice_date
        if data.has("customer_id"):
            _check_customer(data.customer_id)
            invoice.customer_id = data.customer_id
        if data.has("invoice_type"):
            invoice.invoice_type = data.invoice_type
        if data.has("payment_mode"):
            invoice.payment_mode = data.payment_mode
        if data.has("notes"):
            invoice.notes = data.notes

        new_party = _lock_party(new_party_id)
        invoice.party_id = new_party.id

        if data.lines is not None:
            new_total = sum(line.line_total_cents for line in data.lines)
        else:
            new_total = invoice.total_cents
        _check_total(new_total)

        payment_status, balance = _next_payment_state(invoice, data, new_total)

        if data.lines is not None:
            invoice.lines = _build_lines(data.lines)
        invoice.total_cents = new_total
        invoice.balance_cents = balance
        invoice.payment_status = payment_status
        db.session.flush()

        # 4-5: re-apply with the updated invoice
        _apply_stock(
            invoice.lines, invoice.invoice_type,
            f"Updated {invoice.invoice_type} Invoice #{invoice.invoice_number}", touched,
        )
        _check_net_stock(touched)
        party_service.apply_invoice_to_party(new_party, invoice.id, new_total)

        # 6: mirror into the existing ledger entry, if any
        ledger_service.sync_entry_with_invoice(invoice, new_party)
        return invoice

    invoice = run_atomic(_op, description=f"Updating invoice {invoice_id}")
    logger.info(
        "Updated invoice %s (id=%s) party=%s total_cents=%s balance_cents=%s status=%s",
        invoice.invoice_number, invoice.id, invoice.party_id,
        invoice.total_cents, invoice.balance_cents, invoice.payment_status,
    )
    return invoice


# =============================================================================
# DELETE
# =============================================================================

def delete_invoice(invoice_id: int) -> None:
    """Undo an invoice's stock and balance effects and remove it with its ledger entry."""
    def _op():
        invoice = _load_invoice(invoice_id, lock=True)
        if invoice is None:
            raise NotFoundError("Invoice not found")

        _reverse_stock(invoice, f"Deleted {invoice.invoice_type} Invoice #{invoice.invoice_number}")

        party = party_service.load_party(invoice.party_id, lock=True)
        if party is not None:
            party_service.reverse_invoice_from_party(party, invoice.total_cents, invoice_id=invoice.id)
        else:
            logger.warning("Invoice %s references missing party %s", invoice.invoice_number, invoice.party_id)

        ledger_service.delete_entry_for_invoice(invoice.id)
        # References to the invoice must be gone before its row is
        db.session.flush()

        db.session.delete(invoice)
        return invoice.invoice_number

    number = run_atomic(_op, description=f"Deleting invoice {invoice_id}")
    logger.info("Deleted invoice %s (id=%s)", number, invoice_id)
