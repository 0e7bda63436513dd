# Overview: Service-layer operations for the receivable/payable ledger.

"""
Receivable/payable ledger.

One LedgerEntry per invoice (receivable for sales, payable for purchases)
plus optional manual entries with no invoice. An entry's amounts always
satisfy settled + balance == original, and its status is derived from them:

    settled  iff balance == 0
    pending  iff settled == 0
    partial  otherwise

The invoice engine calls the *_for_invoice primitives inside its own
transaction; they never commit. Settlements are appended only by
settlement_service.
"""

import logging

from sqlalchemy import func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import LedgerEntry, Invoice, Party, Customer
from ..money import from_cents
from ..schemas import ManualLedgerEntryInput
from .concurrency import lock_for_update, run_atomic

logger = logging.getLogger(__name__)

OPEN_STATUSES = ("pending", "partial")


def derive_status(settled_cents: int, balance_cents: int) -> str:
    if balance_cents == 0:
        return "settled"
    if settled_cents == 0:
        return "pending"
    return "partial"


def transaction_type_for(invoice_type: str) -> str:
    return "receivable" if invoice_type == "sale" else "payable"


def describe_invoice(invoice: Invoice, party: Party) -> str:
    direction = "Sale to" if invoice.invoice_type == "sale" else "Purchase from"
    return f"Invoice #{invoice.invoice_number} - {direction} {party.party_name}"


def set_amounts(entry: LedgerEntry, *, original_cents: int, balance_cents: int) -> None:
    """Write the amounts and re-derive status. The only writer of entry.status."""
    settled = original_cents - balance_cents
    if balance_cents < 0 or settled < 0:
        raise ValidationError("Ledger balance must be between 0 and the original amount")
    entry.original_cents = original_cents
    entry.balance_cents = balance_cents
    entry.settled_cents = settled
    entry.status = derive_status(settled, balance_cents)


def load_entry(entry_id: int, *, lock: bool = False) -> LedgerEntry | None:
    query = db.session.query(LedgerEntry).filter_by(id=entry_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def find_entry_for_invoice(invoice_id: int, *, lock: bool = False) -> LedgerEntry | None:
    query = db.session.query(LedgerEntry).filter_by(invoice_id=invoice_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


# =============================================================================
# ENGINE PRIMITIVES
# =============================================================================

def create_entry_for_invoice(invoice: Invoice, party: Party) -> LedgerEntry:
    entry = LedgerEntry(
        party_id=party.id,
        customer_id=invoice.customer_id,
        invoice_id=invoice.id,
        transaction_type=transaction_type_for(invoice.invoice_type),
        description=describe_invoice(invoice, party),
    )
    set_amounts(entry, original_cents=invoice.total_cents, balance_cents=invoice.balance_cents)
    db.session.add(entry)
    return entry


def sync_entry_with_invoice(invoice: Invoice, party: Party) -> LedgerEntry | None:
    """
    Bring an existing entry in line with an updated invoice.

    Returns None when the invoice has no entry; one is not created here.
    """
    entry = find_entry_for_invoice(invoice.id, lock=True)
    if entry is None:
        logger.warning("Invoice %s has no ledger entry; skipping ledger sync", invoice.id)
        return None

    entry.party_id = party.id
    entry.customer_id = invoice.customer_id
    entry.transaction_type = transaction_type_for(invoice.invoice_type)
    entry.description = describe_invoice(invoice, party)
    set_amounts(entry, original_cents=invoice.total_cents, balance_cents=invoice.balance_cents)
    return entry


def delete_entry_for_invoice(invoice_id: int) -> bool:
    entry = find_entry_for_invoice(invoice_id, lock=True)
    if entry is None:
        return False
    db.session.delete(entry)
    return True


# =============================================================================
# QUERIES / MANUAL ENTRIES
# =============================================================================

def get_entry(entry_id: int) -> LedgerEntry:
    entry = load_entry(entry_id)
    if entry is None:
        raise NotFoundError("Ledger entry not found")
    return entry


def list_entries(
    *,
    transaction_type: str | None = None,
    status: str | None = None,
    party_id: int | None = None,
    customer_id: int | None = None,
) -> list[LedgerEntry]:
    q = db.session.query(LedgerEntry)
    if transaction_type:
        q = q.filter(LedgerEntry.transaction_type == transaction_type)
    if status:
        q = q.filter(LedgerEntry.status == status)
    if party_id is not None:
        q = q.filter(LedgerEntry.party_id == party_id)
    if customer_id is not None:
        q = q.filter(LedgerEntry.customer_id == customer_id)
    return q.order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc()).all()


def create_manual_entry(data: ManualLedgerEntryInput) -> LedgerEntry:
    def _op():
        if db.session.query(Party.id).filter_by(id=data.party_id).first() is None:
            raise ValidationError("party_id does not reference an existing party")
        if data.customer_id is not None and db.session.get(Customer, data.customer_id) is None:
            raise ValidationError("customer_id does not reference an existing customer")

        entry = LedgerEntry(
            party_id=data.party_id,
            customer_id=data.customer_id,
            invoice_id=None,
            transaction_type=data.transaction_type,
            description=data.description,
        )
        set_amounts(
            entry,
            original_cents=data.original_cents,
            balance_cents=data.original_cents - data.settled_cents,
        )
        db.session.add(entry)
        db.session.flush()
        return entry

    entry = run_atomic(_op, description="Creating ledger entry")
    logger.info("Created manual %s ledger entry %s for party %s", entry.transaction_type, entry.id, entry.party_id)
    return entry


def delete_manual_entry(entry_id: int) -> None:
    """Remove a manual entry. Invoice entries go away only with their invoice."""
    def _op():
        entry = load_entry(entry_id, lock=True)
        if entry is None:
            raise NotFoundError("Ledger entry not found")
        if entry.invoice_id is not None:
            raise ValidationError("Ledger entries linked to an invoice are removed by deleting the invoice")
        db.session.delete(entry)

    run_atomic(_op, description="Deleting ledger entry")
    logger.info("Deleted ledger entry %s", entry_id)


def get_summary() -> dict:
    """Open receivables and payables with their outstanding totals."""
    def _open(transaction_type: str) -> list[LedgerEntry]:
        return (
            db.session.query(LedgerEntry)
            .filter(
                LedgerEntry.transaction_type == transaction_type,
                LedgerEntry.status.in_(OPEN_STATUSES),
            )
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
            .all()
        )

    receivables = _open("receivable")
    payables = _open("payable")

    def _total(transaction_type: str) -> int:
        value = (
            db.session.query(func.coalesce(func.sum(LedgerEntry.balance_cents), 0))
            .filter(
                LedgerEntry.transaction_type == transaction_type,
                LedgerEntry.status.in_(OPEN_STATUSES),
            )
            .scalar()
        )
        return int(value or 0)

    total_receivable = _total("receivable")
    total_payable = _total("payable")

    return {
        "receivables": [e.to_dict() for e in receivables],
        "payables": [e.to_dict() for e in payables],
        "summary": {
            "total_receivable": from_cents(total_receivable),
            "total_payable": from_cents(total_payable),
            "net_position": from_cents(total_receivable - total_payable),
            "total_receivable_count": len(receivables),
            "total_payable_count": len(payables),
        },
    }
