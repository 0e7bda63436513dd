# Overview: Service-layer operations for settlements; applies payments to ledger entries.

"""
Settlement processor.

A settlement is one payment against a ledger entry's outstanding balance.
The entry is updated first and the linked invoice (if any) is then derived
from it:

    invoice.balance_amount = entry.balance_amount
    invoice.payment_status = "paid" if entry settled, "partial" if partial

Both writes happen in the same transaction, so a failure while updating the
invoice also rolls back the ledger change.
"""

import logging

from ..errors import InvalidSettlementError, NotFoundError
from ..extensions import db
from ..models import Invoice, LedgerSettlement
from ..money import from_cents
from ..schemas import SettlementInput
from shopkeep.time_utils import utcnow
from . import ledger_service
from .concurrency import lock_for_update, run_atomic

logger = logging.getLogger(__name__)

INVOICE_STATUS_FOR_ENTRY = {
    "settled": "paid",
    "partial": "partial",
}


def _propagate_to_invoice(entry) -> Invoice | None:
    if entry.invoice_id is None:
        return None
    invoice = lock_for_update(db.session.query(Invoice).filter_by(id=entry.invoice_id)).first()
    if invoice is None:
        logger.warning("Ledger entry %s references missing invoice %s", entry.id, entry.invoice_id)
        return None

    invoice.balance_cents = entry.balance_cents
    new_status = INVOICE_STATUS_FOR_ENTRY.get(entry.status)
    if new_status is not None:
        invoice.payment_status = new_status
    return invoice


def add_settlement(entry_id: int, data: SettlementInput):
    """
    Record a payment against a ledger entry and mirror the result on its invoice.

    Raises NotFoundError for an unknown entry and InvalidSettlementError if
    the entry is already settled or the amount exceeds its balance.
    """
    if data.amount_cents <= 0:
        raise InvalidSettlementError("Invalid settlement amount")

    def _op():
        entry = ledger_service.load_entry(entry_id, lock=True)
        if entry is None:
            raise NotFoundError("Ledger entry not found")
        if entry.status == "settled":
            raise InvalidSettlementError("This entry is already fully settled")
        if data.amount_cents > entry.balance_cents:
            raise InvalidSettlementError(
                f"Settlement amount ({from_cents(data.amount_cents)}) exceeds balance "
                f"({from_cents(entry.balance_cents)})"
            )

        entry.settlements.append(LedgerSettlement(
            settled_at=utcnow(),
            amount_cents=data.amount_cents,
            mode=data.mode,
            notes=data.notes,
        ))
        ledger_service.set_amounts(
            entry,
            original_cents=entry.original_cents,
            balance_cents=entry.balance_cents - data.amount_cents,
        )
        db.session.flush()

        _propagate_to_invoice(entry)
        return entry

    entry = run_atomic(_op, description=f"Settling ledger entry {entry_id}")
    logger.info(
        "Settled %s cents (%s) on ledger entry %s; balance_cents=%s status=%s",
        data.amount_cents, data.mode, entry.id, entry.balance_cents, entry.status,
    )
    return entry
