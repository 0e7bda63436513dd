# Overview: Service-layer operations for parties; running balances and invoice references.

"""
Party accounts.

balance_cents is a signed running total with no floor or ceiling. The
invoice engine adds an invoice's total when it is applied and subtracts it
when the invoice is reversed.

NOTE: the total is added for purchase and sale invoices alike, so the
balance mixes "owed to us" and "owed by us". This is the shop's established
behaviour and the ledger, not the party balance, is the source of truth for
receivables/payables. Do not flip the sign by invoice type without a data
migration for existing balances.
"""

import logging

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Party, PartyTransaction, LedgerEntry, Invoice, InventoryItem
from .concurrency import lock_for_update, run_atomic

logger = logging.getLogger(__name__)


def load_party(party_id: int, *, lock: bool = False) -> Party | None:
    query = db.session.query(Party).filter_by(id=party_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def get_party(party_id: int) -> Party:
    party = load_party(party_id)
    if party is None:
        raise NotFoundError("Party not found")
    return party


def list_parties(*, party_type: str | None = None, search: str | None = None) -> list[Party]:
    q = db.session.query(Party)
    if party_type:
        q = q.filter(Party.party_type == party_type)
    if search:
        q = q.filter(Party.party_name.ilike(f"%{search.strip()}%"))
    return q.order_by(Party.party_name.asc(), Party.id.asc()).all()


# =============================================================================
# ENGINE PRIMITIVES (called inside the invoice transaction; never commit)
# =============================================================================

def add_transaction_reference(party: Party, invoice_id: int) -> None:
    """Append invoice_id to the party's transaction list unless already present."""
    if invoice_id in party.transaction_ids:
        return
    party.transaction_refs.append(PartyTransaction(invoice_id=invoice_id))


def remove_transaction_reference(party: Party, invoice_id: int) -> None:
    for ref in list(party.transaction_refs):
        if ref.invoice_id == invoice_id:
            party.transaction_refs.remove(ref)


def apply_invoice_to_party(party: Party, invoice_id: int, total_cents: int) -> None:
    party.balance_cents = (party.balance_cents or 0) + total_cents
    add_transaction_reference(party, invoice_id)


def reverse_invoice_from_party(party: Party, total_cents: int, *, invoice_id: int | None = None) -> None:
    """
    Subtract an invoice total from the balance.

    When invoice_id is given the reference is also dropped from the party's
    transaction list (invoice deleted or moved to another party).
    """
    party.balance_cents = (party.balance_cents or 0) - total_cents
    if invoice_id is not None:
        remove_transaction_reference(party, invoice_id)


# =============================================================================
# CRUD
# =============================================================================

def create_party(patch: dict) -> Party:
    def _op():
        party = Party(**patch, balance_cents=0)
        db.session.add(party)
        db.session.flush()
        return party

    party = run_atomic(_op, description="Creating party")
    logger.info("Created party %s (%s, %s)", party.id, party.party_name, party.party_type)
    return party


def update_party(party_id: int, patch: dict) -> Party:
    def _op():
        party = load_party(party_id, lock=True)
        if party is None:
            raise NotFoundError("Party not found")
        for key, value in patch.items():
            setattr(party, key, value)
        return party

    return run_atomic(_op, description="Updating party")


def delete_party(party_id: int) -> None:
    """Delete a party that no invoice or ledger entry refers to."""
    def _op():
        party = load_party(party_id, lock=True)
        if party is None:
            raise NotFoundError("Party not found")

        has_invoices = db.session.query(Invoice.id).filter_by(party_id=party_id).first() is not None
        has_entries = db.session.query(LedgerEntry.id).filter_by(party_id=party_id).first() is not None
        if party.transaction_refs or has_invoices or has_entries:
            raise ValidationError("Party has invoices or ledger entries and cannot be deleted")

        # Items keep their stock; they just lose the usual-supplier link
        for item in db.session.query(InventoryItem).filter_by(party_id=party_id).all():
            item.party_id = None

        db.session.delete(party)

    run_atomic(_op, description="Deleting party")
    logger.info("Deleted party %s", party_id)
