# Overview: ORM event listeners that keep audit rows append-only.

"""
Stock history and ledger settlements are audit trails: once flushed they are
never rewritten. Corrections append new rows (a compensating stock change, a
new settlement) instead.

Protected rows:
- StockHistoryEntry: no update, no delete.
- LedgerSettlement: no update; deleted only together with its parent
  LedgerEntry (invoice deletion removes the entry and its settlements).

Listeners fire before the SQL is emitted, so a violation aborts the flush and
the surrounding transaction rolls back.
"""

from __future__ import annotations

import logging

from sqlalchemy import event
from sqlalchemy.orm import object_session

from .errors import ImmutabilityViolationError

logger = logging.getLogger(__name__)


def _block_stock_history_update(mapper, connection, target):
    logger.error("Blocked update of stock history entry %s", target.id)
    raise ImmutabilityViolationError("StockHistoryEntry", target.id, "stock history is append-only")


def _block_stock_history_delete(mapper, connection, target):
    logger.error("Blocked delete of stock history entry %s", target.id)
    raise ImmutabilityViolationError("StockHistoryEntry", target.id, "stock history is append-only")


def _block_settlement_update(mapper, connection, target):
    logger.error("Blocked update of ledger settlement %s", target.id)
    raise ImmutabilityViolationError("LedgerSettlement", target.id, "settlements are immutable once recorded")


def _guard_settlement_delete(mapper, connection, target):
    session = object_session(target)
    parent = target.entry
    if session is not None and parent is not None and parent in session.deleted:
        return
    logger.error("Blocked delete of ledger settlement %s outside its entry", target.id)
    raise ImmutabilityViolationError(
        "LedgerSettlement", target.id, "settlements are removed only with their ledger entry"
    )


def _listeners():
    from .models import StockHistoryEntry, LedgerSettlement

    return [
        (StockHistoryEntry, "before_update", _block_stock_history_update),
        (StockHistoryEntry, "before_delete", _block_stock_history_delete),
        (LedgerSettlement, "before_update", _block_settlement_update),
        (LedgerSettlement, "before_delete", _guard_settlement_delete),
    ]


def register_immutability_listeners() -> None:
    """Install the listeners. Safe to call more than once."""
    for model, name, fn in _listeners():
        if not event.contains(model, name, fn):
            event.listen(model, name, fn)
