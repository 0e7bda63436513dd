# Overview: Service-layer operations for inventory; stock quantities and their audit trail.

# backend/shopkeep/services/inventory_service.py

import logging

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryItem, StockHistoryEntry, Party
from ..schemas import AdjustStockInput
from shopkeep.time_utils import utcnow
from .concurrency import lock_for_update, run_atomic

"""
Inventory invariants (authoritative)

- quantity_available is a stored integer that is never negative.
- Every change goes through record_stock_change(), which writes the new
  quantity and a StockHistoryEntry in the same session, so the two commit or
  roll back together.
- StockHistoryEntry rows are append-only (see immutability.py).
- Items are never hard-deleted: deactivation hides them from new invoices
  while old invoices can still be reversed against them.
"""

logger = logging.getLogger(__name__)


def load_item(item_id: int, *, lock: bool = False) -> InventoryItem | None:
    query = db.session.query(InventoryItem).filter_by(id=item_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def get_item(item_id: int) -> InventoryItem:
    item = load_item(item_id)
    if item is None:
        raise NotFoundError("Inventory item not found")
    return item


def list_items(*, category: str | None = None, include_inactive: bool = False, search: str | None = None) -> list[InventoryItem]:
    q = db.session.query(InventoryItem)
    if not include_inactive:
        q = q.filter(InventoryItem.is_active.is_(True))
    if category:
        q = q.filter(InventoryItem.category == category)
    if search:
        q = q.filter(InventoryItem.item_name.ilike(f"%{search.strip()}%"))
    return q.order_by(InventoryItem.item_name.asc(), InventoryItem.id.asc()).all()


def list_stock_history(item_id: int, *, limit: int = 200) -> list[StockHistoryEntry]:
    get_item(item_id)
    return (
        db.session.query(StockHistoryEntry)
        .filter_by(item_id=item_id)
        .order_by(StockHistoryEntry.occurred_at.desc(), StockHistoryEntry.id.desc())
        .limit(limit)
        .all()
    )


def record_stock_change(
    item: InventoryItem, change: int, reason: str, *, allow_negative: bool = False
) -> StockHistoryEntry:
    """
    Apply a signed quantity change to an item and append its history row.

    Raises InsufficientStockError if the result would be negative; in that
    case nothing is written. allow_negative lets a caller go below zero
    mid-transaction, provided it checks the final quantity itself before
    commit. Does not commit.
    """
    previous = item.quantity_available
    new_qty = previous + change
    if new_qty < 0 and not allow_negative:
        raise InsufficientStockError(item.item_name, available=previous, required=-change)

    item.quantity_available = new_qty
    entry = StockHistoryEntry(
        item_id=item.id,
        change=change,
        reason=reason,
        previous_qty=previous,
        new_qty=new_qty,
        occurred_at=utcnow(),
    )
    db.session.add(entry)
    return entry


def _ensure_party(party_id: int | None) -> None:
    if party_id is None:
        return
    if db.session.query(Party.id).filter_by(id=party_id).first() is None:
        raise ValidationError("party_id does not reference an existing party")


def create_item(patch: dict) -> InventoryItem:
    """Create an item; any opening quantity is recorded as an "Initial stock" change."""
    def _op():
        _ensure_party(patch.get("party_id"))
        opening = patch.pop("quantity_available", 0) or 0
        item = InventoryItem(**patch, quantity_available=0)
        db.session.add(item)
        db.session.flush()
        if opening:
            record_stock_change(item, opening, "Initial stock")
        return item

    item = run_atomic(_op, description="Creating inventory item")
    logger.info("Created inventory item %s (%s) qty=%s", item.id, item.item_name, item.quantity_available)
    return item


def update_item(item_id: int, patch: dict) -> InventoryItem:
    def _op():
        item = load_item(item_id, lock=True)
        if item is None:
            raise NotFoundError("Inventory item not found")
        if "party_id" in patch:
            _ensure_party(patch["party_id"])
        for key, value in patch.items():
            setattr(item, key, value)
        return item

    return run_atomic(_op, description="Updating inventory item")


def deactivate_item(item_id: int) -> InventoryItem:
    def _op():
        item = load_item(item_id, lock=True)
        if item is None:
            raise NotFoundError("Inventory item not found")
        item.is_active = False
        return item

    item = run_atomic(_op, description="Deactivating inventory item")
    logger.info("Deactivated inventory item %s", item.id)
    return item


def adjust_stock(data: AdjustStockInput) -> InventoryItem:
    """
    Direct stock correction outside the invoice flow.

    Negative adjustments may not take the quantity below zero.
    """
    if load_item(data.item_id) is None:
        raise NotFoundError("Inventory item not found")

    def _op():
        item = load_item(data.item_id, lock=True)
        if item is None:
            raise NotFoundError("Inventory item not found")
        record_stock_change(item, data.adjustment, data.reason)
        return item

    item = run_atomic(_op, description="Stock adjustment")
    logger.info("Adjusted item %s by %+d (%s)", item.id, data.adjustment, data.reason)
    return item
