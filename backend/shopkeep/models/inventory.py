from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from shopkeep.time_utils import to_utc_z

ITEM_CATEGORIES = ("bicycle", "spare_part")
UNIT_TYPES = ("piece", "set", "pair", "dozen", "packet")
STOCK_TYPES = ("loose", "fitted")


class InventoryItem(db.Model):
    """
    A stocked item (bicycle or spare part).

    quantity_available is only ever changed through
    inventory_service.record_stock_change(), which refuses negative results
    and writes the matching StockHistoryEntry in the same transaction.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.Index("ix_inventory_items_name", "item_name"),
        db.Index("ix_inventory_items_category_active", "category", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    item_name = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(16), nullable=False)
    unit_type = db.Column(db.String(16), nullable=False)
    bundle_count = db.Column(db.Integer, nullable=False, default=1)
    stock_type = db.Column(db.String(16), nullable=False, default="loose")

    quantity_available = db.Column(db.Integer, nullable=False, default=0)

    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    # Usual supplier
    party_id = db.Column(db.Integer, db.ForeignKey("parties.id"), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    party = db.relationship("Party", foreign_keys=[party_id])
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} name={self.item_name!r} qty={self.quantity_available}>"

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "item_name": self.item_name,
            "category": self.category,
            "unit_type": self.unit_type,
            "selling_price": from_cents(self.selling_price_cents),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_name": self.item_name,
            "category": self.category,
            "unit_type": self.unit_type,
            "bundle_count": self.bundle_count,
            "stock_type": self.stock_type,
            "quantity_available": self.quantity_available,
            "purchase_price": from_cents(self.purchase_price_cents),
            "selling_price": from_cents(self.selling_price_cents),
            "party_id": self.party_id,
            "party": self.party.to_summary() if self.party else None,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockHistoryEntry(db.Model):
    """
    Append-only audit row for one change to an item's quantity.

    Never updated or deleted (see immutability.py). Reversals append a new
    compensating row instead of touching the original.
    """
    __tablename__ = "stock_history"
    __table_args__ = (
        db.Index("ix_stock_history_item_occurred", "item_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    change = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=False)
    previous_qty = db.Column(db.Integer, nullable=False)
    new_qty = db.Column(db.Integer, nullable=False)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("InventoryItem", backref=db.backref("history", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "change": self.change,
            "reason": self.reason,
            "previous_qty": self.previous_qty,
            "new_qty": self.new_qty,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
        }
