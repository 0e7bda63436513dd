from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from shopkeep.time_utils import to_utc_z

INVOICE_TYPES = ("purchase", "sale")
PAYMENT_STATUSES = ("pending", "partial", "paid")
PAYMENT_MODES = ("cash", "online", "both")


class Invoice(db.Model):
    """
    Purchase or sale invoice.

    Created, updated and deleted only through invoice_service, which keeps
    stock, party balance and the linked LedgerEntry in step within one
    transaction. After creation balance_cents mirrors the ledger entry.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        db.Index("ix_invoices_party_date", "party_id", "invoice_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    invoice_number = db.Column(db.String(64), nullable=False)
    invoice_date = db.Column(db.DateTime(timezone=True), nullable=False)

    party_id = db.Column(db.Integer, db.ForeignKey("parties.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    invoice_type = db.Column(db.String(16), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default="pending")
    payment_mode = db.Column(db.String(16), nullable=True)

    total_cents = db.Column(db.Integer, nullable=False)
    balance_cents = db.Column(db.Integer, nullable=False)

    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    party = db.relationship("Party", foreign_keys=[party_id])
    customer = db.relationship("Customer", foreign_keys=[customer_id])
    lines = db.relationship(
        "InvoiceLine",
        order_by="InvoiceLine.position",
        cascade="all, delete-orphan",
        back_populates="invoice",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<Invoice id={self.id} number={self.invoice_number!r} "
            f"type={self.invoice_type} total_cents={self.total_cents}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "invoice_date": to_utc_z(self.invoice_date),
            "party_id": self.party_id,
            "party": self.party.to_summary() if self.party else None,
            "customer_id": self.customer_id,
            "customer": self.customer.to_summary() if self.customer else None,
            "items": [line.to_dict() for line in self.lines],
            "invoice_type": self.invoice_type,
            "payment_status": self.payment_status,
            "payment_mode": self.payment_mode,
            "total_amount": from_cents(self.total_cents),
            "balance_amount": from_cents(self.balance_cents),
            "notes": self.notes,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InvoiceLine(db.Model):
    """One line item; line_total_cents = quantity * unit_price_cents."""
    __tablename__ = "invoice_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_invoice_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)

    # No FK constraint: reversal must tolerate items that no longer exist
    item_id = db.Column(db.Integer, nullable=False, index=True)

    position = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    invoice = db.relationship("Invoice", back_populates="lines")
    item = db.relationship(
        "InventoryItem",
        primaryjoin="foreign(InvoiceLine.item_id) == InventoryItem.id",
        viewonly=True,
    )

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "item": self.item.to_summary() if self.item else None,
            "quantity": self.quantity,
            "price_per_unit": from_cents(self.unit_price_cents),
            "total_amount": from_cents(self.line_total_cents),
        }
