from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from shopkeep.time_utils import to_utc_z

TRANSACTION_TYPES = ("receivable", "payable")
LEDGER_STATUSES = ("pending", "partial", "settled")
SETTLEMENT_MODES = ("cash", "online", "both")


class LedgerEntry(db.Model):
    """
    Receivable or payable owed on one invoice (or a manual entry with none).

    Invariants:
    - settled_cents + balance_cents == original_cents
    - status is derived by ledger_service.derive_status() whenever the
      amounts change; nothing assigns it directly.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        db.UniqueConstraint("invoice_id", name="uq_ledger_entries_invoice"),
        db.CheckConstraint("settled_cents >= 0", name="ck_ledger_entries_settled_nonneg"),
        db.CheckConstraint("balance_cents >= 0", name="ck_ledger_entries_balance_nonneg"),
        db.Index("ix_ledger_entries_type_status", "transaction_type", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    party_id = db.Column(db.Integer, db.ForeignKey("parties.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=True)

    transaction_type = db.Column(db.String(16), nullable=False)

    original_cents = db.Column(db.Integer, nullable=False)
    settled_cents = db.Column(db.Integer, nullable=False, default=0)
    balance_cents = db.Column(db.Integer, nullable=False)

    description = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")

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
    invoice = db.relationship("Invoice", foreign_keys=[invoice_id])
    settlements = db.relationship(
        "LedgerSettlement",
        order_by="LedgerSettlement.id",
        cascade="all, delete-orphan",
        back_populates="entry",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry id={self.id} type={self.transaction_type} "
            f"balance_cents={self.balance_cents} status={self.status}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "party_id": self.party_id,
            "party": self.party.to_summary() if self.party else None,
            "customer_id": self.customer_id,
            "customer": self.customer.to_summary() if self.customer else None,
            "invoice_id": self.invoice_id,
            "invoice_number": self.invoice.invoice_number if self.invoice else None,
            "transaction_type": self.transaction_type,
            "original_amount": from_cents(self.original_cents),
            "settled_amount": from_cents(self.settled_cents),
            "balance_amount": from_cents(self.balance_cents),
            "description": self.description,
            "status": self.status,
            "settlements": [s.to_dict() for s in self.settlements],
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class LedgerSettlement(db.Model):
    """One payment applied to a ledger entry. Immutable once written."""
    __tablename__ = "ledger_settlements"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_ledger_settlements_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    entry_id = db.Column(db.Integer, db.ForeignKey("ledger_entries.id"), nullable=False, index=True)

    settled_at = db.Column(db.DateTime(timezone=True), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    mode = db.Column(db.String(16), nullable=False, default="cash")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    entry = db.relationship("LedgerEntry", back_populates="settlements")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.settled_at),
            "amount": from_cents(self.amount_cents),
            "mode": self.mode,
            "notes": self.notes,
        }
