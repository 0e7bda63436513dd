from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from shopkeep.time_utils import to_utc_z

PARTY_TYPES = ("creditor", "debtor")


class Party(db.Model):
    """
    Supplier (creditor) or trade buyer (debtor) counterparty to invoices.

    balance_cents is a signed running total with no floor or ceiling. It is
    moved only by the invoice engine through party_service.
    """
    __tablename__ = "parties"
    __table_args__ = (
        db.Index("ix_parties_name", "party_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    party_name = db.Column(db.String(200), nullable=False)
    party_type = db.Column(db.String(16), nullable=False)
    phone_number = db.Column(db.String(32), nullable=False)
    state = db.Column(db.String(100), nullable=False)
    city = db.Column(db.String(100), nullable=False)
    gst_number = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(500), nullable=False)

    balance_cents = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    transaction_refs = db.relationship(
        "PartyTransaction",
        order_by="PartyTransaction.id",
        cascade="all, delete-orphan",
        back_populates="party",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Party id={self.id} name={self.party_name!r} balance_cents={self.balance_cents}>"

    @property
    def transaction_ids(self) -> list[int]:
        return [ref.invoice_id for ref in self.transaction_refs]

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "party_name": self.party_name,
            "party_type": self.party_type,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "party_name": self.party_name,
            "party_type": self.party_type,
            "phone_number": self.phone_number,
            "state": self.state,
            "city": self.city,
            "gst_number": self.gst_number,
            "address": self.address,
            "balance_amount": from_cents(self.balance_cents),
            "transactions": self.transaction_ids,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PartyTransaction(db.Model):
    """Ordered, unique membership of an invoice in a party's transaction list."""
    __tablename__ = "party_transactions"
    __table_args__ = (
        db.UniqueConstraint("party_id", "invoice_id", name="uq_party_transactions_party_invoice"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    party_id = db.Column(db.Integer, db.ForeignKey("parties.id"), nullable=False, index=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    party = db.relationship("Party", back_populates="transaction_refs")


class Customer(db.Model):
    """End-retail buyer, tracked separately from parties."""
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_phone", "phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_name = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(500), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_summary(self) -> dict:
        return {"id": self.id, "customer_name": self.customer_name, "phone": self.phone}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
