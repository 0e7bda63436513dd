# Overview: Service-layer operations for customers, including the purchase profile.

import logging

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Invoice, LedgerEntry
from ..money import from_cents
from ..time_utils import to_utc_z
from .concurrency import run_atomic

logger = logging.getLogger(__name__)

# Lifetime sale totals, in cents, highest tier first
LOYALTY_TIERS = (
    (10_000_000, "Platinum"),
    (5_000_000, "Gold"),
    (2_500_000, "Silver"),
    (1_000_000, "Bronze"),
)
RECENT_INVOICE_LIMIT = 10


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


def list_customers(*, search: str | None = None) -> list[Customer]:
    q = db.session.query(Customer)
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(db.or_(Customer.customer_name.ilike(term), Customer.phone.ilike(term)))
    return q.order_by(Customer.customer_name.asc(), Customer.id.asc()).all()


def create_customer(patch: dict) -> Customer:
    def _op():
        customer = Customer(**patch)
        db.session.add(customer)
        db.session.flush()
        return customer

    customer = run_atomic(_op, description="Creating customer")
    logger.info("Created customer %s", customer.id)
    return customer


def update_customer(customer_id: int, patch: dict) -> Customer:
    def _op():
        customer = db.session.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")
        for key, value in patch.items():
            setattr(customer, key, value)
        return customer

    return run_atomic(_op, description="Updating customer")


def delete_customer(customer_id: int) -> None:
    """Delete a customer that no invoice or ledger entry refers to."""
    def _op():
        customer = db.session.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")

        has_invoices = db.session.query(Invoice.id).filter_by(customer_id=customer_id).first() is not None
        has_entries = db.session.query(LedgerEntry.id).filter_by(customer_id=customer_id).first() is not None
        if has_invoices or has_entries:
            raise ValidationError("Customer has invoices or ledger entries and cannot be deleted")

        db.session.delete(customer)

    run_atomic(_op, description="Deleting customer")
    logger.info("Deleted customer %s", customer_id)


def loyalty_status(total_cents: int) -> str:
    for threshold, tier in LOYALTY_TIERS:
        if total_cents >= threshold:
            return tier
    return "New"


def get_profile(customer_id: int) -> dict:
    """
    Customer record plus purchase analytics.

    Only sale invoices count towards the totals and the per-item breakdown;
    recent_invoices lists the latest invoices of either type.
    """
    customer = get_customer(customer_id)
    invoices = (
        db.session.query(Invoice)
        .filter_by(customer_id=customer_id)
        .order_by(Invoice.invoice_date.desc(), Invoice.id.desc())
        .all()
    )
    sales = [inv for inv in invoices if inv.invoice_type == "sale"]
    total_cents = sum(inv.total_cents for inv in sales)

    products: dict[int, dict] = {}
    for invoice in sales:
        for line in invoice.lines:
            row = products.get(line.item_id)
            if row is None:
                item = line.item
                row = products[line.item_id] = {
                    "item_id": line.item_id,
                    "item_name": item.item_name if item else "Unknown",
                    "category": item.category if item else "unknown",
                    "total_quantity": 0,
                    "total_cents": 0,
                }
            row["total_quantity"] += line.quantity
            row["total_cents"] += line.line_total_cents

    return {
        "customer": customer.to_dict(),
        "analytics": {
            "total_purchase_amount": from_cents(total_cents),
            "total_invoices": len(sales),
            "last_purchase_date": to_utc_z(sales[0].invoice_date) if sales else None,
            "customer_since": to_utc_z(customer.created_at),
            "loyalty_status": loyalty_status(total_cents),
            "products_purchased": [
                {
                    "item_id": row["item_id"],
                    "item_name": row["item_name"],
                    "category": row["category"],
                    "total_quantity": row["total_quantity"],
                    "total_amount": from_cents(row["total_cents"]),
                }
                for row in products.values()
            ],
        },
        "recent_invoices": [inv.to_dict() for inv in invoices[:RECENT_INVOICE_LIMIT]],
    }
