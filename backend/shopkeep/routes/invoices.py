# Overview: Flask API routes for invoice operations; parses input and returns JSON responses.

# backend/shopkeep/routes/invoices.py
"""
Invoice API routes.

Every write goes through invoice_service, which applies the invoice's stock,
party-balance and ledger effects in one transaction. A failed request leaves
all of them untouched and returns {"error": message}.

SECURITY:
- VIEW_INVOICES for reads
- CREATE_INVOICE / UPDATE_INVOICE / DELETE_INVOICE for writes
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import ShopError
from ..models.invoices import INVOICE_TYPES, PAYMENT_STATUSES
from ..schemas import CreateInvoiceInput, UpdateInvoiceInput
from ..services import invoice_service
from ..decorators import require_auth, require_permission


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
@require_auth
@require_permission("VIEW_INVOICES")
def list_invoices_route():
    invoice_type = request.args.get("invoice_type")
    if invoice_type and invoice_type not in INVOICE_TYPES:
        return jsonify({"error": f"invoice_type must be one of: {', '.join(INVOICE_TYPES)}"}), 400

    payment_status = request.args.get("payment_status")
    if payment_status and payment_status not in PAYMENT_STATUSES:
        return jsonify({"error": f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}"}), 400

    invoices = invoice_service.list_invoices(
        invoice_type=invoice_type,
        party_id=request.args.get("party_id", type=int),
        customer_id=request.args.get("customer_id", type=int),
        payment_status=payment_status,
    )
    return jsonify([inv.to_dict() for inv in invoices]), 200


@invoices_bp.get("/<int:invoice_id>")
@require_auth
@require_permission("VIEW_INVOICES")
def get_invoice_route(invoice_id: int):
    try:
        return jsonify(invoice_service.get_invoice(invoice_id).to_dict()), 200
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code


@invoices_bp.post("")
@require_auth
@require_permission("CREATE_INVOICE")
def create_invoice_route():
    """
    Create an invoice.

    Request body:
    {
        "invoice_number": "INV-1001",
        "invoice_date": "2026-03-01",          (optional, defaults to now)
        "party_id": 1,
        "customer_id": 4,                      (optional)
        "invoice_type": "sale",
        "items": [{"item_id": 1, "quantity": 3, "price_per_unit": 100}],
        "payment_status": "pending",           (optional)
        "payment_mode": "cash",                (optional)
        "balance_amount": 300,                 (optional)
        "notes": "..."                         (optional)
    }

    Returns:
        201: Invoice with party, customer and items resolved
        400: Invalid input, missing reference, insufficient stock, conflict
    """
    try:
        data = CreateInvoiceInput.from_payload(request.get_json(silent=True))
        invoice = invoice_service.create_invoice(data)
        return jsonify(invoice.to_dict()), 201
    except ShopError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.put("/<int:invoice_id>")
@require_auth
@require_permission("UPDATE_INVOICE")
def update_invoice_route(invoice_id: int):
    """
    Update an invoice; its previous effects are reversed first.

    Returns:
        200: Updated invoice
        400: Invalid input, insufficient stock, conflict
        404: Invoice does not exist
    """
    if not invoice_service.invoice_exists(invoice_id):
        return jsonify({"error": "Invoice not found"}), 404

    try:
        data = UpdateInvoiceInput.from_payload(request.get_json(silent=True))
        invoice = invoice_service.update_invoice(invoice_id, data)
        return jsonify(invoice.to_dict()), 200
    except ShopError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to update invoice %s", invoice_id)
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.delete("/<int:invoice_id>")
@require_auth
@require_permission("DELETE_INVOICE")
def delete_invoice_route(invoice_id: int):
    """
    Delete an invoice, reversing its stock and balance effects.

    Returns:
        204: Deleted
        400: Reversal failed (e.g. purchased stock already sold)
        404: Invoice does not exist
    """
    if not invoice_service.invoice_exists(invoice_id):
        return jsonify({"error": "Invoice not found"}), 404

    try:
        invoice_service.delete_invoice(invoice_id)
        return "", 204
    except ShopError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to delete invoice %s", invoice_id)
        return jsonify({"error": "Internal server error"}), 500
