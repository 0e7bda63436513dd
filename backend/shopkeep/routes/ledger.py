# Overview: Flask API routes for ledger operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import ShopError
from ..models.ledger import TRANSACTION_TYPES, LEDGER_STATUSES
from ..schemas import ManualLedgerEntryInput, SettlementInput
from ..services import ledger_service, settlement_service
from ..decorators import require_auth, require_permission

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("")
@require_auth
@require_permission("VIEW_LEDGER")
def list_ledger_entries_route():
    transaction_type = request.args.get("transaction_type")
    if transaction_type and transaction_type not in TRANSACTION_TYPES:
        return jsonify({"error": f"transaction_type must be one of: {', '.join(TRANSACTION_TYPES)}"}), 400

    status = request.args.get("status")
    if status and status not in LEDGER_STATUSES:
        return jsonify({"error": f"status must be one of: {', '.join(LEDGER_STATUSES)}"}), 400

    entries = ledger_service.list_entries(
        transaction_type=transaction_type,
        status=status,
        party_id=request.args.get("party_id", type=int),
        customer_id=request.args.get("customer_id", type=int),
    )
    return jsonify([e.to_dict() for e in entries]), 200


@ledger_bp.get("/summary")
@require_auth
@require_permission("VIEW_LEDGER")
def ledger_summary_route():
    """Open receivables and payables with totals and net position."""
    return jsonify(ledger_service.get_summary()), 200


@ledger_bp.get("/<int:entry_id>")
@require_auth
@require_permission("VIEW_LEDGER")
def get_ledger_entry_route(entry_id: int):
    try:
        return jsonify(ledger_service.get_entry(entry_id).to_dict()), 200
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code


@ledger_bp.post("")
@require_auth
@require_permission("MANAGE_LEDGER")
def create_ledger_entry_route():
    """
    Create a manual ledger entry (opening balances, adjustments).

    Invoice entries are created by the invoice workflow and are rejected here.
    """
    try:
        data = ManualLedgerEntryInput.from_payload(request.get_json(silent=True))
        entry = ledger_service.create_manual_entry(data)
        return jsonify(entry.to_dict()), 201
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create ledger entry")
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.post("/<int:entry_id>/settlement")
@require_auth
@require_permission("RECORD_SETTLEMENT")
def add_settlement_route(entry_id: int):
    """
    Record a payment against a ledger entry.

    Request body:
    {
        "amount": 150,
        "mode": "cash",      (optional: cash | online | both)
        "notes": "..."       (optional)
    }

    Returns:
        200: Updated ledger entry
        400: Invalid amount, amount exceeds balance, entry already settled
        404: Ledger entry not found
    """
    try:
        data = SettlementInput.from_payload(request.get_json(silent=True))
        entry = settlement_service.add_settlement(entry_id, data)
        return jsonify(entry.to_dict()), 200
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add settlement to ledger entry %s", entry_id)
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.delete("/<int:entry_id>")
@require_auth
@require_permission("DELETE_LEDGER")
def delete_ledger_entry_route(entry_id: int):
    try:
        ledger_service.delete_manual_entry(entry_id)
        return "", 204
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete ledger entry %s", entry_id)
        return jsonify({"error": "Internal server error"}), 500
