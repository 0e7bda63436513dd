# Overview: Flask API routes for parties and customers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import ShopError
from ..models import Party, Customer
from ..models.parties import PARTY_TYPES
from ..services import party_service, customer_service
from ..validation import (
    PARTY_POLICY,
    CUSTOMER_POLICY,
    validate_payload,
    enforce_rules_party,
    enforce_rules_customer,
)
from ..decorators import require_auth, require_permission


parties_bp = Blueprint("parties", __name__, url_prefix="/api/parties")
customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


# =============================================================================
# PARTIES
# =============================================================================

@parties_bp.get("")
@require_auth
@require_permission("VIEW_PARTIES")
def list_parties_route():
    party_type = request.args.get("party_type")
    if party_type and party_type not in PARTY_TYPES:
        return jsonify({"error": f"party_type must be one of: {', '.join(PARTY_TYPES)}"}), 400
    parties = party_service.list_parties(party_type=party_type, search=request.args.get("search"))
    return jsonify([p.to_dict() for p in parties]), 200


@parties_bp.post("")
@require_auth
@require_permission("MANAGE_PARTIES")
def create_party_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Party, payload=payload, policy=PARTY_POLICY, partial=False)
        enforce_rules_party(patch)
        party = party_service.create_party(patch)
        return jsonify(party.to_dict()), 201
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create party")
        return jsonify({"error": "Internal server error"}), 500


@parties_bp.get("/<int:party_id>")
@require_auth
@require_permission("VIEW_PARTIES")
def get_party_route(party_id: int):
    try:
        return jsonify(party_service.get_party(party_id).to_dict()), 200
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code


@parties_bp.put("/<int:party_id>")
@require_auth
@require_permission("MANAGE_PARTIES")
def update_party_route(party_id: int):
    """Edit contact details. balance_amount and transactions are not writable."""
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Party, payload=payload, policy=PARTY_POLICY, partial=True)
        enforce_rules_party(patch)
        party = party_service.update_party(party_id, patch)
        return jsonify(party.to_dict()), 200
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update party %s", party_id)
        return jsonify({"error": "Internal server error"}), 500


@parties_bp.delete("/<int:party_id>")
@require_auth
@require_permission("MANAGE_PARTIES")
def delete_party_route(party_id: int):
    try:
        party_service.delete_party(party_id)
        return "", 204
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete party %s", party_id)
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# CUSTOMERS
# =============================================================================

@customers_bp.get("")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def list_customers_route():
    customers = customer_service.list_customers(search=request.args.get("search"))
    return jsonify([c.to_dict() for c in customers]), 200


@customers_bp.post("")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        enforce_rules_customer(patch)
        customer = customer_service.create_customer(patch)
        return jsonify(customer.to_dict()), 201
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def get_customer_route(customer_id: int):
    try:
        return jsonify(customer_service.get_customer(customer_id).to_dict()), 200
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        enforce_rules_customer(patch)
        customer = customer_service.update_customer(customer_id, patch)
        return jsonify(customer.to_dict()), 200
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update customer %s", customer_id)
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>/profile")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def get_customer_profile_route(customer_id: int):
    try:
        return jsonify(customer_service.get_profile(customer_id)), 200
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def delete_customer_route(customer_id: int):
    try:
        customer_service.delete_customer(customer_id)
        return "", 204
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete customer %s", customer_id)
        return jsonify({"error": "Internal server error"}), 500
