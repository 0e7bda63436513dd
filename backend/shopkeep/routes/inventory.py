# backend/shopkeep/routes/inventory.py
"""
Inventory management routes.

SECURITY: All routes require authentication.
- View operations require VIEW_INVENTORY permission
- Item create/edit/deactivate require MANAGE_INVENTORY permission
- Stock adjustments require ADJUST_INVENTORY permission

Stock only changes through POST /adjust or the invoice endpoints; item
updates cannot write quantity_available.
"""
from flask import Blueprint, request, jsonify, current_app

from ..errors import ShopError
from ..models import InventoryItem
from ..models.inventory import ITEM_CATEGORIES
from ..schemas import AdjustStockInput
from ..services import inventory_service
from ..validation import ITEM_POLICY, validate_payload, enforce_rules_item
from ..decorators import require_auth, require_permission


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_items_route():
    category = request.args.get("category")
    if category and category not in ITEM_CATEGORIES:
        return jsonify({"error": f"category must be one of: {', '.join(ITEM_CATEGORIES)}"}), 400

    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    items = inventory_service.list_items(
        category=category,
        include_inactive=include_inactive,
        search=request.args.get("search"),
    )
    return jsonify([item.to_dict() for item in items]), 200


@inventory_bp.post("")
@require_auth
@require_permission("MANAGE_INVENTORY")
def create_item_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_POLICY, partial=False)
        enforce_rules_item(patch, creating=True)
        item = inventory_service.create_item(patch)
        return jsonify(item.to_dict()), 201
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/adjust")
@require_auth
@require_permission("ADJUST_INVENTORY")
def adjust_inventory_route():
    """
    Adjust stock outside the invoice flow (counts, damage, corrections).

    Request body: {"item_id": 1, "adjustment": -2, "reason": "Damaged in transit"}

    Returns:
        200: Updated item
        400: Invalid input or the result would be negative
        404: Item not found
    """
    try:
        data = AdjustStockInput.from_payload(request.get_json(silent=True))
        item = inventory_service.adjust_stock(data)
        return jsonify(item.to_dict()), 200
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/<int:item_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_item_route(item_id: int):
    try:
        return jsonify(inventory_service.get_item(item_id).to_dict()), 200
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.put("/<int:item_id>")
@require_auth
@require_permission("MANAGE_INVENTORY")
def update_item_route(item_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_POLICY, partial=True)
        enforce_rules_item(patch, creating=False)
        item = inventory_service.update_item(item_id, patch)
        return jsonify(item.to_dict()), 200
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update inventory item %s", item_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.delete("/<int:item_id>")
@require_auth
@require_permission("MANAGE_INVENTORY")
def deactivate_item_route(item_id: int):
    """Soft delete: the item disappears from listings and new invoices."""
    try:
        inventory_service.deactivate_item(item_id)
        return "", 204
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to deactivate inventory item %s", item_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/<int:item_id>/history")
@require_auth
@require_permission("VIEW_INVENTORY")
def item_history_route(item_id: int):
    limit = request.args.get("limit", default=200, type=int)
    limit = max(1, min(limit, 1000))

    try:
        rows = inventory_service.list_stock_history(item_id, limit=limit)
    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify([r.to_dict() for r in rows]), 200
