# Overview: Pytest coverage for inventory items, stock adjustments and stock history.

import pytest

from shopkeep.extensions import db
from shopkeep.models import InventoryItem, StockHistoryEntry


ITEM_BODY = {
    "item_name": "Brake Cable",
    "category": "spare_part",
    "unit_type": "pair",
    "bundle_count": 2,
    "stock_type": "loose",
    "quantity_available": 4,
    "purchase_price": 35,
    "selling_price": "55.50",
}


class TestItems:

    def test_create_records_opening_stock(self, client, manager_headers):
        resp = client.post("/api/inventory", json=ITEM_BODY, headers=manager_headers)
        assert resp.status_code == 201
        item = resp.json
        assert item["quantity_available"] == 4
        assert item["selling_price"] == 55.5
        assert item["is_active"] is True

        history = client.get(f"/api/inventory/{item['id']}/history", headers=manager_headers).json
        assert len(history) == 1
        assert history[0]["reason"] == "Initial stock"
        assert (history[0]["change"], history[0]["previous_qty"], history[0]["new_qty"]) == (4, 0, 4)

    def test_create_without_stock_has_no_history(self, client, manager_headers):
        body = {k: v for k, v in ITEM_BODY.items() if k != "quantity_available"}
        item_id = client.post("/api/inventory", json=body, headers=manager_headers).json["id"]
        assert db.session.query(StockHistoryEntry).filter_by(item_id=item_id).count() == 0

    @pytest.mark.parametrize(
        "override,message",
        [
            ({"category": "helmet"}, "category must be one of: bicycle, spare_part"),
            ({"quantity_available": -1}, "quantity_available must be >= 0"),
            ({"bundle_count": 0}, "bundle_count must be >= 1"),
            ({"purchase_price": "ten"}, "purchase_price must be a number"),
            ({"quantity_available": 2.5}, "quantity_available must be an integer, not a decimal"),
            ({"party_id": 999999}, "party_id does not reference an existing party"),
            ({"version_id": 3}, "Field not allowed: version_id"),
        ],
    )
    def test_create_validation(self, client, manager_headers, override, message):
        resp = client.post("/api/inventory", json={**ITEM_BODY, **override}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == message

    def test_missing_required_fields(self, client, manager_headers):
        resp = client.post("/api/inventory", json={"item_name": "Bell"}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["error"].startswith("Missing required fields:")

    def test_update_cannot_write_quantity(self, client, manager_headers, bicycle):
        resp = client.put(f"/api/inventory/{bicycle.id}", json={"quantity_available": 99}, headers=manager_headers)
        assert resp.status_code == 400
        assert db.session.get(InventoryItem, bicycle.id).quantity_available == 10

    def test_update_prices_and_supplier(self, client, manager_headers, bicycle, creditor):
        resp = client.put(
            f"/api/inventory/{bicycle.id}",
            json={"selling_price": 120, "party_id": creditor.id},
            headers=manager_headers,
        )
        assert resp.status_code == 200
        assert resp.json["selling_price"] == 120
        assert resp.json["party"]["party_name"] == "Hero Parts Wholesale"

    def test_deactivate_hides_item(self, client, manager_headers, bicycle, tube):
        assert client.delete(f"/api/inventory/{bicycle.id}", headers=manager_headers).status_code == 204

        names = [i["item_name"] for i in client.get("/api/inventory", headers=manager_headers).json]
        assert names == ["Tube 26x1.5"]

        names = [i["item_name"] for i in client.get("/api/inventory?include_inactive=true", headers=manager_headers).json]
        assert sorted(names) == ["Roadster 26", "Tube 26x1.5"]

        # Soft delete keeps the row and its history
        assert db.session.get(InventoryItem, bicycle.id) is not None

    def test_list_filters(self, client, manager_headers, bicycle, tube):
        spare = client.get("/api/inventory?category=spare_part", headers=manager_headers).json
        assert [i["item_name"] for i in spare] == ["Tube 26x1.5"]

        found = client.get("/api/inventory?search=road", headers=manager_headers).json
        assert [i["item_name"] for i in found] == ["Roadster 26"]

        assert client.get("/api/inventory?category=helmet", headers=manager_headers).status_code == 400

    def test_unknown_item(self, client, manager_headers):
        assert client.get("/api/inventory/999999", headers=manager_headers).status_code == 404
        assert client.get("/api/inventory/999999/history", headers=manager_headers).status_code == 404


class TestAdjustments:

    def test_positive_and_negative_adjustments(self, client, manager_headers, bicycle):
        resp = client.post("/api/inventory/adjust", json={
            "item_id": bicycle.id, "adjustment": 5, "reason": "Stock count"
        }, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json["quantity_available"] == 15

        resp = client.post("/api/inventory/adjust", json={
            "item_id": bicycle.id, "adjustment": -2, "reason": "Damaged in transit"
        }, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json["quantity_available"] == 13

        history = client.get(f"/api/inventory/{bicycle.id}/history", headers=manager_headers).json
        assert [h["reason"] for h in history[:2]] == ["Damaged in transit", "Stock count"]
        assert (history[0]["previous_qty"], history[0]["new_qty"]) == (15, 13)

    def test_adjustment_below_zero_rejected(self, client, manager_headers, bicycle):
        resp = client.post("/api/inventory/adjust", json={
            "item_id": bicycle.id, "adjustment": -11, "reason": "Theft"
        }, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Insufficient stock for Roadster 26. Available: 10, Required: 11"
        assert db.session.get(InventoryItem, bicycle.id).quantity_available == 10
        assert db.session.query(StockHistoryEntry).filter_by(item_id=bicycle.id).count() == 1

    @pytest.mark.parametrize(
        "body,message",
        [
            ({"adjustment": 0, "reason": "x"}, "adjustment must be non-zero"),
            ({"adjustment": 1}, "Missing required fields: reason"),
            ({"adjustment": "1.5", "reason": "x"}, "adjustment must be an integer"),
        ],
    )
    def test_invalid_adjustment(self, client, manager_headers, bicycle, body, message):
        resp = client.post("/api/inventory/adjust", json={"item_id": bicycle.id, **body}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == message

    def test_unknown_item(self, client, manager_headers):
        resp = client.post("/api/inventory/adjust", json={
            "item_id": 999999, "adjustment": 1, "reason": "Found one"
        }, headers=manager_headers)
        assert resp.status_code == 404
