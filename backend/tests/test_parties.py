# Overview: Pytest coverage for party and customer records.

import pytest

from shopkeep.extensions import db
from shopkeep.models import Customer, Party, InventoryItem
from shopkeep.services import customer_service


PARTY_BODY = {
    "party_name": "Atlas Distributors",
    "party_type": "creditor",
    "phone_number": "+91 98450 12345",
    "state": "Tamil Nadu",
    "city": "Chennai",
    "gst_number": "33AAACA1234A1Z9",
    "address": "5 Anna Salai",
}


class TestParties:

    def test_create_starts_at_zero_balance(self, client, manager_headers):
        resp = client.post("/api/parties", json=PARTY_BODY, headers=manager_headers)
        assert resp.status_code == 201
        assert resp.json["balance_amount"] == 0
        assert resp.json["transactions"] == []

    @pytest.mark.parametrize(
        "override,message",
        [
            ({"party_type": "vendor"}, "party_type must be one of: creditor, debtor"),
            ({"phone_number": "none"}, "phone_number must contain digits"),
            ({"city": "  "}, "city cannot be blank"),
            ({"balance_amount": 1000}, "Field not allowed: balance_amount"),
        ],
    )
    def test_create_validation(self, client, manager_headers, override, message):
        resp = client.post("/api/parties", json={**PARTY_BODY, **override}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == message

    def test_update_contact_details(self, client, manager_headers, debtor):
        resp = client.put(f"/api/parties/{debtor.id}", json={"city": "Bengaluru"}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json["city"] == "Bengaluru"

    def test_balance_not_writable(self, client, manager_headers, debtor):
        resp = client.put(f"/api/parties/{debtor.id}", json={"transactions": [1]}, headers=manager_headers)
        assert resp.status_code == 400
        assert db.session.get(Party, debtor.id).transaction_ids == []

    def test_list_and_search(self, client, manager_headers, debtor, creditor):
        debtors = client.get("/api/parties?party_type=debtor", headers=manager_headers).json
        assert [p["party_name"] for p in debtors] == ["Ravi Cycles"]

        found = client.get("/api/parties?search=hero", headers=manager_headers).json
        assert [p["party_name"] for p in found] == ["Hero Parts Wholesale"]

    def test_get_unknown(self, client, manager_headers):
        assert client.get("/api/parties/999999", headers=manager_headers).status_code == 404

    def test_delete_unused_party(self, client, manager_headers, creditor, bicycle):
        bicycle.party_id = creditor.id
        db.session.commit()

        assert client.delete(f"/api/parties/{creditor.id}", headers=manager_headers).status_code == 204
        assert db.session.get(Party, creditor.id) is None
        assert db.session.get(InventoryItem, bicycle.id).party_id is None

    def test_delete_party_with_invoices_refused(self, client, admin_headers, debtor, bicycle, sale_payload):
        client.post("/api/invoices", json=sale_payload(debtor.id, bicycle.id), headers=admin_headers)

        resp = client.delete(f"/api/parties/{debtor.id}", headers=admin_headers)
        assert resp.status_code == 400
        assert db.session.get(Party, debtor.id) is not None


class TestCustomers:

    def test_create_get_update(self, client, manager_headers):
        resp = client.post("/api/customers", json={
            "customer_name": "Kiran", "phone": "9123456780", "email": "kiran@example.com"
        }, headers=manager_headers)
        assert resp.status_code == 201
        customer_id = resp.json["id"]

        resp = client.put(f"/api/customers/{customer_id}", json={"notes": "Prefers online payment"}, headers=manager_headers)
        assert resp.status_code == 200

        resp = client.get(f"/api/customers/{customer_id}", headers=manager_headers)
        assert resp.json["notes"] == "Prefers online payment"
        assert resp.json["email"] == "kiran@example.com"

    def test_validation(self, client, manager_headers):
        resp = client.post("/api/customers", json={"customer_name": "Kiran", "phone": "9123456780", "email": "nope"}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "email must be a valid address"

        resp = client.post("/api/customers", json={"customer_name": "Kiran"}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Missing required fields: phone"

    def test_search(self, client, manager_headers, customer):
        assert len(client.get("/api/customers?search=asha", headers=manager_headers).json) == 1
        assert len(client.get("/api/customers?search=99000", headers=manager_headers).json) == 1
        assert client.get("/api/customers?search=zzz", headers=manager_headers).json == []

    def test_get_unknown(self, client, manager_headers):
        assert client.get("/api/customers/999999", headers=manager_headers).status_code == 404

    def test_delete_unused_customer(self, client, manager_headers, customer):
        assert client.delete(f"/api/customers/{customer.id}", headers=manager_headers).status_code == 204
        assert client.get(f"/api/customers/{customer.id}", headers=manager_headers).status_code == 404
        assert client.delete(f"/api/customers/{customer.id}", headers=manager_headers).status_code == 404

    def test_delete_customer_with_invoices_refused(self, client, admin_headers, debtor, customer, bicycle, sale_payload):
        payload = sale_payload(debtor.id, bicycle.id, customer_id=customer.id)
        assert client.post("/api/invoices", json=payload, headers=admin_headers).status_code == 201

        resp = client.delete(f"/api/customers/{customer.id}", headers=admin_headers)
        assert resp.status_code == 400
        assert db.session.get(Customer, customer.id) is not None


class TestCustomerProfile:

    def test_profile_aggregates_sales_only(
        self, client, admin_headers, debtor, creditor, customer, bicycle, tube, sale_payload, purchase_payload
    ):
        first = sale_payload(
            debtor.id, bicycle.id, quantity=2, price=6000, number="S-1",
            customer_id=customer.id, invoice_date="2026-03-01T10:00:00Z",
        )
        first["items"].append({"item_id": tube.id, "quantity": 2, "price_per_unit": 150})
        second = sale_payload(
            debtor.id, bicycle.id, quantity=1, price=6000, number="S-2",
            customer_id=customer.id, invoice_date="2026-04-01T10:00:00Z",
        )
        restock = purchase_payload(
            creditor.id, tube.id, quantity=1, price=90, number="P-1",
            customer_id=customer.id, invoice_date="2026-05-01T10:00:00Z",
        )
        for payload in (first, second, restock):
            assert client.post("/api/invoices", json=payload, headers=admin_headers).status_code == 201

        resp = client.get(f"/api/customers/{customer.id}/profile", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["customer"]["customer_name"] == "Asha Rao"

        analytics = resp.json["analytics"]
        assert analytics["total_purchase_amount"] == 18300
        assert analytics["total_invoices"] == 2
        assert analytics["last_purchase_date"] == "2026-04-01T10:00:00Z"
        assert analytics["loyalty_status"] == "Bronze"
        products = {p["item_name"]: (p["total_quantity"], p["total_amount"]) for p in analytics["products_purchased"]}
        assert products == {"Roadster 26": (3, 18000), "Tube 26x1.5": (2, 300)}

        assert [inv["invoice_number"] for inv in resp.json["recent_invoices"]] == ["P-1", "S-2", "S-1"]

    def test_profile_without_invoices(self, client, manager_headers, customer):
        analytics = client.get(f"/api/customers/{customer.id}/profile", headers=manager_headers).json["analytics"]
        assert (analytics["total_purchase_amount"], analytics["total_invoices"]) == (0, 0)
        assert analytics["last_purchase_date"] is None
        assert analytics["loyalty_status"] == "New"
        assert analytics["products_purchased"] == []

    def test_profile_unknown_customer(self, client, manager_headers):
        assert client.get("/api/customers/999999/profile", headers=manager_headers).status_code == 404

    @pytest.mark.parametrize(
        "total_cents,tier",
        [
            (0, "New"),
            (999_999, "New"),
            (1_000_000, "Bronze"),
            (2_500_000, "Silver"),
            (5_000_000, "Gold"),
            (10_000_000, "Platinum"),
        ],
    )
    def test_loyalty_tiers(self, total_cents, tier):
        assert customer_service.loyalty_status(total_cents) == tier
