# Overview: Pytest coverage for ledger listing, summary and manual entries.

from shopkeep.extensions import db
from shopkeep.models import LedgerEntry


def _manual(client, headers, party_id, **overrides):
    body = {
        "party_id": party_id,
        "transaction_type": "payable",
        "original_amount": 500,
        "description": "Opening balance",
    }
    body.update(overrides)
    return client.post("/api/ledger", json=body, headers=headers)


class TestLedgerSummary:

    def test_summary_totals_and_net_position(
        self, client, admin_headers, debtor, creditor, bicycle, sale_payload, purchase_payload
    ):
        client.post("/api/invoices", json=sale_payload(debtor.id, bicycle.id), headers=admin_headers)
        client.post("/api/invoices", json=purchase_payload(creditor.id, bicycle.id), headers=admin_headers)

        resp = client.get("/api/ledger/summary", headers=admin_headers)
        assert resp.status_code == 200
        summary = resp.json["summary"]
        assert summary == {
            "total_receivable": 300,
            "total_payable": 350,
            "net_position": -50,
            "total_receivable_count": 1,
            "total_payable_count": 1,
        }
        assert resp.json["receivables"][0]["invoice_number"] == "INV-1001"
        assert resp.json["payables"][0]["invoice_number"] == "PUR-2001"

    def test_settled_entries_leave_summary(self, client, admin_headers, debtor, bicycle, sale_payload):
        client.post("/api/invoices", json=sale_payload(debtor.id, bicycle.id), headers=admin_headers)
        entry_id = db.session.query(LedgerEntry).one().id

        client.post(f"/api/ledger/{entry_id}/settlement", json={"amount": 120}, headers=admin_headers)
        summary = client.get("/api/ledger/summary", headers=admin_headers).json
        assert summary["summary"]["total_receivable"] == 180

        client.post(f"/api/ledger/{entry_id}/settlement", json={"amount": 180}, headers=admin_headers)
        summary = client.get("/api/ledger/summary", headers=admin_headers).json
        assert summary["receivables"] == []
        assert summary["summary"]["total_receivable"] == 0
        assert summary["summary"]["total_receivable_count"] == 0

    def test_empty_summary(self, client, admin_headers):
        summary = client.get("/api/ledger/summary", headers=admin_headers).json["summary"]
        assert summary["net_position"] == 0


class TestLedgerEntries:

    def test_list_filters(self, client, admin_headers, debtor, creditor, bicycle, sale_payload):
        client.post("/api/invoices", json=sale_payload(debtor.id, bicycle.id), headers=admin_headers)
        _manual(client, admin_headers, creditor.id)

        receivables = client.get("/api/ledger?transaction_type=receivable", headers=admin_headers).json
        assert [e["party_id"] for e in receivables] == [debtor.id]
        by_party = client.get(f"/api/ledger?party_id={creditor.id}", headers=admin_headers).json
        assert [e["description"] for e in by_party] == ["Opening balance"]
        pending = client.get("/api/ledger?status=pending", headers=admin_headers).json
        assert len(pending) == 2

        assert client.get("/api/ledger?status=overdue", headers=admin_headers).status_code == 400

    def test_get_entry(self, client, admin_headers, creditor):
        entry_id = _manual(client, admin_headers, creditor.id).json["id"]
        resp = client.get(f"/api/ledger/{entry_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["invoice_id"] is None
        assert client.get("/api/ledger/999999", headers=admin_headers).status_code == 404

    def test_manual_entry_with_opening_settlement(self, client, admin_headers, creditor):
        resp = _manual(client, admin_headers, creditor.id, settled_amount=100)
        assert resp.status_code == 201
        assert resp.json["original_amount"] == 500
        assert resp.json["settled_amount"] == 100
        assert resp.json["balance_amount"] == 400
        assert resp.json["status"] == "partial"

    def test_manual_entry_validation(self, client, admin_headers, creditor):
        assert _manual(client, admin_headers, creditor.id, settled_amount=600).status_code == 400
        assert _manual(client, admin_headers, creditor.id, original_amount=0).status_code == 400
        assert _manual(client, admin_headers, creditor.id, transaction_type="loan").status_code == 400
        assert _manual(client, admin_headers, 999999).status_code == 400

        resp = _manual(client, admin_headers, creditor.id, invoice_id=1)
        assert resp.status_code == 400
        assert "invoice workflow" in resp.json["error"]

    def test_delete_manual_entry(self, client, admin_headers, creditor):
        entry_id = _manual(client, admin_headers, creditor.id).json["id"]
        assert client.delete(f"/api/ledger/{entry_id}", headers=admin_headers).status_code == 204
        assert db.session.get(LedgerEntry, entry_id) is None

    def test_invoice_entry_cannot_be_deleted_directly(self, client, admin_headers, debtor, bicycle, sale_payload):
        client.post("/api/invoices", json=sale_payload(debtor.id, bicycle.id), headers=admin_headers)
        entry_id = db.session.query(LedgerEntry).one().id

        resp = client.delete(f"/api/ledger/{entry_id}", headers=admin_headers)
        assert resp.status_code == 400
        assert db.session.get(LedgerEntry, entry_id) is not None
