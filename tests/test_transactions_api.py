from datetime import date
from decimal import Decimal

import pytest

from vadash.models.finance import Category, Transaction, TransactionStatus


@pytest.fixture
def ledger(db, tenant, other_tenant):
    db.add_all([
        Category(tenant_id=tenant.id, category_id="4000", category_name="Service Revenue", type="Rev"),
        Category(tenant_id=tenant.id, category_id="5100", category_name="Software Subscriptions", type="Exp"),
        Transaction(tenant_id=tenant.id, date=date(2026, 2, 1), description="Client retainer",
                    category_id="4000", amount=Decimal("3000.00"), entity_id="C-000101",
                    status=TransactionStatus.RECEIVED),
        Transaction(tenant_id=tenant.id, date=date(2026, 2, 9), description="Accounting app",
                    category_id="5100", amount=Decimal("-49.00"), status=TransactionStatus.PAID),
        Transaction(tenant_id=tenant.id, date=date(2026, 1, 20), description="Old misc",
                    category_id="9999", amount=Decimal("10.00"), status=TransactionStatus.PLANNED),
        Transaction(tenant_id=other_tenant.id, date=date(2026, 2, 5), description="Client retainer",
                    category_id="4000", amount=Decimal("1.00"), status=TransactionStatus.RECEIVED),
    ])
    db.commit()


def url(tenant, suffix=""):
    return f"/api/v1/tenants/{tenant.id}/transactions{suffix}"


class TestTransactionList:

    def test_newest_first_with_category_names(self, client, auth_headers, tenant, ledger):
        body = client.get(url(tenant), headers=auth_headers).json()
        assert body["total"] == 3
        items = body["items"]
        assert [t["description"] for t in items] == ["Accounting app", "Client retainer", "Old misc"]
        assert items[0]["category_name"] == "Software Subscriptions"
        assert items[0]["category_type"] == "Exp"
        assert items[2]["category_name"] is None

    def test_status_filter(self, client, auth_headers, tenant, ledger):
        items = client.get(url(tenant), params={"status": "Paid"}, headers=auth_headers).json()["items"]
        assert [t["description"] for t in items] == ["Accounting app"]

    @pytest.mark.parametrize("term, expected", [
        ("RETAINER", ["Client retainer"]),
        ("5100", ["Accounting app"]),
        ("software", ["Accounting app"]),
        ("nothing-matches", []),
    ])
    def test_search(self, client, auth_headers, tenant, ledger, term, expected):
        items = client.get(url(tenant), params={"search": term}, headers=auth_headers).json()["items"]
        assert [t["description"] for t in items] == expected

    def test_non_member_forbidden(self, client, auth_headers, other_tenant):
        assert client.get(url(other_tenant), headers=auth_headers).status_code == 403


class TestTransactionWrites:

    def test_create(self, client, auth_headers, tenant, ledger):
        response = client.post(url(tenant), headers=auth_headers, json={
            "date": "2026-02-15",
            "description": "  Bank fee ",
            "category_id": "5100",
            "amount": -12.5
        })
        assert response.status_code == 201
        body = response.json()
        assert body["description"] == "Bank fee"
        assert body["status"] == "Planned"
        assert body["amount"] == -12.5
        assert body["category_name"] == "Software Subscriptions"

    def test_create_rejects_unknown_status(self, client, auth_headers, tenant):
        response = client.post(url(tenant), headers=auth_headers, json={
            "date": "2026-02-15", "description": "x", "category_id": "5100",
            "amount": 1, "status": "Bounced"
        })
        assert response.status_code == 422

    def test_update_status(self, client, db, auth_headers, tenant, ledger):
        transaction = db.query(Transaction).filter(Transaction.description == "Old misc").one()
        response = client.patch(url(tenant, f"/{transaction.id}"), headers=auth_headers,
                                json={"status": "Reconciled"})
        assert response.status_code == 200
        assert response.json()["status"] == "Reconciled"

    def test_update_other_tenant_transaction_is_404(self, client, db, auth_headers, tenant, other_tenant, ledger):
        foreign = db.query(Transaction).filter(Transaction.tenant_id == other_tenant.id).one()
        response = client.patch(url(tenant, f"/{foreign.id}"), headers=auth_headers, json={"status": "Paid"})
        assert response.status_code == 404


class TestTransactionExport:

    def test_csv_export(self, client, auth_headers, tenant, ledger):
        response = client.get(url(tenant, "/export"), headers=auth_headers)
        assert response.status_code == 200
        assert f"transactions-{tenant.id}-" in response.headers["content-disposition"]

        lines = response.text.strip().split("\n")
        assert lines[0] == "Date,Description,Category,Amount,Entity,Status"
        assert lines[1] == "2026-02-09,Accounting app,Software Subscriptions,-49.00,,Paid"
        assert lines[2] == "2026-02-01,Client retainer,Service Revenue,3000.00,C-000101,Received"
        assert lines[3] == "2026-01-20,Old misc,9999,10.00,,Planned"

    def test_csv_export_with_search(self, client, auth_headers, tenant, ledger):
        response = client.get(url(tenant, "/export"), params={"search": "misc"}, headers=auth_headers)
        assert response.text.strip().split("\n")[1:] == ["2026-01-20,Old misc,9999,10.00,,Planned"]
