from datetime import date
from decimal import Decimal

import pytest

from vadash.models.finance import Transaction, TransactionStatus
from vadash.models.intake import IntakeEvent, IntakeStatus


@pytest.fixture
def events(db, tenant, other_tenant):
    rows = [
        IntakeEvent(tenant_id=tenant.id, source="form_in", date=date(2026, 2, 3),
                    amount=Decimal("19.99"), description="Printer ink", status=IntakeStatus.NEW),
        IntakeEvent(tenant_id=tenant.id, source="form_out", date=date(2026, 2, 4),
                    amount=Decimal("250.00"), description="Invoice 1001", status=IntakeStatus.CATEGORIZED),
        IntakeEvent(tenant_id=other_tenant.id, source="form_in", status=IntakeStatus.NEW),
    ]
    db.add_all(rows)
    db.commit()
    return rows


class TestIntakeList:

    def test_lists_tenant_events_only(self, client, auth_headers, tenant, events):
        response = client.get(f"/api/v1/tenants/{tenant.id}/intake", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert {e["description"] for e in body["items"]} == {"Printer ink", "Invoice 1001"}

    def test_status_filter(self, client, auth_headers, tenant, events):
        response = client.get(f"/api/v1/tenants/{tenant.id}/intake", params={"status": "categorized"},
                              headers=auth_headers)
        items = response.json()["items"]
        assert [e["description"] for e in items] == ["Invoice 1001"]

    def test_pagination_limits(self, client, auth_headers, tenant, events):
        response = client.get(f"/api/v1/tenants/{tenant.id}/intake", params={"limit": 0}, headers=auth_headers)
        assert response.status_code == 400
        response = client.get(f"/api/v1/tenants/{tenant.id}/intake", params={"limit": 1}, headers=auth_headers)
        assert response.json()["has_next"] is True


class TestIntakeTriage:

    def test_change_status(self, client, auth_headers, tenant, events):
        response = client.patch(f"/api/v1/tenants/{tenant.id}/intake/{events[0].id}",
                                headers=auth_headers, json={"status": "categorized"})
        assert response.status_code == 200
        assert response.json()["status"] == "categorized"

    def test_change_status_of_other_tenant_event_is_404(self, client, auth_headers, tenant, events):
        response = client.patch(f"/api/v1/tenants/{tenant.id}/intake/{events[2].id}",
                                headers=auth_headers, json={"status": "categorized"})
        assert response.status_code == 404

    def test_post_to_ledger(self, client, db, auth_headers, tenant, events):
        response = client.post(f"/api/v1/tenants/{tenant.id}/intake/{events[0].id}/post",
                               headers=auth_headers, json={
                                   "date": "2026-02-03",
                                   "category_id": "5100",
                                   "amount": 19.99
                               })
        assert response.status_code == 201
        body = response.json()
        assert body["event"]["status"] == "posted"
        assert body["transaction"]["status"] == "Received"
        assert body["transaction"]["description"] == "Intake event"
        assert body["transaction"]["amount"] == 19.99

        transaction = db.query(Transaction).one()
        assert transaction.tenant_id == tenant.id
        assert transaction.status == TransactionStatus.RECEIVED

    def test_post_defaults_amount_to_zero(self, client, db, auth_headers, tenant, events):
        response = client.post(f"/api/v1/tenants/{tenant.id}/intake/{events[1].id}/post",
                               headers=auth_headers, json={
                                   "date": "2026-02-04",
                                   "category_id": "4000",
                                   "description": "Invoice 1001 paid"
                               })
        assert response.json()["transaction"]["amount"] == 0
        assert response.json()["transaction"]["description"] == "Invoice 1001 paid"

    def test_post_requires_category(self, client, auth_headers, tenant, events):
        url = f"/api/v1/tenants/{tenant.id}/intake/{events[0].id}/post"
        assert client.post(url, headers=auth_headers, json={"date": "2026-02-03"}).status_code == 422
        response = client.post(url, headers=auth_headers, json={"date": "2026-02-03", "category_id": "   "})
        assert response.status_code == 400

    def test_cannot_post_twice(self, client, auth_headers, tenant, events):
        url = f"/api/v1/tenants/{tenant.id}/intake/{events[0].id}/post"
        payload = {"date": "2026-02-03", "category_id": "5100"}
        assert client.post(url, headers=auth_headers, json=payload).status_code == 201
        assert client.post(url, headers=auth_headers, json=payload).status_code == 409


class TestIntakeExport:

    def test_csv_export(self, client, auth_headers, tenant, events):
        response = client.get(f"/api/v1/tenants/{tenant.id}/intake/export", headers=auth_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert f"intake-events-{tenant.id}-" in response.headers["content-disposition"]

        lines = response.text.strip().split("\n")
        assert lines[0] == "Date,Description,Amount,Status,Source"
        assert len(lines) == 3
        assert "2026-02-03,Printer ink,19.99,new,form_in" in lines

    def test_csv_export_respects_filter(self, client, auth_headers, tenant, events):
        response = client.get(f"/api/v1/tenants/{tenant.id}/intake/export", params={"status": "new"},
                              headers=auth_headers)
        lines = response.text.strip().split("\n")
        assert lines[1:] == ["2026-02-03,Printer ink,19.99,new,form_in"]
