from unittest.mock import patch
from uuid import uuid4

from conftest import ADMIN_HEADERS, INTAKE_HEADERS
from vadash.models.cycle import ServiceCycle, CycleTask
from vadash.models.intake import IntakeEvent


class TestAdminCycleStart:

    def test_starts_cycle(self, client, db, tenant):
        response = client.post(f"/api/tenant/{tenant.id}/cycle/start", headers=ADMIN_HEADERS,
                               json={"month": "2026-04-01"})
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["cycle"]["month"] == "2026-04-01"
        assert body["cycle"]["status"] == "collecting"
        assert body["cycle"]["tenant_id"] == str(tenant.id)
        assert db.query(CycleTask).count() == 8

    def test_repeat_does_not_duplicate_tasks(self, client, db, tenant):
        for _ in range(2):
            response = client.post(f"/api/tenant/{tenant.id}/cycle/start", headers=ADMIN_HEADERS,
                                   json={"month": "2026-04-01"})
            assert response.status_code == 200
        assert db.query(ServiceCycle).count() == 1
        assert db.query(CycleTask).count() == 8

    def test_wrong_or_missing_token(self, client, tenant):
        url = f"/api/tenant/{tenant.id}/cycle/start"
        assert client.post(url, json={"month": "2026-04-01"}).status_code == 401
        response = client.post(url, headers={"x-admin-token": "nope"}, json={"month": "2026-04-01"})
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    def test_malformed_month(self, client, db, tenant):
        url = f"/api/tenant/{tenant.id}/cycle/start"
        bad_bodies = [
            {"month": "April 2026"},
            {},
            None,
            {"month": 0},
            {"month": "2026-04-01T00:00:00"},
        ]
        for body in bad_bodies:
            response = client.post(url, headers=ADMIN_HEADERS, json=body)
            assert response.status_code == 400, body
            assert response.json()["error"] == "Invalid payload"
        assert db.query(ServiceCycle).count() == 0

    def test_body_that_is_not_json(self, client, tenant):
        response = client.post(f"/api/tenant/{tenant.id}/cycle/start",
                               headers={**ADMIN_HEADERS, "content-type": "application/json"},
                               content=b"month=2026-04-01")
        assert response.status_code == 400

    def test_unknown_tenant(self, client, db):
        response = client.post(f"/api/tenant/{uuid4()}/cycle/start", headers=ADMIN_HEADERS,
                               json={"month": "2026-04-01"})
        assert response.status_code == 404

    def test_unconfigured_token_is_server_error(self, client, tenant):
        with patch("vadash.api.dependencies.settings.dashboard_admin_token", None):
            response = client.post(f"/api/tenant/{tenant.id}/cycle/start", headers=ADMIN_HEADERS,
                                   json={"month": "2026-04-01"})
        assert response.status_code == 500
        assert response.json()["error"] == "Missing DASHBOARD_ADMIN_TOKEN."


class TestIntakeWebhook:

    def test_stores_submission_as_new(self, client, db, tenant):
        response = client.post("/api/intake/google-form", headers=INTAKE_HEADERS, json={
            "tenant_id": str(tenant.id),
            "source": "form_in",
            "date": "2026-02-14",
            "amount": 42.5,
            "description": "Office supplies",
            "attachment_url": "https://drive.example.com/receipt.jpg",
            "raw_payload": {"Timestamp": "2/14/2026", "Answers": [1, 2]}
        })
        assert response.status_code == 200
        assert response.json() == {"ok": True}

        event = db.query(IntakeEvent).one()
        assert event.tenant_id == tenant.id
        assert event.status.value == "new"
        assert float(event.amount) == 42.5
        assert event.attachment_url == "https://drive.example.com/receipt.jpg"
        assert event.raw_payload == {"Timestamp": "2/14/2026", "Answers": [1, 2]}

    def test_minimal_submission(self, client, db, tenant):
        response = client.post("/api/intake/google-form", headers=INTAKE_HEADERS, json={
            "tenant_id": str(tenant.id),
            "source": "whatsapp_manual"
        })
        assert response.status_code == 200
        event = db.query(IntakeEvent).one()
        assert event.amount is None
        assert event.date is None

    def test_invalid_payloads(self, client, db, tenant):
        bad_bodies = [
            {"tenant_id": "not-a-uuid", "source": "form_in"},
            {"tenant_id": str(tenant.id), "source": ""},
            {"tenant_id": str(tenant.id), "source": "form_in", "attachment_url": "not a url"},
            {"tenant_id": str(tenant.id), "source": "form_in", "date": "14/02/2026"},
            {"tenant_id": str(tenant.id), "source": "form_in", "date": "2026-02-14T00:00:00"},
            {"tenant_id": str(tenant.id), "source": "form_in", "amount": "42.5"},
            {"tenant_id": str(tenant.id), "source": "form_in", "amount": True},
        ]
        for body in bad_bodies:
            response = client.post("/api/intake/google-form", headers=INTAKE_HEADERS, json=body)
            assert response.status_code == 400, body
            assert response.json()["error"] == "Invalid payload"
            assert response.json()["details"]
        assert db.query(IntakeEvent).count() == 0

    def test_requires_token(self, client, tenant):
        response = client.post("/api/intake/google-form", json={
            "tenant_id": str(tenant.id), "source": "form_in"
        })
        assert response.status_code == 401

    def test_unknown_tenant(self, client, db):
        response = client.post("/api/intake/google-form", headers=INTAKE_HEADERS, json={
            "tenant_id": str(uuid4()), "source": "form_in"
        })
        assert response.status_code == 404
        assert db.query(IntakeEvent).count() == 0
