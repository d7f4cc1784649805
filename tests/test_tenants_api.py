from datetime import date, timedelta
from uuid import UUID

from conftest import bearer, make_tenant, make_user
from vadash.models.finance import Invoice
from vadash.models.intake import IntakeEvent, IntakeStatus, MissingDataAlert
from vadash.models.tenant import TenantUser, TenantRole
from vadash.services.cycle_service import CycleService, current_month


class TestTenantList:

    def test_lists_only_my_tenants_with_role(self, client, auth_headers, tenant, other_tenant):
        response = client.get("/api/v1/tenants/", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert [t["name"] for t in body] == ["Acme Bakery"]
        assert body[0]["role"] == "owner"
        assert body[0]["package_tier"] == "growth"
        assert body[0]["current_cycle"] is None

    def test_search_is_case_insensitive(self, client, db, user, auth_headers, tenant):
        make_tenant(db, user, name="Zephyr Plumbing")
        response = client.get("/api/v1/tenants/", params={"search": "zEPH"}, headers=auth_headers)
        assert [t["name"] for t in response.json()] == ["Zephyr Plumbing"]

    def test_includes_current_cycle(self, client, db, auth_headers, tenant):
        cycle, _ = CycleService(db).start_cycle(tenant.id)
        response = client.get("/api/v1/tenants/", headers=auth_headers)
        current = response.json()[0]["current_cycle"]
        assert current["id"] == str(cycle.id)
        assert current["status"] == "collecting"
        assert current["month"] == current_month().isoformat()

    def test_requires_auth(self, client):
        assert client.get("/api/v1/tenants/").status_code == 401


class TestTenantCreateAndUpdate:

    def test_create_makes_caller_owner(self, client, db, user, auth_headers):
        response = client.post("/api/v1/tenants/", headers=auth_headers, json={
            "name": "  Bright Dental  ",
            "package_tier": "cfo_lite",
            "niche": "",
            "timezone": "America/Chicago",
            "currency": " "
        })
        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "Bright Dental"
        assert body["niche"] is None
        assert body["currency"] is None

        membership = db.query(TenantUser).filter(TenantUser.tenant_id == UUID(body["id"])).one()
        assert membership.user_id == user.id
        assert membership.role == TenantRole.OWNER

    def test_create_validates_lengths(self, client, auth_headers):
        response = client.post("/api/v1/tenants/", headers=auth_headers,
                               json={"name": "x" * 201, "package_tier": "growth"})
        assert response.status_code == 422
        response = client.post("/api/v1/tenants/", headers=auth_headers,
                               json={"name": "   ", "package_tier": "growth"})
        assert response.status_code == 422
        response = client.post("/api/v1/tenants/", headers=auth_headers, json={
            "name": "Ok", "package_tier": "growth", "currency": "TOO-LONG-CUR"
        })
        assert response.status_code == 422

    def test_create_requires_package_tier(self, client, auth_headers):
        response = client.post("/api/v1/tenants/", headers=auth_headers, json={"name": "Bright Dental"})
        assert response.status_code == 422
        assert response.json()["details"][0]["loc"] == ["body", "package_tier"]

    def test_patch_is_partial(self, client, auth_headers, tenant):
        response = client.patch(f"/api/v1/tenants/{tenant.id}", headers=auth_headers, json={
            "niche": "Bakeries"
        })
        assert response.status_code == 200
        assert response.json()["niche"] == "Bakeries"
        assert response.json()["name"] == "Acme Bakery"
        assert response.json()["currency"] == "USD"

        response = client.patch(f"/api/v1/tenants/{tenant.id}", headers=auth_headers, json={
            "currency": None
        })
        assert response.json()["currency"] is None

    def test_patch_rejects_null_name(self, client, auth_headers, tenant):
        response = client.patch(f"/api/v1/tenants/{tenant.id}", headers=auth_headers, json={"name": None})
        assert response.status_code == 422


class TestTenantAccess:

    def test_unknown_tenant_is_404(self, client, auth_headers):
        response = client.get("/api/v1/tenants/00000000-0000-0000-0000-000000000000", headers=auth_headers)
        assert response.status_code == 404

    def test_non_member_is_403(self, client, auth_headers, other_tenant):
        assert client.get(f"/api/v1/tenants/{other_tenant.id}", headers=auth_headers).status_code == 403
        response = client.patch(f"/api/v1/tenants/{other_tenant.id}", headers=auth_headers, json={"niche": "x"})
        assert response.status_code == 403

    def test_member_can_read(self, client, auth_headers, tenant):
        response = client.get(f"/api/v1/tenants/{tenant.id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["id"] == str(tenant.id)


class TestMembers:

    def test_owner_adds_member(self, client, db, auth_headers, tenant):
        colleague = make_user(db, "bookkeeper@acme-books.com", full_name="Book Keeper")
        response = client.post(f"/api/v1/tenants/{tenant.id}/members", headers=auth_headers, json={
            "email": colleague.email,
            "role": "bookkeeper"
        })
        assert response.status_code == 201
        assert response.json()["role"] == "bookkeeper"

        response = client.get(f"/api/v1/tenants/{tenant.id}/members", headers=auth_headers)
        assert {m["email"] for m in response.json()} == {"va@acme-books.com", "bookkeeper@acme-books.com"}

        # the new member can now see the tenant
        assert client.get(f"/api/v1/tenants/{tenant.id}", headers=bearer(colleague)).status_code == 200

    def test_duplicate_member_conflicts(self, client, user, auth_headers, tenant):
        response = client.post(f"/api/v1/tenants/{tenant.id}/members", headers=auth_headers, json={
            "email": user.email,
            "role": "viewer"
        })
        assert response.status_code == 409

    def test_unknown_user_is_404(self, client, auth_headers, tenant):
        response = client.post(f"/api/v1/tenants/{tenant.id}/members", headers=auth_headers, json={
            "email": "nobody@acme-books.com"
        })
        assert response.status_code == 404

    def test_viewer_cannot_add_members(self, client, db, tenant):
        viewer = make_user(db, "viewer@acme-books.com")
        db.add(TenantUser(tenant_id=tenant.id, user_id=viewer.id, role=TenantRole.VIEWER))
        db.commit()
        make_user(db, "third@acme-books.com")

        response = client.post(f"/api/v1/tenants/{tenant.id}/members", headers=bearer(viewer), json={
            "email": "third@acme-books.com"
        })
        assert response.status_code == 403


class TestOverview:

    def test_overview_counts(self, client, db, auth_headers, tenant, other_tenant):
        cycle, _ = CycleService(db).start_cycle(tenant.id)
        cycle.tasks[0].status = "done"
        db.add_all([
            IntakeEvent(tenant_id=tenant.id, source="form_in", status=IntakeStatus.NEW),
            IntakeEvent(tenant_id=tenant.id, source="form_in", status=IntakeStatus.NEW),
            IntakeEvent(tenant_id=tenant.id, source="form_in", status=IntakeStatus.POSTED),
            IntakeEvent(tenant_id=other_tenant.id, source="form_in", status=IntakeStatus.NEW),
            Invoice(tenant_id=tenant.id, status="open", due_date=date.today() - timedelta(days=3)),
            Invoice(tenant_id=tenant.id, status="sent"),
            Invoice(tenant_id=tenant.id, status="paid"),
            Invoice(tenant_id=tenant.id, status="cancelled"),
            MissingDataAlert(tenant_id=tenant.id, week_start=date(2026, 2, 2), missing_receipts_count=3, status="open"),
        ])
        db.commit()

        response = client.get(f"/api/v1/tenants/{tenant.id}/overview", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["open_intake"] == 2
        assert body["cycle_status"] == "collecting"
        assert body["cycle_id"] == str(cycle.id)
        assert body["tasks_remaining"] == 7
        assert body["open_invoices"] == 2
        assert body["open_alerts"] == 1
        assert body["role"] == "owner"

    def test_overview_without_cycle(self, client, auth_headers, tenant):
        body = client.get(f"/api/v1/tenants/{tenant.id}/overview", headers=auth_headers).json()
        assert body["cycle_status"] is None
        assert body["tasks_remaining"] == 0
        assert body["open_intake"] == 0
