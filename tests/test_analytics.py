from datetime import date
from decimal import Decimal

import pytest

from vadash.models.finance import Budget, Category, Invoice, Transaction, TransactionStatus
from vadash.services.analytics_service import AnalyticsService, month_window
from vadash.services.cycle_service import CycleService

TODAY = date(2026, 3, 15)


@pytest.fixture
def books(db, tenant):
    def tx(day, category_id, amount, status=TransactionStatus.PAID):
        return Transaction(tenant_id=tenant.id, date=day, description="line", category_id=category_id,
                           amount=Decimal(amount), status=status)

    db.add_all([
        Category(tenant_id=tenant.id, category_id="4000", category_name="Service Revenue", type="Rev"),
        Category(tenant_id=tenant.id, category_id="5000", category_name="Rent", type="Exp"),
        Category(tenant_id=tenant.id, category_id="5100", category_name="Software", type="Exp"),
        tx(date(2025, 12, 20), "4000", "5000.00", TransactionStatus.RECEIVED),
        tx(date(2026, 1, 10), "4000", "1000.00", TransactionStatus.RECEIVED),
        tx(date(2026, 2, 5), "4000", "1500.00", TransactionStatus.RECEIVED),
        tx(date(2026, 2, 8), "5000", "-200.00"),
        tx(date(2026, 3, 3), "5100", "-300.00"),
        tx(date(2026, 3, 4), "4000", "999.00", TransactionStatus.CANCELLED),
        Budget(tenant_id=tenant.id, category_id="4000", month=date(2026, 3, 1), budgeted_amount=Decimal("2000")),
        Budget(tenant_id=tenant.id, category_id="5000", month=date(2026, 3, 1), budgeted_amount=Decimal("250")),
        Invoice(tenant_id=tenant.id, invoice_id="INV-1", amount=Decimal("100"), status="paid"),
        Invoice(tenant_id=tenant.id, invoice_id="INV-2", amount=Decimal("400"), status="open"),
        Invoice(tenant_id=tenant.id, invoice_id="INV-3", amount=Decimal("50"), status="cancelled"),
    ])
    db.commit()

    service = CycleService(db)
    feb, _ = service.start_cycle(tenant.id, date(2026, 2, 1))
    service.start_cycle(tenant.id, date(2026, 3, 1))
    for task in feb.tasks[:4]:
        task.status = "done"
    db.commit()


class TestMonthWindow:

    def test_window_ends_with_current_month(self):
        periods = month_window(3, TODAY)
        assert [str(p) for p in periods] == ["2026-01", "2026-02", "2026-03"]

    def test_window_crosses_year_boundary(self):
        periods = month_window(2, date(2026, 1, 31))
        assert [str(p) for p in periods] == ["2025-12", "2026-01"]


class TestAnalyticsService:

    def test_monthly_series(self, db, tenant, books):
        result = AnalyticsService(db).build(tenant.id, months=3, today=TODAY)

        assert result["start"] == "2026-01-01"
        assert result["end"] == "2026-03-31"
        monthly = {m["month"]: m for m in result["monthly"]}
        assert list(monthly) == ["2026-01-01", "2026-02-01", "2026-03-01"]
        assert monthly["2026-01-01"]["label"] == "Jan 26"
        assert (monthly["2026-01-01"]["revenue"], monthly["2026-01-01"]["expenses"]) == (1000.0, 0.0)
        assert (monthly["2026-02-01"]["revenue"], monthly["2026-02-01"]["expenses"]) == (1500.0, 200.0)
        assert monthly["2026-02-01"]["net"] == 1300.0
        assert (monthly["2026-03-01"]["revenue"], monthly["2026-03-01"]["expenses"]) == (0.0, 300.0)
        assert monthly["2026-03-01"]["budget_revenue"] == 2000.0
        assert monthly["2026-03-01"]["budget_expenses"] == 250.0

    def test_summary(self, db, tenant, books):
        summary = AnalyticsService(db).build(tenant.id, months=3, today=TODAY)["summary"]
        assert summary == {
            "total_revenue": 2500.0,
            "total_expenses": 500.0,
            "net_income": 2000.0,
            "outstanding_invoices": 400.0,
            "collection_rate": 50,
            "avg_cycle_completion": 25,
        }

    def test_expense_breakdown(self, db, tenant, books):
        breakdown = AnalyticsService(db).build(tenant.id, months=3, today=TODAY)["expense_breakdown"]
        assert [(s["category_id"], s["name"], s["amount"], s["share_pct"]) for s in breakdown] == [
            ("5100", "Software", 300.0, 60.0),
            ("5000", "Rent", 200.0, 40.0),
        ]

    def test_cycle_completion(self, db, tenant, books):
        cycles = AnalyticsService(db).build(tenant.id, months=3, today=TODAY)["cycles"]
        assert [(c["month"], c["done_tasks"], c["total_tasks"], c["completion_pct"]) for c in cycles] == [
            ("2026-02-01", 4, 8, 50),
            ("2026-03-01", 0, 8, 0),
        ]

    def test_empty_tenant(self, db, tenant):
        result = AnalyticsService(db).build(tenant.id, months=2, today=TODAY)
        assert [m["revenue"] for m in result["monthly"]] == [0.0, 0.0]
        assert result["expense_breakdown"] == []
        assert result["cycles"] == []
        assert result["summary"]["collection_rate"] == 0


class TestAnalyticsApi:

    def test_default_window(self, client, auth_headers, tenant):
        response = client.get(f"/api/v1/tenants/{tenant.id}/analytics", headers=auth_headers)
        assert response.status_code == 200
        assert len(response.json()["monthly"]) == 6

    def test_window_bounds(self, client, auth_headers, tenant):
        url = f"/api/v1/tenants/{tenant.id}/analytics"
        assert client.get(url, params={"months": 0}, headers=auth_headers).status_code == 422
        assert client.get(url, params={"months": 37}, headers=auth_headers).status_code == 422
        assert len(client.get(url, params={"months": 12}, headers=auth_headers).json()["monthly"]) == 12
