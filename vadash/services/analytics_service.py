"""
Tenant analytics for VA Dashboard.

Builds chart-ready series over a trailing window of months: revenue vs
expenses, budget vs actual, expense breakdown by category and service
cycle completion. Aggregation is done with pandas on the rows loaded for
the window.
"""

from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

import pandas as pd
from sqlalchemy.orm import Session, selectinload

from config.settings import settings
from config.logging import LoggerMixin, log_performance
from vadash.models.cycle import ServiceCycle, CycleStatus
from vadash.models.finance import (
    Transaction, TransactionStatus, Budget, Category, CategoryType, Invoice,
    INVOICE_PAID, INVOICE_CANCELLED
)


TOP_EXPENSE_CATEGORIES = 7


def month_window(months: int, today: Optional[date] = None) -> pd.PeriodIndex:
    """Monthly periods ending with (and including) the current month."""
    today = today or date.today()
    return pd.period_range(end=pd.Timestamp(today).to_period("M"), periods=months, freq="M")


def _pct(part: float, whole: float) -> int:
    if not whole:
        return 0
    return int(round(part / whole * 100))


class AnalyticsService(LoggerMixin):
    """Computes the analytics page payload for one tenant."""

    def __init__(self, db: Session):
        self.db = db

    @log_performance("analytics_build")
    def build(self, tenant_id: UUID, months: Optional[int] = None,
              today: Optional[date] = None) -> Dict[str, Any]:
        """
        Compute all analytics sections for a tenant.

        Args:
            tenant_id: Tenant UUID
            months: Window length in months (default from settings)
            today: Reference date, mainly for tests

        Returns:
            Dict with ``monthly``, ``expense_breakdown``, ``cycles`` and
            ``summary`` keys
        """
        periods = month_window(months or settings.analytics_months, today)
        start = periods[0].start_time.date()
        end = periods[-1].end_time.date()

        categories = self.db.query(Category).filter(Category.tenant_id == tenant_id).all()
        cat_type = {c.category_id: c.type for c in categories}
        cat_name = {c.category_id: c.category_name for c in categories}

        transactions = self.db.query(Transaction).filter(
            Transaction.tenant_id == tenant_id,
            Transaction.date >= start,
            Transaction.date <= end,
            Transaction.status != TransactionStatus.CANCELLED
        ).all()
        budgets = self.db.query(Budget).filter(
            Budget.tenant_id == tenant_id,
            Budget.month >= start,
            Budget.month <= end
        ).all()
        cycles = self.db.query(ServiceCycle).options(
            selectinload(ServiceCycle.tasks)
        ).filter(
            ServiceCycle.tenant_id == tenant_id,
            ServiceCycle.month >= start,
            ServiceCycle.month <= end
        ).order_by(ServiceCycle.month).all()
        invoices = self.db.query(Invoice).filter(Invoice.tenant_id == tenant_id).all()

        tx_frame = self._frame(
            [{"date": t.date, "category_id": t.category_id, "amount": float(t.amount)} for t in transactions],
            cat_type
        )
        budget_frame = self._frame(
            [{"date": b.month, "category_id": b.category_id, "amount": float(b.budgeted_amount)} for b in budgets],
            cat_type
        )

        monthly = self._monthly(periods, tx_frame, budget_frame)
        breakdown = self._expense_breakdown(tx_frame, cat_name)
        cycle_rows = [
            {
                "month": c.month.isoformat(),
                "label": c.month.strftime("%b %y"),
                "status": CycleStatus(c.status).value,
                "total_tasks": len(c.tasks),
                "done_tasks": c.done_count,
                "completion_pct": c.completion_pct,
            }
            for c in cycles
        ]

        total_revenue = round(sum(m["revenue"] for m in monthly), 2)
        total_expenses = round(sum(m["expenses"] for m in monthly), 2)
        outstanding = sum(float(i.amount or 0) for i in invoices if i.is_open)
        paid = [i for i in invoices if i.status == INVOICE_PAID]
        billable = [i for i in invoices if i.status != INVOICE_CANCELLED]
        avg_completion = (
            int(round(sum(c["completion_pct"] for c in cycle_rows) / len(cycle_rows)))
            if cycle_rows else 0
        )

        self.logger.info(
            "Analytics computed",
            tenant_id=str(tenant_id),
            months=len(periods),
            transactions=len(transactions)
        )

        return {
            "start": start.isoformat(),
            "end": end.isoformat(),
            "monthly": monthly,
            "expense_breakdown": breakdown,
            "cycles": cycle_rows,
            "summary": {
                "total_revenue": total_revenue,
                "total_expenses": total_expenses,
                "net_income": round(total_revenue - total_expenses, 2),
                "outstanding_invoices": round(outstanding, 2),
                "collection_rate": _pct(len(paid), len(billable)),
                "avg_cycle_completion": avg_completion,
            },
        }

    @staticmethod
    def _frame(rows: List[Dict[str, Any]], cat_type: Dict[str, str]) -> pd.DataFrame:
        """Rows with date/category_id/amount -> frame with period and category type."""
        frame = pd.DataFrame(rows, columns=["date", "category_id", "amount"])
        if frame.empty:
            frame["period"] = pd.Series(dtype="period[M]")
            frame["type"] = pd.Series(dtype="object")
            return frame
        frame["amount"] = pd.to_numeric(frame["amount"], errors="coerce").fillna(0.0).astype(float)
        frame["period"] = pd.to_datetime(frame["date"]).dt.to_period("M")
        frame["type"] = frame["category_id"].map(cat_type)
        # Expenses may be recorded as negative outflows; report magnitudes
        is_expense = frame["type"] == CategoryType.EXPENSE.value
        frame.loc[is_expense, "amount"] = frame.loc[is_expense, "amount"].abs()
        return frame

    @staticmethod
    def _sum_by_period(frame: pd.DataFrame, type_: CategoryType,
                       periods: pd.PeriodIndex) -> pd.Series:
        subset = frame[frame["type"] == type_.value]
        if subset.empty:
            return pd.Series(0.0, index=periods)
        return subset.groupby("period")["amount"].sum().reindex(periods, fill_value=0.0)

    def _monthly(self, periods: pd.PeriodIndex, tx_frame: pd.DataFrame,
                 budget_frame: pd.DataFrame) -> List[Dict[str, Any]]:
        table = pd.DataFrame(index=periods)
        table["revenue"] = self._sum_by_period(tx_frame, CategoryType.REVENUE, periods)
        table["expenses"] = self._sum_by_period(tx_frame, CategoryType.EXPENSE, periods)
        table["budget_revenue"] = self._sum_by_period(budget_frame, CategoryType.REVENUE, periods)
        table["budget_expenses"] = self._sum_by_period(budget_frame, CategoryType.EXPENSE, periods)
        table["net"] = table["revenue"] - table["expenses"]

        return [
            {
                "month": period.start_time.date().isoformat(),
                "label": period.strftime("%b %y"),
                "revenue": round(float(row.revenue), 2),
                "expenses": round(float(row.expenses), 2),
                "net": round(float(row.net), 2),
                "budget_revenue": round(float(row.budget_revenue), 2),
                "budget_expenses": round(float(row.budget_expenses), 2),
            }
            for period, row in table.iterrows()
        ]

    @staticmethod
    def _expense_breakdown(tx_frame: pd.DataFrame, cat_name: Dict[str, str]) -> List[Dict[str, Any]]:
        expenses = tx_frame[tx_frame["type"] == CategoryType.EXPENSE.value]
        if expenses.empty:
            return []
        totals = (
            expenses.groupby("category_id")["amount"].sum()
            .sort_values(ascending=False)
            .head(TOP_EXPENSE_CATEGORIES)
        )
        grand_total = float(totals.sum())
        return [
            {
                "category_id": category_id,
                "name": cat_name.get(category_id, category_id),
                "amount": round(float(amount), 2),
                "share_pct": round(float(amount) / grand_total * 100, 1) if grand_total else 0.0,
            }
            for category_id, amount in totals.items()
        ]
