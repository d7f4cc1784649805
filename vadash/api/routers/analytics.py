"""
Analytics router for VA Dashboard.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config.database import get_db
from vadash.api.dependencies import get_tenant_membership
from vadash.api.schemas.base import BaseSchema
from vadash.models.tenant import TenantUser
from vadash.services.analytics_service import AnalyticsService

router = APIRouter()


class MonthlyPoint(BaseSchema):
    month: str
    label: str
    revenue: float
    expenses: float
    net: float
    budget_revenue: float
    budget_expenses: float


class ExpenseSlice(BaseSchema):
    category_id: str
    name: str
    amount: float
    share_pct: float


class CyclePoint(BaseSchema):
    month: str
    label: str
    status: str
    total_tasks: int
    done_tasks: int
    completion_pct: int


class AnalyticsSummary(BaseSchema):
    total_revenue: float
    total_expenses: float
    net_income: float
    outstanding_invoices: float
    collection_rate: int
    avg_cycle_completion: int


class AnalyticsResponse(BaseSchema):
    """Chart-ready series for the tenant analytics page."""

    start: str
    end: str
    monthly: List[MonthlyPoint]
    expense_breakdown: List[ExpenseSlice]
    cycles: List[CyclePoint]
    summary: AnalyticsSummary


@router.get("/{tenant_id}/analytics", response_model=AnalyticsResponse)
async def tenant_analytics(
    months: Optional[int] = Query(None, ge=1, le=36, description="Trailing window, including this month"),
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    return AnalyticsService(db).build(membership.tenant_id, months=months)
