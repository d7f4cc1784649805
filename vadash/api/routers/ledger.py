"""
Ledger setup router for VA Dashboard: categories, accounts, budgets and
invoices.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from datetime import date as date_type
from decimal import Decimal
from uuid import UUID

from config.database import get_db
from config.logging import get_logger
from vadash.api.dependencies import get_tenant_membership, get_scoped_or_404
from vadash.api.schemas.base import BaseSchema, RecordSchema
from vadash.models.base import first_of_month
from vadash.models.finance import (
    Category, CategoryType, Account, Budget, Invoice, INVOICE_CLOSED_STATUSES
)
from vadash.models.tenant import TenantUser

logger = get_logger(__name__)
router = APIRouter()


def _money(value: Optional[float]) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


def _commit_unique(db: Session, label: str) -> None:
    """Commit, reporting a unique-key clash as 409."""
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{label} already exists"
        )


# Categories

class CategoryCreate(BaseSchema):
    category_id: str = Field(..., min_length=1, max_length=50)
    category_name: str = Field(..., min_length=1, max_length=255)
    code: Optional[str] = Field(None, max_length=50)
    type: CategoryType


class CategoryResponse(RecordSchema):
    category_id: str
    category_name: str
    code: Optional[str] = None
    type: CategoryType


@router.get("/{tenant_id}/categories", response_model=List[CategoryResponse])
async def list_categories(
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    return db.query(Category).filter(
        Category.tenant_id == membership.tenant_id
    ).order_by(Category.category_id).all()


@router.post("/{tenant_id}/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    category = Category(tenant_id=membership.tenant_id, **payload.model_dump())
    db.add(category)
    _commit_unique(db, "Category")
    db.refresh(category)

    logger.info("Category created", tenant_id=str(membership.tenant_id), category_id=category.category_id)
    return category


# Accounts

class AccountCreate(BaseSchema):
    account_id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    initial_cash: Optional[float] = Field(None, allow_inf_nan=False)


class AccountResponse(RecordSchema):
    account_id: str
    name: str
    initial_cash: Optional[float] = None


@router.get("/{tenant_id}/accounts", response_model=List[AccountResponse])
async def list_accounts(
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    return db.query(Account).filter(
        Account.tenant_id == membership.tenant_id
    ).order_by(Account.account_id).all()


@router.post("/{tenant_id}/accounts", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    payload: AccountCreate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    account = Account(
        tenant_id=membership.tenant_id,
        account_id=payload.account_id,
        name=payload.name,
        initial_cash=_money(payload.initial_cash)
    )
    db.add(account)
    _commit_unique(db, "Account")
    db.refresh(account)

    logger.info("Account created", tenant_id=str(membership.tenant_id), account_id=account.account_id)
    return account


# Budgets

class BudgetCreate(BaseSchema):
    category_id: str = Field(..., min_length=1, max_length=50)
    month: date_type = Field(..., description="Any date in the budget month")
    budgeted_amount: float = Field(..., allow_inf_nan=False)


class BudgetResponse(RecordSchema):
    category_id: str
    month: date_type
    budgeted_amount: float


@router.get("/{tenant_id}/budgets", response_model=List[BudgetResponse])
async def list_budgets(
    month: Optional[date_type] = Query(None, description="Only budgets for this month"),
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    query = db.query(Budget).filter(Budget.tenant_id == membership.tenant_id)
    if month:
        query = query.filter(Budget.month == first_of_month(month))
    return query.order_by(Budget.month.desc(), Budget.category_id).all()


@router.post("/{tenant_id}/budgets", response_model=BudgetResponse)
async def set_budget(
    payload: BudgetCreate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """Set the budget for a category and month, replacing any earlier amount."""
    month = first_of_month(payload.month)
    budget = db.query(Budget).filter(
        Budget.tenant_id == membership.tenant_id,
        Budget.category_id == payload.category_id,
        Budget.month == month
    ).first()
    if budget is None:
        budget = Budget(tenant_id=membership.tenant_id, category_id=payload.category_id, month=month)
        db.add(budget)
    budget.budgeted_amount = _money(payload.budgeted_amount)
    db.commit()
    db.refresh(budget)

    logger.info(
        "Budget set",
        tenant_id=str(membership.tenant_id),
        category_id=budget.category_id,
        month=month.isoformat()
    )
    return budget


# Invoices

class InvoiceCreate(BaseSchema):
    invoice_id: Optional[str] = Field(None, max_length=50)
    entity_id: Optional[str] = Field(None, max_length=50)
    date: Optional[date_type] = None
    due_date: Optional[date_type] = None
    amount: Optional[float] = Field(None, allow_inf_nan=False)
    status: str = Field("open", max_length=20)


class InvoiceResponse(RecordSchema):
    invoice_id: Optional[str] = None
    entity_id: Optional[str] = None
    date: Optional[date_type] = None
    due_date: Optional[date_type] = None
    amount: Optional[float] = None
    status: Optional[str] = None
    is_overdue: bool = False


def _invoice_response(invoice: Invoice, today: Optional[date_type] = None) -> InvoiceResponse:
    # is_overdue is a method on the model, so validate from a plain dict
    return InvoiceResponse.model_validate({
        **invoice.to_dict(),
        "is_overdue": invoice.is_overdue(today)
    })


@router.get("/{tenant_id}/invoices", response_model=List[InvoiceResponse])
async def list_invoices(
    include_closed: bool = Query(False, description="Include paid and cancelled invoices"),
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """Invoices by due date; open ones only unless ``include_closed``."""
    query = db.query(Invoice).filter(Invoice.tenant_id == membership.tenant_id)
    if not include_closed:
        query = query.filter(
            (Invoice.status.is_(None)) | (Invoice.status.notin_(sorted(INVOICE_CLOSED_STATUSES)))
        )
    invoices = query.order_by(Invoice.due_date.is_(None), Invoice.due_date).all()
    today = date_type.today()
    return [_invoice_response(i, today) for i in invoices]


@router.post("/{tenant_id}/invoices", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    payload: InvoiceCreate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    data = payload.model_dump()
    data["amount"] = _money(payload.amount)
    invoice = Invoice(tenant_id=membership.tenant_id, **data)
    db.add(invoice)
    db.commit()
    db.refresh(invoice)

    logger.info("Invoice created", tenant_id=str(membership.tenant_id), invoice_id=str(invoice.id))
    return _invoice_response(invoice)


@router.post("/{tenant_id}/invoices/{invoice_id}/mark-paid", response_model=InvoiceResponse)
async def mark_invoice_paid(
    invoice_id: UUID,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    invoice = get_scoped_or_404(db, Invoice, membership.tenant_id, invoice_id, "Invoice")
    invoice.mark_paid()
    db.commit()
    db.refresh(invoice)

    logger.info("Invoice paid", tenant_id=str(membership.tenant_id), invoice_id=str(invoice.id))
    return _invoice_response(invoice)
