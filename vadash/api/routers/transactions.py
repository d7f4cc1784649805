"""
Transactions router for VA Dashboard.
"""

from typing import Dict, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import Field
from sqlalchemy import or_, select
from sqlalchemy.orm import Session
from datetime import date as date_type
from decimal import Decimal
from uuid import UUID

from config.database import get_db
from config.logging import get_logger
from vadash.api.dependencies import get_tenant_membership, get_scoped_or_404, validate_pagination
from vadash.api.schemas.base import BaseSchema, RecordSchema, PaginatedResponse
from vadash.models.finance import Transaction, TransactionStatus, Category
from vadash.models.tenant import TenantUser
from vadash.services.export_service import export_filename, transactions_to_csv

logger = get_logger(__name__)
router = APIRouter()


class TransactionCreate(BaseSchema):
    date: date_type
    description: str = Field(..., min_length=1)
    category_id: str = Field(..., min_length=1, max_length=50)
    amount: float = Field(..., allow_inf_nan=False)
    entity_id: Optional[str] = Field(None, max_length=50)
    status: TransactionStatus = TransactionStatus.PLANNED


class TransactionStatusUpdate(BaseSchema):
    status: TransactionStatus


class TransactionResponse(RecordSchema):
    date: date_type
    description: str
    category_id: str
    amount: float
    entity_id: Optional[str] = None
    status: TransactionStatus
    category_name: Optional[str] = None
    category_type: Optional[str] = None


def _category_lookup(db: Session, tenant_id: UUID) -> Dict[str, Category]:
    return {
        c.category_id: c
        for c in db.query(Category).filter(Category.tenant_id == tenant_id)
    }


def _with_category(transaction: Transaction, categories: Dict[str, Category]) -> TransactionResponse:
    response = TransactionResponse.model_validate(transaction)
    category = categories.get(transaction.category_id)
    if category:
        response.category_name = category.category_name
        response.category_type = category.type
    return response


def _filtered_transactions(db: Session, tenant_id: UUID,
                           status_filter: Optional[TransactionStatus],
                           search: Optional[str]):
    query = db.query(Transaction).filter(Transaction.tenant_id == tenant_id)
    if status_filter:
        query = query.filter(Transaction.status == status_filter)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        matching_categories = select(Category.category_id).where(
            Category.tenant_id == tenant_id,
            Category.category_name.ilike(pattern)
        )
        query = query.filter(or_(
            Transaction.description.ilike(pattern),
            Transaction.category_id.ilike(pattern),
            Transaction.category_id.in_(matching_categories)
        ))
    return query.order_by(Transaction.date.desc(), Transaction.created_at.desc())


@router.get("/{tenant_id}/transactions", response_model=PaginatedResponse)
async def list_transactions(
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Matches description, category id or name"),
    pagination: tuple = Depends(validate_pagination),
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """Transactions, newest date first."""
    skip, limit = pagination
    query = _filtered_transactions(db, membership.tenant_id, status_filter, search)
    total = query.count()
    rows = query.offset(skip).limit(limit).all()
    categories = _category_lookup(db, membership.tenant_id)

    return PaginatedResponse.build([_with_category(t, categories) for t in rows], total, skip, limit)


@router.get("/{tenant_id}/transactions/export")
async def export_transactions(
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """CSV of the (filtered) transaction list."""
    rows = _filtered_transactions(db, membership.tenant_id, status_filter, search).all()
    categories = _category_lookup(db, membership.tenant_id)
    filename = export_filename("transactions", membership.tenant_id)

    logger.info("Transactions exported", tenant_id=str(membership.tenant_id), rows=len(rows))
    return Response(
        content=transactions_to_csv(rows, categories),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/{tenant_id}/transactions", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: TransactionCreate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    data = payload.model_dump()
    data["description"] = data["description"].strip()
    data["amount"] = Decimal(str(payload.amount))
    transaction = Transaction(tenant_id=membership.tenant_id, **data)
    db.add(transaction)
    db.commit()
    db.refresh(transaction)

    logger.info(
        "Transaction created",
        tenant_id=str(membership.tenant_id),
        transaction_id=str(transaction.id)
    )
    return _with_category(transaction, _category_lookup(db, membership.tenant_id))


@router.patch("/{tenant_id}/transactions/{transaction_id}", response_model=TransactionResponse)
async def update_transaction_status(
    transaction_id: UUID,
    payload: TransactionStatusUpdate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    transaction = get_scoped_or_404(db, Transaction, membership.tenant_id, transaction_id, "Transaction")
    transaction.status = TransactionStatus(payload.status)
    db.commit()
    db.refresh(transaction)

    logger.info(
        "Transaction status changed",
        tenant_id=str(membership.tenant_id),
        transaction_id=str(transaction.id),
        status=transaction.status.value
    )
    return _with_category(transaction, _category_lookup(db, membership.tenant_id))
