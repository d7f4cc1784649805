"""
Intake triage router for VA Dashboard.
"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import Field
from sqlalchemy.orm import Session
from datetime import date as date_type
from uuid import UUID

from config.database import get_db
from config.logging import get_logger
from vadash.api.dependencies import get_tenant_membership, get_scoped_or_404, validate_pagination
from vadash.api.schemas.base import BaseSchema, RecordSchema, PaginatedResponse, paginate
from vadash.api.routers.transactions import TransactionResponse
from vadash.models.intake import IntakeEvent, IntakeStatus
from vadash.models.tenant import TenantUser
from vadash.services.export_service import export_filename, intake_events_to_csv
from vadash.services.intake_service import IntakeService

logger = get_logger(__name__)
router = APIRouter()


class IntakeEventResponse(RecordSchema):
    source: str
    date: Optional[date_type] = None
    amount: Optional[float] = None
    description: Optional[str] = None
    attachment_url: Optional[str] = None
    raw_payload: Optional[Any] = None
    status: IntakeStatus


class IntakeStatusUpdate(BaseSchema):
    status: IntakeStatus


class PostToLedgerRequest(BaseSchema):
    """Fields for the transaction created from an intake event."""

    date: date_type
    category_id: str = Field(..., min_length=1, max_length=50)
    amount: Optional[float] = Field(None, allow_inf_nan=False)
    description: Optional[str] = None
    entity_id: Optional[str] = Field(None, max_length=50)


class PostToLedgerResponse(BaseSchema):
    event: IntakeEventResponse
    transaction: TransactionResponse


def _filtered_events(db: Session, tenant_id: UUID, status_filter: Optional[IntakeStatus]):
    query = db.query(IntakeEvent).filter(IntakeEvent.tenant_id == tenant_id)
    if status_filter:
        query = query.filter(IntakeEvent.status == status_filter)
    return query


NEWEST_FIRST = (IntakeEvent.created_at.desc(),)


@router.get("/{tenant_id}/intake", response_model=PaginatedResponse)
async def list_intake_events(
    status_filter: Optional[IntakeStatus] = Query(None, alias="status"),
    pagination: tuple = Depends(validate_pagination),
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """Intake events, newest first, optionally filtered by status."""
    skip, limit = pagination
    query = _filtered_events(db, membership.tenant_id, status_filter)
    return paginate(query, IntakeEventResponse, skip, limit, NEWEST_FIRST)


@router.get("/{tenant_id}/intake/export")
async def export_intake_events(
    status_filter: Optional[IntakeStatus] = Query(None, alias="status"),
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """CSV of the (filtered) intake list."""
    events = _filtered_events(db, membership.tenant_id, status_filter).order_by(*NEWEST_FIRST).all()
    filename = export_filename("intake-events", membership.tenant_id)

    logger.info("Intake exported", tenant_id=str(membership.tenant_id), rows=len(events))
    return Response(
        content=intake_events_to_csv(events),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.patch("/{tenant_id}/intake/{event_id}", response_model=IntakeEventResponse)
async def update_intake_status(
    event_id: UUID,
    payload: IntakeStatusUpdate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    event = get_scoped_or_404(db, IntakeEvent, membership.tenant_id, event_id, "Intake event")
    event.status = IntakeStatus(payload.status)
    db.commit()
    db.refresh(event)

    logger.info(
        "Intake status changed",
        tenant_id=str(event.tenant_id),
        event_id=str(event.id),
        status=event.status.value
    )
    return event


@router.post(
    "/{tenant_id}/intake/{event_id}/post",
    response_model=PostToLedgerResponse,
    status_code=status.HTTP_201_CREATED
)
async def post_intake_to_ledger(
    event_id: UUID,
    payload: PostToLedgerRequest,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """
    Create a ``Received`` transaction from an intake event and mark the
    event ``posted``.

    Raises:
        HTTPException: 409 if the event was already posted
    """
    event = get_scoped_or_404(db, IntakeEvent, membership.tenant_id, event_id, "Intake event")
    if event.status == IntakeStatus.POSTED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Intake event already posted"
        )

    try:
        transaction = IntakeService(db).post_to_ledger(
            event,
            txn_date=payload.date,
            category_id=payload.category_id,
            amount=payload.amount,
            description=payload.description,
            entity_id=payload.entity_id
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    db.refresh(event)
    return PostToLedgerResponse(
        event=IntakeEventResponse.model_validate(event),
        transaction=TransactionResponse.model_validate(transaction)
    )
