"""
Missing-data alerts router for VA Dashboard.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlalchemy.orm import Session
from datetime import date, datetime
from uuid import UUID

from config.database import get_db
from config.logging import get_logger
from vadash.api.dependencies import get_tenant_membership, get_scoped_or_404
from vadash.api.schemas.base import BaseSchema, RecordSchema
from vadash.models.intake import MissingDataAlert, AlertStatus
from vadash.models.tenant import TenantUser
from vadash.services.intake_service import IntakeService

logger = get_logger(__name__)
router = APIRouter()


class AlertUpsert(BaseSchema):
    """Weekly missing-receipt count for the week containing ``day``."""

    day: date
    missing_receipts_count: int = Field(..., ge=0)
    last_submission_at: Optional[datetime] = None


class AlertResponse(RecordSchema):
    week_start: date
    missing_receipts_count: int
    last_submission_at: Optional[datetime] = None
    status: AlertStatus


@router.get("/{tenant_id}/alerts", response_model=List[AlertResponse])
async def list_alerts(
    include_closed: bool = Query(False),
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """Alerts, latest week first; open ones only unless ``include_closed``."""
    query = db.query(MissingDataAlert).filter(MissingDataAlert.tenant_id == membership.tenant_id)
    if not include_closed:
        query = query.filter(MissingDataAlert.status == AlertStatus.OPEN.value)
    return query.order_by(MissingDataAlert.week_start.desc()).all()


@router.put("/{tenant_id}/alerts", response_model=AlertResponse)
async def upsert_alert(
    payload: AlertUpsert,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    alert = IntakeService(db).record_missing_receipts(
        membership.tenant_id,
        payload.day,
        payload.missing_receipts_count,
        payload.last_submission_at
    )

    logger.info(
        "Missing-data alert recorded",
        tenant_id=str(membership.tenant_id),
        week_start=alert.week_start.isoformat(),
        missing=alert.missing_receipts_count
    )
    return alert


@router.post("/{tenant_id}/alerts/{alert_id}/dismiss", response_model=AlertResponse)
async def dismiss_alert(
    alert_id: UUID,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    alert = get_scoped_or_404(db, MissingDataAlert, membership.tenant_id, alert_id, "Alert")
    alert.dismiss()
    db.commit()
    db.refresh(alert)

    logger.info("Missing-data alert dismissed", tenant_id=str(membership.tenant_id), alert_id=str(alert.id))
    return alert
