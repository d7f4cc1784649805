"""
Machine-to-machine endpoints for VA Dashboard.

These are called by operator automation and by the intake form rather than
by signed-in users, and authenticate with shared-secret headers. Bodies
are validated here so a malformed payload is a 400 rather than a 422.
"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import AnyUrl, Field, ValidationError, field_validator
from sqlalchemy.orm import Session
from datetime import date as date_type
from uuid import UUID
import re
import time

from config.database import get_db
from config.logging import get_logger
from vadash.api.dependencies import require_admin_token, require_intake_token
from vadash.api.schemas.base import BaseSchema
from vadash.models.cycle import CycleStatus
from vadash.models.tenant import Tenant
from vadash.services.cycle_service import CycleService
from vadash.services.intake_service import IntakeService

logger = get_logger(__name__)
router = APIRouter()


ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _plain_date(value: Any) -> Any:
    if isinstance(value, str) and not ISO_DATE.match(value):
        raise ValueError("Expected a YYYY-MM-DD date")
    return value


class AdminCycleStart(BaseSchema):
    month: date_type

    @field_validator("month", mode="before")
    @classmethod
    def month_is_plain_date(cls, v):
        return _plain_date(v)


class IntakeSubmission(BaseSchema):
    """Payload posted by the intake form."""

    tenant_id: UUID
    source: str = Field(..., min_length=1)
    date: Optional[date_type] = None
    amount: Optional[float] = Field(None, allow_inf_nan=False)
    description: Optional[str] = None
    attachment_url: Optional[AnyUrl] = None
    raw_payload: Optional[Any] = None

    @field_validator("date", mode="before")
    @classmethod
    def date_is_plain_date(cls, v):
        return _plain_date(v)


class WebhookCycle(BaseSchema):
    id: UUID
    tenant_id: UUID
    month: date_type
    status: CycleStatus


class WebhookCycleResponse(BaseSchema):
    ok: bool = True
    cycle: WebhookCycle


class WebhookAck(BaseSchema):
    ok: bool = True


def _invalid_payload(details: Any = None) -> JSONResponse:
    content = {
        "error": "Invalid payload",
        "status_code": status.HTTP_400_BAD_REQUEST,
        "timestamp": time.time()
    }
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)


def _parse(schema, body: bytes):
    """Validate a raw JSON body strictly: no timestamps for dates, no strings or booleans for numbers."""
    return schema.model_validate_json(body or b"null", strict=True)


def _require_tenant(db: Session, tenant_id: UUID) -> Tenant:
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found"
        )
    return tenant


@router.post(
    "/tenant/{tenant_id}/cycle/start",
    response_model=WebhookCycleResponse,
    dependencies=[Depends(require_admin_token)]
)
async def admin_start_cycle(
    tenant_id: UUID,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Start a tenant's cycle for a month from operator automation.

    Requires the ``x-admin-token`` header. Body: ``{"month": "YYYY-MM-DD"}``.
    """
    body = await request.body()
    try:
        payload = _parse(AdminCycleStart, body)
    except ValidationError as e:
        logger.warning("Admin cycle start rejected", tenant_id=str(tenant_id), errors=e.error_count())
        return _invalid_payload()

    _require_tenant(db, tenant_id)
    cycle, created = CycleService(db).start_cycle(tenant_id, payload.month)

    logger.info(
        "Cycle start requested by admin",
        tenant_id=str(tenant_id),
        cycle_id=str(cycle.id),
        created=created
    )
    return WebhookCycleResponse(cycle=WebhookCycle.model_validate(cycle))


@router.post(
    "/intake/google-form",
    response_model=WebhookAck,
    dependencies=[Depends(require_intake_token)]
)
async def intake_google_form(
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Receive an intake form submission.

    Requires the ``x-intake-token`` header. The event is stored with status
    ``new`` for the VA team to triage.
    """
    body = await request.body()
    try:
        payload = _parse(IntakeSubmission, body)
    except ValidationError as e:
        logger.warning("Intake submission rejected", errors=e.error_count())
        return _invalid_payload(
            [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]
        )

    _require_tenant(db, payload.tenant_id)

    data = payload.model_dump()
    if payload.attachment_url is not None:
        data["attachment_url"] = str(payload.attachment_url)
    IntakeService(db).ingest(payload.tenant_id, data)

    return WebhookAck()
