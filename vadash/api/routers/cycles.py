"""
Service cycle router for VA Dashboard.

Cycles are addressed under their tenant; a cycle id belonging to another
tenant is reported as not found.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field, field_validator
from sqlalchemy.orm import Session, selectinload
from datetime import date, datetime
from uuid import UUID

from config.database import get_db
from config.logging import get_logger
from vadash.api.dependencies import get_tenant_membership, get_scoped_or_404
from vadash.api.schemas.base import BaseSchema, RecordSchema
from vadash.models.cycle import (
    ServiceCycle, CycleTask, CycleStatus, CycleTaskStatus, CycleTransitionError,
    DELIVERABLE_TYPES
)
from vadash.models.tenant import TenantUser
from vadash.services.cycle_service import CycleService, month_label

logger = get_logger(__name__)
router = APIRouter()


class CycleStartRequest(BaseSchema):
    month: Optional[date] = Field(None, description="Any date in the target month")


class AdvanceRequest(BaseSchema):
    confirm: bool = False


class CycleTaskResponse(RecordSchema):
    service_cycle_id: UUID
    task_type: str
    assignee: Optional[str] = None
    status: CycleTaskStatus
    due_date: Optional[date] = None
    position: int


class CycleTaskUpdate(BaseSchema):
    """
    Task update schema.

    Either set ``status`` explicitly or pass ``toggle`` to step it along
    todo -> in_progress -> done -> todo.
    """

    status: Optional[CycleTaskStatus] = None
    toggle: bool = False
    assignee: Optional[str] = Field(None, max_length=200)
    due_date: Optional[date] = None


class DeliverableCreate(BaseSchema):
    type: str
    url: Optional[str] = Field(None, max_length=1000)

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v not in DELIVERABLE_TYPES:
            raise ValueError(f"type must be one of: {', '.join(DELIVERABLE_TYPES)}")
        return v


class DeliverableResponse(RecordSchema):
    service_cycle_id: UUID
    type: str
    url: Optional[str] = None


class CycleResponse(RecordSchema):
    """Cycle with its checklist and progress."""

    month: date
    label: str
    status: CycleStatus
    paused_from: Optional[CycleStatus] = None
    tasks: List[CycleTaskResponse] = []
    deliverables: List[DeliverableResponse] = []
    done_count: int
    total_tasks: int
    completion_pct: int
    can_advance: bool
    can_pause: bool


class CycleStartResponse(BaseSchema):
    created: bool
    cycle: CycleResponse


class CycleReport(BaseSchema):
    cycle_id: UUID
    month: date
    label: str
    generated_at: datetime
    text: str


def cycle_response(cycle: ServiceCycle) -> CycleResponse:
    return CycleResponse(
        id=cycle.id,
        tenant_id=cycle.tenant_id,
        created_at=cycle.created_at,
        updated_at=cycle.updated_at,
        month=cycle.month,
        label=month_label(cycle.month),
        status=cycle.status,
        paused_from=cycle.paused_from,
        tasks=[CycleTaskResponse.model_validate(t) for t in cycle.tasks],
        deliverables=[DeliverableResponse.model_validate(d) for d in cycle.deliverables],
        done_count=cycle.done_count,
        total_tasks=len(cycle.tasks),
        completion_pct=cycle.completion_pct,
        can_advance=cycle.can_advance,
        can_pause=cycle.can_pause
    )


def _transition_conflict(exc: CycleTransitionError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.post("/{tenant_id}/cycles", response_model=CycleStartResponse)
async def start_cycle(
    payload: CycleStartRequest,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """
    Start the cycle for a month (this month by default).

    Starting a month that already has a cycle returns it unchanged with
    ``created`` false.
    """
    cycle, created = CycleService(db).start_cycle(membership.tenant_id, payload.month)
    return CycleStartResponse(created=created, cycle=cycle_response(cycle))


@router.get("/{tenant_id}/cycles", response_model=List[CycleResponse])
async def list_cycles(
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """Cycle history, newest month first."""
    cycles = db.query(ServiceCycle).options(
        selectinload(ServiceCycle.tasks),
        selectinload(ServiceCycle.deliverables)
    ).filter(
        ServiceCycle.tenant_id == membership.tenant_id
    ).order_by(ServiceCycle.month.desc()).all()
    return [cycle_response(c) for c in cycles]


@router.get("/{tenant_id}/cycles/{cycle_id}", response_model=CycleResponse)
async def get_cycle(
    cycle_id: UUID,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    cycle = get_scoped_or_404(db, ServiceCycle, membership.tenant_id, cycle_id, "Cycle")
    return cycle_response(cycle)


@router.post("/{tenant_id}/cycles/{cycle_id}/advance", response_model=CycleResponse)
async def advance_cycle(
    cycle_id: UUID,
    payload: AdvanceRequest,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """
    Move a cycle to its next status.

    Raises:
        HTTPException: 409 if the cycle is paused or delivered, or tasks
            are still open and ``confirm`` is false
    """
    cycle = get_scoped_or_404(db, ServiceCycle, membership.tenant_id, cycle_id, "Cycle")
    previous = CycleStatus(cycle.status)
    try:
        cycle.advance(confirm=payload.confirm)
    except CycleTransitionError as e:
        raise _transition_conflict(e)

    db.commit()
    db.refresh(cycle)

    logger.info(
        "Cycle advanced",
        tenant_id=str(cycle.tenant_id),
        cycle_id=str(cycle.id),
        from_status=previous.value,
        to_status=cycle.status.value,
        confirmed=payload.confirm
    )
    return cycle_response(cycle)


@router.post("/{tenant_id}/cycles/{cycle_id}/pause", response_model=CycleResponse)
async def pause_cycle(
    cycle_id: UUID,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    cycle = get_scoped_or_404(db, ServiceCycle, membership.tenant_id, cycle_id, "Cycle")
    try:
        cycle.pause()
    except CycleTransitionError as e:
        raise _transition_conflict(e)

    db.commit()
    db.refresh(cycle)

    logger.info("Cycle paused", tenant_id=str(cycle.tenant_id), cycle_id=str(cycle.id))
    return cycle_response(cycle)


@router.post("/{tenant_id}/cycles/{cycle_id}/resume", response_model=CycleResponse)
async def resume_cycle(
    cycle_id: UUID,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    cycle = get_scoped_or_404(db, ServiceCycle, membership.tenant_id, cycle_id, "Cycle")
    try:
        cycle.resume()
    except CycleTransitionError as e:
        raise _transition_conflict(e)

    db.commit()
    db.refresh(cycle)

    logger.info(
        "Cycle resumed",
        tenant_id=str(cycle.tenant_id),
        cycle_id=str(cycle.id),
        status=cycle.status.value
    )
    return cycle_response(cycle)


@router.patch("/{tenant_id}/cycles/{cycle_id}/tasks/{task_id}", response_model=CycleTaskResponse)
async def update_cycle_task(
    cycle_id: UUID,
    task_id: UUID,
    payload: CycleTaskUpdate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """Update a checklist item's status, assignee or due date."""
    cycle = get_scoped_or_404(db, ServiceCycle, membership.tenant_id, cycle_id, "Cycle")
    task = db.query(CycleTask).filter(
        CycleTask.id == task_id,
        CycleTask.service_cycle_id == cycle.id
    ).first()
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )

    changes = payload.model_dump(exclude_unset=True)
    if payload.toggle:
        task.toggle()
    elif payload.status is not None:
        task.status = CycleTaskStatus(payload.status).value
    if "assignee" in changes:
        task.assignee = (payload.assignee or "").strip() or None
    if "due_date" in changes:
        task.due_date = payload.due_date

    db.commit()
    db.refresh(task)

    logger.info(
        "Cycle task updated",
        tenant_id=str(task.tenant_id),
        cycle_id=str(cycle.id),
        task_id=str(task.id),
        status=task.status
    )
    return task


@router.post(
    "/{tenant_id}/cycles/{cycle_id}/deliverables",
    response_model=DeliverableResponse,
    status_code=status.HTTP_201_CREATED
)
async def add_deliverable(
    cycle_id: UUID,
    payload: DeliverableCreate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    cycle = get_scoped_or_404(db, ServiceCycle, membership.tenant_id, cycle_id, "Cycle")
    deliverable = CycleService(db).add_deliverable(cycle, payload.type, payload.url)

    logger.info(
        "Deliverable added",
        tenant_id=str(cycle.tenant_id),
        cycle_id=str(cycle.id),
        deliverable_id=str(deliverable.id),
        type=deliverable.type
    )
    return deliverable


@router.get("/{tenant_id}/cycles/{cycle_id}/report", response_model=CycleReport)
async def cycle_report(
    cycle_id: UUID,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """
    Client-facing summary for a delivered cycle.

    Raises:
        HTTPException: 409 if the cycle has not been delivered
    """
    cycle = get_scoped_or_404(db, ServiceCycle, membership.tenant_id, cycle_id, "Cycle")
    if not cycle.is_delivered:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Report is only available for delivered cycles"
        )

    return CycleReport(
        cycle_id=cycle.id,
        month=cycle.month,
        label=month_label(cycle.month),
        generated_at=datetime.utcnow(),
        text=CycleService.build_report_summary(cycle)
    )
