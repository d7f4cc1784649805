"""
CRM and operations router for VA Dashboard: leads, opportunities,
projects, tasks and service engagements.
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
from vadash.models.crm import (
    Lead, LeadStatus, Opportunity, CRMStage, Project, ProjectHealth,
    Task, TaskStatus, ServiceEngagement
)
from vadash.models.tenant import TenantUser

logger = get_logger(__name__)
router = APIRouter()


def _money(value: Optional[float]) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


def _create(db: Session, obj, label: str):
    db.add(obj)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{label} already exists"
        )
    db.refresh(obj)
    return obj


# Leads

class LeadCreate(BaseSchema):
    lead_id: str = Field(..., min_length=1, max_length=50)
    entity_id: Optional[str] = Field(None, max_length=50)
    lead_source: Optional[str] = Field(None, max_length=100)
    date_generated: Optional[date_type] = None
    lead_status: LeadStatus = LeadStatus.NEW


class LeadStatusUpdate(BaseSchema):
    lead_status: LeadStatus


class LeadResponse(RecordSchema):
    lead_id: str
    entity_id: Optional[str] = None
    lead_source: Optional[str] = None
    date_generated: Optional[date_type] = None
    lead_status: LeadStatus


@router.get("/{tenant_id}/leads", response_model=List[LeadResponse])
async def list_leads(
    lead_status: Optional[LeadStatus] = Query(None, alias="status"),
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    query = db.query(Lead).filter(Lead.tenant_id == membership.tenant_id)
    if lead_status:
        query = query.filter(Lead.lead_status == lead_status)
    return query.order_by(Lead.created_at.desc()).all()


@router.post("/{tenant_id}/leads", response_model=LeadResponse, status_code=status.HTTP_201_CREATED)
async def create_lead(
    payload: LeadCreate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    lead = _create(db, Lead(tenant_id=membership.tenant_id, **payload.model_dump()), "Lead")
    logger.info("Lead created", tenant_id=str(membership.tenant_id), lead_id=lead.lead_id)
    return lead


@router.patch("/{tenant_id}/leads/{row_id}", response_model=LeadResponse)
async def update_lead_status(
    row_id: UUID,
    payload: LeadStatusUpdate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    lead = get_scoped_or_404(db, Lead, membership.tenant_id, row_id, "Lead")
    lead.lead_status = LeadStatus(payload.lead_status)
    db.commit()
    db.refresh(lead)

    logger.info(
        "Lead status changed",
        tenant_id=str(membership.tenant_id),
        lead_id=lead.lead_id,
        status=lead.lead_status.value
    )
    return lead


# Opportunities

class OpportunityCreate(BaseSchema):
    opp_id: str = Field(..., min_length=1, max_length=50)
    lead_id: Optional[str] = Field(None, max_length=50)
    amount: Optional[float] = Field(None, allow_inf_nan=False)
    stage: CRMStage = CRMStage.DISCOVERY
    probability: Optional[float] = Field(None, ge=0, le=100)
    exp_close_date: Optional[date_type] = None


class OpportunityStageUpdate(BaseSchema):
    stage: CRMStage


class OpportunityResponse(RecordSchema):
    opp_id: str
    lead_id: Optional[str] = None
    amount: Optional[float] = None
    stage: CRMStage
    probability: Optional[float] = None
    exp_close_date: Optional[date_type] = None


@router.get("/{tenant_id}/opportunities", response_model=List[OpportunityResponse])
async def list_opportunities(
    stage: Optional[CRMStage] = Query(None),
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    query = db.query(Opportunity).filter(Opportunity.tenant_id == membership.tenant_id)
    if stage:
        query = query.filter(Opportunity.stage == stage)
    return query.order_by(Opportunity.exp_close_date.is_(None), Opportunity.exp_close_date).all()


@router.post("/{tenant_id}/opportunities", response_model=OpportunityResponse, status_code=status.HTTP_201_CREATED)
async def create_opportunity(
    payload: OpportunityCreate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    data = payload.model_dump()
    data["amount"] = _money(payload.amount)
    data["probability"] = _money(payload.probability)
    opportunity = _create(db, Opportunity(tenant_id=membership.tenant_id, **data), "Opportunity")
    logger.info("Opportunity created", tenant_id=str(membership.tenant_id), opp_id=opportunity.opp_id)
    return opportunity


@router.patch("/{tenant_id}/opportunities/{row_id}", response_model=OpportunityResponse)
async def update_opportunity_stage(
    row_id: UUID,
    payload: OpportunityStageUpdate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """Move an opportunity to a stage; Won and Lost pin the probability and are final."""
    opportunity = get_scoped_or_404(db, Opportunity, membership.tenant_id, row_id, "Opportunity")
    stage = CRMStage(payload.stage)
    if opportunity.is_closed and stage != opportunity.stage:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Opportunity is closed as {opportunity.stage.value}"
        )
    opportunity.move_to(stage)
    db.commit()
    db.refresh(opportunity)

    logger.info(
        "Opportunity stage changed",
        tenant_id=str(membership.tenant_id),
        opp_id=opportunity.opp_id,
        stage=opportunity.stage.value
    )
    return opportunity


# Projects

class ProjectCreate(BaseSchema):
    project_id: str = Field(..., min_length=1, max_length=50)
    opp_id: Optional[str] = Field(None, max_length=50)
    entity_id: Optional[str] = Field(None, max_length=50)
    start_date: Optional[date_type] = None
    due_date: Optional[date_type] = None
    project_health: ProjectHealth = ProjectHealth.GREEN


class ProjectUpdate(BaseSchema):
    start_date: Optional[date_type] = None
    due_date: Optional[date_type] = None
    project_health: Optional[ProjectHealth] = None


class ProjectResponse(RecordSchema):
    project_id: str
    opp_id: Optional[str] = None
    entity_id: Optional[str] = None
    start_date: Optional[date_type] = None
    due_date: Optional[date_type] = None
    project_health: ProjectHealth


@router.get("/{tenant_id}/projects", response_model=List[ProjectResponse])
async def list_projects(
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    return db.query(Project).filter(
        Project.tenant_id == membership.tenant_id
    ).order_by(Project.due_date.is_(None), Project.due_date).all()


@router.post("/{tenant_id}/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    project = _create(db, Project(tenant_id=membership.tenant_id, **payload.model_dump()), "Project")
    logger.info("Project created", tenant_id=str(membership.tenant_id), project_id=project.project_id)
    return project


@router.patch("/{tenant_id}/projects/{row_id}", response_model=ProjectResponse)
async def update_project(
    row_id: UUID,
    payload: ProjectUpdate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    project = get_scoped_or_404(db, Project, membership.tenant_id, row_id, "Project")
    changes = payload.model_dump(exclude_unset=True)
    if "project_health" in changes and changes["project_health"] is None:
        del changes["project_health"]
    project.update_from_dict(changes)
    db.commit()
    db.refresh(project)

    logger.info("Project updated", tenant_id=str(membership.tenant_id), project_id=project.project_id)
    return project


# Tasks

class TaskCreate(BaseSchema):
    task_id: str = Field(..., min_length=1, max_length=50)
    project_id: Optional[str] = Field(None, max_length=50)
    assigned_to: Optional[str] = Field(None, max_length=200)
    due_date: Optional[date_type] = None
    status: TaskStatus = TaskStatus.PENDING


class TaskUpdate(BaseSchema):
    assigned_to: Optional[str] = Field(None, max_length=200)
    due_date: Optional[date_type] = None
    status: Optional[TaskStatus] = None


class TaskResponse(RecordSchema):
    task_id: str
    project_id: Optional[str] = None
    assigned_to: Optional[str] = None
    due_date: Optional[date_type] = None
    status: TaskStatus


@router.get("/{tenant_id}/tasks", response_model=List[TaskResponse])
async def list_tasks(
    task_status: Optional[TaskStatus] = Query(None, alias="status"),
    project_id: Optional[str] = Query(None),
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    query = db.query(Task).filter(Task.tenant_id == membership.tenant_id)
    if task_status:
        query = query.filter(Task.status == task_status)
    if project_id:
        query = query.filter(Task.project_id == project_id)
    return query.order_by(Task.due_date.is_(None), Task.due_date).all()


@router.post("/{tenant_id}/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    task = _create(db, Task(tenant_id=membership.tenant_id, **payload.model_dump()), "Task")
    logger.info("Task created", tenant_id=str(membership.tenant_id), task_id=task.task_id)
    return task


@router.patch("/{tenant_id}/tasks/{row_id}", response_model=TaskResponse)
async def update_task(
    row_id: UUID,
    payload: TaskUpdate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    task = get_scoped_or_404(db, Task, membership.tenant_id, row_id, "Task")
    changes = payload.model_dump(exclude_unset=True)
    if "status" in changes and changes["status"] is None:
        del changes["status"]
    task.update_from_dict(changes)
    db.commit()
    db.refresh(task)

    logger.info(
        "Task updated",
        tenant_id=str(membership.tenant_id),
        task_id=task.task_id,
        status=task.status.value
    )
    return task


# Service engagements

class EngagementCreate(BaseSchema):
    start_date: Optional[date_type] = None
    billing_type: Optional[str] = Field(None, max_length=50)
    monthly_retainer: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    setup_fee: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    status: Optional[str] = Field(None, max_length=50)


class EngagementResponse(RecordSchema):
    start_date: Optional[date_type] = None
    billing_type: Optional[str] = None
    monthly_retainer: Optional[float] = None
    setup_fee: Optional[float] = None
    status: Optional[str] = None


@router.get("/{tenant_id}/engagements", response_model=List[EngagementResponse])
async def list_engagements(
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    return db.query(ServiceEngagement).filter(
        ServiceEngagement.tenant_id == membership.tenant_id
    ).order_by(ServiceEngagement.created_at.desc()).all()


@router.post("/{tenant_id}/engagements", response_model=EngagementResponse, status_code=status.HTTP_201_CREATED)
async def create_engagement(
    payload: EngagementCreate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    data = payload.model_dump()
    data["monthly_retainer"] = _money(payload.monthly_retainer)
    data["setup_fee"] = _money(payload.setup_fee)
    engagement = _create(db, ServiceEngagement(tenant_id=membership.tenant_id, **data), "Engagement")
    logger.info("Engagement created", tenant_id=str(membership.tenant_id), engagement_id=str(engagement.id))
    return engagement
