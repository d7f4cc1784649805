"""
Tenant management router for VA Dashboard.

Tenants are listed and created by any signed-in user; everything else
requires a membership in the tenant.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import EmailStr, Field, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from datetime import date, datetime
from uuid import UUID

from config.database import get_db
from config.logging import get_logger
from vadash.api.dependencies import get_current_active_user, get_tenant_membership
from vadash.api.schemas.base import BaseSchema
from vadash.models.cycle import ServiceCycle, CycleTask, CycleStatus, CycleTaskStatus
from vadash.models.finance import Invoice, INVOICE_CLOSED_STATUSES
from vadash.models.intake import IntakeEvent, IntakeStatus, MissingDataAlert, AlertStatus
from vadash.models.tenant import Tenant, TenantUser, TenantRole, PackageTier
from vadash.models.user import User
from vadash.services.cycle_service import current_month

logger = get_logger(__name__)
router = APIRouter()


def _blank_to_none(v):
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


class TenantCreate(BaseSchema):
    """Tenant creation schema."""

    name: str = Field(..., min_length=1, max_length=200)
    package_tier: PackageTier
    niche: Optional[str] = Field(None, max_length=200)
    timezone: Optional[str] = Field(None, max_length=100)
    currency: Optional[str] = Field(None, max_length=10)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("niche", "timezone", "currency")
    @classmethod
    def blank_to_none(cls, v):
        return _blank_to_none(v)


class TenantUpdate(BaseSchema):
    """Tenant update schema; omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    package_tier: Optional[PackageTier] = None
    niche: Optional[str] = Field(None, max_length=200)
    timezone: Optional[str] = Field(None, max_length=100)
    currency: Optional[str] = Field(None, max_length=10)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v

    @field_validator("niche", "timezone", "currency")
    @classmethod
    def blank_to_none(cls, v):
        return _blank_to_none(v)


class TenantResponse(BaseSchema):
    id: UUID
    name: str
    package_tier: PackageTier
    niche: Optional[str] = None
    timezone: Optional[str] = None
    currency: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CycleBrief(BaseSchema):
    id: UUID
    month: date
    status: CycleStatus


class TenantListItem(TenantResponse):
    role: TenantRole
    current_cycle: Optional[CycleBrief] = None


class MemberCreate(BaseSchema):
    email: EmailStr
    role: TenantRole = TenantRole.VIEWER


class MemberResponse(BaseSchema):
    id: UUID
    user_id: UUID
    email: str
    full_name: Optional[str] = None
    role: TenantRole
    created_at: datetime


class TenantOverview(BaseSchema):
    """Dashboard KPIs for one tenant."""

    tenant: TenantResponse
    role: TenantRole
    month: date
    open_intake: int
    cycle_id: Optional[UUID] = None
    cycle_status: Optional[CycleStatus] = None
    tasks_remaining: int
    open_invoices: int
    open_alerts: int


def _member_response(membership: TenantUser) -> MemberResponse:
    return MemberResponse(
        id=membership.id,
        user_id=membership.user_id,
        email=membership.user.email,
        full_name=membership.user.full_name,
        role=membership.role,
        created_at=membership.created_at
    )


@router.get("/", response_model=List[TenantListItem])
async def list_tenants(
    search: Optional[str] = Query(None, description="Case-insensitive name filter"),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """
    List tenants the current user belongs to, newest membership first.

    Each item carries the caller's role and this month's cycle, if started.
    """
    query = db.query(TenantUser, Tenant).join(
        Tenant, Tenant.id == TenantUser.tenant_id
    ).filter(TenantUser.user_id == current_user.id)

    if search and search.strip():
        query = query.filter(Tenant.name.ilike(f"%{search.strip()}%"))

    rows = query.order_by(TenantUser.created_at.desc()).all()

    tenant_ids = [tenant.id for _, tenant in rows]
    cycles = {}
    if tenant_ids:
        cycles = {
            c.tenant_id: c
            for c in db.query(ServiceCycle).filter(
                ServiceCycle.tenant_id.in_(tenant_ids),
                ServiceCycle.month == current_month()
            )
        }

    items = []
    for membership, tenant in rows:
        item = TenantListItem.model_validate(
            {**TenantResponse.model_validate(tenant).model_dump(), "role": membership.role}
        )
        cycle = cycles.get(tenant.id)
        if cycle:
            item.current_cycle = CycleBrief.model_validate(cycle)
        items.append(item)
    return items


@router.post("/", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    payload: TenantCreate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """
    Create a tenant and make the caller its owner.

    The tenant and the owner membership are committed together; if the
    membership cannot be written the tenant is not kept either.
    """
    tenant = Tenant(**payload.model_dump())
    db.add(tenant)
    try:
        db.flush()
        db.add(TenantUser(tenant_id=tenant.id, user_id=current_user.id, role=TenantRole.OWNER))
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error("Tenant creation failed", error=str(e), user_id=str(current_user.id))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not create tenant"
        )
    db.refresh(tenant)

    logger.info("Tenant created", tenant_id=str(tenant.id), user_id=str(current_user.id))
    return tenant


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(membership: TenantUser = Depends(get_tenant_membership)):
    return membership.tenant


@router.patch("/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    payload: TenantUpdate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """Partially update a tenant's profile."""
    tenant = membership.tenant
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name", "") is None or changes.get("package_tier", "") is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="name and package_tier cannot be null"
        )

    tenant.update_from_dict(changes)
    db.commit()
    db.refresh(tenant)

    logger.info("Tenant updated", tenant_id=str(tenant.id), fields=sorted(changes))
    return tenant


@router.get("/{tenant_id}/members", response_model=List[MemberResponse])
async def list_members(
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    members = db.query(TenantUser).filter(
        TenantUser.tenant_id == membership.tenant_id
    ).order_by(TenantUser.created_at).all()
    return [_member_response(m) for m in members]


@router.post("/{tenant_id}/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member(
    payload: MemberCreate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """
    Add an existing user to the tenant.

    Raises:
        HTTPException: 403 unless the caller is an owner or internal admin,
            404 if no user has that email, 409 if already a member
    """
    if not membership.can_manage_members:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only owners and internal admins can manage members"
        )

    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    existing = db.query(TenantUser).filter(
        TenantUser.tenant_id == membership.tenant_id,
        TenantUser.user_id == user.id
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User is already a member"
        )

    member = TenantUser(tenant_id=membership.tenant_id, user_id=user.id, role=payload.role)
    db.add(member)
    db.commit()
    db.refresh(member)

    logger.info(
        "Member added",
        tenant_id=str(membership.tenant_id),
        user_id=str(user.id),
        role=member.role.value
    )
    return _member_response(member)


@router.get("/{tenant_id}/overview", response_model=TenantOverview)
async def tenant_overview(
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """KPIs shown on the tenant's home page."""
    tenant_id = membership.tenant_id
    month = current_month()

    open_intake = db.query(IntakeEvent).filter(
        IntakeEvent.tenant_id == tenant_id,
        IntakeEvent.status == IntakeStatus.NEW
    ).count()

    cycle = db.query(ServiceCycle).filter(
        ServiceCycle.tenant_id == tenant_id,
        ServiceCycle.month == month
    ).first()

    tasks_remaining = 0
    if cycle:
        tasks_remaining = db.query(CycleTask).filter(
            CycleTask.service_cycle_id == cycle.id,
            CycleTask.status != CycleTaskStatus.DONE.value
        ).count()

    open_invoices = db.query(Invoice).filter(
        Invoice.tenant_id == tenant_id,
        (Invoice.status.is_(None)) | (Invoice.status.notin_(sorted(INVOICE_CLOSED_STATUSES)))
    ).count()

    open_alerts = db.query(MissingDataAlert).filter(
        MissingDataAlert.tenant_id == tenant_id,
        MissingDataAlert.status == AlertStatus.OPEN.value
    ).count()

    return TenantOverview(
        tenant=TenantResponse.model_validate(membership.tenant),
        role=membership.role,
        month=month,
        open_intake=open_intake,
        cycle_id=cycle.id if cycle else None,
        cycle_status=cycle.status if cycle else None,
        tasks_remaining=tasks_remaining,
        open_invoices=open_invoices,
        open_alerts=open_alerts
    )
