"""
CRM entities (customers, vendors, partners) router for VA Dashboard.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import Field, field_validator
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from uuid import UUID
import time

from config.database import get_db
from config.logging import get_logger
from vadash.api.dependencies import get_tenant_membership
from vadash.api.schemas.base import BaseSchema, RecordSchema
from vadash.models.finance import Entity, EntityType, ENTITY_ID_PREFIX
from vadash.models.tenant import TenantUser

logger = get_logger(__name__)
router = APIRouter()

ID_ATTEMPTS = 3


class EntityCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    type: EntityType = EntityType.CUSTOMER
    email: Optional[str] = Field(None, max_length=255)
    terms: Optional[str] = Field(None, max_length=255)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email", "terms")
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return v
        return v.strip() or None


class EntityResponse(RecordSchema):
    entity_id: str
    name: str
    type: EntityType
    email: Optional[str] = None
    terms: Optional[str] = None


def generate_entity_id(db: Session, tenant_id: UUID, entity_type: EntityType,
                       seed: Optional[int] = None) -> str:
    """
    ``<C|V|P>-<6 digits>`` identifier, unique within the tenant.

    The digits come from the current time in milliseconds and are bumped
    until free.
    """
    prefix = ENTITY_ID_PREFIX[EntityType(entity_type)]
    number = (seed if seed is not None else int(time.time() * 1000)) % 1_000_000
    taken = {
        row.entity_id
        for row in db.query(Entity.entity_id).filter(
            Entity.tenant_id == tenant_id,
            Entity.entity_id.like(f"{prefix}-%")
        )
    }
    candidate = f"{prefix}-{number:06d}"
    while candidate in taken:
        number = (number + 1) % 1_000_000
        candidate = f"{prefix}-{number:06d}"
    return candidate


@router.get("/{tenant_id}/entities", response_model=List[EntityResponse])
async def list_entities(
    entity_type: Optional[EntityType] = Query(None, alias="type"),
    search: Optional[str] = Query(None, description="Matches name, email or entity id"),
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """Entities ordered by name."""
    query = db.query(Entity).filter(Entity.tenant_id == membership.tenant_id)
    if entity_type:
        query = query.filter(Entity.type == entity_type.value)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Entity.name.ilike(pattern),
            Entity.email.ilike(pattern),
            Entity.entity_id.ilike(pattern)
        ))
    return query.order_by(Entity.name).all()


@router.post("/{tenant_id}/entities", response_model=EntityResponse, status_code=status.HTTP_201_CREATED)
async def create_entity(
    payload: EntityCreate,
    membership: TenantUser = Depends(get_tenant_membership),
    db: Session = Depends(get_db)
):
    """Create an entity; the id is regenerated if a concurrent create took it first."""
    for attempt in range(1, ID_ATTEMPTS + 1):
        entity_id = generate_entity_id(db, membership.tenant_id, payload.type)
        entity = Entity(
            tenant_id=membership.tenant_id,
            entity_id=entity_id,
            **payload.model_dump()
        )
        db.add(entity)
        try:
            db.commit()
            break
        except IntegrityError:
            db.rollback()
            logger.warning(
                "Entity id clash",
                tenant_id=str(membership.tenant_id),
                entity_id=entity_id,
                attempt=attempt
            )
    else:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Entity id already exists"
        )
    db.refresh(entity)

    logger.info(
        "Entity created",
        tenant_id=str(membership.tenant_id),
        entity_id=entity.entity_id,
        type=entity.type
    )
    return entity
