"""
Shared request/response schemas for the VA Dashboard API.
"""

from typing import Any, List, Sequence
from datetime import datetime
from pydantic import BaseModel, ConfigDict
from uuid import UUID


class BaseSchema(BaseModel):
    """Reads ORM objects; enums are emitted as their values."""

    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
    )


class RecordSchema(BaseSchema):
    """Columns every tenant-scoped row carries."""

    id: UUID
    tenant_id: UUID
    created_at: datetime
    updated_at: datetime


class PaginatedResponse(BaseSchema):
    """One page of a tenant list."""

    items: List[Any]
    total: int
    skip: int
    limit: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, items: List[Any], total: int, skip: int, limit: int) -> "PaginatedResponse":
        return cls(
            items=items,
            total=total,
            skip=skip,
            limit=limit,
            has_next=skip + limit < total,
            has_prev=skip > 0
        )


def paginate(query, schema, skip: int, limit: int, order_by: Sequence = ()) -> PaginatedResponse:
    """Count, order and slice a query into a ``PaginatedResponse``."""
    total = query.count()
    rows = query.order_by(*order_by).offset(skip).limit(limit).all()
    return PaginatedResponse.build([schema.model_validate(row) for row in rows], total, skip, limit)
