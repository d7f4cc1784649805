"""
Base model classes and mixins for VA Dashboard database models.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Type
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Uuid, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declared_attr
import uuid

from config.database import Base


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def enum_column_type(enum_cls: Type[Enum], name: str) -> SQLEnum:
    """Enum column type that persists member values rather than names."""
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


def enum_values(enum_cls: Type[Enum]) -> List[str]:
    return [m.value for m in enum_cls]


def first_of_month(value: date) -> date:
    """Normalise a date to the first day of its month."""
    return value.replace(day=1)


PROTECTED_COLUMNS = frozenset({"id", "tenant_id", "created_at"})


def _plain(value: Any) -> Any:
    """Column value as JSON-friendly data."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    return value


class TimestampMixin:
    """created_at / updated_at, naive UTC."""

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class UUIDMixin:
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)


class BaseModel(Base, TimestampMixin, UUIDMixin):
    """Abstract base for every table: UUID key plus timestamps."""

    __abstract__ = True

    def to_dict(self, exclude: Iterable[str] = ()) -> Dict[str, Any]:
        """Column values keyed by column name, converted with ``_plain``."""
        skip = set(exclude)
        return {
            column.name: _plain(getattr(self, column.name))
            for column in self.__table__.columns
            if column.name not in skip
        }

    def update_from_dict(self, data: Dict[str, Any]) -> None:
        """Apply a partial update; keys, ownership and creation time never change."""
        for key, value in data.items():
            if key in PROTECTED_COLUMNS:
                continue
            if key in self.__table__.columns:
                setattr(self, key, value)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"


class TenantScopedMixin:
    """Row owned by one tenant; removed with it."""

    @declared_attr
    def tenant_id(cls):
        return Column(
            Uuid(as_uuid=True),
            ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )
