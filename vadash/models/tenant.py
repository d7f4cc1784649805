"""
Tenant and membership models.

A tenant is a client business serviced by the VA team. Staff users reach a
tenant's data only through a ``TenantUser`` membership row.
"""

from sqlalchemy import Column, String, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from enum import Enum

from .base import BaseModel, enum_column_type


class PackageTier(str, Enum):
    """Service package sold to the client."""
    FOUNDATION = "foundation"
    GROWTH = "growth"
    CFO_LITE = "cfo_lite"


class TenantRole(str, Enum):
    """Role of a staff user within a tenant."""
    OWNER = "owner"
    INTERNAL_ADMIN = "internal_admin"
    BOOKKEEPER = "bookkeeper"
    ANALYST = "analyst"
    VIEWER = "viewer"


# Roles allowed to manage a tenant's membership list
MANAGER_ROLES = {TenantRole.OWNER, TenantRole.INTERNAL_ADMIN}


class Tenant(BaseModel):
    """Client business."""

    __tablename__ = "tenants"

    name = Column(String(200), nullable=False)
    package_tier = Column(
        enum_column_type(PackageTier, "package_tier"),
        default=PackageTier.FOUNDATION,
        nullable=False
    )
    niche = Column(String(200), nullable=True)
    timezone = Column(String(100), nullable=True)
    currency = Column(String(10), nullable=True)

    members = relationship(
        "TenantUser",
        back_populates="tenant",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="dynamic"
    )
    cycles = relationship(
        "ServiceCycle",
        back_populates="tenant",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="dynamic"
    )

    def __repr__(self):
        return f"<Tenant(name={self.name}, tier={self.package_tier})>"


class TenantUser(BaseModel):
    """Membership of a staff user in a tenant."""

    __tablename__ = "tenant_users"
    __table_args__ = (
        UniqueConstraint("tenant_id", "user_id", name="uq_tenant_users_tenant_user"),
    )

    tenant_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    role = Column(
        enum_column_type(TenantRole, "tenant_user_role"),
        default=TenantRole.VIEWER,
        nullable=False
    )

    tenant = relationship("Tenant", back_populates="members")
    user = relationship("User", back_populates="memberships")

    @property
    def can_manage_members(self) -> bool:
        return self.role in MANAGER_ROLES

    def __repr__(self):
        return f"<TenantUser(tenant_id={self.tenant_id}, user_id={self.user_id}, role={self.role})>"
