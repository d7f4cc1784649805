"""
Monthly service cycle model for VA Dashboard.

Each tenant gets at most one cycle per month. A cycle moves through a fixed
sequence of statuses and may be paused (and later resumed) at any point
before delivery::

    collecting -> processing -> reconciling -> reporting -> delivered
"""

from sqlalchemy import (
    Column, String, Integer, Date, ForeignKey, Uuid, UniqueConstraint
)
from sqlalchemy.orm import relationship
from enum import Enum
from typing import List, Optional

from .base import BaseModel, TenantScopedMixin, enum_column_type


class CycleStatus(str, Enum):
    """Service cycle status."""
    COLLECTING = "collecting"
    PROCESSING = "processing"
    RECONCILING = "reconciling"
    REPORTING = "reporting"
    DELIVERED = "delivered"
    PAUSED = "paused"


CYCLE_STATUS_ORDER = [
    CycleStatus.COLLECTING,
    CycleStatus.PROCESSING,
    CycleStatus.RECONCILING,
    CycleStatus.REPORTING,
    CycleStatus.DELIVERED,
]


class CycleTaskStatus(str, Enum):
    """Checklist item status."""
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


TASK_STATUS_NEXT = {
    CycleTaskStatus.TODO: CycleTaskStatus.IN_PROGRESS,
    CycleTaskStatus.IN_PROGRESS: CycleTaskStatus.DONE,
    CycleTaskStatus.DONE: CycleTaskStatus.TODO,
}


DELIVERABLE_TYPES = [
    "Report Pack",
    "Insight Summary",
    "Reconciliation",
    "BVA Report",
    "Invoice Summary",
    "Other",
]


class CycleTransitionError(ValueError):
    """Raised when a cycle status change is not allowed."""


cycle_status_type = enum_column_type(CycleStatus, "service_cycle_status")


class ServiceCycle(BaseModel, TenantScopedMixin):
    """One month of bookkeeping work for a tenant."""

    __tablename__ = "service_cycles"
    __table_args__ = (
        UniqueConstraint("tenant_id", "month", name="uq_service_cycles_tenant_month"),
    )

    month = Column(Date, nullable=False)  # first day of month
    status = Column(
        cycle_status_type,
        default=CycleStatus.COLLECTING,
        nullable=False
    )
    # Status held before the cycle was paused; restored on resume
    paused_from = Column(cycle_status_type, nullable=True)

    tenant = relationship("Tenant", back_populates="cycles")
    tasks = relationship(
        "CycleTask",
        back_populates="cycle",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CycleTask.position"
    )
    deliverables = relationship(
        "Deliverable",
        back_populates="cycle",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Deliverable.created_at"
    )

    def __repr__(self):
        return f"<ServiceCycle(tenant_id={self.tenant_id}, month={self.month}, status={self.status})>"

    @property
    def open_tasks(self) -> List["CycleTask"]:
        return [t for t in self.tasks if t.status != CycleTaskStatus.DONE]

    @property
    def done_count(self) -> int:
        return len(self.tasks) - len(self.open_tasks)

    @property
    def completion_pct(self) -> int:
        """Percentage of checklist items done, rounded."""
        if not self.tasks:
            return 0
        return round(self.done_count / len(self.tasks) * 100)

    @property
    def next_status(self) -> Optional[CycleStatus]:
        if self.status == CycleStatus.PAUSED:
            return None
        idx = CYCLE_STATUS_ORDER.index(CycleStatus(self.status))
        if idx >= len(CYCLE_STATUS_ORDER) - 1:
            return None
        return CYCLE_STATUS_ORDER[idx + 1]

    @property
    def can_advance(self) -> bool:
        return self.next_status is not None

    @property
    def can_pause(self) -> bool:
        return self.status not in (CycleStatus.PAUSED, CycleStatus.DELIVERED)

    @property
    def is_delivered(self) -> bool:
        return self.status == CycleStatus.DELIVERED

    def advance(self, confirm: bool = False) -> CycleStatus:
        """
        Move the cycle to the next status.

        Args:
            confirm: Advance even though checklist items are still open

        Returns:
            CycleStatus: The new status

        Raises:
            CycleTransitionError: If the cycle is paused or delivered, or
                open tasks remain and ``confirm`` is not set
        """
        target = self.next_status
        if target is None:
            raise CycleTransitionError(
                f"Cannot advance a cycle in status '{CycleStatus(self.status).value}'"
            )
        open_count = len(self.open_tasks)
        if open_count and not confirm:
            raise CycleTransitionError(
                f"{open_count} task(s) still open; confirm to advance anyway"
            )
        self.status = target
        return target

    def pause(self) -> None:
        if not self.can_pause:
            raise CycleTransitionError(
                f"Cannot pause a cycle in status '{CycleStatus(self.status).value}'"
            )
        self.paused_from = self.status
        self.status = CycleStatus.PAUSED

    def resume(self) -> CycleStatus:
        if self.status != CycleStatus.PAUSED:
            raise CycleTransitionError("Only paused cycles can be resumed")
        self.status = self.paused_from or CycleStatus.COLLECTING
        self.paused_from = None
        return self.status


class CycleTask(BaseModel, TenantScopedMixin):
    """Checklist item within a service cycle."""

    __tablename__ = "cycle_tasks"

    service_cycle_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("service_cycles.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    task_type = Column(String(200), nullable=False)
    assignee = Column(String(200), nullable=True)
    status = Column(String(20), default=CycleTaskStatus.TODO.value, nullable=False)
    due_date = Column(Date, nullable=True)
    position = Column(Integer, default=0, nullable=False)

    cycle = relationship("ServiceCycle", back_populates="tasks")

    def __repr__(self):
        return f"<CycleTask(task_type={self.task_type}, status={self.status})>"

    @property
    def is_done(self) -> bool:
        return self.status == CycleTaskStatus.DONE

    def toggle(self) -> str:
        """Cycle the status todo -> in_progress -> done -> todo."""
        current = CycleTaskStatus(self.status)
        self.status = TASK_STATUS_NEXT[current].value
        return self.status


class Deliverable(BaseModel, TenantScopedMixin):
    """Artifact handed to the client for a cycle."""

    __tablename__ = "deliverables"

    service_cycle_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("service_cycles.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    type = Column(String(100), nullable=False)
    url = Column(String(1000), nullable=True)

    cycle = relationship("ServiceCycle", back_populates="deliverables")

    def __repr__(self):
        return f"<Deliverable(type={self.type})>"
