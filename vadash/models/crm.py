"""
CRM and operations models: leads, opportunities, projects, tasks and
service engagements.
"""

from sqlalchemy import Column, String, Date, DateTime, Numeric, UniqueConstraint
from datetime import datetime
from enum import Enum

from .base import BaseModel, TenantScopedMixin, enum_column_type


class LeadStatus(str, Enum):
    NEW = "New"
    ATTEMPTED = "Attempted"
    BOOKED = "Booked"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class CRMStage(str, Enum):
    DISCOVERY = "Discovery"
    PROPOSAL = "Proposal"
    NEGOTIATION = "Negotiation"
    WON = "Won"
    LOST = "Lost"


class TaskStatus(str, Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    BLOCKED = "Blocked"
    COMPLETED = "Completed"


class ProjectHealth(str, Enum):
    GREEN = "Green"
    YELLOW = "Yellow"
    RED = "Red"


class Lead(BaseModel, TenantScopedMixin):
    __tablename__ = "leads"
    __table_args__ = (
        UniqueConstraint("tenant_id", "lead_id", name="uq_leads_tenant_lead"),
    )

    lead_id = Column(String(50), nullable=False)
    entity_id = Column(String(50), nullable=True)
    lead_source = Column(String(100), nullable=True)
    date_generated = Column(Date, nullable=True)
    lead_status = Column(
        enum_column_type(LeadStatus, "lead_status"),
        default=LeadStatus.NEW,
        nullable=False
    )


class Opportunity(BaseModel, TenantScopedMixin):
    __tablename__ = "opportunities"
    __table_args__ = (
        UniqueConstraint("tenant_id", "opp_id", name="uq_opportunities_tenant_opp"),
    )

    opp_id = Column(String(50), nullable=False)
    lead_id = Column(String(50), nullable=True)
    amount = Column(Numeric(15, 2), nullable=True)
    stage = Column(
        enum_column_type(CRMStage, "crm_stage"),
        default=CRMStage.DISCOVERY,
        nullable=False
    )
    probability = Column(Numeric(5, 2), nullable=True)
    exp_close_date = Column(Date, nullable=True)

    @property
    def is_closed(self) -> bool:
        return self.stage in (CRMStage.WON, CRMStage.LOST)

    def move_to(self, stage: CRMStage) -> None:
        """Change stage; closing an opportunity pins its probability."""
        self.stage = stage
        if stage == CRMStage.WON:
            self.probability = 100
        elif stage == CRMStage.LOST:
            self.probability = 0
        self.updated_at = datetime.utcnow()


class Project(BaseModel, TenantScopedMixin):
    __tablename__ = "projects"
    __table_args__ = (
        UniqueConstraint("tenant_id", "project_id", name="uq_projects_tenant_project"),
    )

    project_id = Column(String(50), nullable=False)
    opp_id = Column(String(50), nullable=True)
    entity_id = Column(String(50), nullable=True)
    start_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    project_health = Column(
        enum_column_type(ProjectHealth, "project_health"),
        default=ProjectHealth.GREEN,
        nullable=False
    )


class Task(BaseModel, TenantScopedMixin):
    """Operational task, independent of the monthly cycle checklist."""

    __tablename__ = "tasks"
    __table_args__ = (
        UniqueConstraint("tenant_id", "task_id", name="uq_tasks_tenant_task"),
    )

    task_id = Column(String(50), nullable=False)
    project_id = Column(String(50), nullable=True)
    assigned_to = Column(String(200), nullable=True)
    due_date = Column(Date, nullable=True)
    status = Column(
        enum_column_type(TaskStatus, "task_status"),
        default=TaskStatus.PENDING,
        nullable=False
    )


class ServiceEngagement(BaseModel, TenantScopedMixin):
    """Commercial terms agreed with the tenant."""

    __tablename__ = "service_engagements"

    start_date = Column(Date, nullable=True)
    billing_type = Column(String(50), nullable=True)
    monthly_retainer = Column(Numeric(15, 2), nullable=True)
    setup_fee = Column(Numeric(15, 2), nullable=True)
    status = Column(String(50), nullable=True)
