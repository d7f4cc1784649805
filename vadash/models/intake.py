"""
Intake pipeline models.

Intake events arrive from an external form (receipts in, invoices out,
manual WhatsApp forwards, ...) and are triaged by the VA team before being
posted to the ledger as transactions.
"""

from sqlalchemy import Column, String, Text, Date, DateTime, Integer, Numeric, UniqueConstraint
from enum import Enum

from .base import BaseModel, TenantScopedMixin, JSONType, enum_column_type


class IntakeStatus(str, Enum):
    """Intake event triage status."""
    NEW = "new"
    CATEGORIZED = "categorized"
    POSTED = "posted"


class AlertStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class IntakeEvent(BaseModel, TenantScopedMixin):
    """Raw submission awaiting categorisation."""

    __tablename__ = "intake_events"

    source = Column(String(100), nullable=False)  # form_in, form_out, whatsapp_manual, ...
    date = Column(Date, nullable=True)
    amount = Column(Numeric(15, 2), nullable=True)
    description = Column(Text, nullable=True)
    attachment_url = Column(String(1000), nullable=True)
    raw_payload = Column(JSONType, nullable=True)
    status = Column(
        enum_column_type(IntakeStatus, "intake_status"),
        default=IntakeStatus.NEW,
        nullable=False
    )

    def __repr__(self):
        return f"<IntakeEvent(source={self.source}, status={self.status})>"


class MissingDataAlert(BaseModel, TenantScopedMixin):
    """Weekly flag raised when receipts are missing."""

    __tablename__ = "missing_data_alerts"
    __table_args__ = (
        UniqueConstraint("tenant_id", "week_start", name="uq_missing_data_alerts_tenant_week"),
    )

    week_start = Column(Date, nullable=False)
    missing_receipts_count = Column(Integer, default=0, nullable=False)
    last_submission_at = Column(DateTime, nullable=True)
    status = Column(String(20), default=AlertStatus.OPEN.value, nullable=False)

    def dismiss(self) -> None:
        self.status = AlertStatus.CLOSED.value
