"""
Intake pipeline operations: ingesting form submissions, posting them to the
ledger and tracking weekly missing-data alerts.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID
from sqlalchemy.orm import Session

from config.logging import LoggerMixin
from vadash.models.finance import Transaction, TransactionStatus
from vadash.models.intake import IntakeEvent, IntakeStatus, MissingDataAlert, AlertStatus


DEFAULT_POSTED_DESCRIPTION = "Intake event"


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


class IntakeService(LoggerMixin):
    """Moves intake events from submission to the ledger."""

    def __init__(self, db: Session):
        self.db = db

    def ingest(self, tenant_id: UUID, data: Dict[str, Any]) -> IntakeEvent:
        """
        Store a submission from the external intake form.

        Args:
            tenant_id: Tenant the submission belongs to
            data: Validated submission fields (source, date, amount,
                description, attachment_url, raw_payload)

        Returns:
            IntakeEvent: The stored event, status ``new``
        """
        amount = data.get("amount")
        event = IntakeEvent(
            tenant_id=tenant_id,
            source=data["source"],
            date=data.get("date"),
            amount=Decimal(str(amount)) if amount is not None else None,
            description=data.get("description"),
            attachment_url=data.get("attachment_url"),
            raw_payload=data.get("raw_payload"),
            status=IntakeStatus.NEW
        )
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)

        self.logger.info(
            "Intake event received",
            tenant_id=str(tenant_id),
            event_id=str(event.id),
            source=event.source
        )
        return event

    def post_to_ledger(
        self,
        event: IntakeEvent,
        txn_date: date,
        category_id: str,
        amount: Optional[float] = None,
        description: Optional[str] = None,
        entity_id: Optional[str] = None
    ) -> Transaction:
        """
        Create a ``Received`` transaction from an intake event and mark the
        event ``posted``. Both changes are committed together.
        """
        category_id = (category_id or "").strip()
        if not category_id:
            raise ValueError("Category ID is required")

        transaction = Transaction(
            tenant_id=event.tenant_id,
            date=txn_date,
            description=(description or "").strip() or DEFAULT_POSTED_DESCRIPTION,
            category_id=category_id,
            amount=Decimal(str(amount)) if amount is not None else Decimal("0"),
            entity_id=entity_id,
            status=TransactionStatus.RECEIVED
        )
        event.status = IntakeStatus.POSTED

        self.db.add(transaction)
        self.db.commit()
        self.db.refresh(transaction)

        self.logger.info(
            "Intake event posted",
            tenant_id=str(event.tenant_id),
            event_id=str(event.id),
            transaction_id=str(transaction.id)
        )
        return transaction

    def record_missing_receipts(
        self,
        tenant_id: UUID,
        day: date,
        missing_receipts_count: int,
        last_submission_at: Optional[datetime] = None
    ) -> MissingDataAlert:
        """Create or refresh the alert for the week containing ``day``."""
        start = week_start(day)
        alert = self.db.query(MissingDataAlert).filter(
            MissingDataAlert.tenant_id == tenant_id,
            MissingDataAlert.week_start == start
        ).first()

        if alert is None:
            alert = MissingDataAlert(tenant_id=tenant_id, week_start=start)
            self.db.add(alert)

        alert.missing_receipts_count = missing_receipts_count
        alert.last_submission_at = last_submission_at
        alert.status = AlertStatus.OPEN.value if missing_receipts_count > 0 else AlertStatus.CLOSED.value

        self.db.commit()
        self.db.refresh(alert)
        return alert
