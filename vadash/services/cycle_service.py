"""
Service cycle operations for VA Dashboard.
"""

from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.settings import settings
from config.logging import LoggerMixin, log_performance
from vadash.models.base import first_of_month
from vadash.models.cycle import (
    ServiceCycle, CycleTask, CycleStatus, CycleTaskStatus, Deliverable
)


def current_month(today: Optional[date] = None) -> date:
    """First day of the current month."""
    return first_of_month(today or date.today())


def month_label(month: date) -> str:
    return month.strftime("%B %Y")


class CycleService(LoggerMixin):
    """Creates and reports on monthly service cycles."""

    def __init__(self, db: Session, task_types: Optional[List[str]] = None):
        self.db = db
        self.task_types = list(task_types or settings.default_cycle_tasks)

    def get_for_month(self, tenant_id: UUID, month: date) -> Optional[ServiceCycle]:
        return self.db.query(ServiceCycle).filter(
            ServiceCycle.tenant_id == tenant_id,
            ServiceCycle.month == first_of_month(month)
        ).first()

    @log_performance("cycle_start")
    def start_cycle(self, tenant_id: UUID, month: Optional[date] = None) -> Tuple[ServiceCycle, bool]:
        """
        Start the cycle for a month, seeding the default checklist.

        Starting a month that already has a cycle leaves it untouched.

        Args:
            tenant_id: Tenant UUID
            month: Any date within the target month; defaults to this month

        Returns:
            Tuple of the cycle and whether it was created by this call
        """
        month = first_of_month(month) if month else current_month()

        existing = self.get_for_month(tenant_id, month)
        if existing:
            self.logger.info(
                "Cycle already started",
                tenant_id=str(tenant_id),
                month=month.isoformat(),
                status=CycleStatus(existing.status).value
            )
            return existing, False

        cycle = ServiceCycle(
            tenant_id=tenant_id,
            month=month,
            status=CycleStatus.COLLECTING
        )
        cycle.tasks = [
            CycleTask(
                tenant_id=tenant_id,
                task_type=task_type,
                status=CycleTaskStatus.TODO.value,
                position=position
            )
            for position, task_type in enumerate(self.task_types)
        ]

        self.db.add(cycle)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent start for the same month
            self.db.rollback()
            return self.get_for_month(tenant_id, month), False
        self.db.refresh(cycle)

        self.logger.info(
            "Cycle started",
            tenant_id=str(tenant_id),
            cycle_id=str(cycle.id),
            month=month.isoformat(),
            tasks=len(cycle.tasks)
        )
        return cycle, True

    def add_deliverable(self, cycle: ServiceCycle, type_: str, url: Optional[str] = None) -> Deliverable:
        deliverable = Deliverable(
            service_cycle_id=cycle.id,
            tenant_id=cycle.tenant_id,
            type=type_,
            url=(url or "").strip() or None
        )
        self.db.add(deliverable)
        self.db.commit()
        self.db.refresh(deliverable)
        return deliverable

    @staticmethod
    def build_report_summary(cycle: ServiceCycle) -> str:
        """
        Plain-text summary sent to the client once a cycle is delivered.

        Args:
            cycle: Cycle with tasks and deliverables loaded

        Returns:
            str: Summary text, one item per line
        """
        tasks = list(cycle.tasks)
        done = [t for t in tasks if t.is_done]
        still_open = [t for t in tasks if not t.is_done]
        deliverables = list(cycle.deliverables)

        lines = [
            "Hi,",
            "",
            f"Your {month_label(cycle.month)} bookkeeping is complete. Here's a quick summary:",
            "",
            f"Completed tasks ({len(done)}/{len(tasks)}):",
        ]
        lines.extend(f"  - {t.task_type}" for t in done)
        if still_open:
            lines.append("")
            lines.append(f"Open items ({len(still_open)}):")
            lines.extend(f"  - {t.task_type}" for t in still_open)
        if deliverables:
            lines.append("")
            lines.append(f"Deliverables ({len(deliverables)}):")
            lines.extend(
                f"  - {d.type}: {d.url}" if d.url else f"  - {d.type}"
                for d in deliverables
            )
        lines.extend([
            "",
            "Please review and let me know if you have any questions.",
            "",
            "Thanks,",
        ])
        return "\n".join(lines)
