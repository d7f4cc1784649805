"""
CSV exports for VA Dashboard lists.
"""

from datetime import date
from typing import Dict, Iterable, Optional
from uuid import UUID

import pandas as pd

from vadash.models.finance import Transaction, Category
from vadash.models.intake import IntakeEvent


TRANSACTION_COLUMNS = ["Date", "Description", "Category", "Amount", "Entity", "Status"]
INTAKE_COLUMNS = ["Date", "Description", "Amount", "Status", "Source"]


def export_filename(kind: str, tenant_id: UUID, today: Optional[date] = None) -> str:
    """e.g. ``transactions-<tenant>-2026-02-14.csv``"""
    today = today or date.today()
    return f"{kind}-{tenant_id}-{today.isoformat()}.csv"


def _enum_value(value) -> str:
    return getattr(value, "value", value) or ""


def _amount(value) -> str:
    return "" if value is None else str(value)


def transactions_to_csv(transactions: Iterable[Transaction],
                        categories: Dict[str, Category]) -> str:
    """
    Render transactions as CSV, showing category names where known.

    Args:
        transactions: Rows to export, in display order
        categories: Category lookup keyed by ``category_id``

    Returns:
        str: CSV text with a header row
    """
    rows = []
    for tx in transactions:
        category = categories.get(tx.category_id)
        rows.append([
            tx.date.isoformat(),
            tx.description,
            category.category_name if category else tx.category_id,
            _amount(tx.amount),
            tx.entity_id or "",
            _enum_value(tx.status),
        ])
    return pd.DataFrame(rows, columns=TRANSACTION_COLUMNS).to_csv(index=False, lineterminator="\n")


def intake_events_to_csv(events: Iterable[IntakeEvent]) -> str:
    rows = [
        [
            event.date.isoformat() if event.date else "",
            event.description or "",
            _amount(event.amount),
            _enum_value(event.status),
            event.source,
        ]
        for event in events
    ]
    return pd.DataFrame(rows, columns=INTAKE_COLUMNS).to_csv(index=False, lineterminator="\n")
