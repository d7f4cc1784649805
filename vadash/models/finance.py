"""
Bookkeeping models: entities, categories, accounts, transactions, budgets
and invoices.

Cross references between these tables (``category_id``, ``entity_id``) use
the tenant's own business identifiers (e.g. ``1100``, ``ENT-101``) rather
than row UUIDs, matching how clients name things in their books.
"""

from sqlalchemy import (
    Column, String, Text, Date, Numeric, UniqueConstraint, CheckConstraint
)
from datetime import date as date_type
from enum import Enum
from typing import Optional

from .base import BaseModel, TenantScopedMixin, enum_column_type, enum_values


class EntityType(str, Enum):
    """Counterparty kind."""
    CUSTOMER = "Customer"
    VENDOR = "Vendor"
    PARTNER = "Partner"


ENTITY_ID_PREFIX = {
    EntityType.CUSTOMER: "C",
    EntityType.VENDOR: "V",
    EntityType.PARTNER: "P",
}


class CategoryType(str, Enum):
    """Chart-of-accounts category kind."""
    REVENUE = "Rev"
    EXPENSE = "Exp"
    ASSET = "Ast"
    LIABILITY = "Liab"


class TransactionStatus(str, Enum):
    """Transaction lifecycle status."""
    PLANNED = "Planned"
    SENT = "Sent"
    RECEIVED = "Received"
    PAID = "Paid"
    CANCELLED = "Cancelled"
    RECONCILED = "Reconciled"


INVOICE_PAID = "paid"
INVOICE_CANCELLED = "cancelled"
INVOICE_CLOSED_STATUSES = {INVOICE_PAID, INVOICE_CANCELLED}


def _in_check(column: str, values) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class Entity(BaseModel, TenantScopedMixin):
    """Customer, vendor or partner of a tenant."""

    __tablename__ = "entities"
    __table_args__ = (
        UniqueConstraint("tenant_id", "entity_id", name="uq_entities_tenant_entity"),
        CheckConstraint(_in_check("type", enum_values(EntityType)), name="type"),
    )

    entity_id = Column(String(50), nullable=False)  # e.g. ENT-101
    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)
    terms = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<Entity(entity_id={self.entity_id}, name={self.name})>"


class Category(BaseModel, TenantScopedMixin):
    """Ledger category (e.g. 1100 Service Revenue)."""

    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("tenant_id", "category_id", name="uq_categories_tenant_category"),
        CheckConstraint(_in_check("type", enum_values(CategoryType)), name="type"),
    )

    category_id = Column(String(50), nullable=False)
    category_name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=True)
    type = Column(String(10), nullable=False)

    def __repr__(self):
        return f"<Category(category_id={self.category_id}, type={self.type})>"


class Account(BaseModel, TenantScopedMixin):
    """Bank or cash account."""

    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint("tenant_id", "account_id", name="uq_accounts_tenant_account"),
    )

    account_id = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    initial_cash = Column(Numeric(15, 2), nullable=True)


class Transaction(BaseModel, TenantScopedMixin):
    """Ledger line."""

    __tablename__ = "transactions"

    date = Column(Date, nullable=False, index=True)
    description = Column(Text, nullable=False)
    category_id = Column(String(50), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    entity_id = Column(String(50), nullable=True)
    status = Column(
        enum_column_type(TransactionStatus, "transaction_status"),
        default=TransactionStatus.PLANNED,
        nullable=False
    )

    def __repr__(self):
        return f"<Transaction(date={self.date}, amount={self.amount}, status={self.status})>"


class Budget(BaseModel, TenantScopedMixin):
    """Budgeted amount for a category in a month."""

    __tablename__ = "budgets"
    __table_args__ = (
        UniqueConstraint("tenant_id", "category_id", "month", name="uq_budgets_tenant_category_month"),
    )

    category_id = Column(String(50), nullable=False)
    month = Column(Date, nullable=False)  # first day of month
    budgeted_amount = Column(Numeric(15, 2), nullable=False)


class Invoice(BaseModel, TenantScopedMixin):
    """Invoice issued to or received from an entity."""

    __tablename__ = "invoices"

    invoice_id = Column(String(50), nullable=True)
    entity_id = Column(String(50), nullable=True)
    date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True, index=True)
    amount = Column(Numeric(15, 2), nullable=True)
    status = Column(String(20), nullable=True, default="open")

    @property
    def is_open(self) -> bool:
        return self.status not in INVOICE_CLOSED_STATUSES

    def is_overdue(self, today: Optional[date_type] = None) -> bool:
        today = today or date_type.today()
        return bool(self.due_date and self.due_date < today and self.is_open)

    def mark_paid(self) -> None:
        self.status = INVOICE_PAID

    def __repr__(self):
        return f"<Invoice(invoice_id={self.invoice_id}, status={self.status})>"
