"""
VA Dashboard - multi-tenant operations dashboard for a bookkeeping and
virtual-assistant service.

Tracks client tenants, monthly service cycles and their checklists,
transactions, budgets and invoices, CRM records and a form-fed intake
pipeline, behind per-tenant membership checks.
"""

__version__ = "1.0.0"
__author__ = "VA Dashboard Team"
__description__ = "Multi-tenant operations dashboard for bookkeeping services"
