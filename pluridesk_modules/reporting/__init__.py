"""
Reporting Module (``pluridesk_modules.reporting``).

Read-only per-currency summaries over jobs, invoices, outsourcing and
expenses.
"""

from pluridesk_modules.reporting.models import (
    ExpenseBreakdown,
    PortfolioSummary,
    ReportMetadata,
    SupplierStats,
)
from pluridesk_modules.reporting.service import ReportingService

__all__ = [
    "ExpenseBreakdown",
    "PortfolioSummary",
    "ReportMetadata",
    "ReportingService",
    "SupplierStats",
]
