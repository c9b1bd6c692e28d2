"""
Reporting Domain Models.

Read-only report shapes.  Every monetary figure is a mapping of currency
code to Decimal total, ordered by magnitude for display.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

CurrencyTotals = dict[str, Decimal]


@dataclass(frozen=True)
class ReportMetadata:
    """When and for whom a report was generated."""
    report_type: str
    owner_id: UUID
    as_of: date


@dataclass(frozen=True)
class PortfolioSummary:
    """Revenue, supplier costs and expenses across the whole portfolio."""
    metadata: ReportMetadata
    revenue: CurrencyTotals = field(default_factory=dict)
    outstanding_receivables: CurrencyTotals = field(default_factory=dict)
    collected: CurrencyTotals = field(default_factory=dict)
    supplier_costs: CurrencyTotals = field(default_factory=dict)
    payables: CurrencyTotals = field(default_factory=dict)
    expenses: CurrencyTotals = field(default_factory=dict)
    job_count: int = 0
    outsourced_job_count: int = 0


@dataclass(frozen=True)
class SupplierStats:
    """Activity of one supplier.

    ``on_time_rate`` is None when no delivered record has both a due date
    and a delivery date.
    """
    supplier_id: UUID
    supplier_name: str
    record_count: int
    spend: CurrencyTotals
    delivered_count: int
    on_time_count: int
    on_time_rate: Decimal | None


@dataclass(frozen=True)
class ExpenseBreakdown:
    """Expense totals per classification, each per currency."""
    metadata: ReportMetadata
    paid: CurrencyTotals = field(default_factory=dict)
    unpaid: CurrencyTotals = field(default_factory=dict)
    overdue: CurrencyTotals = field(default_factory=dict)
