"""
Reporting Service (``pluridesk_modules.reporting.service``).

Responsibility
--------------
Composes ``pluridesk_engines.aggregation`` over invoices, outsourcing
records, expenses and jobs to produce the per-entity and portfolio
summaries.  This is a **read-only** service: nothing is written.

Invariants enforced
-------------------
* Totals are per currency.  Amounts in different currencies are never
  added together and never converted.
* Cancelled outsourcing records count toward no cost or payable figure.
* Expense classification is ``ExpenseService.classify``, the same rule
  the expense list filters with.
* A job's margin is undefined (None) when its total is zero.

Failure modes
-------------
* ``NotFoundError`` -- ``job_margin`` on an unknown job.
* ``MissingCurrencyError`` -- a stored amount without a currency.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from pluridesk_config import EngineConfig, get_active_config
from pluridesk_engines.aggregation import aggregate
from pluridesk_engines.classification import ExpenseStatus
from pluridesk_engines.margin import MarginResult, compute_margin
from pluridesk_kernel.domain.clock import Clock, SystemClock
from pluridesk_kernel.domain.values import Money
from pluridesk_kernel.logging_config import get_logger
from pluridesk_modules._helpers import get_owned
from pluridesk_modules.expense.orm import ExpenseModel
from pluridesk_modules.expense.service import ExpenseService
from pluridesk_modules.invoicing.models import InvoiceStatus
from pluridesk_modules.invoicing.orm import InvoiceModel
from pluridesk_modules.jobs.orm import JobModel
from pluridesk_modules.outsourcing.models import OutsourcingStatus
from pluridesk_modules.outsourcing.orm import OutsourcingModel
from pluridesk_modules.parties.orm import SupplierModel
from pluridesk_modules.reporting.models import (
    CurrencyTotals,
    ExpenseBreakdown,
    PortfolioSummary,
    ReportMetadata,
    SupplierStats,
)

logger = get_logger("modules.reporting.service")

_ISSUED = (InvoiceStatus.SENT.value, InvoiceStatus.OVERDUE.value, InvoiceStatus.PAID.value)
_DELIVERED = (OutsourcingStatus.DELIVERED.value, OutsourcingStatus.COMPLETED.value)


class ReportingService:
    """Read-only reports for one owner."""

    def __init__(
        self,
        session: Session,
        owner_id: UUID,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
    ):
        self._session = session
        self._owner_id = owner_id
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._expenses = ExpenseService(session, owner_id, clock=self._clock, config=self._config)

    # =========================================================================
    # Queries
    # =========================================================================

    def _invoices(self, statuses: tuple[str, ...] | None = None) -> list[InvoiceModel]:
        query = select(InvoiceModel).where(InvoiceModel.owner_id == self._owner_id)
        if statuses is not None:
            query = query.where(InvoiceModel.status.in_(statuses))
        return list(self._session.execute(query).scalars())

    def _active_outsourcing(self) -> list[OutsourcingModel]:
        return list(
            self._session.execute(
                select(OutsourcingModel).where(
                    OutsourcingModel.owner_id == self._owner_id,
                    OutsourcingModel.status != OutsourcingStatus.CANCELLED.value,
                )
            ).scalars()
        )

    def _metadata(self, report_type: str, as_of: date) -> ReportMetadata:
        return ReportMetadata(report_type=report_type, owner_id=self._owner_id, as_of=as_of)

    # =========================================================================
    # Receivables / payables
    # =========================================================================

    def outstanding_receivables(self) -> CurrencyTotals:
        """Totals of invoices not yet paid (draft, sent or overdue), per currency."""
        unpaid = tuple(s.value for s in InvoiceStatus if s is not InvoiceStatus.PAID)
        return aggregate(
            self._invoices(unpaid),
            amount_of=lambda inv: inv.total,
            currency_of=lambda inv: inv.currency,
        )

    def collected(self) -> CurrencyTotals:
        """Totals of paid invoices, per currency."""
        return aggregate(
            self._invoices((InvoiceStatus.PAID.value,)),
            amount_of=lambda inv: inv.total,
            currency_of=lambda inv: inv.currency,
        )

    def payables(self) -> CurrencyTotals:
        """Supplier totals of unpaid, non-cancelled outsourcing records, per currency."""
        return aggregate(
            [r for r in self._active_outsourcing() if not r.paid],
            amount_of=lambda r: r.supplier_total,
            currency_of=lambda r: r.supplier_currency,
        )

    # =========================================================================
    # Per job
    # =========================================================================

    def job_margin(self, job_id: UUID) -> MarginResult:
        """
        Margin of a job against its non-cancelled outsourcing totals.

        ``margin`` is None when the job total is zero or a cost is in a
        currency other than the job's.
        """
        job = get_owned(self._session, JobModel, self._owner_id, job_id, "Job")
        records = self._session.execute(
            select(OutsourcingModel).where(
                OutsourcingModel.job_id == job.id,
                OutsourcingModel.status != OutsourcingStatus.CANCELLED.value,
                OutsourcingModel.supplier_total.is_not(None),
            )
        ).scalars()
        costs = [Money.of(r.supplier_total, r.supplier_currency) for r in records]
        result = compute_margin(Money.of(job.total_amount, job.currency), costs)
        logger.info(
            "job_margin_computed",
            extra={
                "job_id": str(job_id),
                "margin": str(result.margin) if result.margin is not None else None,
                "foreign_cost_currencies": list(result.foreign_cost_currencies),
            },
        )
        return result

    # =========================================================================
    # Portfolio
    # =========================================================================

    def portfolio_summary(self) -> PortfolioSummary:
        """Every headline figure of the owner's portfolio, per currency."""
        as_of = self._clock.today()
        invoices = self._invoices()
        outsourcing = self._active_outsourcing()
        expenses = list(
            self._session.execute(
                select(ExpenseModel).where(ExpenseModel.owner_id == self._owner_id)
            ).scalars()
        )
        jobs = list(
            self._session.execute(
                select(JobModel).where(JobModel.owner_id == self._owner_id)
            ).scalars()
        )

        def invoice_totals(statuses: tuple[str, ...]) -> CurrencyTotals:
            return aggregate(
                [inv for inv in invoices if inv.status in statuses],
                amount_of=lambda inv: inv.total,
                currency_of=lambda inv: inv.currency,
            )

        summary = PortfolioSummary(
            metadata=self._metadata("portfolio_summary", as_of),
            revenue=invoice_totals(_ISSUED),
            outstanding_receivables=invoice_totals(
                tuple(s.value for s in InvoiceStatus if s is not InvoiceStatus.PAID)
            ),
            collected=invoice_totals((InvoiceStatus.PAID.value,)),
            supplier_costs=aggregate(
                outsourcing,
                amount_of=lambda r: r.supplier_total,
                currency_of=lambda r: r.supplier_currency,
            ),
            payables=aggregate(
                [r for r in outsourcing if not r.paid],
                amount_of=lambda r: r.supplier_total,
                currency_of=lambda r: r.supplier_currency,
            ),
            expenses=aggregate(
                expenses,
                amount_of=lambda e: e.amount,
                currency_of=lambda e: e.currency,
            ),
            job_count=len(jobs),
            outsourced_job_count=sum(1 for job in jobs if job.has_outsourcing),
        )
        logger.info(
            "portfolio_summary_generated",
            extra={
                "as_of": as_of.isoformat(),
                "invoices": len(invoices),
                "outsourcing_records": len(outsourcing),
                "expenses": len(expenses),
                "revenue_currencies": list(summary.revenue),
            },
        )
        return summary

    def supplier_stats(self) -> list[SupplierStats]:
        """Record count, spend and on-time delivery rate of every supplier."""
        suppliers = self._session.execute(
            select(SupplierModel)
            .where(SupplierModel.owner_id == self._owner_id)
            .order_by(SupplierModel.name)
        ).scalars()
        by_supplier: dict[UUID, list[OutsourcingModel]] = defaultdict(list)
        for record in self._active_outsourcing():
            by_supplier[record.supplier_id].append(record)

        stats = []
        for supplier in suppliers:
            records = by_supplier.get(supplier.id, [])
            timed = [
                r for r in records
                if r.status in _DELIVERED
                and r.due_date is not None
                and r.delivery_date is not None
            ]
            on_time = sum(1 for r in timed if r.delivery_date <= r.due_date)
            stats.append(
                SupplierStats(
                    supplier_id=supplier.id,
                    supplier_name=supplier.name,
                    record_count=len(records),
                    spend=aggregate(
                        records,
                        amount_of=lambda r: r.supplier_total,
                        currency_of=lambda r: r.supplier_currency,
                    ),
                    delivered_count=sum(1 for r in records if r.status in _DELIVERED),
                    on_time_count=on_time,
                    on_time_rate=Decimal(on_time) / Decimal(len(timed)) if timed else None,
                )
            )
        logger.info("supplier_stats_generated", extra={"suppliers": len(stats)})
        return stats

    def expense_breakdown(self, today: date | None = None) -> ExpenseBreakdown:
        """Expense totals per classification as of ``today``, each per currency."""
        as_of = today or self._clock.today()
        buckets: dict[ExpenseStatus, list] = {status: [] for status in ExpenseStatus}
        for expense in self._expenses.list():
            buckets[self._expenses.classify(expense, as_of)].append(expense)

        def totals(status: ExpenseStatus) -> CurrencyTotals:
            return aggregate(
                buckets[status],
                amount_of=lambda e: e.amount,
                currency_of=lambda e: e.currency,
            )

        breakdown = ExpenseBreakdown(
            metadata=self._metadata("expense_breakdown", as_of),
            paid=totals(ExpenseStatus.PAID),
            unpaid=totals(ExpenseStatus.UNPAID),
            overdue=totals(ExpenseStatus.OVERDUE),
        )
        logger.info(
            "expense_breakdown_generated",
            extra={
                "as_of": as_of.isoformat(),
                **{status.value: len(items) for status, items in buckets.items()},
            },
        )
        return breakdown
