"""
Tests for the reporting service.

All figures are per currency; nothing is converted or summed across
currencies.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from pluridesk_modules.outsourcing.models import OutsourcingTerms

USD_COST = OutsourcingTerms(supplier_rate=Decimal("0.03"), supplier_currency="USD")


class TestReceivables:

    def test_outstanding_and_collected(self, finished_job, invoice_service, reporting_service, client, eur_client):
        invoice_service.generate([finished_job().id], client.id)
        invoice_service.generate([finished_job(client_id=eur_client.id).id], eur_client.id)
        paid = invoice_service.generate([finished_job(quantity=Decimal("2000")).id], client.id).invoice
        invoice_service.set_status(paid.id, "paid")

        assert reporting_service.outstanding_receivables() == {
            "USD": Decimal("100"),
            "EUR": Decimal("100"),
        }
        assert reporting_service.collected() == {"USD": Decimal("200")}

    def test_empty(self, reporting_service):
        assert reporting_service.outstanding_receivables() == {}
        assert reporting_service.collected() == {}


class TestPayables:

    def test_unpaid_active_records_only(self, make_job, outsourcing_service, reporting_service, supplier):
        job = make_job()
        open_record = outsourcing_service.create(job.id, supplier.id).record
        paid_record = outsourcing_service.create(job.id, supplier.id).record
        cancelled = outsourcing_service.create(job.id, supplier.id).record
        usd_record = outsourcing_service.create(job.id, supplier.id, USD_COST).record
        outsourcing_service.toggle_paid(paid_record.id)
        outsourcing_service.set_status(cancelled.id, "cancelled")

        assert reporting_service.payables() == {"EUR": Decimal("80"), "USD": Decimal("30")}
        assert open_record.supplier_total == Decimal("80")
        assert usd_record.supplier_total == Decimal("30")


class TestJobMargin:

    def test_same_currency_margin(self, make_job, outsourcing_service, reporting_service, supplier):
        job = make_job()
        outsourcing_service.create(job.id, supplier.id, USD_COST)

        result = reporting_service.job_margin(job.id)

        assert result.revenue.amount == Decimal("100")
        assert result.cost.amount == Decimal("30")
        assert result.profit.amount == Decimal("70")
        assert result.margin == Decimal("0.7")

    def test_cancelled_costs_excluded(self, make_job, outsourcing_service, reporting_service, supplier):
        job = make_job()
        record = outsourcing_service.create(job.id, supplier.id, USD_COST).record
        outsourcing_service.set_status(record.id, "cancelled")
        assert reporting_service.job_margin(job.id).margin == Decimal("1")

    def test_foreign_cost_leaves_margin_undefined(self, make_job, outsourcing_service, reporting_service, supplier):
        job = make_job()
        outsourcing_service.create(job.id, supplier.id)

        result = reporting_service.job_margin(job.id)

        assert result.margin is None
        assert result.foreign_cost_currencies == ("EUR",)

    def test_zero_total(self, make_job, reporting_service):
        job = make_job(pricing_type="flat_fee", quantity=None, rate=None, total_amount=Decimal("0"))
        assert reporting_service.job_margin(job.id).margin is None


class TestPortfolio:

    def test_summary(
        self,
        finished_job,
        make_job,
        invoice_service,
        outsourcing_service,
        expense_service,
        reporting_service,
        client,
        supplier,
    ):
        draft = invoice_service.generate([finished_job().id], client.id).invoice
        sent = invoice_service.generate([finished_job(quantity=Decimal("3000")).id], client.id).invoice
        invoice_service.set_status(sent.id, "sent")
        outsourced = make_job()
        outsourcing_service.create(outsourced.id, supplier.id)
        expense_service.create("Software", Decimal("15"), "GBP")

        summary = reporting_service.portfolio_summary()

        assert summary.metadata.report_type == "portfolio_summary"
        assert summary.metadata.as_of == date(2024, 1, 1)
        assert summary.revenue == {"USD": Decimal("300")}
        assert summary.outstanding_receivables == {"USD": Decimal("400")}
        assert summary.collected == {}
        assert summary.supplier_costs == {"EUR": Decimal("80")}
        assert summary.payables == {"EUR": Decimal("80")}
        assert summary.expenses == {"GBP": Decimal("15")}
        assert summary.job_count == 3
        assert summary.outsourced_job_count == 1
        assert draft.status.value == "draft"


class TestSupplierStats:

    def test_on_time_rate(self, make_job, outsourcing_service, reporting_service, supplier, party_service, deterministic_clock):
        today = deterministic_clock.today()
        on_time = outsourcing_service.create(
            make_job().id, supplier.id, OutsourcingTerms(due_date=today + timedelta(days=2))
        ).record
        late = outsourcing_service.create(
            make_job().id, supplier.id, OutsourcingTerms(due_date=today - timedelta(days=1))
        ).record
        outsourcing_service.create(make_job().id, supplier.id)
        for record in (on_time, late):
            outsourcing_service.confirm_delivery(outsourcing_service.set_status(record.id, "delivered"))
        idle = party_service.create_supplier("Idle Studio", default_currency="EUR")

        stats = {s.supplier_name: s for s in reporting_service.supplier_stats()}

        lingua = stats["Lingua Freelance"]
        assert lingua.record_count == 3
        assert lingua.delivered_count == 2
        assert lingua.on_time_count == 1
        assert lingua.on_time_rate == Decimal("0.5")
        assert lingua.spend == {"EUR": Decimal("240")}
        assert stats[idle.name].record_count == 0
        assert stats[idle.name].on_time_rate is None


class TestExpenseBreakdown:

    @pytest.fixture
    def ledger(self, expense_service):
        expense_service.create("Software", Decimal("10"), "EUR", due_date=date(2024, 1, 10))
        expense_service.create("Office", Decimal("20"), "EUR")
        expense_service.create("Travel", Decimal("30"), "USD", paid=True)

    def test_breakdown_today(self, ledger, reporting_service):
        breakdown = reporting_service.expense_breakdown()
        assert breakdown.paid == {"USD": Decimal("30")}
        assert breakdown.unpaid == {"EUR": Decimal("30")}
        assert breakdown.overdue == {}

    def test_breakdown_later(self, ledger, reporting_service):
        breakdown = reporting_service.expense_breakdown(today=date(2024, 2, 1))
        assert breakdown.metadata.as_of == date(2024, 2, 1)
        assert breakdown.unpaid == {"EUR": Decimal("20")}
        assert breakdown.overdue == {"EUR": Decimal("10")}
