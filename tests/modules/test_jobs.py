"""
Tests for the job state machine.

Validates:
- Creation: generated codes, currency default, derived totals
- Repricing on update and the invoiced-job lock
- Declared transitions only; invoicing only through invoice generation
- on_hold resumes the held status only
- Cancellation cascades to open outsourcing records
- Bulk status change and delete report failures per id
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from pluridesk_kernel.exceptions import (
    IllegalTransitionError,
    InvalidCurrencyError,
    InvalidPricingInputError,
    InvoicedJobLockedError,
    NotFoundError,
    ValidationError,
)
from pluridesk_modules.jobs.models import JobStatus
from pluridesk_modules.jobs.service import JobService
from pluridesk_modules.outsourcing.models import OutsourcingStatus


class TestJobCreation:

    def test_unit_priced_total(self, make_job):
        job = make_job()
        assert job.total_amount == Decimal("100")
        assert job.unit == "word"
        assert job.status is JobStatus.CREATED
        assert not job.has_outsourcing

    def test_codes_are_sequential(self, make_job):
        assert make_job().job_code == "JOB-2024-0001"
        assert make_job().job_code == "JOB-2024-0002"

    def test_currency_defaults_to_client(self, make_job, client):
        assert make_job().currency == client.default_currency

    def test_explicit_currency(self, make_job):
        assert make_job(currency="gbp").currency == "GBP"

    def test_flat_fee(self, make_job):
        job = make_job(pricing_type="flat_fee", quantity=None, rate=None, total_amount=Decimal("750"))
        assert job.total_amount == Decimal("750")
        assert job.unit == "project"

    def test_inconsistent_total_rejected(self, make_job):
        with pytest.raises(ValidationError) as exc_info:
            make_job(total_amount=Decimal("99"))
        assert exc_info.value.field == "total_amount"

    def test_missing_rate_rejected(self, make_job):
        with pytest.raises(InvalidPricingInputError):
            make_job(rate=None)

    def test_unknown_currency_rejected(self, make_job):
        with pytest.raises(InvalidCurrencyError):
            make_job(currency="XXX")

    def test_title_required(self, make_job):
        with pytest.raises(ValidationError):
            make_job(title="  ")

    def test_unknown_client(self, make_job):
        with pytest.raises(NotFoundError):
            make_job(client_id=uuid4())

    def test_due_before_start_rejected(self, make_job, deterministic_clock):
        today = deterministic_clock.today()
        with pytest.raises(ValidationError):
            make_job(start_date=today, due_date=today - timedelta(days=1))


class TestJobUpdate:

    def test_quantity_change_reprices(self, make_job, job_service):
        job = make_job()
        updated = job_service.update(job.id, quantity=Decimal("2500")).record
        assert updated.total_amount == Decimal("250")

    def test_switch_to_flat_fee(self, make_job, job_service):
        job = make_job()
        updated = job_service.update(job.id, pricing_type="flat_fee", total_amount=Decimal("80")).record
        assert updated.total_amount == Decimal("80")
        assert updated.unit == "project"

    def test_unknown_field_rejected(self, make_job, job_service):
        with pytest.raises(ValidationError):
            job_service.update(make_job().id, status="finished")

    def test_invoice_id_not_settable(self, make_job, job_service):
        with pytest.raises(ValidationError):
            job_service.update(make_job().id, invoice_id=uuid4())

    def test_invoiced_job_financial_fields_locked(self, finished_job, job_service, invoice_service, client):
        job = finished_job()
        invoice_service.generate([job.id], client.id)

        with pytest.raises(InvoicedJobLockedError) as exc_info:
            job_service.update(job.id, rate=Decimal("0.20"))
        assert exc_info.value.fields == ["rate"]
        assert job_service.get(job.id).total_amount == Decimal("100")

    def test_invoiced_job_non_financial_fields_editable(self, finished_job, job_service, invoice_service, client):
        job = finished_job()
        invoice_service.generate([job.id], client.id)
        assert job_service.update(job.id, notes="Delivered by courier").record.notes == "Delivered by courier"

    def test_invoiced_job_unchanged_financial_value_allowed(self, finished_job, job_service, invoice_service, client):
        job = finished_job()
        invoice_service.generate([job.id], client.id)
        job_service.update(job.id, rate="0.10", title="Renamed")
        assert job_service.get(job.id).title == "Renamed"


class TestJobTransitions:

    def test_happy_path(self, make_job, job_service):
        job = make_job()
        result = job_service.transition(job.id, JobStatus.IN_PROGRESS)
        assert result.previous_status is JobStatus.CREATED
        assert result.changed
        assert job_service.transition(job.id, "finished").job.status is JobStatus.FINISHED

    def test_reopen(self, finished_job, job_service):
        job = finished_job()
        assert job_service.transition(job.id, "in_progress").job.status is JobStatus.IN_PROGRESS

    def test_same_status_is_noop(self, make_job, job_service):
        result = job_service.transition(make_job().id, "created")
        assert not result.changed
        assert result.changes.is_empty

    def test_skip_rejected(self, make_job, job_service):
        with pytest.raises(IllegalTransitionError):
            job_service.transition(make_job().id, "finished")

    def test_cancelled_is_terminal(self, make_job, job_service):
        job = make_job()
        job_service.transition(job.id, "cancelled")
        with pytest.raises(IllegalTransitionError) as exc_info:
            job_service.transition(job.id, "in_progress")
        assert exc_info.value.from_status == "cancelled"

    def test_direct_invoicing_rejected(self, finished_job, job_service):
        with pytest.raises(IllegalTransitionError):
            job_service.transition(finished_job().id, "invoiced")

    def test_invoiced_job_is_terminal(self, finished_job, job_service, invoice_service, client):
        job = finished_job()
        invoice_service.generate([job.id], client.id)
        with pytest.raises(IllegalTransitionError) as exc_info:
            job_service.transition(job.id, "in_progress")
        assert exc_info.value.from_status == "invoiced"
        assert exc_info.value.reason == "terminal status"
        assert job_service.transition(job.id, "invoiced").changes.is_empty

    def test_unknown_status(self, make_job, job_service):
        with pytest.raises(ValidationError):
            job_service.transition(make_job().id, "archived")

    def test_hold_resumes_prior_state(self, make_job, job_service):
        job = make_job()
        job_service.transition(job.id, "in_progress")
        held = job_service.transition(job.id, "on_hold").job
        assert held.held_from_status is JobStatus.IN_PROGRESS

        with pytest.raises(IllegalTransitionError):
            job_service.transition(job.id, "created")
        resumed = job_service.transition(job.id, "in_progress").job
        assert resumed.status is JobStatus.IN_PROGRESS
        assert resumed.held_from_status is None

    def test_held_job_can_be_cancelled(self, make_job, job_service):
        job = make_job()
        job_service.transition(job.id, "on_hold")
        assert job_service.transition(job.id, "cancelled").job.status is JobStatus.CANCELLED

    def test_logs_transition(self, make_job, job_service, captured_logs):
        job = make_job()
        job_service.transition(job.id, "in_progress")
        records = [r for r in captured_logs() if r["message"] == "job_transitioned"]
        assert records[-1]["to_status"] == "in_progress"
        assert records[-1]["action"] == "start"


class TestCancelCascade:

    def test_cancelling_job_cancels_open_outsourcing(self, make_job, job_service, outsourcing_service, supplier):
        job = make_job()
        first = outsourcing_service.create(job.id, supplier.id).record
        second = outsourcing_service.create(job.id, supplier.id).record
        outsourcing_service.set_status(second.id, "assigned")
        assert job_service.get(job.id).has_outsourcing

        result = job_service.transition(job.id, "cancelled")

        assert set(result.cancelled_outsourcing_ids) == {first.id, second.id}
        assert set(result.changes.outsourcing_ids) == {first.id, second.id}
        assert not result.job.has_outsourcing
        for record in outsourcing_service.list(job_id=job.id):
            assert record.status is OutsourcingStatus.CANCELLED

    def test_delivered_records_survive_cancel(self, make_job, job_service, outsourcing_service, supplier):
        job = make_job()
        delivered = outsourcing_service.create(job.id, supplier.id).record
        pending = outsourcing_service.create(job.id, supplier.id).record
        outsourcing_service.confirm_delivery(outsourcing_service.set_status(delivered.id, "delivered"))

        result = job_service.transition(job.id, "cancelled")

        assert result.cancelled_outsourcing_ids == (pending.id,)
        assert outsourcing_service.get(delivered.id).status is OutsourcingStatus.DELIVERED
        assert result.job.has_outsourcing


class TestJobBulkAndDelete:

    def test_bulk_set_status_partial_failure(self, make_job, job_service):
        ok = make_job()
        cancelled = make_job()
        job_service.transition(cancelled.id, "cancelled")
        missing = uuid4()

        result = job_service.bulk_set_status([ok.id, missing, cancelled.id], "in_progress")

        assert result.succeeded == (ok.id,)
        assert set(result.failed_ids) == {missing, cancelled.id}
        codes = {f.id: f.code for f in result.failed}
        assert codes[missing] == "NOT_FOUND"
        assert codes[cancelled.id] == "ILLEGAL_TRANSITION"
        assert job_service.get(ok.id).status is JobStatus.IN_PROGRESS

    def test_delete_cascades_outsourcing_and_keeps_expenses(
        self, make_job, job_service, outsourcing_service, expense_service, supplier
    ):
        job = make_job()
        record = outsourcing_service.create(job.id, supplier.id).record
        delivery = outsourcing_service.confirm_delivery(
            outsourcing_service.set_status(record.id, "delivered")
        )

        changes = job_service.delete(job.id)

        assert changes.outsourcing_ids == (record.id,)
        with pytest.raises(NotFoundError):
            job_service.get(job.id)
        assert outsourcing_service.list(job_id=job.id) == []
        assert expense_service.get(delivery.expense.id).outsourcing_id == record.id

    def test_bulk_delete_skips_invoiced(self, finished_job, make_job, job_service, invoice_service, client):
        invoiced = finished_job()
        invoice_service.generate([invoiced.id], client.id)
        plain = make_job()

        result = job_service.bulk_delete([invoiced.id, plain.id])

        assert result.succeeded == (plain.id,)
        assert result.failed[0].code == "INVOICED_JOB_LOCKED"
        assert job_service.get(invoiced.id).status is JobStatus.INVOICED


class TestOwnerIsolation:

    def test_other_owner_cannot_see_job(
        self, make_job, session, other_owner_id, deterministic_clock, engine_config
    ):
        job = make_job()
        other = JobService(session, other_owner_id, clock=deterministic_clock, config=engine_config)
        with pytest.raises(NotFoundError):
            other.get(job.id)
        assert other.list() == []
