"""
Tests for the outsourcing workflow.

Validates:
- Creation pre-fills from the job and applies the supplier rate card
- supplier_total == supplier_rate * quantity
- Delivery is two-phase: the token writes nothing, confirmation writes
  status and expense together
- A failed expense write leaves the record untouched
- Stale tokens are rejected
- has_outsourcing follows non-cancelled records
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from pluridesk_kernel.exceptions import (
    ExpenseCreationFailedError,
    IllegalTransitionError,
    MissingCurrencyError,
    NotFoundError,
    StaleConfirmationError,
    ValidationError,
)
from pluridesk_modules.expense.models import ExpenseSource
from pluridesk_modules.expense.service import ExpenseService
from pluridesk_modules.outsourcing.models import (
    OutsourcingStatus,
    OutsourcingTerms,
    PendingExpenseConfirmation,
)
from pluridesk_modules.outsourcing.service import terms_from_dict


class TestOutsourcingCreate:

    def test_prefill_and_rate_card(self, make_job, outsourcing_service, supplier):
        job = make_job(due_date=date(2024, 2, 1))
        record = outsourcing_service.create(job.id, supplier.id).record

        assert record.status is OutsourcingStatus.PENDING
        assert record.service_type == "Translation"
        assert record.quantity == Decimal("1000")
        assert record.supplier_rate == Decimal("0.08")
        assert record.unit == "word"
        assert record.supplier_currency == "EUR"
        assert record.supplier_total == Decimal("80")
        assert record.due_date == date(2024, 2, 1)

    def test_rate_card_match_ignores_case(self, make_job, outsourcing_service, supplier):
        job = make_job(service_type="TRANSLATION")
        assert outsourcing_service.create(job.id, supplier.id).record.supplier_rate == Decimal("0.08")

    def test_terms_override_defaults(self, make_job, outsourcing_service, supplier):
        job = make_job()
        record = outsourcing_service.create(
            job.id,
            supplier.id,
            OutsourcingTerms(supplier_rate=Decimal("0.05"), quantity=Decimal("2000"), supplier_currency="USD"),
        ).record
        assert record.supplier_total == Decimal("100")
        assert record.supplier_currency == "USD"

    def test_supplier_currency_independent_of_job(self, make_job, outsourcing_service, supplier):
        job = make_job()
        record = outsourcing_service.create(job.id, supplier.id).record
        assert job.currency == "USD"
        assert record.supplier_currency == "EUR"

    def test_marks_job_outsourced(self, make_job, outsourcing_service, job_service, supplier):
        job = make_job()
        result = outsourcing_service.create(job.id, supplier.id)
        assert job_service.get(job.id).has_outsourcing
        assert result.changes.job_ids == (job.id,)
        assert result.changes.outsourcing_ids == (result.record.id,)

    def test_inconsistent_total_rejected(self, make_job, outsourcing_service, supplier):
        with pytest.raises(ValidationError):
            outsourcing_service.create(
                make_job().id, supplier.id, OutsourcingTerms(supplier_total=Decimal("81"))
            )

    def test_no_currency_anywhere(self, make_job, outsourcing_service, party_service):
        bare = party_service.create_supplier("No Currency Ltd")
        with pytest.raises(MissingCurrencyError):
            outsourcing_service.create(make_job().id, bare.id)

    def test_cancelled_job_rejected(self, make_job, job_service, outsourcing_service, supplier):
        job = make_job()
        job_service.transition(job.id, "cancelled")
        with pytest.raises(IllegalTransitionError):
            outsourcing_service.create(job.id, supplier.id)

    def test_unknown_supplier(self, make_job, outsourcing_service):
        with pytest.raises(NotFoundError):
            outsourcing_service.create(make_job().id, uuid4())

    def test_terms_from_dict(self):
        terms = terms_from_dict({"quantity": Decimal("10"), "notes": "rush"})
        assert terms.quantity == Decimal("10")
        with pytest.raises(ValidationError):
            terms_from_dict({"status": "delivered"})


class TestOutsourcingUpdate:

    def test_total_recomputed(self, make_job, outsourcing_service, supplier):
        record = outsourcing_service.create(make_job().id, supplier.id).record
        updated = outsourcing_service.update(record.id, quantity=Decimal("1500")).record
        assert updated.supplier_total == Decimal("120")

    def test_status_not_editable(self, make_job, outsourcing_service, supplier):
        record = outsourcing_service.create(make_job().id, supplier.id).record
        with pytest.raises(ValidationError):
            outsourcing_service.update(record.id, status="completed")

    def test_currency_cannot_be_cleared(self, make_job, outsourcing_service, supplier):
        record = outsourcing_service.create(make_job().id, supplier.id).record
        with pytest.raises(MissingCurrencyError):
            outsourcing_service.update(record.id, supplier_currency=None)


class TestStatusChanges:

    def test_direct_transitions(self, make_job, outsourcing_service, supplier):
        record = outsourcing_service.create(make_job().id, supplier.id).record
        assert outsourcing_service.set_status(record.id, "assigned").record.status is OutsourcingStatus.ASSIGNED
        assert outsourcing_service.set_status(record.id, "in_progress").record.status is OutsourcingStatus.IN_PROGRESS

    def test_any_status_other_than_delivered_applies_directly(
        self, make_job, outsourcing_service, supplier
    ):
        record = outsourcing_service.create(make_job().id, supplier.id).record

        result = outsourcing_service.set_status(record.id, "completed")

        assert result.record.status is OutsourcingStatus.COMPLETED
        assert result.changes.outsourcing_ids == (record.id,)
        assert outsourcing_service.set_status(record.id, "pending").record.status is OutsourcingStatus.PENDING

    def test_setting_current_status_is_noop(self, make_job, outsourcing_service, supplier):
        record = outsourcing_service.create(make_job().id, supplier.id).record
        assert outsourcing_service.set_status(record.id, "pending").changes.is_empty

    def test_unknown_status(self, make_job, outsourcing_service, supplier):
        record = outsourcing_service.create(make_job().id, supplier.id).record
        with pytest.raises(ValidationError):
            outsourcing_service.set_status(record.id, "archived")

    def test_cancel_clears_job_flag(self, make_job, outsourcing_service, job_service, supplier):
        job = make_job()
        record = outsourcing_service.create(job.id, supplier.id).record
        result = outsourcing_service.set_status(record.id, OutsourcingStatus.CANCELLED)
        assert job.id in result.changes.job_ids
        assert not job_service.get(job.id).has_outsourcing

    def test_reopening_cancelled_restores_job_flag(
        self, make_job, outsourcing_service, job_service, supplier
    ):
        job = make_job()
        record = outsourcing_service.create(job.id, supplier.id).record
        outsourcing_service.set_status(record.id, "cancelled")

        result = outsourcing_service.set_status(record.id, "assigned")

        assert job.id in result.changes.job_ids
        assert job_service.get(job.id).has_outsourcing


class TestDeliveryConfirmation:

    @pytest.fixture
    def record(self, make_job, outsourcing_service, supplier):
        return outsourcing_service.create(
            make_job().id,
            supplier.id,
            OutsourcingTerms(supplier_rate=Decimal("0.05"), quantity=Decimal("2000")),
        ).record

    def test_set_delivered_returns_token_and_writes_nothing(
        self, record, outsourcing_service, expense_service, supplier
    ):
        token = outsourcing_service.set_status(record.id, "delivered", mark_paid=True)

        assert isinstance(token, PendingExpenseConfirmation)
        assert token.amount.amount == Decimal("100")
        assert token.amount.currency.code == "EUR"
        assert token.supplier_name == supplier.name
        assert token.description.startswith("[JOB-2024-0001]")
        assert token.mark_paid
        assert outsourcing_service.get(record.id).status is OutsourcingStatus.PENDING
        assert expense_service.list() == []

    def test_confirm_books_exactly_one_expense(self, record, outsourcing_service, expense_service):
        token = outsourcing_service.set_status(record.id, "delivered", mark_paid=True)
        result = outsourcing_service.confirm_delivery(token)

        assert result.record.status is OutsourcingStatus.DELIVERED
        assert result.record.paid
        assert result.record.delivery_date == date(2024, 1, 1)
        assert result.record.expense_id == result.expense.id

        expenses = expense_service.list()
        assert len(expenses) == 1
        expense = expenses[0]
        assert expense.amount == Decimal("100")
        assert expense.currency == "EUR"
        assert expense.paid
        assert expense.source is ExpenseSource.OUTSOURCING_DELIVERY
        assert expense.category == "Outsourcing"
        assert expense.outsourcing_id == record.id
        assert expense.due_date == date(2024, 1, 31)
        assert set(result.changes.expense_ids) == {expense.id}

    def test_mark_paid_override(self, record, outsourcing_service):
        token = outsourcing_service.set_status(record.id, "delivered", mark_paid=True)
        result = outsourcing_service.confirm_delivery(token, mark_paid=False)
        assert not result.expense.paid
        assert not result.record.paid

    def test_expense_failure_rolls_back_status(
        self, record, outsourcing_service, expense_service, monkeypatch
    ):
        token = outsourcing_service.set_status(record.id, "delivered")

        def fail(self, **kwargs):
            raise RuntimeError("ledger unavailable")

        monkeypatch.setattr(ExpenseService, "record_delivery_expense", fail)
        with pytest.raises(ExpenseCreationFailedError) as exc_info:
            outsourcing_service.confirm_delivery(token)
        assert "ledger unavailable" in exc_info.value.reason

        assert outsourcing_service.get(record.id).status is OutsourcingStatus.PENDING
        assert expense_service.list() == []

        monkeypatch.undo()
        assert outsourcing_service.confirm_delivery(token).record.status is OutsourcingStatus.DELIVERED

    def test_commit_failure_rolls_back_status_and_expense(
        self, record, outsourcing_service, expense_service, session, monkeypatch
    ):
        token = outsourcing_service.set_status(record.id, "delivered", mark_paid=True)
        real_commit = session.commit
        attempts = []

        def commit_failing_once():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("connection lost")
            real_commit()

        monkeypatch.setattr(session, "commit", commit_failing_once)
        with pytest.raises(ExpenseCreationFailedError):
            outsourcing_service.confirm_delivery(token)

        reloaded = outsourcing_service.get(record.id)
        assert reloaded.status is OutsourcingStatus.PENDING
        assert not reloaded.paid
        assert reloaded.expense_id is None
        assert expense_service.list() == []

        result = outsourcing_service.confirm_delivery(token)
        assert result.record.status is OutsourcingStatus.DELIVERED
        assert len(expense_service.list()) == 1

    def test_stale_after_amount_change(self, record, outsourcing_service):
        token = outsourcing_service.set_status(record.id, "delivered")
        outsourcing_service.update(record.id, quantity=Decimal("3000"))
        with pytest.raises(StaleConfirmationError):
            outsourcing_service.confirm_delivery(token)

    def test_second_confirmation_is_stale(self, record, outsourcing_service, expense_service):
        token = outsourcing_service.set_status(record.id, "delivered")
        outsourcing_service.confirm_delivery(token)
        with pytest.raises(StaleConfirmationError):
            outsourcing_service.confirm_delivery(token)
        assert len(expense_service.list()) == 1

    def test_delivery_requires_total(self, make_job, outsourcing_service, party_service):
        other = party_service.create_supplier("Ad Hoc Studio", default_currency="GBP")
        job = make_job(service_type="Voice over")
        record = outsourcing_service.create(job.id, other.id).record
        assert record.supplier_total is None
        with pytest.raises(ValidationError):
            outsourcing_service.set_status(record.id, "delivered")

    def test_zero_total_rejected_before_token(self, make_job, outsourcing_service, party_service):
        other = party_service.create_supplier("Ad Hoc Studio", default_currency="GBP")
        job = make_job(service_type="Voice over")
        record = outsourcing_service.create(
            job.id, other.id, OutsourcingTerms(supplier_total=Decimal("0"))
        ).record

        with pytest.raises(ValidationError) as exc_info:
            outsourcing_service.set_status(record.id, "delivered")
        assert exc_info.value.field == "supplier_total"
        assert outsourcing_service.get(record.id).status is OutsourcingStatus.PENDING

    def test_delivered_record_moves_directly(self, record, outsourcing_service, job_service):
        outsourcing_service.confirm_delivery(outsourcing_service.set_status(record.id, "delivered"))

        assert outsourcing_service.set_status(record.id, "completed").record.status is OutsourcingStatus.COMPLETED
        cancelled = outsourcing_service.set_status(record.id, "cancelled")
        assert cancelled.record.status is OutsourcingStatus.CANCELLED
        assert not job_service.get(record.job_id).has_outsourcing

    def test_redelivery_does_not_book_second_expense(
        self, record, outsourcing_service, expense_service
    ):
        outsourcing_service.confirm_delivery(outsourcing_service.set_status(record.id, "delivered"))
        assert outsourcing_service.set_status(record.id, "delivered").changes.is_empty

        outsourcing_service.set_status(record.id, "completed")
        with pytest.raises(IllegalTransitionError):
            outsourcing_service.set_status(record.id, "delivered")
        assert len(expense_service.list()) == 1


class TestPaidAndDelete:

    def test_toggle_paid_leaves_expense(self, make_job, outsourcing_service, expense_service, supplier):
        record = outsourcing_service.create(make_job().id, supplier.id).record
        delivery = outsourcing_service.confirm_delivery(
            outsourcing_service.set_status(record.id, "delivered")
        )
        assert outsourcing_service.toggle_paid(record.id).record.paid
        assert not expense_service.get(delivery.expense.id).paid

    def test_delete_keeps_expense_and_refreshes_flag(
        self, make_job, outsourcing_service, expense_service, job_service, supplier
    ):
        job = make_job()
        record = outsourcing_service.create(job.id, supplier.id).record
        delivery = outsourcing_service.confirm_delivery(
            outsourcing_service.set_status(record.id, "delivered")
        )

        changes = outsourcing_service.delete(record.id)

        assert changes.outsourcing_ids == (record.id,)
        assert not job_service.get(job.id).has_outsourcing
        assert expense_service.get(delivery.expense.id).amount == Decimal("80")

    def test_list_filters(self, make_job, outsourcing_service, supplier):
        first = outsourcing_service.create(make_job().id, supplier.id).record
        outsourcing_service.create(make_job().id, supplier.id)
        outsourcing_service.set_status(first.id, "assigned")
        assert [r.id for r in outsourcing_service.list(status="assigned")] == [first.id]
        assert len(outsourcing_service.list(supplier_id=supplier.id)) == 2
