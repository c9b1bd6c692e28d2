"""
Tests for SequenceService.

Numbers come from a locked counter row per (kind, owner); a rolled-back
transaction gives its number back.
"""

from uuid import uuid4

from sqlalchemy import select

from pluridesk_kernel.services.sequence_service import SequenceCounter, SequenceService
from pluridesk_modules.jobs.service import JobService
from pluridesk_modules.parties.service import PartyService


class TestSequenceService:

    def test_strictly_increasing(self, session):
        sequences = SequenceService(session)
        values = [sequences.next_value("invoice:test") for _ in range(25)]
        assert values == list(range(1, 26))

    def test_sequences_are_independent(self, session):
        sequences = SequenceService(session)
        sequences.next_value("job:a")
        sequences.next_value("job:a")
        assert sequences.next_value("job:b") == 1

    def test_owner_sequence_name(self):
        owner = uuid4()
        assert SequenceService.owner_sequence(SequenceService.QUOTE, owner) == f"quote:{owner}"

    def test_peek_does_not_consume(self, session):
        sequences = SequenceService(session)
        assert sequences.peek_next("invoice:peek") == 1
        assert sequences.peek_next("invoice:peek") == 1
        assert sequences.next_value("invoice:peek") == 1
        assert sequences.peek_next("invoice:peek") == 2

    def test_rollback_returns_number(self, session):
        sequences = SequenceService(session)
        sequences.next_value("invoice:rb")
        session.commit()

        assert sequences.next_value("invoice:rb") == 2
        session.rollback()

        assert sequences.next_value("invoice:rb") == 2

    def test_counter_row_persists(self, session):
        sequences = SequenceService(session)
        sequences.next_value("job:persist")
        sequences.next_value("job:persist")
        session.commit()

        counter = session.execute(
            select(SequenceCounter).where(SequenceCounter.name == "job:persist")
        ).scalar_one()
        assert counter.current_value == 2

    def test_owners_numbered_separately(self, make_job, session, other_owner_id):
        assert make_job().job_code == "JOB-2024-0001"

        other_client = PartyService(session, other_owner_id).create_client("Globex", "USD")
        other_job = JobService(session, other_owner_id).create(
            client_id=other_client.id,
            title="Brochure",
            pricing_type="flat_fee",
            total_amount="250",
        ).record
        assert other_job.job_code.endswith("-0001")
