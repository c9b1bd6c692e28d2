"""
Pytest fixtures for the lifecycle engine test suite.

Provides:
- A fresh in-memory SQLite database per test (all ORM tables created)
- A deterministic clock fixed at 2024-01-01 12:00 UTC
- The packaged default configuration
- A seeded owner, client and supplier, and every module service

Environment Variables:
- DATABASE_URL: run the suite against another database (e.g. PostgreSQL).
  Defaults to in-memory SQLite.
"""

import json
import logging
import os
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID

import pytest
from sqlalchemy.orm import Session

from pluridesk_config import EngineConfig, get_active_config
from pluridesk_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from pluridesk_kernel.domain.clock import DeterministicClock
from pluridesk_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from pluridesk_modules.expense.service import ExpenseService
from pluridesk_modules.invoicing.service import InvoiceService
from pluridesk_modules.jobs.service import JobService
from pluridesk_modules.outsourcing.service import OutsourcingService
from pluridesk_modules.parties.models import BillingUnit
from pluridesk_modules.parties.service import PartyService
from pluridesk_modules.purchase_orders.service import PurchaseOrderService
from pluridesk_modules.quotes.service import QuoteService
from pluridesk_modules.reporting.service import ReportingService

TEST_OWNER_ID = UUID("00000000-0000-4000-a000-000000000001")
OTHER_OWNER_ID = UUID("00000000-0000-4000-a000-000000000002")

DEFAULT_TEST_URL = "sqlite:///:memory:"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture pluridesk logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, invoice_service):
            invoice_service.generate(...)
            assert any(r["message"] == "invoice_generated" for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("pluridesk")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_engine():
    """A fresh database with every table, torn down after the test."""
    engine = init_engine_from_url(os.environ.get("DATABASE_URL", DEFAULT_TEST_URL))
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    sess = get_session()
    yield sess
    sess.close()


# =============================================================================
# Clock / config
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def engine_config() -> EngineConfig:
    return get_active_config()


@pytest.fixture
def owner_id() -> UUID:
    return TEST_OWNER_ID


@pytest.fixture
def other_owner_id() -> UUID:
    return OTHER_OWNER_ID


# =============================================================================
# Parties
# =============================================================================


@pytest.fixture
def party_service(session, owner_id) -> PartyService:
    return PartyService(session, owner_id)


@pytest.fixture
def client(party_service):
    """A USD client with 15-day payment terms."""
    return party_service.create_client(
        "Acme Publishing", "USD", email="billing@acme.test", payment_terms_days=15
    )


@pytest.fixture
def eur_client(party_service):
    """A EUR client without payment terms (config default applies)."""
    return party_service.create_client("Maison Dupont", "EUR")


@pytest.fixture
def supplier(party_service):
    """A EUR supplier with a per-word Translation rate."""
    supplier = party_service.create_supplier("Lingua Freelance", default_currency="EUR")
    party_service.add_supplier_rate(
        supplier.id, "Translation", Decimal("0.08"), BillingUnit.WORD, "EUR"
    )
    return party_service.get_supplier(supplier.id)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def job_service(session, owner_id, deterministic_clock, engine_config) -> JobService:
    return JobService(session, owner_id, clock=deterministic_clock, config=engine_config)


@pytest.fixture
def expense_service(session, owner_id, deterministic_clock, engine_config) -> ExpenseService:
    return ExpenseService(session, owner_id, clock=deterministic_clock, config=engine_config)


@pytest.fixture
def outsourcing_service(session, owner_id, deterministic_clock, engine_config) -> OutsourcingService:
    return OutsourcingService(session, owner_id, clock=deterministic_clock, config=engine_config)


@pytest.fixture
def invoice_service(session, owner_id, deterministic_clock, engine_config) -> InvoiceService:
    return InvoiceService(session, owner_id, clock=deterministic_clock, config=engine_config)


@pytest.fixture
def purchase_order_service(session, owner_id, deterministic_clock, engine_config) -> PurchaseOrderService:
    return PurchaseOrderService(session, owner_id, clock=deterministic_clock, config=engine_config)


@pytest.fixture
def quote_service(session, owner_id, deterministic_clock, engine_config) -> QuoteService:
    return QuoteService(session, owner_id, clock=deterministic_clock, config=engine_config)


@pytest.fixture
def reporting_service(session, owner_id, deterministic_clock, engine_config) -> ReportingService:
    return ReportingService(session, owner_id, clock=deterministic_clock, config=engine_config)


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_job(job_service, client):
    """Create a job for ``client`` (USD, per-word 1000 x 0.10 unless overridden)."""

    def _make(**overrides):
        params = {
            "client_id": client.id,
            "title": "Annual report translation",
            "pricing_type": "per_word",
            "quantity": Decimal("1000"),
            "rate": Decimal("0.10"),
            "service_type": "Translation",
        }
        params.update(overrides)
        return job_service.create(**params).record

    return _make


@pytest.fixture
def finished_job(make_job, job_service):
    """Factory for jobs already moved to ``finished``."""

    def _make(**overrides):
        job = make_job(**overrides)
        job_service.transition(job.id, "in_progress")
        return job_service.transition(job.id, "finished").job

    return _make
