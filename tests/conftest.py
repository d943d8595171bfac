"""
Pytest fixtures for the billing test suite.

Provides:
- Structured logging configured for the whole session, plus a capture fixture
- A deterministic clock and the default configuration
- In-memory and SQL document stores (SQLite by default)
- Quote, invoice and cost services bound to a store
- Line item builders live in tests/factories.py

Environment Variables:
- DATABASE_URL: SQLAlchemy URL for the SQL store tests.  Defaults to an
  in-memory SQLite database, so no server is needed.
"""

import json
import logging
import os
from datetime import datetime, timezone
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import billing_kernel.models  # noqa: F401  registers the ORM tables
from billing_config.schema import BillingConfig
from billing_kernel.db.base import Base
from billing_kernel.domain.clock import DeterministicClock
from billing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from billing_kernel.services.document_store import InMemoryDocumentStore
from billing_modules.cost.service import CostService
from billing_modules.invoice.service import InvoiceService
from billing_modules.quote.service import QuoteService
from billing_modules.registry import build_sql_store

DEFAULT_DATABASE_URL = "sqlite://"

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()
TEST_CUSTOMER_ID = uuid4()

# Friday 1 March 2024, 09:00 UTC
START_TIME = datetime(2024, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


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
    Capture billing_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, invoice_service):
            invoice_service.create(...)
            logs = captured_logs()
            assert any(r["message"] == "invoice_create_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("billing_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Clock and configuration
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock(START_TIME)


@pytest.fixture
def config():
    return BillingConfig()


@pytest.fixture
def actor_id():
    return TEST_ACTOR_ID


@pytest.fixture
def customer_id():
    return TEST_CUSTOMER_ID


# =============================================================================
# Stores
# =============================================================================


@pytest.fixture
def db_engine():
    url = os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(url)
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def memory_store():
    return InMemoryDocumentStore()


@pytest.fixture
def sql_store(session):
    return build_sql_store(session)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Every service test runs once against each store implementation."""
    if request.param == "memory":
        return request.getfixturevalue("memory_store")
    return request.getfixturevalue("sql_store")


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def quote_service(store, clock, config):
    return QuoteService(store, clock=clock, config=config)


@pytest.fixture
def invoice_service(store, clock, config):
    return InvoiceService(store, clock=clock, config=config)


@pytest.fixture
def cost_service(store, clock, config):
    return CostService(store, clock=clock, config=config)

