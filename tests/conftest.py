"""
Pytest fixtures for the budget ledger test suite.

Provides:
- Structured logging configured once per session, plus a ``captured_logs``
  fixture returning parsed JSON records
- Deterministic clock and in-memory payment gateway
- A ledger funded with 100 units administered by ``admin``
- In-memory SQLite sessions with the journal tables created
"""

import json
import logging
from io import StringIO

import pytest

from budget_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from budget_kernel.domain.clock import DeterministicClock
from budget_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from budget_kernel.services.budget_ledger import BudgetLedger
from budget_kernel.services.payment_gateway import InMemoryPaymentGateway

ADMIN = "admin"
INITIAL_BUDGET = 100


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
    Capture budget_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.allocate("admin", "IT", 10)
            logs = captured_logs()
            assert any(r["message"] == "budget_allocated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("budget_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow_locks: mark test as exercising real thread contention"
    )


# =============================================================================
# Ledger fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def gateway() -> InMemoryPaymentGateway:
    return InMemoryPaymentGateway()


@pytest.fixture
def ledger(gateway, deterministic_clock) -> BudgetLedger:
    """A fully funded 100-unit ledger administered by ``admin``."""
    return BudgetLedger.create(
        actor_id=ADMIN,
        total_budget=INITIAL_BUDGET,
        backing_funds=INITIAL_BUDGET,
        payment_gateway=gateway,
        clock=deterministic_clock,
    )


@pytest.fixture
def funded_it(ledger) -> BudgetLedger:
    """Ledger with 10 units allocated to IT."""
    ledger.allocate(ADMIN, "IT", 10)
    return ledger


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database with every journal table created."""
    engine = init_engine_from_url("sqlite:///:memory:")
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine):
    s = get_session()
    yield s
    s.close()

