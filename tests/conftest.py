"""
Pytest fixtures for the card core test suite.

Provides:
- A fresh in-memory SQLite database per test (schema created up front)
- A deterministic clock pinned to 2024-06-15
- A persisted sample account and its owning customer
- Structured log capture

Each test gets its own engine, so nothing leaks between tests and no
savepoint juggling is needed.  Tests that need several connections
(concurrency) build a file-backed database of their own.
"""

import json
import logging
from datetime import date
from io import StringIO

import pytest

from card_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from card_kernel.domain.clock import DeterministicClock
from card_kernel.domain.dtos import (
    AccountSnapshot,
    AccountStatus,
    AccountUpdateRequest,
    CustomerSnapshot,
)
from card_kernel.domain.values import Money
from card_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from card_kernel.services.stores import SqlAccountStore, SqlCustomerStore

IN_MEMORY_URL = "sqlite+pysqlite:///:memory:"

TEST_ACTOR_ID = "USER0001"
SAMPLE_ACCOUNT_ID = "00000000001"
SAMPLE_CUSTOMER_ID = "000000001"
TODAY = date(2024, 6, 15)


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
    Capture card_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, payment_service):
            payment_service.pay_bill(...)
            logs = captured_logs()
            assert any(r["message"] == "payment_applied" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("card_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session():
    """A session on a freshly created in-memory database."""
    init_engine_from_url(IN_MEMORY_URL)
    create_tables()
    sess = get_session()
    yield sess
    sess.close()
    reset_engine()


# =============================================================================
# Time
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    """Clock pinned to noon UTC on 2024-06-15."""
    return DeterministicClock.on(TODAY)


# =============================================================================
# Sample records
# =============================================================================


def make_customer(**overrides) -> CustomerSnapshot:
    """A customer that passes every field rule as of TODAY."""
    values = dict(
        customer_id=SAMPLE_CUSTOMER_ID,
        first_name="Jane",
        middle_name="Q",
        last_name="Smith",
        address_line_1="350 Fifth Avenue",
        state_code="NY",
        country_code="USA",
        zip_code="10001",
        phone_1="(212) 555-0100",
        ssn="123-45-6789",
        date_of_birth=date(1980, 5, 20),
        fico_score=720,
    )
    values.update(overrides)
    return CustomerSnapshot(**values)


def make_account(**overrides) -> AccountSnapshot:
    """An ACTIVE account with a 1000.00 balance owned by the sample customer."""
    values = dict(
        account_id=SAMPLE_ACCOUNT_ID,
        active_status=AccountStatus.ACTIVE,
        current_balance=Money.of("1000.00"),
        credit_limit=Money.of("5000.00"),
        cash_credit_limit=Money.of("1000.00"),
        customer_id=SAMPLE_CUSTOMER_ID,
        open_date=date(2020, 1, 15),
        expiration_date=date(2027, 1, 31),
        current_cycle_credit=Money.zero(),
        current_cycle_debit=Money.zero(),
        group_id="DEFAULT",
    )
    values.update(overrides)
    return AccountSnapshot(**values)


@pytest.fixture
def customer_factory(session):
    """Persist a customer built from make_customer(**overrides)."""

    def _create(**overrides) -> CustomerSnapshot:
        saved = SqlCustomerStore(session).save(make_customer(**overrides))
        session.commit()
        return saved

    return _create


@pytest.fixture
def account_factory(session, customer_factory):
    """
    Persist an account (and its customer, if not yet present).

    Usage::

        account = account_factory(current_balance=Money.of("0.00"))
    """

    def _create(**overrides) -> AccountSnapshot:
        account = make_account(**overrides)
        if SqlCustomerStore(session).find_by_id(account.customer_id) is None:
            customer_factory(customer_id=account.customer_id)
        saved = SqlAccountStore(session).save(account)
        session.commit()
        return saved

    return _create


@pytest.fixture
def sample_customer(customer_factory) -> CustomerSnapshot:
    return customer_factory()


@pytest.fixture
def sample_account(sample_customer, account_factory) -> AccountSnapshot:
    return account_factory()


def update_request_for(account, customer=None, **overrides) -> AccountUpdateRequest:
    """An update request that restates ``account`` unchanged."""
    values = dict(
        account_id=account.account_id,
        active_status=account.active_status.value,
        credit_limit=str(account.credit_limit),
        cash_credit_limit=str(account.cash_credit_limit),
        expiration_date=account.expiration_date,
        customer=customer,
    )
    values.update(overrides)
    return AccountUpdateRequest(**values)
