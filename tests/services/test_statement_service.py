"""
Tests for StatementService.

Verifies:
- Only transactions inside the previous calendar month are included,
  with inclusive day boundaries
- Totals, interest and minimum payment on a persisted account
- Identity and eligibility failures are reported before any computation
- Generating a statement writes nothing
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from card_engines.billing import BillingPolicy, StatementPeriod
from card_kernel.domain.dtos import AccountStatus, TransactionRecord
from card_kernel.domain.values import Money
from card_kernel.services.stores import SqlAccountStore, SqlTransactionStore
from card_services.statement_service import StatementService
from tests.conftest import SAMPLE_ACCOUNT_ID, make_account


def _at(*parts: int) -> datetime:
    return datetime(*parts, tzinfo=timezone.utc)


@pytest.fixture
def service(session, clock):
    return StatementService(session, clock)


@pytest.fixture
def january_activity(session, sample_account):
    """Transactions around the January 2024 cycle."""
    store = SqlTransactionStore(session)
    rows = [
        ("DEC31LATE0000001", "01", "99.00", _at(2023, 12, 31, 23, 59, 59)),
        ("JAN01START000001", "01", "120.00", _at(2024, 1, 1, 0, 0, 0)),
        ("JAN15PAYMENT0001", "02", "-200.00", _at(2024, 1, 15, 10, 30)),
        ("JAN20INTEREST001", "03", "15.83", _at(2024, 1, 20, 8, 0)),
        ("JAN25FEE00000001", "04", "35.00", _at(2024, 1, 25, 8, 0)),
        ("JAN28NOAMOUNT001", "01", None, _at(2024, 1, 28, 9, 0)),
        ("JAN31END00000001", "01", "80.50", _at(2024, 1, 31, 23, 59, 59)),
        ("FEB01NEXT0000001", "01", "55.00", _at(2024, 2, 1, 0, 0, 0)),
    ]
    for txn_id, type_code, amount, ts in rows:
        store.save(TransactionRecord(
            transaction_id=txn_id,
            account_id=SAMPLE_ACCOUNT_ID,
            type_code=type_code,
            amount=Money.of(amount) if amount is not None else None,
            description="test activity",
            timestamp=ts,
        ))
    session.commit()


class TestStatementContent:

    def test_period_selection(self, service, january_activity):
        result = service.generate_statement(SAMPLE_ACCOUNT_ID, date(2024, 2, 1))

        assert result.success
        statement = result.statement
        assert statement.period == StatementPeriod(date(2024, 1, 1), date(2024, 1, 31))
        assert [t.transaction_id for t in statement.transactions] == [
            "JAN01START000001",
            "JAN15PAYMENT0001",
            "JAN20INTEREST001",
            "JAN25FEE00000001",
            "JAN28NOAMOUNT001",
            "JAN31END00000001",
        ]

    def test_totals(self, service, january_activity):
        totals = service.generate_statement(SAMPLE_ACCOUNT_ID, date(2024, 2, 1)).statement.totals
        assert totals.purchases == Money.of("200.50")
        assert totals.payments == Money.of("-200.00")
        assert totals.interest == Money.of("15.83")
        assert totals.fees == Money.of("35.00")
        assert totals.total == Money.of("51.33")
        assert totals.counted == 5
        assert totals.skipped == 1

    def test_interest_and_minimum_payment(self, service, sample_account):
        statement = service.generate_statement(SAMPLE_ACCOUNT_ID, date(2024, 2, 1)).statement
        assert statement.current_balance == Money.of("1000.00")
        assert statement.interest_charge == Money.of("16.13")
        assert statement.minimum_payment == Money.of("25.00")
        assert statement.transaction_count == 0
        assert statement.monthly_interest_charge == Money.of("15.83")

    def test_large_balance_minimum_payment(self, service, account_factory):
        account_factory(current_balance=Money.of("5000.00"))
        statement = service.generate_statement(SAMPLE_ACCOUNT_ID, date(2024, 2, 1)).statement
        assert statement.minimum_payment == Money.of("100.00")

    def test_credit_balance(self, service, account_factory):
        account_factory(current_balance=Money.of("-40.00"))
        statement = service.generate_statement(SAMPLE_ACCOUNT_ID, date(2024, 2, 1)).statement
        assert statement.interest_charge.is_zero
        assert statement.monthly_interest_charge.is_zero
        assert statement.minimum_payment.is_zero

    def test_defaults_to_clock_date(self, service, sample_account):
        statement = service.generate_statement(SAMPLE_ACCOUNT_ID).statement
        assert statement.statement_date == date(2024, 6, 15)
        assert statement.period == StatementPeriod(date(2024, 5, 1), date(2024, 5, 31))

    def test_policy(self, session, clock, sample_account):
        policy = BillingPolicy(annual_interest_rate=Decimal("0"))
        statement = StatementService(session, clock, policy).generate_statement(
            SAMPLE_ACCOUNT_ID, date(2024, 2, 1)
        ).statement
        assert statement.interest_charge.is_zero

    def test_read_only(self, service, session, january_activity, sample_account):
        service.generate_statement(SAMPLE_ACCOUNT_ID, date(2024, 2, 1))
        stored = SqlAccountStore(session).find_by_id(SAMPLE_ACCOUNT_ID)
        assert stored.version == sample_account.version
        assert stored.current_balance == Money.of("1000.00")
        assert not session.new and not session.dirty


class TestEligibility:

    @pytest.mark.parametrize("account_id", [None, "", "   "])
    def test_blank_id(self, service, account_id):
        result = service.generate_statement(account_id, date(2024, 2, 1))
        assert not result.success
        assert result.error_code == "FIELD_VALIDATION_FAILED"
        assert result.message == "Account ID cannot be empty"

    def test_id_too_long(self, service):
        result = service.generate_statement("000000000012", date(2024, 2, 1))
        assert result.message == "Account ID cannot exceed 11 characters"

    def test_not_found(self, service, sample_account):
        result = service.generate_statement("00000000099", date(2024, 2, 1))
        assert result.error_code == "ACCOUNT_NOT_FOUND"
        assert result.message == "Account ID not found"

    def test_inactive(self, service, account_factory):
        account_factory(active_status=AccountStatus.INACTIVE)
        result = service.generate_statement(SAMPLE_ACCOUNT_ID, date(2024, 2, 1))
        assert result.error_code == "ACCOUNT_INACTIVE"
        assert result.message == "Account is not active for billing"
        assert result.statement is None

    def test_generation_logged(self, service, sample_account, captured_logs):
        service.generate_statement(SAMPLE_ACCOUNT_ID, date(2024, 2, 1))
        generated = [r for r in captured_logs() if r["message"] == "statement_generated"]
        assert generated[0]["account_id"] == SAMPLE_ACCOUNT_ID
        assert generated[0]["minimum_payment"] == "25.00"


class _InMemoryAccounts:

    def __init__(self, *accounts):
        self._rows = {a.account_id: a for a in accounts}

    def find_by_id(self, account_id):
        return self._rows.get(account_id)

    def save(self, account):
        self._rows[account.account_id] = account
        return account


class _InMemoryTransactions:

    def __init__(self, *transactions):
        self._rows = list(transactions)

    def save(self, transaction):
        self._rows.append(transaction)
        return transaction

    def find_by_account_and_date_range(self, account_id, start, end):
        return [
            t for t in self._rows
            if t.account_id == account_id and start <= t.timestamp.date() <= end
        ]


class TestStorePorts:
    """Any AccountStore / TransactionStore implementation can back the service."""

    def test_in_memory_stores(self, clock):
        purchase = TransactionRecord(
            transaction_id="JAN10PURCHASE001",
            account_id=SAMPLE_ACCOUNT_ID,
            type_code="01",
            amount=Money.of("42.10"),
            description="test activity",
            timestamp=_at(2024, 1, 10, 12, 0),
        )
        service = StatementService(
            clock=clock,
            accounts=_InMemoryAccounts(make_account()),
            transactions=_InMemoryTransactions(purchase),
        )
        statement = service.generate_statement(SAMPLE_ACCOUNT_ID, date(2024, 2, 1)).statement
        assert statement.totals.purchases == Money.of("42.10")
        assert statement.interest_charge == Money.of("16.13")

    def test_requires_session_or_stores(self, clock):
        with pytest.raises(ValueError):
            StatementService(clock=clock, accounts=_InMemoryAccounts())
