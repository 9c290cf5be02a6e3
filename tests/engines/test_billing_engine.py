"""
Tests for the billing engine.

Verifies:
- Statement period is the previous full calendar month (leap years,
  year boundary)
- Interest is day-count on the inclusive period, rounded once
- Minimum payment is min(balance, max(floor, 2%))
- Aggregation skips transactions without an amount and buckets unknown
  type codes as purchases
- Engine calls emit CARD_ENGINE_TRACE
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from card_engines.billing import (
    BillingPolicy,
    StatementPeriod,
    TransactionCategory,
    aggregate_transactions,
    assemble_statement,
    categorize,
    minimum_payment,
    period_interest,
    statement_period,
)
from card_engines.tracer import compute_input_fingerprint
from card_kernel.domain.dtos import TransactionRecord
from card_kernel.domain.values import Money
from tests.conftest import make_account


def _txn(txn_id: str, type_code: str, amount: str | None) -> TransactionRecord:
    return TransactionRecord(
        transaction_id=txn_id,
        account_id="00000000001",
        type_code=type_code,
        amount=Money.of(amount) if amount is not None else None,
        timestamp=datetime(2024, 1, 10, 9, 30, tzinfo=timezone.utc),
    )


class TestStatementPeriod:

    def test_previous_month(self):
        period = statement_period(date(2024, 2, 1))
        assert period == StatementPeriod(date(2024, 1, 1), date(2024, 1, 31))
        assert period.days == 31

    def test_leap_february(self):
        period = statement_period(date(2024, 3, 15))
        assert period.end == date(2024, 2, 29)
        assert period.days == 29

    def test_non_leap_february(self):
        assert statement_period(date(2023, 3, 1)).end == date(2023, 2, 28)

    def test_crosses_year_boundary(self):
        period = statement_period(date(2024, 1, 1))
        assert period == StatementPeriod(date(2023, 12, 1), date(2023, 12, 31))

    def test_contains_is_inclusive(self):
        period = statement_period(date(2024, 2, 10))
        assert period.contains(date(2024, 1, 1))
        assert period.contains(date(2024, 1, 31))
        assert not period.contains(date(2024, 2, 1))


class TestPeriodInterest:

    def test_january_at_default_rate(self):
        interest = period_interest(
            Money.of("1000.00"), date(2024, 1, 1), date(2024, 1, 31)
        )
        assert interest == Money.of("16.13")

    def test_single_day_period(self):
        # 1000.00 x 18.99% / 365 = 0.5202...
        interest = period_interest(Money.of("1000.00"), date(2024, 1, 1), date(2024, 1, 1))
        assert interest == Money.of("0.52")

    def test_zero_and_credit_balances_accrue_nothing(self):
        start, end = date(2024, 1, 1), date(2024, 1, 31)
        assert period_interest(Money.zero(), start, end).is_zero
        assert period_interest(Money.of("-50.00"), start, end).is_zero
        assert period_interest(None, start, end).is_zero

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            period_interest(Money.of("1000.00"), date(2024, 2, 1), date(2024, 1, 31))

    def test_custom_rate(self):
        interest = period_interest(
            Money.of("1000.00"), date(2024, 1, 1), date(2024, 12, 30), Decimal("10")
        )
        # 365 days at 10% is exactly one year
        assert interest == Money.of("100.00")


class TestMinimumPayment:

    @pytest.mark.parametrize(
        "balance,expected",
        [
            ("5000.00", "100.00"),
            ("1250.00", "25.00"),
            ("1250.005", "25.00"),
            ("500.00", "25.00"),
            ("1333.33", "26.67"),
            ("15.00", "15.00"),
            ("10.00", "10.00"),
            ("0.01", "0.01"),
        ],
    )
    def test_examples(self, balance, expected):
        assert minimum_payment(Money.of(balance)) == Money.of(expected)

    @pytest.mark.parametrize("balance", [None, "0.00", "-100.00"])
    def test_nothing_due(self, balance):
        value = Money.of(balance) if balance is not None else None
        assert minimum_payment(value).is_zero

    def test_custom_floor_and_percentage(self):
        result = minimum_payment(Money.of("5000.00"), Money.of("50.00"), Decimal("5"))
        assert result == Money.of("250.00")


class TestAggregation:

    def test_buckets_and_total(self):
        totals = aggregate_transactions([
            _txn("T1", "01", "120.00"),
            _txn("T2", "01", "30.50"),
            _txn("T3", "02", "-100.00"),
            _txn("T4", "03", "15.83"),
            _txn("T5", "04", "35.00"),
        ])
        assert totals.purchases == Money.of("150.50")
        assert totals.payments == Money.of("-100.00")
        assert totals.interest == Money.of("15.83")
        assert totals.fees == Money.of("35.00")
        assert totals.total == Money.of("101.33")
        assert totals.counted == 5
        assert totals.for_category(TransactionCategory.FEE) == Money.of("35.00")

    def test_reference_example(self):
        totals = aggregate_transactions([
            _txn("T1", "01", "150.00"),
            _txn("T2", "01", "100.00"),
            _txn("T3", "02", "150.00"),
            _txn("T4", "03", "25.00"),
            _txn("T5", "04", "35.00"),
            _txn("T6", "01", None),
        ])
        assert totals.purchases == Money.of("250.00")
        assert totals.payments == Money.of("150.00")
        assert totals.interest == Money.of("25.00")
        assert totals.fees == Money.of("35.00")
        assert totals.total == Money.of("460.00")
        assert totals.counted == 5
        assert totals.skipped == 1

    def test_missing_amount_skipped(self):
        totals = aggregate_transactions([
            _txn("T1", "01", "100.00"),
            _txn("T2", "01", None),
        ])
        assert totals.purchases == Money.of("100.00")
        assert totals.counted == 1
        assert totals.skipped == 1

    def test_unknown_type_is_purchase(self):
        assert categorize("99") is TransactionCategory.PURCHASE
        assert categorize(None) is TransactionCategory.PURCHASE
        totals = aggregate_transactions([_txn("T1", "99", "42.00")])
        assert totals.purchases == Money.of("42.00")

    def test_empty(self):
        totals = aggregate_transactions([])
        assert totals.total.is_zero
        assert totals.counted == 0


class TestAssembleStatement:

    def test_statement_content(self):
        account = make_account()
        txns = [_txn("T1", "01", "200.00"), _txn("T2", "02", "-50.00")]
        statement = assemble_statement(account, date(2024, 2, 1), txns)

        assert statement.period == StatementPeriod(date(2024, 1, 1), date(2024, 1, 31))
        assert statement.current_balance == Money.of("1000.00")
        assert statement.interest_charge == Money.of("16.13")
        assert statement.minimum_payment == Money.of("25.00")
        assert statement.totals.total == Money.of("150.00")
        assert statement.transaction_count == 2
        assert statement.available_credit == Money.of("4000.00")

    def test_monthly_interest_charge(self):
        statement = assemble_statement(make_account(), date(2024, 2, 1), [])
        # 1000.00 * 18.99 / 1200 = 15.825
        assert statement.monthly_interest_charge == Money.of("15.83")

    def test_monthly_interest_zero_on_credit_balance(self):
        account = make_account(current_balance=Money.of("-40.00"))
        statement = assemble_statement(account, date(2024, 2, 1), [])
        assert statement.monthly_interest_charge.is_zero

    def test_policy_applied(self):
        policy = BillingPolicy(
            minimum_payment_floor=Money.of("10.00"),
            minimum_payment_percent=Decimal("3"),
            annual_interest_rate=Decimal("0"),
        )
        statement = assemble_statement(make_account(), date(2024, 2, 1), [], policy)
        assert statement.interest_charge.is_zero
        assert statement.minimum_payment == Money.of("30.00")

    def test_calculation_is_logged(self, captured_logs):
        assemble_statement(make_account(), date(2024, 2, 1), [])
        messages = [r["message"] for r in captured_logs()]
        assert "statement_calculation_started" in messages
        assert "statement_calculation_completed" in messages


class TestBillingPolicy:

    def test_defaults(self):
        policy = BillingPolicy()
        assert policy.minimum_payment_floor == Money.of("25.00")
        assert policy.minimum_payment_percent == Decimal("2")
        assert policy.annual_interest_rate == Decimal("18.99")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"minimum_payment_floor": Money.of("-1.00")},
            {"minimum_payment_percent": Decimal("101")},
            {"annual_interest_rate": Decimal("-0.01")},
        ],
    )
    def test_invalid_policy(self, kwargs):
        with pytest.raises(ValueError):
            BillingPolicy(**kwargs)


class TestEngineTrace:

    def test_trace_emitted(self, captured_logs):
        minimum_payment(Money.of("5000.00"))
        traces = [r for r in captured_logs() if r["message"] == "CARD_ENGINE_TRACE"]
        assert len(traces) == 1
        trace = traces[0]
        assert trace["engine_name"] == "billing.minimum_payment"
        assert trace["engine_version"] == "1.0"
        assert len(trace["input_fingerprint"]) == 16
        assert trace["logger"] == "card_kernel.engines.tracer"

    def test_positional_and_keyword_calls_fingerprint_alike(self, captured_logs):
        start, end = date(2024, 1, 1), date(2024, 1, 31)
        period_interest(Money.of("1000.00"), start, end)
        period_interest(average_balance=Money.of("1000.00"), period_start=start, period_end=end)
        fingerprints = {
            r["input_fingerprint"]
            for r in captured_logs()
            if r.get("engine_name") == "billing.period_interest"
        }
        assert len(fingerprints) == 1

    def test_fingerprint_is_deterministic(self):
        args = {"balance": Money.of("1.00"), "floor": None}
        first = compute_input_fingerprint(("balance", "floor"), args)
        assert first == compute_input_fingerprint(("balance", "floor"), dict(args))
        assert first != compute_input_fingerprint(
            ("balance", "floor"), {"balance": Money.of("2.00"), "floor": None}
        )
