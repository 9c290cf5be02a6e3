"""
Statement Billing Engine.

Pure functions with deterministic behavior. No I/O.

This engine computes the monetary content of a monthly card statement:
the minimum payment due, the interest accrued over the statement period,
the per-category transaction totals, and the calendar bounds of the
period itself.  Every amount flows through Money, so scale 2 and HALF_UP
rounding are applied exactly where the legacy statement program applied
them.

Transaction categories (two-character type codes):
- 01 Purchase
- 02 Payment
- 03 Interest
- 04 Fee
Unknown codes are counted as purchases.

Usage:
    from card_engines.billing import (
        BillingPolicy,
        assemble_statement,
        minimum_payment,
        period_interest,
        statement_period,
    )

    period = statement_period(date(2024, 2, 1))   # 2024-01-01 .. 2024-01-31
    interest = period_interest(
        Money.of("1000.00"), period.start, period.end,
    )                                               # 16.13
    due = minimum_payment(Money.of("5000.00"))      # 100.00
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from card_engines.tracer import traced_engine
from card_kernel.domain.dtos import AccountSnapshot, TransactionRecord, TransactionType
from card_kernel.domain.values import Money, monthly_interest, multiply_by_rate_over_period
from card_kernel.logging_config import get_logger

logger = get_logger("engines.billing")


# ============================================================================
# Constants
# ============================================================================

DEFAULT_MINIMUM_PAYMENT_FLOOR = Decimal("25.00")
DEFAULT_MINIMUM_PAYMENT_PERCENT = Decimal("2")
DEFAULT_ANNUAL_INTEREST_RATE = Decimal("18.99")


class TransactionCategory(str, Enum):
    """Statement buckets for transaction totals."""

    PURCHASE = "PURCHASE"
    PAYMENT = "PAYMENT"
    INTEREST = "INTEREST"
    FEE = "FEE"


_CATEGORY_BY_TYPE_CODE = {
    TransactionType.PURCHASE.value: TransactionCategory.PURCHASE,
    TransactionType.PAYMENT.value: TransactionCategory.PAYMENT,
    TransactionType.INTEREST.value: TransactionCategory.INTEREST,
    TransactionType.FEE.value: TransactionCategory.FEE,
}


def categorize(type_code: str | None) -> TransactionCategory:
    """Map a type code to its statement bucket.  Unknown codes are purchases."""
    code = (type_code or "").strip()
    return _CATEGORY_BY_TYPE_CODE.get(code, TransactionCategory.PURCHASE)


# ============================================================================
# Value Objects
# ============================================================================


@dataclass(frozen=True)
class BillingPolicy:
    """
    Tunable statement parameters.

    Defaults are the legacy constants: a 25.00 floor, 2 percent of the
    balance, and an 18.99 percent annual rate.
    """

    minimum_payment_floor: Money = field(
        default_factory=lambda: Money.of(DEFAULT_MINIMUM_PAYMENT_FLOOR)
    )
    minimum_payment_percent: Decimal = DEFAULT_MINIMUM_PAYMENT_PERCENT
    annual_interest_rate: Decimal = DEFAULT_ANNUAL_INTEREST_RATE

    def __post_init__(self) -> None:
        if self.minimum_payment_floor.is_negative:
            raise ValueError("minimum_payment_floor must be non-negative")
        if not (Decimal("0") <= self.minimum_payment_percent <= Decimal("100")):
            raise ValueError("minimum_payment_percent must be between 0 and 100")
        if self.annual_interest_rate < 0:
            raise ValueError("annual_interest_rate must be non-negative")


@dataclass(frozen=True)
class StatementPeriod:
    """Inclusive calendar bounds of a statement cycle."""

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class TransactionTotals:
    """
    Per-category totals for a statement period.

    ``total`` is the sum of the four buckets.  ``counted`` is the number of
    transactions that contributed; ``skipped`` the number dropped for a
    missing amount.
    """

    purchases: Money = field(default_factory=Money.zero)
    payments: Money = field(default_factory=Money.zero)
    interest: Money = field(default_factory=Money.zero)
    fees: Money = field(default_factory=Money.zero)
    total: Money = field(default_factory=Money.zero)
    counted: int = 0
    skipped: int = 0

    def for_category(self, category: TransactionCategory) -> Money:
        return {
            TransactionCategory.PURCHASE: self.purchases,
            TransactionCategory.PAYMENT: self.payments,
            TransactionCategory.INTEREST: self.interest,
            TransactionCategory.FEE: self.fees,
        }[category]


@dataclass(frozen=True)
class Statement:
    """
    Computed content of one account statement.

    Contract:
        Produced only for an account that exists and is active.  The
        current balance stands in for the period's average daily balance.
        ``interest_charge`` is the day-count charge over the period;
        ``monthly_interest_charge`` is the flat (balance x rate) / 1200
        figure charged by the legacy monthly interest run.
    """

    account_id: str
    statement_date: date
    period: StatementPeriod
    current_balance: Money
    credit_limit: Money
    totals: TransactionTotals
    interest_charge: Money
    minimum_payment: Money
    monthly_interest_charge: Money = field(default_factory=Money.zero)
    transactions: tuple[TransactionRecord, ...] = ()

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)

    @property
    def available_credit(self) -> Money:
        return self.credit_limit - self.current_balance


# ============================================================================
# Core Billing Functions
# ============================================================================


@traced_engine(
    "billing.minimum_payment", "1.0",
    fingerprint_fields=("balance", "floor", "percentage"),
)
def minimum_payment(
    balance: Money | None,
    floor: Money | None = None,
    percentage: Decimal | int | str = DEFAULT_MINIMUM_PAYMENT_PERCENT,
) -> Money:
    """
    Minimum payment due on a balance.

    ``min(balance, max(floor, balance x percentage%))``; zero when the
    balance is absent, zero or a credit.

    Examples:
        5000.00 -> 100.00   (2% above the floor)
        500.00  -> 25.00    (floor)
        10.00   -> 10.00    (never more than the balance)
    """
    if balance is None or not balance.is_positive:
        return Money.zero()
    if floor is None:
        floor = Money.of(DEFAULT_MINIMUM_PAYMENT_FLOOR, balance.precision)
    percent_due = balance.percentage(percentage)
    return min(balance, max(floor, percent_due))


@traced_engine(
    "billing.period_interest", "1.0",
    fingerprint_fields=("average_balance", "period_start", "period_end", "annual_rate"),
)
def period_interest(
    average_balance: Money | None,
    period_start: date,
    period_end: date,
    annual_rate: Decimal | int | str = DEFAULT_ANNUAL_INTEREST_RATE,
) -> Money:
    """
    Interest accrued on a balance over an inclusive date range.

    Day count is ``(end - start) + 1``.  The full expression
    ``balance x rate / 100 / 365 x days`` is rounded once.

    Raises:
        ValueError: period_end precedes period_start.
    """
    if period_end < period_start:
        raise ValueError(
            f"Period end {period_end.isoformat()} precedes start "
            f"{period_start.isoformat()}"
        )
    if average_balance is None or not average_balance.is_positive:
        return Money.zero()
    days = (period_end - period_start).days + 1
    return multiply_by_rate_over_period(average_balance, annual_rate, days)


def aggregate_transactions(
    transactions: Iterable[TransactionRecord],
) -> TransactionTotals:
    """
    Sum transactions into statement buckets.

    Transactions with no amount are skipped entirely; they are not counted
    and contribute to no bucket.
    """
    buckets = {category: Money.zero() for category in TransactionCategory}
    counted = 0
    skipped = 0
    for txn in transactions:
        if txn.amount is None:
            skipped += 1
            continue
        category = categorize(txn.type_code)
        buckets[category] = buckets[category] + txn.amount
        counted += 1

    if skipped:
        logger.debug("billing_transactions_skipped", extra={"skipped": skipped})

    total = Money.zero()
    for amount in buckets.values():
        total = total + amount

    return TransactionTotals(
        purchases=buckets[TransactionCategory.PURCHASE],
        payments=buckets[TransactionCategory.PAYMENT],
        interest=buckets[TransactionCategory.INTEREST],
        fees=buckets[TransactionCategory.FEE],
        total=total,
        counted=counted,
        skipped=skipped,
    )


def statement_period(statement_date: date) -> StatementPeriod:
    """The full calendar month preceding ``statement_date``.

    2024-03-15 -> 2024-02-01 .. 2024-02-29
    2024-01-01 -> 2023-12-01 .. 2023-12-31
    """
    end = statement_date.replace(day=1) - timedelta(days=1)
    return StatementPeriod(start=end.replace(day=1), end=end)


def assemble_statement(
    account: AccountSnapshot,
    statement_date: date,
    transactions: Iterable[TransactionRecord],
    policy: BillingPolicy | None = None,
) -> Statement:
    """
    Build a Statement from an account and its period transactions.

    Pure function - no side effects, no I/O, deterministic output.
    The caller is responsible for confirming the account is eligible
    for billing and for selecting the period's transactions.
    """
    t0 = time.monotonic()
    policy = policy or BillingPolicy()
    period = statement_period(statement_date)
    txns = tuple(transactions)

    logger.info("statement_calculation_started", extra={
        "account_id": account.account_id,
        "period_start": period.start.isoformat(),
        "period_end": period.end.isoformat(),
        "transaction_count": len(txns),
    })

    totals = aggregate_transactions(txns)
    interest = period_interest(
        account.current_balance, period.start, period.end,
        policy.annual_interest_rate,
    )
    due = minimum_payment(
        account.current_balance,
        policy.minimum_payment_floor,
        policy.minimum_payment_percent,
    )
    monthly = (
        monthly_interest(account.current_balance, policy.annual_interest_rate)
        if account.current_balance.is_positive
        else Money.zero()
    )

    statement = Statement(
        account_id=account.account_id,
        statement_date=statement_date,
        period=period,
        current_balance=account.current_balance,
        credit_limit=account.credit_limit,
        totals=totals,
        interest_charge=interest,
        minimum_payment=due,
        monthly_interest_charge=monthly,
        transactions=txns,
    )

    duration_ms = round((time.monotonic() - t0) * 1000, 2)
    logger.info("statement_calculation_completed", extra={
        "account_id": account.account_id,
        "current_balance": str(account.current_balance.amount),
        "interest_charge": str(interest.amount),
        "monthly_interest_charge": str(monthly.amount),
        "minimum_payment": str(due.amount),
        "total": str(totals.total.amount),
        "duration_ms": duration_ms,
    })
    return statement
