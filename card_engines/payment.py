"""
Bill Payment Engine.

Pure functions with deterministic behavior. No I/O.

Computes the effect of an online bill payment on a card account: the
structural checks on the request, the sufficiency rule, the new balance
and the payment transaction that records it.  Persisting the account and
the transaction together is the caller's job; this module only produces
the values to persist.

Payment transactions always carry the legacy bill-pay coding:
    type 02, category 0002, source "POS TERM",
    description "BILL PAYMENT - ONLINE".

Usage:
    from card_engines.payment import (
        PaymentRequest,
        apply_payment,
        check_sufficient_funds,
        validate_payment_request,
    )

    result = validate_payment_request(PaymentRequest("00000000001", "150.00", "Y"))
    new_balance = check_sufficient_funds(account, Money.of("150.00"))
    outcome = apply_payment(account, Money.of("150.00"), txn_id, timestamp)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation

from card_engines.tracer import traced_engine
from card_kernel.domain.dtos import (
    AccountSnapshot,
    FieldError,
    TransactionRecord,
    TransactionType,
    ValidationResult,
)
from card_kernel.domain.values import DEFAULT_PRECISION, Money
from card_kernel.exceptions import MoneyRangeError, NothingToPayError
from card_kernel.logging_config import get_logger

logger = get_logger("engines.payment")


# ============================================================================
# Constants
# ============================================================================

PAYMENT_TYPE_CODE = TransactionType.PAYMENT.value
PAYMENT_CATEGORY_CODE = "0002"
PAYMENT_SOURCE = "POS TERM"
PAYMENT_DESCRIPTION = "BILL PAYMENT - ONLINE"

CONFIRM_YES = "Y"
CONFIRM_NO = "N"

_ACCOUNT_ID = re.compile(r"^\d{11}$")


# ============================================================================
# Value Objects
# ============================================================================


@dataclass(frozen=True)
class PaymentRequest:
    """
    A bill payment as submitted by the caller.

    ``amount`` of None means "pay the full current balance".  ``confirm``
    must be "Y" before funds move; None or "N" leaves the payment
    unconfirmed.
    """

    account_id: str | None
    amount: Decimal | str | int | None = None
    confirm: str | None = None

    @property
    def has_amount(self) -> bool:
        return not _blank(self.amount)

    @property
    def is_confirmed(self) -> bool:
        return (self.confirm or "").strip().upper() == CONFIRM_YES


@dataclass(frozen=True)
class PaymentOutcome:
    """The updated account and the payment transaction to persist together."""

    updated_account: AccountSnapshot
    transaction: TransactionRecord

    @property
    def new_balance(self) -> Money:
        return self.updated_account.current_balance


@dataclass(frozen=True)
class PaymentAllocation:
    """
    Split of a payment across interest and principal.

    ``unapplied`` is the part of the payment left after both components are
    paid off.  ``remaining_balance`` is what is still owed.
    """

    to_interest: Money
    to_principal: Money
    unapplied: Money
    remaining_balance: Money


# ============================================================================
# Request validation
# ============================================================================


def _blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _amount_error(raw: Decimal | str | int) -> FieldError | None:
    if isinstance(raw, (bool, float)):
        return FieldError("amount", "Payment amount must be a valid number")
    try:
        value = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except InvalidOperation:
        return FieldError("amount", "Payment amount must be a valid number")
    if not value.is_finite():
        return FieldError("amount", "Payment amount must be a valid number")
    if value <= 0:
        return FieldError("amount", "Payment amount must be greater than zero")
    if value.as_tuple().exponent < -2:
        return FieldError(
            "amount", "Payment amount cannot have more than 2 decimal places"
        )
    return None


def validate_payment_request(request: PaymentRequest) -> ValidationResult:
    """
    Structural checks on a payment request, in legacy order.

    Stops at the first failure: account id present and well formed, then
    amount (when supplied) positive with at most two fractional digits,
    then the confirmation flag (when supplied) one of Y/N.
    """
    if _blank(request.account_id):
        return ValidationResult.of([FieldError("account_id", "Acct ID can NOT be empty...")])
    if not _ACCOUNT_ID.match(request.account_id.strip()):
        return ValidationResult.of(
            [FieldError("account_id", "Account ID must be exactly 11 digits")]
        )

    if not _blank(request.amount):
        error = _amount_error(request.amount)
        if error is not None:
            return ValidationResult.of([error])

    if not _blank(request.confirm) and request.confirm.strip().upper() not in (
        CONFIRM_YES, CONFIRM_NO,
    ):
        return ValidationResult.of(
            [FieldError("confirm", "Invalid value. Valid values are (Y/N)...")]
        )

    return ValidationResult()


# ============================================================================
# Core payment functions
# ============================================================================


def check_sufficient_funds(
    account: AccountSnapshot,
    amount: Money,
    precision: int = DEFAULT_PRECISION,
) -> Money:
    """
    Confirm a payment can be posted and return the resulting balance.

    A payment reduces the balance, so credit utilisation is not the
    constraint here.  The payment is refused when there is nothing
    outstanding, or when the new balance is not representable.

    Raises:
        NothingToPayError: current balance is zero or a credit.
        MoneyRangeError: balance - amount exceeds the precision bound.
    """
    balance = account.current_balance
    if not balance.is_positive:
        logger.info("payment_nothing_to_pay", extra={
            "account_id": account.account_id,
            "balance": str(balance.amount),
        })
        raise NothingToPayError(account.account_id, balance.amount)
    try:
        return Money.of(balance.amount - amount.amount, precision)
    except MoneyRangeError:
        logger.warning("payment_balance_out_of_range", extra={
            "account_id": account.account_id,
            "balance": str(balance.amount),
            "amount": str(amount.amount),
            "precision": precision,
        })
        raise


@traced_engine(
    "payment.apply_payment", "1.0",
    fingerprint_fields=("account", "amount", "transaction_id"),
)
def apply_payment(
    account: AccountSnapshot,
    amount: Money,
    transaction_id: str,
    timestamp: datetime,
    precision: int = DEFAULT_PRECISION,
) -> PaymentOutcome:
    """
    Post a payment: new balance = balance - amount, plus a payment record.

    The new balance is bounded by ``precision``, the same bound
    check_sufficient_funds applies.

    The returned account is a new snapshot carrying the read version, so
    the store's conditional write still detects a concurrent update.
    """
    updated = replace(
        account,
        current_balance=Money.of(account.current_balance.amount - amount.amount, precision),
    )
    transaction = TransactionRecord(
        transaction_id=transaction_id,
        account_id=account.account_id,
        type_code=PAYMENT_TYPE_CODE,
        amount=amount,
        description=PAYMENT_DESCRIPTION,
        category_code=PAYMENT_CATEGORY_CODE,
        source=PAYMENT_SOURCE,
        timestamp=timestamp,
    )
    logger.info("payment_computed", extra={
        "account_id": account.account_id,
        "transaction_id": transaction_id,
        "amount": str(amount.amount),
        "previous_balance": str(account.current_balance.amount),
        "new_balance": str(updated.current_balance.amount),
    })
    return PaymentOutcome(updated_account=updated, transaction=transaction)


def allocate_payment(
    amount: Money,
    interest_due: Money,
    principal_due: Money,
) -> PaymentAllocation:
    """
    Apply a payment to outstanding interest first, then to principal.

    Library helper for callers that track interest and principal
    separately.  PaymentService posts against the single current balance
    and does not call it.

    Raises:
        ValueError: negative payment amount.
    """
    if amount.is_negative:
        raise ValueError(f"Payment amount cannot be negative: {amount}")

    remaining = amount
    to_interest = Money.zero()
    to_principal = Money.zero()

    if interest_due.is_positive and remaining.is_positive:
        to_interest = min(remaining, interest_due)
        remaining = remaining - to_interest

    if principal_due.is_positive and remaining.is_positive:
        to_principal = min(remaining, principal_due)
        remaining = remaining - to_principal

    owed = (interest_due - to_interest) + (principal_due - to_principal)
    return PaymentAllocation(
        to_interest=to_interest,
        to_principal=to_principal,
        unapplied=remaining,
        remaining_balance=owed,
    )
