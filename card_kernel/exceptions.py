"""
Typed Exception Hierarchy for the Card Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the card core must be able to tell a rejected field from a
state-dependent business rule, a missing record, a concurrent edit, or an
infrastructure outage.  Matching on message text is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        service.pay_bill(request)
    except NothingToPayError as e:
        api_response(code=e.code, account=e.account_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CardKernelError (base)
    |
    +-- MoneyError
    |   +-- MoneyRangeError
    |   +-- ZeroDivisorError
    |
    +-- FieldValidationError
    |
    +-- BusinessRuleError
    |   +-- AccountInactiveError
    |   +-- NothingToPayError
    |   +-- PaymentNotConfirmedError
    |
    +-- NotFoundError
    |   +-- AccountNotFoundError
    |   +-- CustomerNotFoundError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |   +-- GuardStateError
    |
    +-- ConfigurationError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                      | When Raised
----------------|---------------------------|-------------------------------------
Money           | MONEY_OUT_OF_RANGE        | Rounded value exceeds precision bound
                | ZERO_DIVISOR              | Division by zero (caller bug)
----------------|---------------------------|-------------------------------------
Validation      | FIELD_VALIDATION_FAILED   | One or more field rules failed
----------------|---------------------------|-------------------------------------
Business rule   | ACCOUNT_INACTIVE          | Limit change / payment on inactive acct
                | NOTHING_TO_PAY            | Balance is zero or negative
                | PAYMENT_NOT_CONFIRMED     | Confirmation flag missing or N
----------------|---------------------------|-------------------------------------
Not found       | ACCOUNT_NOT_FOUND         | Account ID doesn't resolve
                | CUSTOMER_NOT_FOUND        | Customer ID doesn't resolve
----------------|---------------------------|-------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT  | Record changed since it was read
                | GUARD_ALREADY_RESOLVED    | Guard checked twice
----------------|---------------------------|-------------------------------------
Configuration   | INVALID_CONFIGURATION     | Settings file fails validation
----------------|---------------------------|-------------------------------------
Immutability    | IMMUTABILITY_VIOLATION    | Posted transaction or audit row changed

Infrastructure errors (SQLAlchemy ``OperationalError`` and friends) are NOT
wrapped.  They propagate unmodified so that data-loss risk stays visible.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from card_kernel.domain.dtos import FieldError


class CardKernelError(Exception):
    """Base exception for all card kernel errors."""

    code: str = "CARD_KERNEL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Money
# =============================================================================


class MoneyError(CardKernelError):
    """Base for fixed-point arithmetic errors."""

    code: str = "MONEY_ERROR"


class MoneyRangeError(MoneyError):
    """Rounded amount does not fit the configured precision."""

    code: str = "MONEY_OUT_OF_RANGE"

    def __init__(self, value: Decimal, bound: Decimal):
        self.value = str(value)
        self.bound = str(bound)
        super().__init__(
            f"Amount {value} is outside the representable range +/-{bound}"
        )


class ZeroDivisorError(MoneyError, ZeroDivisionError):
    """Division by a zero divisor.  A caller bug, never a business outcome."""

    code: str = "ZERO_DIVISOR"

    def __init__(self, dividend: Decimal):
        self.dividend = str(dividend)
        super().__init__(f"Cannot divide {dividend} by zero")


# =============================================================================
# Validation
# =============================================================================


class FieldValidationError(CardKernelError):
    """One or more field-level rules failed.

    Carries the complete set of failures; never truncated to the first.
    """

    code: str = "FIELD_VALIDATION_FAILED"

    def __init__(self, field_errors: Sequence[FieldError]):
        self.field_errors = tuple(field_errors)
        fields = ", ".join(e.field for e in self.field_errors)
        super().__init__(
            f"Validation failed for {len(self.field_errors)} field(s): {fields}"
        )


# =============================================================================
# Business rules
# =============================================================================


class BusinessRuleError(CardKernelError):
    """State-dependent rejection, distinct from field validation."""

    code: str = "BUSINESS_RULE_VIOLATION"


class AccountInactiveError(BusinessRuleError):
    """Operation not permitted while the account is not active."""

    code: str = "ACCOUNT_INACTIVE"

    def __init__(self, account_id: str, message: str | None = None):
        self.account_id = account_id
        super().__init__(message or f"Account {account_id} is not active")


class NothingToPayError(BusinessRuleError):
    """Payment attempted against a zero or credit balance."""

    code: str = "NOTHING_TO_PAY"

    def __init__(self, account_id: str, balance: Decimal):
        self.account_id = account_id
        self.balance = str(balance)
        super().__init__("You have nothing to pay...")


class PaymentNotConfirmedError(BusinessRuleError):
    """Caller has not explicitly confirmed the payment."""

    code: str = "PAYMENT_NOT_CONFIRMED"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__("Confirm to make a bill payment...")


# =============================================================================
# Not found
# =============================================================================


class NotFoundError(CardKernelError):
    """Base for identifiers that do not resolve."""

    code: str = "NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    """Account ID does not resolve."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__("Account ID NOT found...")


class CustomerNotFoundError(NotFoundError):
    """Customer ID does not resolve."""

    code: str = "CUSTOMER_NOT_FOUND"

    def __init__(self, customer_id: str):
        self.customer_id = customer_id
        super().__init__(f"Customer {customer_id} not found")


# =============================================================================
# Concurrency
# =============================================================================


class ConcurrencyError(CardKernelError):
    """Base for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        diverged_fields: Sequence[str] = (),
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.diverged_fields = tuple(diverged_fields)
        super().__init__(
            "Record was modified by another user. Please refresh and try again."
        )


class GuardStateError(ConcurrencyError):
    """A concurrency guard was asked to resolve twice."""

    code: str = "GUARD_ALREADY_RESOLVED"

    def __init__(self, state: str):
        self.state = state
        super().__init__(f"Concurrency guard already resolved ({state})")


# =============================================================================
# Configuration
# =============================================================================


class ConfigurationError(CardKernelError):
    """Settings failed to load or validate."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, setting: str, reason: str):
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid setting '{setting}': {reason}")


# =============================================================================
# Immutability
# =============================================================================


class ImmutabilityViolationError(CardKernelError):
    """Attempted to modify or delete an immutable record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
