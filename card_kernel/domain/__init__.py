"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock
- I/O

All domain objects are immutable and deterministic.
"""

from card_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from card_kernel.domain.concurrency import (
    ConcurrencyGuard,
    ConcurrencySnapshot,
    GuardMode,
    GuardState,
)
from card_kernel.domain.dtos import (
    AccountSnapshot,
    AccountStatus,
    AccountUpdateRequest,
    AuditRecord,
    CustomerSnapshot,
    FieldChange,
    FieldError,
    TransactionRecord,
    TransactionType,
    UpdateResult,
    ValidationResult,
)
from card_kernel.domain.validation import (
    ValidationRules,
    validate_account_fields,
    validate_customer_fields,
)
from card_kernel.domain.values import (
    Money,
    multiply_by_rate_over_period,
    scale_and_round,
)

__all__ = [
    "AccountSnapshot",
    "AccountStatus",
    "AccountUpdateRequest",
    "AuditRecord",
    "Clock",
    "ConcurrencyGuard",
    "ConcurrencySnapshot",
    "CustomerSnapshot",
    "DeterministicClock",
    "FieldChange",
    "FieldError",
    "GuardMode",
    "GuardState",
    "Money",
    "SystemClock",
    "TransactionRecord",
    "TransactionType",
    "UpdateResult",
    "ValidationResult",
    "ValidationRules",
    "multiply_by_rate_over_period",
    "scale_and_round",
    "validate_account_fields",
    "validate_customer_fields",
]
