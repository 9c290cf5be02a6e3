"""
Module: card_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    card_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import card_kernel.domain, card_kernel.exceptions and
    card_kernel.logging_config (and sibling engine modules).
    MUST NOT import card_kernel.db, card_kernel.models, card_services or
    card_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Statement dates and payment timestamps are passed in by services.
    - Money-only arithmetic: every amount is a Money, so scale 2 and
      HALF_UP rounding hold on every result.
    - Determinism: identical inputs always produce identical outputs.

Failure modes:
    - ValueError on invalid periods or policies.
    - NothingToPayError / MoneyRangeError from the payment sufficiency rule.

Audit relevance:
    Engine invocations are traced via the ``@traced_engine`` decorator
    (see ``card_engines.tracer``), emitting CARD_ENGINE_TRACE log records
    that include engine name, version, input fingerprint, and duration.

Usage:
    from card_engines.billing import assemble_statement, minimum_payment
    from card_engines.payment import apply_payment, validate_payment_request
"""

from card_kernel.logging_config import get_logger

logger = get_logger("engines")

from card_engines.billing import (
    BillingPolicy,
    Statement,
    StatementPeriod,
    TransactionCategory,
    TransactionTotals,
    aggregate_transactions,
    assemble_statement,
    categorize,
    minimum_payment,
    period_interest,
    statement_period,
)
from card_engines.payment import (
    PAYMENT_CATEGORY_CODE,
    PAYMENT_DESCRIPTION,
    PAYMENT_SOURCE,
    PAYMENT_TYPE_CODE,
    PaymentAllocation,
    PaymentOutcome,
    PaymentRequest,
    allocate_payment,
    apply_payment,
    check_sufficient_funds,
    validate_payment_request,
)
from card_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "BillingPolicy",
    "PAYMENT_CATEGORY_CODE",
    "PAYMENT_DESCRIPTION",
    "PAYMENT_SOURCE",
    "PAYMENT_TYPE_CODE",
    "PaymentAllocation",
    "PaymentOutcome",
    "PaymentRequest",
    "Statement",
    "StatementPeriod",
    "TransactionCategory",
    "TransactionTotals",
    "aggregate_transactions",
    "allocate_payment",
    "apply_payment",
    "assemble_statement",
    "categorize",
    "check_sufficient_funds",
    "compute_input_fingerprint",
    "minimum_payment",
    "period_interest",
    "statement_period",
    "traced_engine",
    "validate_payment_request",
]
