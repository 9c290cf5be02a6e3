"""
card_services -- Package init and public API.

Responsibility:
    Stateful orchestration services that compose the pure calculation
    engines (card_engines/) with database sessions and the kernel stores.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction (enforced by tests/architecture/test_import_boundaries.py):
        card_services/ -> card_engines/  (allowed)
        card_services/ -> card_kernel/   (allowed)
        card_services/ -> card_config/   (allowed)
        card_engines/  -> card_services/ (FORBIDDEN)
        card_kernel/   -> card_services/ (FORBIDDEN)

Invariants enforced:
    - Layer isolation: card_kernel and card_engines never import from this
      package.
    - Services flush, never commit.
"""

from card_kernel.logging_config import get_logger

logger = get_logger("services")

from card_services.payment_service import PaymentResult, PaymentService
from card_services.statement_service import StatementResult, StatementService

__all__ = [
    "PaymentResult",
    "PaymentService",
    "StatementResult",
    "StatementService",
]
