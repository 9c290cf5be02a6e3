"""Kernel services: flush-only stores and the account update orchestrator."""

from card_kernel.services.account_update_service import AccountUpdateService
from card_kernel.services.base import BaseService
from card_kernel.services.stores import (
    SqlAccountStore,
    SqlAuditStore,
    SqlCustomerStore,
    SqlTransactionStore,
)

__all__ = [
    "AccountUpdateService",
    "BaseService",
    "SqlAccountStore",
    "SqlAuditStore",
    "SqlCustomerStore",
    "SqlTransactionStore",
]
