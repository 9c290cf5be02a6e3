"""Domain models for the card kernel."""

from card_kernel.models.account import AccountModel
from card_kernel.models.audit_record import AuditRecordModel
from card_kernel.models.customer import CustomerModel
from card_kernel.models.transaction import TransactionModel

__all__ = [
    "AccountModel",
    "AuditRecordModel",
    "CustomerModel",
    "TransactionModel",
]
