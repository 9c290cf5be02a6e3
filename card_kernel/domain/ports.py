"""
Store protocols consumed by the card core.

The core depends on these narrow contracts only.  ``find_by_id`` returning
None ("not found") is a distinct outcome from a record that is found but
fails validation.  SQLAlchemy-backed implementations live in
``card_kernel.services.stores``.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from card_kernel.domain.dtos import (
    AccountSnapshot,
    AuditRecord,
    CustomerSnapshot,
    TransactionRecord,
)


class AccountStore(Protocol):
    def find_by_id(self, account_id: str) -> AccountSnapshot | None: ...

    def save(self, account: AccountSnapshot) -> AccountSnapshot: ...


class CustomerStore(Protocol):
    def find_by_id(self, customer_id: str) -> CustomerSnapshot | None: ...

    def save(self, customer: CustomerSnapshot) -> CustomerSnapshot: ...


class TransactionStore(Protocol):
    def save(self, transaction: TransactionRecord) -> TransactionRecord: ...

    def find_by_account_and_date_range(
        self, account_id: str, start: date, end: date
    ) -> Sequence[TransactionRecord]: ...


class AuditStore(Protocol):
    def save(self, audit: AuditRecord) -> AuditRecord: ...
