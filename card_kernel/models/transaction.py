"""
Module: card_kernel.models.transaction
Responsibility: ORM persistence for posted card transactions.
Architecture position: Kernel > Models.  May import from db/base.py and
    card_kernel.exceptions only.

Invariants enforced:
    - Append-only: a before_update / before_delete mapper event rejects any
      change to a persisted transaction with ImmutabilityViolationError.
    - amount shares the NUMERIC(12, 2) scale of account balances.

Failure modes:
    - ImmutabilityViolationError on UPDATE or DELETE.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, String, event
from sqlalchemy.orm import Mapped, mapped_column

from card_kernel.db.base import TrackedBase
from card_kernel.exceptions import ImmutabilityViolationError


class TransactionModel(TrackedBase):
    """A posted card transaction.  Immutable once flushed."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("idx_transaction_account_time", "account_id", "timestamp"),
    )

    transaction_id: Mapped[str] = mapped_column(String(16), primary_key=True)

    account_id: Mapped[str] = mapped_column(
        String(11),
        ForeignKey("accounts.account_id"),
        nullable=False,
    )

    type_code: Mapped[str] = mapped_column(String(2), nullable=False)
    category_code: Mapped[str] = mapped_column(String(4), nullable=False, default="")
    source: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    description: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    # Nullable: legacy extracts contain incomplete records.
    amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    timestamp: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Transaction {self.transaction_id} {self.type_code} {self.amount}>"


@event.listens_for(TransactionModel, "before_update")
def _reject_transaction_update(mapper, connection, target) -> None:
    raise ImmutabilityViolationError(
        "Transaction", target.transaction_id, "posted transactions cannot be modified"
    )


@event.listens_for(TransactionModel, "before_delete")
def _reject_transaction_delete(mapper, connection, target) -> None:
    raise ImmutabilityViolationError(
        "Transaction", target.transaction_id, "posted transactions cannot be deleted"
    )
