"""
Module: card_kernel.models.account
Responsibility: ORM persistence for card accounts -- balance, credit limits,
    lifecycle dates and the owning customer reference.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Every monetary column is NUMERIC(12, 2) (see db/base.FixedPointAmount).
    - Optimistic versioning: ``version`` is the mapper's version_id_col, so
      every UPDATE is issued as ``... WHERE account_id = :id AND version =
      :version_read``.  A concurrent commit between read and write makes
      the UPDATE match zero rows and SQLAlchemy raises StaleDataError.
    - account_id is exactly 11 characters (CHECK constraint).  Limit
      relationships are enforced by the validation rules before any write.

Failure modes:
    - StaleDataError on a lost optimistic-lock race (converted to
      OptimisticLockError by the account store).
    - IntegrityError on a malformed account_id or dangling customer_id.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from card_kernel.db.base import TrackedBase


class AccountModel(TrackedBase):
    """
    A card account.

    Contract:
        Accounts are never deleted; closure is a status transition.
        Mutated only through the account update and payment services.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("length(account_id) = 11", name="ck_account_id_length"),
        Index("idx_account_customer", "customer_id"),
        Index("idx_account_status", "active_status"),
    )

    account_id: Mapped[str] = mapped_column(String(11), primary_key=True)

    active_status: Mapped[str] = mapped_column(String(10), nullable=False)

    current_balance: Mapped[Decimal] = mapped_column(nullable=False)
    credit_limit: Mapped[Decimal] = mapped_column(nullable=False)
    cash_credit_limit: Mapped[Decimal] = mapped_column(nullable=False)
    current_cycle_credit: Mapped[Decimal] = mapped_column(nullable=False)
    current_cycle_debit: Mapped[Decimal] = mapped_column(nullable=False)

    open_date: Mapped[date | None] = mapped_column(nullable=True)
    expiration_date: Mapped[date | None] = mapped_column(nullable=True)
    reissue_date: Mapped[date | None] = mapped_column(nullable=True)

    group_id: Mapped[str | None] = mapped_column(String(10), nullable=True)

    customer_id: Mapped[str] = mapped_column(
        String(9),
        ForeignKey("customers.customer_id"),
        nullable=False,
    )

    version: Mapped[int] = mapped_column(nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Account {self.account_id} ({self.active_status}) v{self.version}>"
