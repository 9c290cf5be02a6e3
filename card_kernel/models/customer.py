"""
Module: card_kernel.models.customer
Responsibility: ORM persistence for card customers (identity, contact and
    credit-score attributes).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``version`` is the mapper's version_id_col (see models/account.py).
    - SSN is stored normalised as AAA-GG-SSSS; phones as ten digits.
      Normalisation happens in the customer store, not here.
"""

from datetime import date

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from card_kernel.db.base import TrackedBase


class CustomerModel(TrackedBase):
    """A card customer.  Owned by zero or one account from the core's view."""

    __tablename__ = "customers"
    __table_args__ = (Index("idx_customer_last_name", "last_name"),)

    customer_id: Mapped[str] = mapped_column(String(9), primary_key=True)

    first_name: Mapped[str] = mapped_column(String(25), nullable=False)
    middle_name: Mapped[str | None] = mapped_column(String(25), nullable=True)
    last_name: Mapped[str] = mapped_column(String(25), nullable=False)

    address_line_1: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address_line_2: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address_line_3: Mapped[str | None] = mapped_column(String(50), nullable=True)
    state_code: Mapped[str | None] = mapped_column(String(2), nullable=True)
    country_code: Mapped[str | None] = mapped_column(String(3), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(10), nullable=True)

    phone_1: Mapped[str | None] = mapped_column(String(15), nullable=True)
    phone_2: Mapped[str | None] = mapped_column(String(15), nullable=True)

    ssn: Mapped[str | None] = mapped_column(String(11), nullable=True)
    government_id: Mapped[str | None] = mapped_column(String(20), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(nullable=True)
    eft_account_id: Mapped[str | None] = mapped_column(String(10), nullable=True)
    primary_cardholder: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    fico_score: Mapped[int | None] = mapped_column(nullable=True)

    version: Mapped[int] = mapped_column(nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Customer {self.customer_id}: {self.last_name}, {self.first_name}>"
