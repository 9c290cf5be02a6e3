"""
Module: card_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the type annotation map for consistent column types and the TrackedBase
    mixin for audit timestamps.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Decimal precision: type_annotation_map maps Python Decimal to
      Numeric(12, 2), the legacy signed fixed-point width of every monetary
      field.  NEVER use float for monetary amounts.
    - Natural keys: accounts, customers and transactions are keyed by their
      business identifiers, which are fixed-width strings.
    - Audit timestamps: TrackedBase provides created_at and updated_at.

Failure modes:
    - IntegrityError on duplicate business identifiers.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import ClassVar

from sqlalchemy import Date, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

MONEY_PRECISION = 12
MONEY_SCALE = 2

_CENT = Decimal("0.01")


class FixedPointAmount(TypeDecorator):
    """
    Scale-2 decimal column that round-trips exactly on every backend.

    Contract:
        Server databases store NUMERIC(12, 2).  SQLite has no exact decimal
        storage, so amounts are stored there as their canonical string.

    Guarantees:
        - process_bind_param: Decimal -> Decimal (or str on SQLite), scale 2.
        - process_result_value: always a Decimal with exponent -2.
    """

    impl = Numeric(MONEY_PRECISION, MONEY_SCALE)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(MONEY_PRECISION + 2))
        return dialect.type_descriptor(
            Numeric(MONEY_PRECISION, MONEY_SCALE, asdecimal=True)
        )

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        amount = Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)
        return str(amount) if dialect.name == "sqlite" else amount

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - Decimal maps to FixedPointAmount (NUMERIC(12, 2)) -- legacy
          fixed-point width.
        - datetime maps to DateTime(timezone=True) -- always timezone-aware.
        - date maps to Date.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: FixedPointAmount(),
        datetime: DateTime(timezone=True),
        date: Date,
        int: Integer,
    }


class TrackedBase(Base):
    """
    Abstract base with audit timestamps.

    Guarantees:
        - created_at is set to server NOW() on INSERT and never changes.
        - updated_at is set on INSERT and refreshed on every UPDATE.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=True,
    )
