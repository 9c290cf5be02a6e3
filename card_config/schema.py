"""
CardCoreSettings schema.

Defines the typed, frozen settings that tune the card core.  YAML files
are parsed into these types by the loader; bridges translate them into
the kernel and engine inputs (ValidationRules, BillingPolicy, engine
initialisation).

Every default equals the legacy constant, so an empty settings file
reproduces legacy behaviour exactly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Money
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MoneySettings:
    """Total digit precision of stored amounts (scale is always 2)."""

    precision: int = 12


# ---------------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BillingSettings:
    """Statement parameters."""

    minimum_payment_floor: Decimal = Decimal("25.00")
    minimum_payment_percent: Decimal = Decimal("2")
    annual_interest_rate: Decimal = Decimal("18.99")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValidationSettings:
    """Field-rule boundaries and the development area-code allow-list."""

    credit_limit_ceiling: Decimal = Decimal("999999.99")
    expiration_max_years: int = 10
    earliest_birth_year: int = 1900
    minimum_age: int = 18
    maximum_age: int = 120
    phone_area_code_allow_list: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PaymentSettings:
    """Bill-payment behaviour."""

    pay_full_balance_by_default: bool = True
    transaction_id_length: int = 16


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConcurrencySettings:
    """Guard mode for account updates: ``fields`` or ``version``."""

    guard_mode: str = "fields"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection parameters passed to ``init_engine_from_url``."""

    url: str = "sqlite+pysqlite:///:memory:"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5
    pool_timeout: int = 30
    pool_recycle: int = 1800


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CardCoreSettings:
    """The complete, validated settings for one process."""

    money: MoneySettings = field(default_factory=MoneySettings)
    billing: BillingSettings = field(default_factory=BillingSettings)
    validation: ValidationSettings = field(default_factory=ValidationSettings)
    payment: PaymentSettings = field(default_factory=PaymentSettings)
    concurrency: ConcurrencySettings = field(default_factory=ConcurrencySettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    source: str = "<defaults>"
    checksum: str = ""
