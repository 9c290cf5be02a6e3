"""
Config -> Kernel / Engine Bridges.

Functions that convert CardCoreSettings sections into the inputs the
kernel and engines accept.  These live in card_config (the producer)
because the kernel and the engines must NEVER import card_config.

Usage:
    from card_config import get_active_settings
    from card_config.bridges import build_billing_policy, build_validation_rules

    settings = get_active_settings()
    rules = build_validation_rules(settings)
    policy = build_billing_policy(settings)
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from card_config.schema import CardCoreSettings
from card_engines.billing import BillingPolicy
from card_kernel.db.engine import init_engine_from_url
from card_kernel.domain.concurrency import GuardMode
from card_kernel.domain.validation import ValidationRules
from card_kernel.domain.values import Money


def build_validation_rules(settings: CardCoreSettings) -> ValidationRules:
    v = settings.validation
    return ValidationRules(
        credit_limit_ceiling=v.credit_limit_ceiling,
        expiration_max_years=v.expiration_max_years,
        earliest_birth_year=v.earliest_birth_year,
        minimum_age=v.minimum_age,
        maximum_age=v.maximum_age,
        phone_area_code_allow_list=frozenset(v.phone_area_code_allow_list),
    )


def build_billing_policy(settings: CardCoreSettings) -> BillingPolicy:
    b = settings.billing
    return BillingPolicy(
        minimum_payment_floor=Money.of(b.minimum_payment_floor, settings.money.precision),
        minimum_payment_percent=b.minimum_payment_percent,
        annual_interest_rate=b.annual_interest_rate,
    )


def build_guard_mode(settings: CardCoreSettings) -> GuardMode:
    return GuardMode(settings.concurrency.guard_mode)


def init_engine_from_settings(settings: CardCoreSettings) -> Engine:
    """Initialise the kernel engine from the database section."""
    db = settings.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )
