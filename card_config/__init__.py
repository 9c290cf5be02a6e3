"""
card_config -- single public entrypoint for card core settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  No other component may read settings
    files or environment variables directly.  YAML loading is internal
    tooling; callers receive a frozen ``CardCoreSettings``.

Architecture position:
    Configuration -- sits above ``card_kernel`` and ``card_engines`` and
    below ``card_services``.  The kernel and the engines MUST NEVER import
    from ``card_config``; bridges in this package translate settings into
    their inputs.

Invariants enforced:
    - Single entrypoint: all runtime settings flow through
      ``get_active_settings()``.
    - Every value is validated before a ``CardCoreSettings`` is produced.
    - Selection order: explicit path, then the ``CARD_CORE_CONFIG``
      environment variable, then the packaged ``defaults.yaml``.

Failure modes:
    - ``ConfigurationError`` -- missing file, malformed YAML, unknown key,
      bad type or out-of-range value.

Audit relevance:
    Every successful ``get_active_settings()`` call emits a
    ``CARD_CONFIG_TRACE`` log entry with the source path, checksum and the
    values that change monetary results.
"""

from __future__ import annotations

import os
from pathlib import Path

from card_config.loader import load_settings
from card_config.schema import (
    BillingSettings,
    CardCoreSettings,
    ConcurrencySettings,
    DatabaseSettings,
    MoneySettings,
    PaymentSettings,
    ValidationSettings,
)
from card_kernel.logging_config import get_logger

_logger = get_logger("config")

CONFIG_ENV_VAR = "CARD_CORE_CONFIG"

# Packaged defaults
DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_settings(path: Path | str | None = None) -> CardCoreSettings:
    """The ONLY public settings entrypoint.

    Contract:
        No other component may read settings files or environment
        variables.  All settings flow through this single function.

    Guarantees:
        - The returned ``CardCoreSettings`` has passed type and range
          validation.
        - A ``CARD_CONFIG_TRACE`` log entry is emitted on every
          successful call.

    Non-goals:
        - Does NOT cache across calls; callers hold the returned settings
          for as long as they need them.

    Args:
        path: Explicit settings file.  Overrides the environment variable.

    Raises:
        ConfigurationError: the selected file is missing or invalid.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    selected = Path(path) if path is not None else (
        Path(env_path) if env_path else DEFAULT_SETTINGS_PATH
    )

    settings = load_settings(selected)

    _logger.info(
        "CARD_CONFIG_TRACE",
        extra={
            "trace_type": "CARD_CONFIG_TRACE",
            "source": settings.source,
            "checksum": settings.checksum,
            "money_precision": settings.money.precision,
            "annual_interest_rate": str(settings.billing.annual_interest_rate),
            "minimum_payment_floor": str(settings.billing.minimum_payment_floor),
            "minimum_payment_percent": str(settings.billing.minimum_payment_percent),
            "guard_mode": settings.concurrency.guard_mode,
            "area_code_allow_list_size": len(settings.validation.phone_area_code_allow_list),
        },
    )
    return settings


__all__ = [
    "BillingSettings",
    "CONFIG_ENV_VAR",
    "CardCoreSettings",
    "ConcurrencySettings",
    "DEFAULT_SETTINGS_PATH",
    "DatabaseSettings",
    "MoneySettings",
    "PaymentSettings",
    "ValidationSettings",
    "get_active_settings",
    "load_settings",
]
