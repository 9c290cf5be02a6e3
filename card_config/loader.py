"""
Settings Loader (``card_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the typed
``card_config.schema`` dataclasses, validating every value on the way.
The single public entry point for runtime settings is
``card_config.get_active_settings()``; this module is its tooling.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends only on PyYAML,
``card_config.schema`` and ``card_kernel.exceptions``.

Invariants enforced
-------------------
* Every value is type-checked and range-checked; a bad value raises
  ``ConfigurationError`` naming the dotted setting path.
* Unknown sections and keys are rejected, so a typo never silently
  falls back to a default.
* Monetary and rate values are read as Decimal from their YAML text;
  binary floats never reach a calculation.
* ``compute_checksum`` is a deterministic SHA-256 of the parsed mapping.

Failure modes
-------------
* Missing file  -> ``ConfigurationError`` (setting ``<file>``).
* Malformed YAML  -> ``ConfigurationError`` wrapping ``yaml.YAMLError``.
* Bad type or out-of-range value  -> ``ConfigurationError``.

Audit relevance
---------------
The checksum is logged with every ``CARD_CONFIG_TRACE`` so auditors can
tie a run to the exact settings that governed it.
"""

from __future__ import annotations

import hashlib
import json
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from card_config.schema import (
    BillingSettings,
    CardCoreSettings,
    ConcurrencySettings,
    DatabaseSettings,
    MoneySettings,
    PaymentSettings,
    ValidationSettings,
)
from card_kernel.db.base import MONEY_PRECISION
from card_kernel.exceptions import ConfigurationError

_AREA_CODE = re.compile(r"^\d{3}$")
_GUARD_MODES = ("fields", "version")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigurationError: missing file, invalid YAML, or a top-level
            value that is not a mapping.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError("<file>", f"settings file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError("<file>", f"invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("<file>", f"top level of {path} must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialisation of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------


def _decimal(setting: str, value: Any) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ConfigurationError(setting, f"expected a decimal number, got {value!r}")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ConfigurationError(setting, f"expected a decimal number, got {value!r}") from e
    if not result.is_finite():
        raise ConfigurationError(setting, "must be finite")
    return result


def _int(setting: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(setting, f"expected an integer, got {value!r}")
    return value


def _bool(setting: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigurationError(setting, f"expected true or false, got {value!r}")
    return value


def _str(setting: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(setting, f"expected a non-empty string, got {value!r}")
    return value.strip()


def _at_least(setting: str, value: int | Decimal, minimum: int | Decimal) -> None:
    if value < minimum:
        raise ConfigurationError(setting, f"must be >= {minimum}, got {value}")


def _section(data: dict[str, Any], name: str, allowed: set[str]) -> dict[str, Any]:
    raw = data.get(name) or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(name, "section must be a mapping")
    unknown = sorted(set(raw) - allowed)
    if unknown:
        raise ConfigurationError(f"{name}.{unknown[0]}", "unknown setting")
    return raw


# ---------------------------------------------------------------------------
# Section parsers
# ---------------------------------------------------------------------------


def parse_money(data: dict[str, Any]) -> MoneySettings:
    raw = _section(data, "money", {"precision"})
    defaults = MoneySettings()
    precision = _int("money.precision", raw.get("precision", defaults.precision))
    if not 3 <= precision <= MONEY_PRECISION:
        raise ConfigurationError(
            "money.precision",
            f"must be between 3 and {MONEY_PRECISION} (stored column precision), "
            f"got {precision}",
        )
    return MoneySettings(precision=precision)


def parse_billing(data: dict[str, Any]) -> BillingSettings:
    raw = _section(
        data, "billing",
        {"minimum_payment_floor", "minimum_payment_percent", "annual_interest_rate"},
    )
    defaults = BillingSettings()
    floor = _decimal(
        "billing.minimum_payment_floor",
        raw.get("minimum_payment_floor", defaults.minimum_payment_floor),
    )
    percent = _decimal(
        "billing.minimum_payment_percent",
        raw.get("minimum_payment_percent", defaults.minimum_payment_percent),
    )
    rate = _decimal(
        "billing.annual_interest_rate",
        raw.get("annual_interest_rate", defaults.annual_interest_rate),
    )
    _at_least("billing.minimum_payment_floor", floor, Decimal("0"))
    if not Decimal("0") <= percent <= Decimal("100"):
        raise ConfigurationError(
            "billing.minimum_payment_percent", f"must be between 0 and 100, got {percent}"
        )
    _at_least("billing.annual_interest_rate", rate, Decimal("0"))
    return BillingSettings(
        minimum_payment_floor=floor,
        minimum_payment_percent=percent,
        annual_interest_rate=rate,
    )


def parse_validation(data: dict[str, Any]) -> ValidationSettings:
    raw = _section(
        data, "validation",
        {
            "credit_limit_ceiling",
            "expiration_max_years",
            "earliest_birth_year",
            "minimum_age",
            "maximum_age",
            "phone_area_code_allow_list",
        },
    )
    d = ValidationSettings()
    ceiling = _decimal(
        "validation.credit_limit_ceiling",
        raw.get("credit_limit_ceiling", d.credit_limit_ceiling),
    )
    max_years = _int(
        "validation.expiration_max_years",
        raw.get("expiration_max_years", d.expiration_max_years),
    )
    earliest = _int(
        "validation.earliest_birth_year",
        raw.get("earliest_birth_year", d.earliest_birth_year),
    )
    min_age = _int("validation.minimum_age", raw.get("minimum_age", d.minimum_age))
    max_age = _int("validation.maximum_age", raw.get("maximum_age", d.maximum_age))

    _at_least("validation.credit_limit_ceiling", ceiling, Decimal("0"))
    _at_least("validation.expiration_max_years", max_years, 1)
    _at_least("validation.earliest_birth_year", earliest, 1)
    _at_least("validation.minimum_age", min_age, 0)
    if max_age <= min_age:
        raise ConfigurationError(
            "validation.maximum_age",
            f"must exceed minimum_age {min_age}, got {max_age}",
        )

    allow_raw = raw.get("phone_area_code_allow_list", list(d.phone_area_code_allow_list))
    if not isinstance(allow_raw, (list, tuple)):
        raise ConfigurationError("validation.phone_area_code_allow_list", "must be a list")
    allow: list[str] = []
    for item in allow_raw:
        code = str(item).strip() if isinstance(item, (int, str)) and not isinstance(item, bool) else ""
        if not _AREA_CODE.match(code):
            raise ConfigurationError(
                "validation.phone_area_code_allow_list",
                f"area codes must be 3 digits, got {item!r}",
            )
        allow.append(code)

    return ValidationSettings(
        credit_limit_ceiling=ceiling,
        expiration_max_years=max_years,
        earliest_birth_year=earliest,
        minimum_age=min_age,
        maximum_age=max_age,
        phone_area_code_allow_list=tuple(sorted(set(allow))),
    )


def parse_payment(data: dict[str, Any]) -> PaymentSettings:
    raw = _section(data, "payment", {"pay_full_balance_by_default", "transaction_id_length"})
    d = PaymentSettings()
    full = _bool(
        "payment.pay_full_balance_by_default",
        raw.get("pay_full_balance_by_default", d.pay_full_balance_by_default),
    )
    length = _int(
        "payment.transaction_id_length",
        raw.get("transaction_id_length", d.transaction_id_length),
    )
    if not 8 <= length <= 32:
        raise ConfigurationError(
            "payment.transaction_id_length", f"must be between 8 and 32, got {length}"
        )
    return PaymentSettings(pay_full_balance_by_default=full, transaction_id_length=length)


def parse_concurrency(data: dict[str, Any]) -> ConcurrencySettings:
    raw = _section(data, "concurrency", {"guard_mode"})
    mode = _str("concurrency.guard_mode", raw.get("guard_mode", ConcurrencySettings().guard_mode))
    if mode.lower() not in _GUARD_MODES:
        raise ConfigurationError(
            "concurrency.guard_mode", f"must be one of {', '.join(_GUARD_MODES)}, got {mode!r}"
        )
    return ConcurrencySettings(guard_mode=mode.lower())


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    raw = _section(
        data, "database",
        {"url", "echo", "pool_size", "max_overflow", "pool_timeout", "pool_recycle"},
    )
    d = DatabaseSettings()
    settings = DatabaseSettings(
        url=_str("database.url", raw.get("url", d.url)),
        echo=_bool("database.echo", raw.get("echo", d.echo)),
        pool_size=_int("database.pool_size", raw.get("pool_size", d.pool_size)),
        max_overflow=_int("database.max_overflow", raw.get("max_overflow", d.max_overflow)),
        pool_timeout=_int("database.pool_timeout", raw.get("pool_timeout", d.pool_timeout)),
        pool_recycle=_int("database.pool_recycle", raw.get("pool_recycle", d.pool_recycle)),
    )
    _at_least("database.pool_size", settings.pool_size, 1)
    _at_least("database.max_overflow", settings.max_overflow, 0)
    _at_least("database.pool_timeout", settings.pool_timeout, 1)
    _at_least("database.pool_recycle", settings.pool_recycle, 1)
    return settings


_SECTIONS = {"money", "billing", "validation", "payment", "concurrency", "database"}


def parse_settings(data: dict[str, Any], source: str = "<dict>") -> CardCoreSettings:
    """
    Parse and validate a settings mapping.

    Missing sections and keys take their defaults.

    Raises:
        ConfigurationError: unknown section or key, bad type, bad range.
    """
    unknown = sorted(set(data) - _SECTIONS)
    if unknown:
        raise ConfigurationError(unknown[0], "unknown settings section")
    return CardCoreSettings(
        money=parse_money(data),
        billing=parse_billing(data),
        validation=parse_validation(data),
        payment=parse_payment(data),
        concurrency=parse_concurrency(data),
        database=parse_database(data),
        source=source,
        checksum=compute_checksum(data),
    )


def load_settings(path: Path | str) -> CardCoreSettings:
    """Load, parse and validate one YAML settings file."""
    path = Path(path)
    return parse_settings(load_yaml_file(path), source=str(path))
