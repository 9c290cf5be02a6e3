"""
Field Validation Engine -- account and customer rule set.

Responsibility:
    Stateless rules over account/customer attributes that every mutation
    must satisfy before persistence is attempted.  Each rule takes a
    candidate value and returns a list of FieldError (empty on pass).
    The aggregators run every applicable rule and collect all failures,
    so one call reports every field a user must correct.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    "Today" is always an explicit parameter; rules never read the clock.

Invariants enforced:
    - Aggregation never short-circuits: the result of
      validate_customer_fields / validate_account_fields contains one
      FieldError per failing rule, in rule order.
    - Monetary limits are compared at scale 2 after HALF_UP rounding, the
      same representation they are persisted with.

Failure modes:
    - None raised.  Rules report; callers decide (the update orchestrator
      converts a non-empty result into a structured failure).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from card_kernel.domain.dtos import (
    AccountStatus,
    AccountUpdateRequest,
    CustomerSnapshot,
    FieldError,
    ValidationResult,
)
from card_kernel.domain.reference_data import (
    VALID_STATE_CODES,
    is_assignable_area_code,
    zip_matches_state,
)
from card_kernel.domain.values import Money, to_decimal
from card_kernel.exceptions import MoneyError

_ACCOUNT_ID = re.compile(r"^\d{11}$")
_CUSTOMER_ID = re.compile(r"^\d{9}$")
_SSN_DASHED = re.compile(r"^(\d{3})-(\d{2})-(\d{4})$")
_SSN_PLAIN = re.compile(r"^(\d{3})(\d{2})(\d{4})$")
_ZIP = re.compile(r"^\d{5}$")
_NAME = re.compile(r"^[A-Za-z][A-Za-z .'\-]*$")
_PHONE_PUNCTUATION = re.compile(r"[\s().+\-]")

NAME_MAX_LENGTH = 25
FICO_MIN = 300
FICO_MAX = 850


@dataclass(frozen=True)
class ValidationRules:
    """Tunable boundaries for the rule set.  Defaults are the legacy values."""

    credit_limit_ceiling: Decimal = Decimal("999999.99")
    expiration_max_years: int = 10
    earliest_birth_year: int = 1900
    minimum_age: int = 18
    maximum_age: int = 120
    phone_area_code_allow_list: frozenset[str] = frozenset()


DEFAULT_RULES = ValidationRules()


def _blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def add_years(day: date, years: int) -> date:
    """Same calendar day ``years`` later; 29 Feb maps to 28 Feb."""
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return day.replace(year=day.year + years, day=28)


def age_on(birth: date, today: date) -> int:
    """Completed years between ``birth`` and ``today``."""
    had_birthday = (today.month, today.day) >= (birth.month, birth.day)
    return today.year - birth.year - (0 if had_birthday else 1)


# =============================================================================
# Identifiers and status
# =============================================================================


def validate_account_id(value: str | None, field: str = "account_id") -> list[FieldError]:
    if _blank(value):
        return [FieldError(field, "Account ID is required")]
    if not _ACCOUNT_ID.match(value.strip()):
        return [FieldError(field, "Account ID must be exactly 11 digits")]
    return []


def validate_customer_id(value: str | None, field: str = "customer_id") -> list[FieldError]:
    if _blank(value):
        return [FieldError(field, "Customer ID is required")]
    if not _CUSTOMER_ID.match(value.strip()):
        return [FieldError(field, "Customer ID must be exactly 9 digits")]
    return []


def validate_active_status(
    value: AccountStatus | str | None, field: str = "active_status"
) -> list[FieldError]:
    if _blank(value):
        return [FieldError(field, "Active status is required")]
    try:
        AccountStatus.parse(value)
    except ValueError:
        allowed = ", ".join(s.value for s in AccountStatus)
        return [FieldError(field, f"Active status must be one of {allowed}")]
    return []


# =============================================================================
# Monetary limits
# =============================================================================


def parse_amount(raw: Decimal | str | int | Money | None) -> Money | None:
    """Scale a raw limit to Money; None when absent or malformed."""
    if _blank(raw):
        return None
    try:
        return Money.of(to_decimal(raw))
    except (TypeError, ValueError, MoneyError):
        return None


def validate_credit_limits(
    credit_limit: Decimal | str | int | None,
    cash_credit_limit: Decimal | str | int | None,
    ceiling: Decimal = DEFAULT_RULES.credit_limit_ceiling,
) -> list[FieldError]:
    """Credit limit in [0, ceiling]; cash credit limit in [0, credit limit]."""
    errors: list[FieldError] = []

    credit = parse_amount(credit_limit)
    if _blank(credit_limit):
        errors.append(FieldError("credit_limit", "Credit limit is required"))
    elif credit is None:
        errors.append(FieldError("credit_limit", "Credit limit must be a valid amount"))
    elif credit.is_negative:
        errors.append(FieldError("credit_limit", "Credit limit cannot be negative"))
    elif credit.amount > ceiling:
        errors.append(
            FieldError("credit_limit", f"Credit limit cannot exceed ${ceiling:,.2f}")
        )

    cash = parse_amount(cash_credit_limit)
    if _blank(cash_credit_limit):
        errors.append(FieldError("cash_credit_limit", "Cash credit limit is required"))
    elif cash is None:
        errors.append(
            FieldError("cash_credit_limit", "Cash credit limit must be a valid amount")
        )
    elif cash.is_negative:
        errors.append(
            FieldError("cash_credit_limit", "Cash credit limit cannot be negative")
        )
    elif credit is not None and cash > credit:
        errors.append(
            FieldError(
                "cash_credit_limit", "Cash credit limit cannot exceed credit limit"
            )
        )
    return errors


# =============================================================================
# Dates
# =============================================================================


def validate_expiration_date(
    value: date | None,
    today: date,
    max_years: int = DEFAULT_RULES.expiration_max_years,
    field: str = "expiration_date",
) -> list[FieldError]:
    if value is None:
        return [FieldError(field, "Expiration date is required")]
    if value < today:
        return [FieldError(field, "Expiration date cannot be in the past")]
    if value > add_years(today, max_years):
        return [
            FieldError(
                field,
                f"Expiration date cannot be more than {max_years} years in the future",
            )
        ]
    return []


def validate_date_of_birth(
    value: date | None,
    today: date,
    rules: ValidationRules = DEFAULT_RULES,
    field: str = "date_of_birth",
) -> list[FieldError]:
    if value is None:
        return [FieldError(field, "Date of birth is required")]
    if value > today:
        return [FieldError(field, "Date of birth cannot be in the future")]
    if value.year < rules.earliest_birth_year:
        return [
            FieldError(
                field, f"Date of birth cannot be before {rules.earliest_birth_year}"
            )
        ]
    age = age_on(value, today)
    if age < rules.minimum_age:
        return [
            FieldError(field, f"Customer must be at least {rules.minimum_age} years old")
        ]
    if age > rules.maximum_age:
        return [
            FieldError(
                field, f"Customer cannot be older than {rules.maximum_age} years"
            )
        ]
    return []


# =============================================================================
# Customer identity
# =============================================================================


def normalize_ssn(value: str | None) -> str | None:
    """Return the SSN as AAA-GG-SSSS, or None if not structurally valid."""
    if _blank(value):
        return None
    text = value.strip()
    match = _SSN_DASHED.match(text) or _SSN_PLAIN.match(text)
    if match is None:
        return None
    return "-".join(match.groups())


def validate_ssn(value: str | None, field: str = "ssn") -> list[FieldError]:
    """
    SSN structure and component rules.

    Accepts AAA-GG-SSSS or nine contiguous digits.  Area must not be 000,
    666 or 900-999; group must not be 00; serial must not be 0000.  Each
    failing component is reported separately.
    """
    if _blank(value):
        return [FieldError(field, "SSN is required")]
    normalized = normalize_ssn(value)
    if normalized is None:
        digits = re.sub(r"\D", "", value)
        if len(digits) != 9:
            return [FieldError(field, "SSN must be exactly 9 digits")]
        return [FieldError(field, "SSN format is invalid. Use 999-99-9999 format.")]

    area, group, serial = normalized.split("-")
    errors: list[FieldError] = []
    if area in ("000", "666") or area.startswith("9"):
        errors.append(FieldError(field, "SSN contains invalid area number."))
    if group == "00":
        errors.append(FieldError(field, "SSN contains invalid group number."))
    if serial == "0000":
        errors.append(FieldError(field, "SSN contains invalid serial number."))
    return errors


def normalize_phone(value: str | None) -> str | None:
    """Ten NANP digits with punctuation and a leading country code removed."""
    if _blank(value):
        return None
    digits = _PHONE_PUNCTUATION.sub("", value.strip())
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) != 10 or not digits.isdigit():
        return None
    return digits


def validate_phone(
    value: str | None,
    field: str = "phone_1",
    allow_list: frozenset[str] = frozenset(),
    required: bool = True,
) -> list[FieldError]:
    if _blank(value):
        return [FieldError(field, "Phone number is required")] if required else []
    digits = normalize_phone(value)
    if digits is None:
        return [FieldError(field, "Phone number must be exactly 10 digits")]
    area, exchange = digits[:3], digits[3:6]
    errors: list[FieldError] = []
    if not is_assignable_area_code(area, allow_list):
        errors.append(
            FieldError(field, f"Phone number contains invalid area code: {area}")
        )
    if exchange[0] in "01":
        errors.append(
            FieldError(field, f"Phone number contains invalid exchange code: {exchange}")
        )
    return errors


def validate_state_code(value: str | None, field: str = "state_code") -> list[FieldError]:
    if _blank(value):
        return [FieldError(field, "State code is required")]
    if value.strip().upper() not in VALID_STATE_CODES:
        return [FieldError(field, f"Invalid US state code: {value.strip()}")]
    return []


def validate_zip_code(
    value: str | None, state_code: str | None, field: str = "zip_code"
) -> list[FieldError]:
    """
    ZIP format plus state pairing.

    The pairing check only runs when the state code is itself valid, so a
    bad state is reported once (on the state field) rather than twice.
    """
    if _blank(value):
        return [FieldError(field, "ZIP code is required")]
    zip_code = value.strip()
    if not _ZIP.match(zip_code):
        return [FieldError(field, "ZIP code must be exactly 5 digits")]
    state = (state_code or "").strip().upper()
    if state in VALID_STATE_CODES and not zip_matches_state(state, zip_code):
        return [FieldError(field, f"ZIP code {zip_code} is not valid for state {state}")]
    return []


def validate_fico_score(value: int | str | None, field: str = "fico_score") -> list[FieldError]:
    if _blank(value):
        return [FieldError(field, "FICO score is required")]
    if isinstance(value, bool):
        return [FieldError(field, "FICO score must be a whole number")]
    if isinstance(value, str):
        if not value.strip().isdigit():
            return [FieldError(field, "FICO score must be a whole number")]
        value = int(value.strip())
    if not isinstance(value, int):
        return [FieldError(field, "FICO score must be a whole number")]
    if not FICO_MIN <= value <= FICO_MAX:
        return [FieldError(field, f"FICO score must be between {FICO_MIN} and {FICO_MAX}")]
    return []


def validate_name(
    value: str | None, field: str, label: str, required: bool = True
) -> list[FieldError]:
    if _blank(value):
        return [FieldError(field, f"{label} is required")] if required else []
    text = value.strip()
    if len(text) > NAME_MAX_LENGTH:
        return [FieldError(field, f"{label} cannot exceed {NAME_MAX_LENGTH} characters")]
    if not _NAME.match(text):
        return [FieldError(field, f"{label} contains invalid characters")]
    return []


# =============================================================================
# Aggregators
# =============================================================================


def validate_customer_fields(
    customer: CustomerSnapshot,
    today: date,
    rules: ValidationRules = DEFAULT_RULES,
) -> ValidationResult:
    """Run every customer rule and collect all failures."""
    allow = rules.phone_area_code_allow_list
    return ValidationResult.of(
        validate_customer_id(customer.customer_id),
        validate_name(customer.first_name, "first_name", "First name"),
        validate_name(customer.middle_name, "middle_name", "Middle name", required=False),
        validate_name(customer.last_name, "last_name", "Last name"),
        validate_ssn(customer.ssn),
        validate_phone(customer.phone_1, "phone_1", allow),
        validate_phone(customer.phone_2, "phone_2", allow, required=False),
        validate_state_code(customer.state_code),
        validate_zip_code(customer.zip_code, customer.state_code),
        validate_date_of_birth(customer.date_of_birth, today, rules),
        validate_fico_score(customer.fico_score),
    )


def validate_account_fields(
    request: AccountUpdateRequest,
    today: date,
    rules: ValidationRules = DEFAULT_RULES,
) -> ValidationResult:
    """Run every account rule, plus the customer rules when a customer edit
    is attached, and collect all failures."""
    result = ValidationResult.of(
        validate_account_id(request.account_id),
        validate_active_status(request.active_status),
        validate_credit_limits(
            request.credit_limit,
            request.cash_credit_limit,
            rules.credit_limit_ceiling,
        ),
        validate_expiration_date(
            request.expiration_date, today, rules.expiration_max_years
        ),
    )
    if request.customer is not None:
        result = result.merge(validate_customer_fields(request.customer, today, rules))
    return result


def validate_account_for_billing(account_id: str | None) -> list[FieldError]:
    """Structural identity checks run before any statement computation."""
    if _blank(account_id):
        return [FieldError("account_id", "Account ID cannot be empty")]
    if len(account_id.strip()) > 11:
        return [FieldError("account_id", "Account ID cannot exceed 11 characters")]
    return []
