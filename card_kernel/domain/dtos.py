"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that flow through the card core:
    AccountSnapshot and CustomerSnapshot (the as-read state of a record),
    TransactionRecord, AccountUpdateRequest (mutation input), FieldError /
    ValidationResult (aggregated rule failures), FieldChange / AuditRecord
    (what a mutation changed) and UpdateResult (mutation output).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of ORM dependencies.  Stores convert ORM rows to these snapshots at
    the persistence boundary; domain logic never sees an ORM entity.

Invariants enforced:
    - Every monetary field on a snapshot is a Money (scale 2, HALF_UP).
    - Snapshots are frozen; a mutation produces a new snapshot via
      ``dataclasses.replace``.

Failure modes:
    - ValueError from AccountStatus.parse on an unknown status code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from card_kernel.domain.values import Money


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class AccountStatus(str, Enum):
    """Account lifecycle status.

    Closure is a transition to INACTIVE; accounts are never deleted.
    """

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"

    @classmethod
    def parse(cls, raw: AccountStatus | str) -> AccountStatus:
        """Accept an enum member, its name, or the legacy Y/N/S flag."""
        if isinstance(raw, AccountStatus):
            return raw
        text = (raw or "").strip().upper()
        legacy = _LEGACY_STATUS_FLAGS.get(text)
        if legacy is not None:
            return legacy
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Unknown account status: {raw!r}") from None


_LEGACY_STATUS_FLAGS = {
    "Y": AccountStatus.ACTIVE,
    "N": AccountStatus.INACTIVE,
    "S": AccountStatus.SUSPENDED,
}


class TransactionType(str, Enum):
    """Two-character transaction type codes."""

    PURCHASE = "01"
    PAYMENT = "02"
    INTEREST = "03"
    FEE = "04"


# =============================================================================
# Record snapshots
# =============================================================================


@dataclass(frozen=True)
class AccountSnapshot:
    """
    Account state as read from the store.

    Contract:
        Exactly one owning customer; ``customer_id`` is required.
        ``version`` is the persisted row version at read time.
    """

    account_id: str
    active_status: AccountStatus
    current_balance: Money
    credit_limit: Money
    cash_credit_limit: Money
    customer_id: str
    open_date: date | None = None
    expiration_date: date | None = None
    reissue_date: date | None = None
    current_cycle_credit: Money = field(default_factory=Money.zero)
    current_cycle_debit: Money = field(default_factory=Money.zero)
    group_id: str | None = None
    version: int = 0

    @classmethod
    def from_model(cls, model: Any) -> AccountSnapshot:
        """Boundary converter from an AccountModel row."""
        return cls(
            account_id=model.account_id,
            active_status=AccountStatus.parse(model.active_status),
            current_balance=Money.of(model.current_balance),
            credit_limit=Money.of(model.credit_limit),
            cash_credit_limit=Money.of(model.cash_credit_limit),
            customer_id=model.customer_id,
            open_date=model.open_date,
            expiration_date=model.expiration_date,
            reissue_date=model.reissue_date,
            current_cycle_credit=Money.of(model.current_cycle_credit),
            current_cycle_debit=Money.of(model.current_cycle_debit),
            group_id=model.group_id,
            version=model.version,
        )

    @property
    def is_active(self) -> bool:
        return self.active_status == AccountStatus.ACTIVE


@dataclass(frozen=True)
class CustomerSnapshot:
    """Customer state as read from the store."""

    customer_id: str
    first_name: str
    last_name: str
    middle_name: str | None = None
    address_line_1: str | None = None
    address_line_2: str | None = None
    address_line_3: str | None = None
    state_code: str | None = None
    country_code: str | None = "USA"
    zip_code: str | None = None
    phone_1: str | None = None
    phone_2: str | None = None
    ssn: str | None = None
    government_id: str | None = None
    date_of_birth: date | None = None
    eft_account_id: str | None = None
    primary_cardholder: bool = True
    fico_score: int | None = None
    version: int = 0

    @classmethod
    def from_model(cls, model: Any) -> CustomerSnapshot:
        """Boundary converter from a CustomerModel row."""
        return cls(
            customer_id=model.customer_id,
            first_name=model.first_name,
            middle_name=model.middle_name,
            last_name=model.last_name,
            address_line_1=model.address_line_1,
            address_line_2=model.address_line_2,
            address_line_3=model.address_line_3,
            state_code=model.state_code,
            country_code=model.country_code,
            zip_code=model.zip_code,
            phone_1=model.phone_1,
            phone_2=model.phone_2,
            ssn=model.ssn,
            government_id=model.government_id,
            date_of_birth=model.date_of_birth,
            eft_account_id=model.eft_account_id,
            primary_cardholder=model.primary_cardholder,
            fico_score=model.fico_score,
            version=model.version,
        )


@dataclass(frozen=True)
class TransactionRecord:
    """
    A posted card transaction.

    Contract:
        Immutable once persisted.  ``amount`` may be None only on
        incomplete legacy records; aggregation skips such records.
    """

    transaction_id: str
    account_id: str
    type_code: str
    amount: Money | None
    description: str = ""
    category_code: str = ""
    source: str = ""
    timestamp: datetime | None = None

    @classmethod
    def from_model(cls, model: Any) -> TransactionRecord:
        """Boundary converter from a TransactionModel row."""
        return cls(
            transaction_id=model.transaction_id,
            account_id=model.account_id,
            type_code=model.type_code,
            amount=Money.of(model.amount) if model.amount is not None else None,
            description=model.description,
            category_code=model.category_code,
            source=model.source,
            timestamp=as_utc(model.timestamp),
        )


# =============================================================================
# Validation
# =============================================================================


@dataclass(frozen=True)
class FieldError:
    """A single failed rule: which field, and why."""

    field: str
    message: str


@dataclass(frozen=True)
class ValidationResult:
    """
    Aggregated outcome of running a rule set.

    Guarantees:
        - errors is always a tuple (never None), in rule order.
        - bool(result) == result.is_valid for convenience.
    """

    errors: tuple[FieldError, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @classmethod
    def of(cls, *groups: list[FieldError] | tuple[FieldError, ...]) -> ValidationResult:
        """Flatten several rule outputs into one result."""
        return cls(errors=tuple(e for group in groups for e in group))

    def merge(self, other: ValidationResult) -> ValidationResult:
        return ValidationResult(errors=self.errors + other.errors)

    def messages_for(self, field_name: str) -> list[str]:
        return [e.message for e in self.errors if e.field == field_name]

    def __bool__(self) -> bool:
        return self.is_valid


# =============================================================================
# Mutation request / response
# =============================================================================


@dataclass(frozen=True)
class AccountUpdateRequest:
    """
    Caller-supplied account mutation.

    Monetary limits arrive raw (as typed by the user) so that validation can
    report missing, malformed and negative values.  ``customer`` carries the
    edited customer record, or None when only account fields change.
    """

    account_id: str
    active_status: AccountStatus | str | None
    credit_limit: Decimal | str | int | None
    cash_credit_limit: Decimal | str | int | None
    expiration_date: date | None
    customer: CustomerSnapshot | None = None
    group_id: str | None = None


@dataclass(frozen=True)
class FieldChange:
    """One field whose value actually changed."""

    entity: str
    field: str
    old_value: str | None
    new_value: str | None

    @property
    def qualified_name(self) -> str:
        return f"{self.entity}.{self.field}"


@dataclass(frozen=True)
class AuditRecord:
    """What a successful mutation changed, when, and who did it."""

    audit_id: str
    timestamp: datetime
    actor_id: str
    account_id: str
    changes: tuple[FieldChange, ...] = ()

    @classmethod
    def from_model(cls, model: Any) -> AuditRecord:
        """Boundary converter from an AuditRecordModel row."""
        return cls(
            audit_id=model.audit_id,
            timestamp=as_utc(model.timestamp),
            actor_id=model.actor_id,
            account_id=model.account_id,
            changes=tuple(FieldChange(**c) for c in model.changes),
        )

    def changes_as_dicts(self) -> list[dict[str, str | None]]:
        return [
            {
                "entity": c.entity,
                "field": c.field,
                "old_value": c.old_value,
                "new_value": c.new_value,
            }
            for c in self.changes
        ]

    @property
    def changed_fields(self) -> list[str]:
        return [c.qualified_name for c in self.changes]


@dataclass(frozen=True)
class UpdateResult:
    """
    Outcome of an account update.

    Contract:
        Exactly one of (success with account/customer/audit) or (failure
        with error_code plus field failures or message).
    """

    success: bool
    account: AccountSnapshot | None = None
    customer: CustomerSnapshot | None = None
    audit: AuditRecord | None = None
    failures: tuple[FieldError, ...] = ()
    error_code: str | None = None
    message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def succeeded(
        cls,
        account: AccountSnapshot,
        customer: CustomerSnapshot | None,
        audit: AuditRecord,
    ) -> UpdateResult:
        return cls(success=True, account=account, customer=customer, audit=audit)

    @classmethod
    def failed(
        cls,
        error_code: str,
        message: str,
        failures: tuple[FieldError, ...] = (),
        **details: Any,
    ) -> UpdateResult:
        return cls(
            success=False,
            failures=failures,
            error_code=error_code,
            message=message,
            details=details,
        )
