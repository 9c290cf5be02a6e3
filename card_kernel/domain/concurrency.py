"""
Optimistic Concurrency Guard.

Responsibility:
    Detects that an Account/Customer pair changed between the moment an
    editor read it and the moment the edit is committed.  The guard holds
    the as-read snapshot, receives the freshly re-fetched current snapshot
    at commit time, and resolves exactly once to COMMITTED or CONFLICTED.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The re-fetch is the
    caller's job (AccountUpdateService); the guard only compares.

Invariants enforced:
    - State machine: OPEN -> COMMITTED | CONFLICTED.  Both are terminal;
      a second check() raises GuardStateError.
    - FIELDS mode compares every guarded field; any difference conflicts.
    - VERSION mode compares the persisted row version tokens only.

Failure modes:
    - GuardStateError when resolved twice.
    - OptimisticLockError from verify() on conflict.

Audit relevance:
    diverged_fields names exactly which guarded fields another editor
    changed, and is logged with every rejected update.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from card_kernel.domain.dtos import AccountSnapshot, CustomerSnapshot
from card_kernel.domain.validation import normalize_phone, normalize_ssn
from card_kernel.exceptions import GuardStateError, OptimisticLockError

ACCOUNT_GUARDED_FIELDS: tuple[str, ...] = (
    "active_status",
    "current_balance",
    "credit_limit",
    "cash_credit_limit",
    "current_cycle_credit",
    "current_cycle_debit",
    "open_date",
    "expiration_date",
    "reissue_date",
    "group_id",
)

CUSTOMER_GUARDED_FIELDS: tuple[str, ...] = (
    "first_name",
    "middle_name",
    "last_name",
    "address_line_1",
    "address_line_2",
    "address_line_3",
    "state_code",
    "country_code",
    "zip_code",
    "phone_1",
    "phone_2",
    "ssn",
    "government_id",
    "date_of_birth",
    "eft_account_id",
    "primary_cardholder",
    "fico_score",
)

_CASE_INSENSITIVE = frozenset({"group_id", "country_code", "state_code"})


class GuardState(str, Enum):
    OPEN = "OPEN"
    COMMITTED = "COMMITTED"
    CONFLICTED = "CONFLICTED"


class GuardMode(str, Enum):
    FIELDS = "fields"
    VERSION = "version"


def _comparable(name: str, value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if not isinstance(value, str):
        return value
    text = value.strip()
    if name == "ssn":
        return normalize_ssn(text) or text
    if name in ("phone_1", "phone_2"):
        return normalize_phone(text) or text
    if name in _CASE_INSENSITIVE:
        return text.upper()
    return text


def guarded_values(snapshot: Any, fields: tuple[str, ...]) -> Mapping[str, Any]:
    """Comparable values of the guarded fields of one snapshot."""
    if snapshot is None:
        return MappingProxyType({})
    return MappingProxyType(
        {name: _comparable(name, getattr(snapshot, name)) for name in fields}
    )


@dataclass(frozen=True)
class ConcurrencySnapshot:
    """Guarded field values of an Account+Customer pair at one instant."""

    account: Mapping[str, Any]
    customer: Mapping[str, Any]
    account_version: int
    customer_version: int | None

    @classmethod
    def capture(
        cls, account: AccountSnapshot, customer: CustomerSnapshot | None
    ) -> ConcurrencySnapshot:
        return cls(
            account=guarded_values(account, ACCOUNT_GUARDED_FIELDS),
            customer=guarded_values(customer, CUSTOMER_GUARDED_FIELDS),
            account_version=account.version,
            customer_version=customer.version if customer is not None else None,
        )

    def diverged_from(self, other: ConcurrencySnapshot) -> list[str]:
        """Qualified names of guarded fields whose values differ."""
        diverged = [
            f"account.{name}"
            for name in ACCOUNT_GUARDED_FIELDS
            if self.account.get(name) != other.account.get(name)
        ]
        if self.customer or other.customer:
            diverged.extend(
                f"customer.{name}"
                for name in CUSTOMER_GUARDED_FIELDS
                if self.customer.get(name) != other.customer.get(name)
            )
        return diverged

    def version_diverged_from(self, other: ConcurrencySnapshot) -> list[str]:
        diverged = []
        if self.account_version != other.account_version:
            diverged.append("account.version")
        if self.customer_version != other.customer_version:
            diverged.append("customer.version")
        return diverged


class ConcurrencyGuard:
    """
    One optimistic-lock check for one mutation attempt.

    Contract:
        Constructed OPEN with the as-read snapshot.  check() is called
        once with the current persisted snapshot and returns the terminal
        state.

    Guarantees:
        - Identical snapshots resolve to COMMITTED.
        - Any guarded-field difference (FIELDS mode) or version difference
          (VERSION mode) resolves to CONFLICTED.

    Non-goals:
        - Does NOT re-fetch or write anything.
        - Does NOT merge concurrent changes.
    """

    def __init__(
        self,
        original_account: AccountSnapshot,
        original_customer: CustomerSnapshot | None = None,
        mode: GuardMode = GuardMode.FIELDS,
    ):
        self._original = ConcurrencySnapshot.capture(original_account, original_customer)
        self._account_id = original_account.account_id
        self._mode = mode
        self._state = GuardState.OPEN
        self._diverged: tuple[str, ...] = ()

    @property
    def state(self) -> GuardState:
        return self._state

    @property
    def diverged_fields(self) -> tuple[str, ...]:
        return self._diverged

    @property
    def original(self) -> ConcurrencySnapshot:
        return self._original

    def check(
        self,
        current_account: AccountSnapshot,
        current_customer: CustomerSnapshot | None = None,
    ) -> GuardState:
        """Compare against the current snapshot and resolve the guard."""
        if self._state != GuardState.OPEN:
            raise GuardStateError(self._state.value)

        current = ConcurrencySnapshot.capture(current_account, current_customer)
        if self._mode == GuardMode.VERSION:
            diverged = self._original.version_diverged_from(current)
        else:
            diverged = self._original.diverged_from(current)

        self._diverged = tuple(diverged)
        self._state = GuardState.CONFLICTED if diverged else GuardState.COMMITTED
        return self._state

    def verify(
        self,
        current_account: AccountSnapshot,
        current_customer: CustomerSnapshot | None = None,
    ) -> None:
        """check(), raising OptimisticLockError when CONFLICTED."""
        if self.check(current_account, current_customer) == GuardState.CONFLICTED:
            raise OptimisticLockError("Account", self._account_id, self._diverged)
