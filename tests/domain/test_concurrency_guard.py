"""
Tests for the optimistic concurrency guard.

Verifies:
- OPEN -> COMMITTED | CONFLICTED, each terminal
- Field mode names exactly the diverged guarded fields
- Version mode ignores field values and compares row versions
- Formatting differences in SSN / phone / case-insensitive codes are not
  treated as changes
"""

from dataclasses import replace

import pytest

from card_kernel.domain.concurrency import (
    ConcurrencyGuard,
    ConcurrencySnapshot,
    GuardMode,
    GuardState,
)
from card_kernel.domain.dtos import AccountStatus
from card_kernel.domain.values import Money
from card_kernel.exceptions import GuardStateError, OptimisticLockError
from tests.conftest import make_account, make_customer


class TestGuardStateMachine:

    def test_starts_open(self):
        guard = ConcurrencyGuard(make_account(), make_customer())
        assert guard.state is GuardState.OPEN
        assert guard.diverged_fields == ()

    def test_identical_snapshots_commit(self):
        account, customer = make_account(), make_customer()
        guard = ConcurrencyGuard(account, customer)
        assert guard.check(account, customer) is GuardState.COMMITTED

    def test_second_check_rejected(self):
        account = make_account()
        guard = ConcurrencyGuard(account)
        guard.check(account)
        with pytest.raises(GuardStateError) as exc_info:
            guard.check(account)
        assert exc_info.value.code == "GUARD_ALREADY_RESOLVED"

    def test_conflicted_is_terminal(self):
        account = make_account()
        guard = ConcurrencyGuard(account)
        guard.check(replace(account, group_id="PLATINUM"))
        assert guard.state is GuardState.CONFLICTED
        with pytest.raises(GuardStateError):
            guard.check(account)


class TestFieldMode:

    def test_account_field_divergence(self):
        account = make_account()
        current = replace(
            account,
            current_balance=Money.of("1200.00"),
            active_status=AccountStatus.SUSPENDED,
        )
        guard = ConcurrencyGuard(account)
        assert guard.check(current) is GuardState.CONFLICTED
        assert set(guard.diverged_fields) == {
            "account.current_balance",
            "account.active_status",
        }

    def test_customer_field_divergence(self):
        account, customer = make_account(), make_customer()
        guard = ConcurrencyGuard(account, customer)
        guard.check(account, replace(customer, last_name="Jones"))
        assert guard.diverged_fields == ("customer.last_name",)

    def test_version_alone_does_not_conflict(self):
        account = make_account(version=1)
        guard = ConcurrencyGuard(account)
        assert guard.check(replace(account, version=2)) is GuardState.COMMITTED

    def test_formatting_is_not_a_change(self):
        customer = make_customer(ssn="123456789", phone_1="212-555-0100", state_code="ny")
        reformatted = replace(
            customer, ssn="123-45-6789", phone_1="(212) 555-0100", state_code="NY"
        )
        account = make_account(group_id="default")
        guard = ConcurrencyGuard(account, customer)
        assert guard.check(replace(account, group_id="DEFAULT"), reformatted) is (
            GuardState.COMMITTED
        )

    def test_verify_raises_with_diverged_fields(self):
        account = make_account()
        guard = ConcurrencyGuard(account)
        with pytest.raises(OptimisticLockError) as exc_info:
            guard.verify(replace(account, credit_limit=Money.of("9000.00")))
        assert exc_info.value.code == "OPTIMISTIC_LOCK_CONFLICT"
        assert exc_info.value.diverged_fields == ("account.credit_limit",)
        assert exc_info.value.entity_id == account.account_id


class TestVersionMode:

    def test_version_change_conflicts(self):
        account = make_account(version=3)
        guard = ConcurrencyGuard(account, mode=GuardMode.VERSION)
        guard.check(replace(account, version=4))
        assert guard.diverged_fields == ("account.version",)

    def test_field_change_without_version_change_commits(self):
        account = make_account(version=3)
        guard = ConcurrencyGuard(account, mode=GuardMode.VERSION)
        current = replace(account, current_balance=Money.of("1.00"))
        assert guard.check(current) is GuardState.COMMITTED

    def test_customer_version(self):
        account, customer = make_account(version=1), make_customer(version=1)
        guard = ConcurrencyGuard(account, customer, GuardMode.VERSION)
        guard.check(account, replace(customer, version=2))
        assert guard.diverged_fields == ("customer.version",)


class TestSnapshotCapture:

    def test_capture_without_customer(self):
        snap = ConcurrencySnapshot.capture(make_account(), None)
        assert snap.customer == {}
        assert snap.customer_version is None

    def test_captured_values_are_read_only(self):
        snap = ConcurrencySnapshot.capture(make_account(), make_customer())
        with pytest.raises(TypeError):
            snap.account["group_id"] = "X"
