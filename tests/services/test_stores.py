"""
Tests for the SQLAlchemy stores.

Verifies:
- Snapshot <-> row round trips, with amounts at exact scale 2
- Row versions: 1 on insert, bumped only by a real UPDATE
- Stale snapshots are refused before any SQL
- Customer identity fields are stored normalised
- Transactions and audit records are insert-only
"""

from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from card_kernel.domain.dtos import AuditRecord, FieldChange, TransactionRecord
from card_kernel.domain.values import Money
from card_kernel.exceptions import ImmutabilityViolationError, OptimisticLockError
from card_kernel.models.account import AccountModel
from card_kernel.models.audit_record import AuditRecordModel
from card_kernel.models.transaction import TransactionModel
from card_kernel.selectors.account_selector import AccountSelector
from card_kernel.services.stores import (
    SqlAccountStore,
    SqlAuditStore,
    SqlCustomerStore,
    SqlTransactionStore,
)
from tests.conftest import SAMPLE_ACCOUNT_ID, SAMPLE_CUSTOMER_ID, TEST_ACTOR_ID

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _payment(txn_id: str = "TXN0000000000001") -> TransactionRecord:
    return TransactionRecord(
        transaction_id=txn_id,
        account_id=SAMPLE_ACCOUNT_ID,
        type_code="02",
        amount=Money.of("150.00"),
        description="BILL PAYMENT - ONLINE",
        category_code="0002",
        source="POS TERM",
        timestamp=NOW,
    )


class TestAccountStore:

    def test_round_trip(self, session, sample_account):
        session.expunge_all()
        loaded = SqlAccountStore(session).find_by_id(SAMPLE_ACCOUNT_ID)
        assert loaded == sample_account
        assert loaded.current_balance.amount.as_tuple().exponent == -2

    def test_unknown_id(self, session):
        assert SqlAccountStore(session).find_by_id("00000000099") is None

    def test_version_starts_at_one(self, sample_account):
        assert sample_account.version == 1

    def test_version_bumps_on_change(self, session, sample_account):
        saved = SqlAccountStore(session).save(
            replace(sample_account, credit_limit=Money.of("6000.00"))
        )
        assert saved.version == 2

    def test_unchanged_save_keeps_version(self, session, sample_account):
        saved = SqlAccountStore(session).save(sample_account)
        assert saved.version == 1

    def test_stale_snapshot_refused(self, session, sample_account, captured_logs):
        store = SqlAccountStore(session)
        store.save(replace(sample_account, group_id="GOLD"))
        with pytest.raises(OptimisticLockError) as exc_info:
            store.save(replace(sample_account, group_id="SILVER"))
        assert exc_info.value.diverged_fields == ("account.version",)
        assert any(r["message"] == "stale_snapshot_refused" for r in captured_logs())
        assert store.find_by_id(SAMPLE_ACCOUNT_ID).group_id == "GOLD"

    def test_amounts_rounded_on_write(self, session, sample_account):
        # Bypass Money to prove the column type quantizes too
        model = session.get(AccountModel, SAMPLE_ACCOUNT_ID)
        model.current_balance = Decimal("10.005")
        session.flush()
        session.expire_all()
        assert session.get(AccountModel, SAMPLE_ACCOUNT_ID).current_balance == Decimal("10.01")


class TestCustomerStore:

    def test_identity_fields_normalised(self, session, customer_factory):
        customer_factory(ssn="123456789", phone_1="+1 (212) 555-0100", state_code="ny")
        session.expunge_all()
        stored = SqlCustomerStore(session).find_by_id(SAMPLE_CUSTOMER_ID)
        assert stored.ssn == "123-45-6789"
        assert stored.phone_1 == "2125550100"
        assert stored.state_code == "NY"

    def test_round_trip(self, session, sample_customer):
        loaded = SqlCustomerStore(session).find_by_id(SAMPLE_CUSTOMER_ID)
        assert loaded.date_of_birth == date(1980, 5, 20)
        assert loaded.fico_score == 720
        assert loaded.version == 1

    def test_account_selector_joins_customer(self, session, sample_account):
        view = AccountSelector(session).get_account_with_customer(SAMPLE_ACCOUNT_ID)
        assert view.account.account_id == SAMPLE_ACCOUNT_ID
        assert view.customer.customer_id == SAMPLE_CUSTOMER_ID
        assert AccountSelector(session).get_account_with_customer("00000000099") is None


class TestTransactionStore:

    def test_round_trip(self, session, sample_account):
        store = SqlTransactionStore(session)
        store.save(_payment())
        session.commit()
        session.expunge_all()

        loaded = store.find_by_account_and_date_range(
            SAMPLE_ACCOUNT_ID, date(2024, 6, 15), date(2024, 6, 15)
        )
        assert loaded == [_payment()]
        assert loaded[0].timestamp.tzinfo is not None

    def test_null_amount_preserved(self, session, sample_account):
        store = SqlTransactionStore(session)
        store.save(replace(_payment(), amount=None))
        session.expunge_all()
        loaded = store.find_by_account_and_date_range(
            SAMPLE_ACCOUNT_ID, date(2024, 6, 1), date(2024, 6, 30)
        )
        assert loaded[0].amount is None

    def test_ordered_by_timestamp(self, session, sample_account):
        store = SqlTransactionStore(session)
        store.save(replace(_payment("B"), timestamp=datetime(2024, 6, 10, tzinfo=timezone.utc)))
        store.save(replace(_payment("A"), timestamp=datetime(2024, 6, 12, tzinfo=timezone.utc)))
        store.save(replace(_payment("C"), timestamp=datetime(2024, 6, 10, tzinfo=timezone.utc)))
        loaded = store.find_by_account_and_date_range(
            SAMPLE_ACCOUNT_ID, date(2024, 6, 1), date(2024, 6, 30)
        )
        assert [t.transaction_id for t in loaded] == ["B", "C", "A"]

    def test_other_accounts_excluded(self, session, sample_account, account_factory):
        account_factory(account_id="00000000002")
        store = SqlTransactionStore(session)
        store.save(replace(_payment(), account_id="00000000002"))
        assert store.find_by_account_and_date_range(
            SAMPLE_ACCOUNT_ID, date(2024, 6, 1), date(2024, 6, 30)
        ) == []

    def test_update_rejected(self, session, sample_account):
        SqlTransactionStore(session).save(_payment())
        session.commit()
        model = session.get(TransactionModel, "TXN0000000000001")
        model.description = "EDITED"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_delete_rejected(self, session, sample_account):
        SqlTransactionStore(session).save(_payment())
        session.commit()
        session.delete(session.get(TransactionModel, "TXN0000000000001"))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()


class TestAuditStore:

    def _audit(self) -> AuditRecord:
        return AuditRecord(
            audit_id=str(uuid4()),
            timestamp=NOW,
            actor_id=TEST_ACTOR_ID,
            account_id=SAMPLE_ACCOUNT_ID,
            changes=(FieldChange("account", "credit_limit", "5000.00", "7000.00"),),
        )

    def test_round_trip(self, session, sample_account):
        audit = self._audit()
        SqlAuditStore(session).save(audit)
        session.commit()
        session.expunge_all()
        assert AccountSelector(session).audit_history(SAMPLE_ACCOUNT_ID) == [audit]

    def test_update_rejected(self, session, sample_account):
        audit = SqlAuditStore(session).save(self._audit())
        session.commit()
        model = session.get(AuditRecordModel, audit.audit_id)
        model.actor_id = "SOMEONE"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()
