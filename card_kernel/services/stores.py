"""
Stores -- SQLAlchemy implementations of the domain persistence ports.

Responsibility:
    Converts between frozen domain snapshots and ORM rows for accounts,
    customers, transactions and audit records.  This is the only place
    where snapshots meet the ORM.

Architecture position:
    Kernel > Services -- imperative shell.  Implements the Protocols in
    ``card_kernel.domain.ports``.

Invariants enforced:
    - Flush-only: stores never commit; the caller's transaction decides.
    - find_by_id always re-reads the row (``populate_existing``) so a
      commit-time re-fetch sees other sessions' committed writes.
    - Conditional writes: accounts and customers are versioned rows.  A
      snapshot whose version differs from the row is refused before any
      SQL; a concurrent commit between read and flush surfaces as
      SQLAlchemy's StaleDataError, converted here to OptimisticLockError.
    - SSNs are stored as AAA-GG-SSSS and phones as ten digits.
    - Transactions and audit records are insert-only.

Failure modes:
    - OptimisticLockError on a stale snapshot or a lost conditional write.
    - Any other SQLAlchemyError propagates unmodified.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm.exc import StaleDataError

from card_kernel.domain.dtos import (
    AccountSnapshot,
    AuditRecord,
    CustomerSnapshot,
    TransactionRecord,
)
from card_kernel.domain.validation import normalize_phone, normalize_ssn
from card_kernel.exceptions import OptimisticLockError
from card_kernel.logging_config import get_logger
from card_kernel.models.account import AccountModel
from card_kernel.models.audit_record import AuditRecordModel
from card_kernel.models.customer import CustomerModel
from card_kernel.models.transaction import TransactionModel
from card_kernel.services.base import BaseService

logger = get_logger("services.stores")


def _flush_versioned(session, entity_type: str, entity_id: str) -> None:
    try:
        session.flush()
    except StaleDataError as e:
        logger.warning(
            "optimistic_write_lost",
            extra={"entity_type": entity_type, "entity_id": entity_id},
        )
        raise OptimisticLockError(
            entity_type, entity_id, (f"{entity_type.lower()}.version",)
        ) from e


def _refuse_stale(model_version: int, snapshot_version: int, entity_type: str, entity_id: str) -> None:
    if model_version != snapshot_version:
        logger.warning(
            "stale_snapshot_refused",
            extra={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "row_version": model_version,
                "snapshot_version": snapshot_version,
            },
        )
        raise OptimisticLockError(
            entity_type, entity_id, (f"{entity_type.lower()}.version",)
        )


class SqlAccountStore(BaseService[AccountModel]):
    """AccountStore over the ``accounts`` table."""

    def find_by_id(self, account_id: str) -> AccountSnapshot | None:
        model = self.session.get(AccountModel, account_id, populate_existing=True)
        return AccountSnapshot.from_model(model) if model is not None else None

    def save(self, account: AccountSnapshot) -> AccountSnapshot:
        """
        Insert or conditionally update one account.

        Postconditions:
            The returned snapshot carries the row's new version.
        """
        model = self.session.get(AccountModel, account.account_id)
        if model is None:
            model = AccountModel(account_id=account.account_id)
            self._apply(model, account)
            self.session.add(model)
        else:
            _refuse_stale(model.version, account.version, "Account", account.account_id)
            self._apply(model, account)
        _flush_versioned(self.session, "Account", account.account_id)
        return AccountSnapshot.from_model(model)

    @staticmethod
    def _apply(model: AccountModel, account: AccountSnapshot) -> None:
        model.active_status = account.active_status.value
        model.current_balance = account.current_balance.amount
        model.credit_limit = account.credit_limit.amount
        model.cash_credit_limit = account.cash_credit_limit.amount
        model.current_cycle_credit = account.current_cycle_credit.amount
        model.current_cycle_debit = account.current_cycle_debit.amount
        model.open_date = account.open_date
        model.expiration_date = account.expiration_date
        model.reissue_date = account.reissue_date
        model.group_id = account.group_id
        model.customer_id = account.customer_id


class SqlCustomerStore(BaseService[CustomerModel]):
    """CustomerStore over the ``customers`` table."""

    def find_by_id(self, customer_id: str) -> CustomerSnapshot | None:
        model = self.session.get(CustomerModel, customer_id, populate_existing=True)
        return CustomerSnapshot.from_model(model) if model is not None else None

    def save(self, customer: CustomerSnapshot) -> CustomerSnapshot:
        model = self.session.get(CustomerModel, customer.customer_id)
        if model is None:
            model = CustomerModel(customer_id=customer.customer_id)
            self._apply(model, customer)
            self.session.add(model)
        else:
            _refuse_stale(model.version, customer.version, "Customer", customer.customer_id)
            self._apply(model, customer)
        _flush_versioned(self.session, "Customer", customer.customer_id)
        return CustomerSnapshot.from_model(model)

    @staticmethod
    def _apply(model: CustomerModel, customer: CustomerSnapshot) -> None:
        model.first_name = customer.first_name
        model.middle_name = customer.middle_name
        model.last_name = customer.last_name
        model.address_line_1 = customer.address_line_1
        model.address_line_2 = customer.address_line_2
        model.address_line_3 = customer.address_line_3
        model.state_code = customer.state_code.upper() if customer.state_code else None
        model.country_code = customer.country_code
        model.zip_code = customer.zip_code
        model.phone_1 = normalize_phone(customer.phone_1) or customer.phone_1
        model.phone_2 = normalize_phone(customer.phone_2) or customer.phone_2
        model.ssn = normalize_ssn(customer.ssn) or customer.ssn
        model.government_id = customer.government_id
        model.date_of_birth = customer.date_of_birth
        model.eft_account_id = customer.eft_account_id
        model.primary_cardholder = customer.primary_cardholder
        model.fico_score = customer.fico_score


class SqlTransactionStore(BaseService[TransactionModel]):
    """TransactionStore over the insert-only ``transactions`` table."""

    def save(self, transaction: TransactionRecord) -> TransactionRecord:
        model = TransactionModel(
            transaction_id=transaction.transaction_id,
            account_id=transaction.account_id,
            type_code=transaction.type_code,
            category_code=transaction.category_code,
            source=transaction.source,
            description=transaction.description,
            amount=transaction.amount.amount if transaction.amount is not None else None,
            timestamp=transaction.timestamp,
        )
        self.session.add(model)
        self.session.flush()
        return TransactionRecord.from_model(model)

    def find_by_account_and_date_range(
        self, account_id: str, start: date, end: date
    ) -> list[TransactionRecord]:
        """Transactions with a timestamp on any day in [start, end], oldest first."""
        lower = datetime.combine(start, time.min, tzinfo=timezone.utc)
        upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
        stmt = (
            select(TransactionModel)
            .where(
                TransactionModel.account_id == account_id,
                TransactionModel.timestamp >= lower,
                TransactionModel.timestamp < upper,
            )
            .order_by(TransactionModel.timestamp, TransactionModel.transaction_id)
        )
        return [TransactionRecord.from_model(m) for m in self.session.scalars(stmt)]


class SqlAuditStore(BaseService[AuditRecordModel]):
    """AuditStore over the insert-only ``account_audit_records`` table."""

    def save(self, audit: AuditRecord) -> AuditRecord:
        model = AuditRecordModel(
            audit_id=audit.audit_id,
            account_id=audit.account_id,
            actor_id=audit.actor_id,
            timestamp=audit.timestamp,
            changes=audit.changes_as_dicts(),
        )
        self.session.add(model)
        self.session.flush()
        return audit
