"""
card_services.statement_service -- Monthly statement generation.

Responsibility:
    Validates the account identity, loads the account and the statement
    period's transactions, and hands them to the billing engine to compute
    totals, interest and the minimum payment.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes card_engines.billing with the kernel's account and
    transaction stores.  Read-only: generating a statement writes nothing.

Invariants enforced:
    - Identity and eligibility are checked before any computation:
      blank id, over-long id, unknown account, account not active.
    - The statement period is the full calendar month before the
      statement date.

Failure modes:
    - StatementResult(success=False) with FIELD_VALIDATION_FAILED,
      ACCOUNT_NOT_FOUND or ACCOUNT_INACTIVE.
    - SQLAlchemyError propagates unmodified.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from card_engines.billing import (
    BillingPolicy,
    Statement,
    assemble_statement,
    statement_period,
)
from card_kernel.domain.clock import Clock, SystemClock
from card_kernel.domain.dtos import FieldError
from card_kernel.domain.ports import AccountStore, TransactionStore
from card_kernel.domain.validation import validate_account_for_billing
from card_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    FieldValidationError,
)
from card_kernel.logging_config import LogContext, get_logger
from card_kernel.services.stores import SqlAccountStore, SqlTransactionStore

logger = get_logger("services.statement")

ACCOUNT_NOT_FOUND_MESSAGE = "Account ID not found"
ACCOUNT_NOT_BILLABLE_MESSAGE = "Account is not active for billing"


@dataclass(frozen=True)
class StatementResult:
    """Either a computed Statement or the reason none was produced."""

    success: bool
    statement: Statement | None = None
    error_code: str | None = None
    message: str | None = None
    failures: tuple[FieldError, ...] = ()

    @classmethod
    def failed(
        cls, error_code: str, message: str, failures: tuple[FieldError, ...] = ()
    ) -> StatementResult:
        return cls(success=False, error_code=error_code, message=message, failures=failures)


class StatementService:
    """
    Statement generation for one account at a time.

    Contract:
        Receives a Session from the caller; issues reads only.  Any
        AccountStore / TransactionStore may stand in for the SQL stores.

    Non-goals:
        - Does NOT render or format the statement.
        - Does NOT post the interest charge as a transaction.
    """

    def __init__(
        self,
        session: Session | None = None,
        clock: Clock | None = None,
        policy: BillingPolicy | None = None,
        accounts: AccountStore | None = None,
        transactions: TransactionStore | None = None,
    ):
        if session is None and (accounts is None or transactions is None):
            raise ValueError("StatementService needs a session or both stores")
        self._clock = clock or SystemClock()
        self._policy = policy or BillingPolicy()
        self._accounts = accounts if accounts is not None else SqlAccountStore(session)
        self._transactions = (
            transactions if transactions is not None else SqlTransactionStore(session)
        )

    def generate_statement(
        self,
        account_id: str | None,
        statement_date: date | None = None,
    ) -> StatementResult:
        """
        Produce the statement for ``account_id`` as of ``statement_date``
        (today when omitted).
        """
        statement_date = statement_date or self._clock.today()
        key = (account_id or "").strip() or None
        with LogContext.bind(account_id=key):
            errors = validate_account_for_billing(account_id)
            if errors:
                logger.info("statement_rejected", extra={"reason": errors[0].message})
                return StatementResult.failed(
                    FieldValidationError.code, errors[0].message, tuple(errors)
                )

            account = self._accounts.find_by_id(key)
            if account is None:
                logger.info("statement_rejected", extra={"reason": ACCOUNT_NOT_FOUND_MESSAGE})
                return StatementResult.failed(
                    AccountNotFoundError.code, ACCOUNT_NOT_FOUND_MESSAGE
                )
            if not account.is_active:
                logger.info(
                    "statement_rejected",
                    extra={
                        "reason": ACCOUNT_NOT_BILLABLE_MESSAGE,
                        "status": account.active_status.value,
                    },
                )
                return StatementResult.failed(
                    AccountInactiveError.code, ACCOUNT_NOT_BILLABLE_MESSAGE
                )

            period = statement_period(statement_date)
            transactions = self._transactions.find_by_account_and_date_range(
                account.account_id, period.start, period.end
            )
            statement = assemble_statement(account, statement_date, transactions, self._policy)
            logger.info(
                "statement_generated",
                extra={
                    "statement_date": statement_date.isoformat(),
                    "transaction_count": statement.transaction_count,
                    "minimum_payment": str(statement.minimum_payment.amount),
                },
            )
            return StatementResult(success=True, statement=statement)
