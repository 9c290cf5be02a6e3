"""
card_services.payment_service -- Online bill payment.

Responsibility:
    Runs one bill payment end to end: structural request checks, account
    lookup, eligibility and sufficiency rules, the explicit confirmation,
    then the balance update and the payment transaction.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes card_engines.payment (pure rules and calculations) with the
    kernel's SqlAccountStore and SqlTransactionStore.

Invariants enforced:
    - Check order: blank/structural request -> amount -> account exists ->
      account active -> sufficiency -> confirmation.  The first failure
      short-circuits everything after it; nothing is written.
    - The balance update and the transaction insert are flushed in the
      caller's session, so the caller's commit covers both or neither.
    - Transaction ids are upper-case hex drawn from uuid4.

Failure modes:
    - PaymentResult(success=False) for every rule failure, carrying the
      typed error's code and legacy message.
    - OptimisticLockError if another session commits to the account
      between the read and the flush.
    - Any other SQLAlchemyError propagates unmodified.

Audit relevance:
    Every outcome is logged with the account id; successful payments log
    the transaction id, amount and both balances.

Usage:
    from card_services.payment_service import PaymentService
    from card_engines.payment import PaymentRequest

    with session_scope() as session:
        result = PaymentService(session, clock).pay_bill(
            PaymentRequest("00000000001", "150.00", "Y"),
        )
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from uuid import uuid4

from sqlalchemy.orm import Session

from card_config.schema import PaymentSettings
from card_engines.payment import (
    PaymentRequest,
    apply_payment,
    check_sufficient_funds,
    validate_payment_request,
)
from card_kernel.domain.clock import Clock, SystemClock
from card_kernel.domain.dtos import FieldError, TransactionRecord
from card_kernel.domain.values import DEFAULT_PRECISION, Money
from card_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    FieldValidationError,
    MoneyRangeError,
    NothingToPayError,
    PaymentNotConfirmedError,
)
from card_kernel.logging_config import LogContext, get_logger
from card_kernel.services.stores import SqlAccountStore, SqlTransactionStore

logger = get_logger("services.payment")

SUCCESS_MESSAGE = "Payment successful. Your Transaction ID is {transaction_id}."
AMOUNT_REQUIRED_MESSAGE = "Payment amount is required"


def new_transaction_id(length: int = 16) -> str:
    """Random upper-case hex transaction id."""
    return uuid4().hex[:length].upper()


@dataclass(frozen=True)
class PaymentResult:
    """
    Outcome of one bill payment.

    Contract:
        success=True carries the transaction and both balances;
        success=False carries error_code, message and (for structural
        failures) the failing field.
    """

    success: bool
    message: str
    error_code: str | None = None
    failures: tuple[FieldError, ...] = ()
    transaction: TransactionRecord | None = None
    previous_balance: Money | None = None
    new_balance: Money | None = None

    @property
    def transaction_id(self) -> str | None:
        return self.transaction.transaction_id if self.transaction else None

    @property
    def amount(self) -> Money | None:
        return self.transaction.amount if self.transaction else None

    @classmethod
    def failed(
        cls, error_code: str, message: str, failures: tuple[FieldError, ...] = ()
    ) -> PaymentResult:
        return cls(success=False, message=message, error_code=error_code, failures=failures)


class PaymentService:
    """
    Bill payment orchestration.

    Contract:
        Receives a Session from the caller and flushes; never commits.
        Time comes only from the injected Clock.

    Guarantees:
        - No write happens unless every check passes.
        - An omitted amount pays the full current balance (when enabled
          in PaymentSettings).

    Non-goals:
        - Does NOT allocate the payment across interest and principal;
          see card_engines.payment.allocate_payment.
        - Does NOT retry on a concurrent update.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: PaymentSettings | None = None,
        precision: int = DEFAULT_PRECISION,
        id_factory: Callable[[], str] | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or PaymentSettings()
        self._precision = precision
        self._id_factory = id_factory or (
            lambda: new_transaction_id(self._settings.transaction_id_length)
        )
        self._accounts = SqlAccountStore(session)
        self._transactions = SqlTransactionStore(session)

    def pay_bill(self, request: PaymentRequest) -> PaymentResult:
        account_id = (request.account_id or "").strip() or None
        with LogContext.bind(account_id=account_id):
            logger.info(
                "payment_started",
                extra={"amount_supplied": request.has_amount},
            )
            result = self._pay(request)
            if not result.success:
                logger.info(
                    "payment_rejected",
                    extra={"error_code": result.error_code, "reason": result.message},
                )
            return result

    def _pay(self, request: PaymentRequest) -> PaymentResult:
        # Structural checks
        validation = validate_payment_request(request)
        if not validation.is_valid:
            first = validation.errors[0]
            return PaymentResult.failed(FieldValidationError.code, first.message, (first,))
        if not request.has_amount and not self._settings.pay_full_balance_by_default:
            error = FieldError("amount", AMOUNT_REQUIRED_MESSAGE)
            return PaymentResult.failed(FieldValidationError.code, error.message, (error,))

        # Existence and eligibility
        account = self._accounts.find_by_id(request.account_id.strip())
        if account is None:
            error = AccountNotFoundError(request.account_id.strip())
            return PaymentResult.failed(error.code, error.message)
        if not account.is_active:
            error = AccountInactiveError(account.account_id)
            return PaymentResult.failed(error.code, error.message)

        # Sufficiency
        try:
            amount = (
                Money.of(request.amount, self._precision)
                if request.has_amount
                else account.current_balance
            )
            check_sufficient_funds(account, amount, self._precision)
        except (NothingToPayError, MoneyRangeError) as e:
            return PaymentResult.failed(e.code, e.message)

        # Confirmation
        if not request.is_confirmed:
            error = PaymentNotConfirmedError(account.account_id)
            return PaymentResult.failed(error.code, error.message)

        # Post
        outcome = apply_payment(
            account, amount, self._id_factory(), self._clock.now(), self._precision
        )
        saved_account = self._accounts.save(outcome.updated_account)
        transaction = self._transactions.save(outcome.transaction)

        logger.info(
            "payment_applied",
            extra={
                "transaction_id": transaction.transaction_id,
                "amount": str(amount.amount),
                "previous_balance": str(account.current_balance.amount),
                "new_balance": str(saved_account.current_balance.amount),
            },
        )
        return PaymentResult(
            success=True,
            message=SUCCESS_MESSAGE.format(transaction_id=transaction.transaction_id),
            transaction=transaction,
            previous_balance=account.current_balance,
            new_balance=saved_account.current_balance,
        )
