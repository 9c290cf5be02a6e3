"""
AccountUpdateService -- the account/customer mutation orchestrator.

Responsibility:
    Sequences one account edit end to end: field validation, state-dependent
    business rules, commit-time re-fetch, the optimistic concurrency guard,
    persistence of the account and customer, and the audit record of what
    changed.

Architecture position:
    Kernel > Services -- imperative shell.  Calls pure domain logic
    (validation, concurrency guard) and the SQLAlchemy stores.  Reads time
    only through the injected Clock.

Invariants enforced:
    - Validation failures are aggregated: every failing field is reported.
    - A credit-limit change on an account that was not ACTIVE when read is
      refused (ACCOUNT_INACTIVE), whatever status the request asks for.
    - Nothing is written unless validation, business rules and the guard
      all pass.
    - Limits are persisted at scale 2, HALF_UP.
    - One AuditRecord per successful mutation, listing only the fields whose
      value actually changed.  A request that changes nothing succeeds with
      an empty change set and writes nothing.
    - Flush-only: the caller owns commit/rollback.

Failure modes:
    - UpdateResult(success=False) with error_code FIELD_VALIDATION_FAILED,
      ACCOUNT_INACTIVE, ACCOUNT_NOT_FOUND, CUSTOMER_NOT_FOUND or
      OPTIMISTIC_LOCK_CONFLICT for the checks before the write.
    - OptimisticLockError raised when another session commits between the
      re-fetch and the flush.  SQLAlchemy has already rolled the session's
      transaction back at that point, so the caller must discard it.
    - Any other SQLAlchemyError propagates unmodified.

Audit relevance:
    The audit record (actor, timestamp, field-level old/new values) is
    flushed in the same transaction as the mutation it describes.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from enum import Enum
from typing import Any
from uuid import uuid4

from sqlalchemy.orm import Session

from card_kernel.domain.clock import Clock, SystemClock
from card_kernel.domain.concurrency import (
    ACCOUNT_GUARDED_FIELDS,
    CUSTOMER_GUARDED_FIELDS,
    ConcurrencyGuard,
    GuardMode,
    guarded_values,
)
from card_kernel.domain.dtos import (
    AccountSnapshot,
    AccountStatus,
    AccountUpdateRequest,
    AuditRecord,
    CustomerSnapshot,
    FieldChange,
    FieldError,
    UpdateResult,
)
from card_kernel.domain.validation import (
    DEFAULT_RULES,
    ValidationRules,
    normalize_phone,
    normalize_ssn,
    parse_amount,
    validate_account_fields,
)
from card_kernel.domain.values import Money
from card_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    CustomerNotFoundError,
    FieldValidationError,
    OptimisticLockError,
)
from card_kernel.logging_config import LogContext, get_logger
from card_kernel.models.account import AccountModel
from card_kernel.services.base import BaseService
from card_kernel.services.stores import SqlAccountStore, SqlAuditStore, SqlCustomerStore

logger = get_logger("services.account_update")

INACTIVE_CREDIT_LIMIT_MESSAGE = "Cannot modify credit limit for inactive account"
VALIDATION_FAILED_MESSAGE = "Validation failed"
CUSTOMER_MISMATCH_MESSAGE = "Customer does not belong to the account being edited"


def _display(name: str, value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, Money):
        return str(value.amount)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if name == "ssn":
        return normalize_ssn(value) or str(value)
    if name in ("phone_1", "phone_2"):
        return normalize_phone(value) or str(value)
    return str(value)


def diff_snapshots(
    entity: str,
    before: Any,
    after: Any,
    fields: tuple[str, ...],
) -> list[FieldChange]:
    """Fields whose comparable value differs between two snapshots."""
    if before is None or after is None:
        return []
    old = guarded_values(before, fields)
    new = guarded_values(after, fields)
    return [
        FieldChange(
            entity=entity,
            field=name,
            old_value=_display(name, getattr(before, name)),
            new_value=_display(name, getattr(after, name)),
        )
        for name in fields
        if old[name] != new[name]
    ]


class AccountUpdateService(BaseService[AccountModel]):
    """
    Orchestrates one validated, guarded, audited account update.

    Contract:
        ``update_account`` receives the request, the account and customer
        snapshots as the editor read them, and the acting user.  It returns
        an UpdateResult; it never commits.

    Guarantees:
        - Field failures are all reported in one result.
        - A conflicting concurrent edit is never overwritten.

    Non-goals:
        - Does NOT retry on conflict; the editor must refresh and resubmit.
        - Does NOT create or close accounts.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        rules: ValidationRules = DEFAULT_RULES,
        guard_mode: GuardMode = GuardMode.FIELDS,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._rules = rules
        self._guard_mode = guard_mode
        self._accounts = SqlAccountStore(session)
        self._customers = SqlCustomerStore(session)
        self._audits = SqlAuditStore(session)

    def update_account(
        self,
        request: AccountUpdateRequest,
        original_account: AccountSnapshot,
        original_customer: CustomerSnapshot | None,
        actor_id: str,
    ) -> UpdateResult:
        with LogContext.bind(actor_id=actor_id, account_id=original_account.account_id):
            logger.info(
                "account_update_started",
                extra={
                    "customer_edit": request.customer is not None,
                    "guard_mode": self._guard_mode.value,
                },
            )
            return self._update(request, original_account, original_customer, actor_id)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _update(
        self,
        request: AccountUpdateRequest,
        original_account: AccountSnapshot,
        original_customer: CustomerSnapshot | None,
        actor_id: str,
    ) -> UpdateResult:
        # 1. Field validation
        failures = self._validate(request, original_account, original_customer)
        if failures:
            logger.info(
                "account_update_validation_failed",
                extra={
                    "failure_count": len(failures),
                    "fields": sorted({f.field for f in failures}),
                },
            )
            return UpdateResult.failed(
                FieldValidationError.code, VALIDATION_FAILED_MESSAGE, failures
            )

        new_status = AccountStatus.parse(request.active_status)
        new_credit = parse_amount(request.credit_limit)
        new_cash = parse_amount(request.cash_credit_limit)

        # 2. Business rules against the state the editor saw
        if new_credit != original_account.credit_limit and not original_account.is_active:
            error = AccountInactiveError(
                original_account.account_id, INACTIVE_CREDIT_LIMIT_MESSAGE
            )
            logger.info(
                "account_update_rule_rejected",
                extra={
                    "rule": error.code,
                    "status": original_account.active_status.value,
                },
            )
            return UpdateResult.failed(
                error.code,
                error.message,
                (FieldError("credit_limit", error.message),),
            )

        # 3. Re-fetch and guard
        current_account = self._accounts.find_by_id(original_account.account_id)
        if current_account is None:
            error = AccountNotFoundError(original_account.account_id)
            logger.warning("account_update_account_missing")
            return UpdateResult.failed(error.code, error.message)

        current_customer = None
        if original_customer is not None:
            if current_account.customer_id != original_customer.customer_id:
                logger.warning(
                    "account_update_owner_changed",
                    extra={"customer_id": original_customer.customer_id},
                )
                error = FieldError("customer_id", CUSTOMER_MISMATCH_MESSAGE)
                return UpdateResult.failed(
                    FieldValidationError.code, VALIDATION_FAILED_MESSAGE, (error,)
                )
            current_customer = self._customers.find_by_id(original_customer.customer_id)
            if current_customer is None:
                error = CustomerNotFoundError(original_customer.customer_id)
                logger.warning(
                    "account_update_customer_missing",
                    extra={"customer_id": original_customer.customer_id},
                )
                return UpdateResult.failed(error.code, error.message)

        guard = ConcurrencyGuard(original_account, original_customer, self._guard_mode)
        try:
            guard.verify(current_account, current_customer)
        except OptimisticLockError as e:
            logger.warning(
                "account_update_conflict",
                extra={"diverged_fields": list(e.diverged_fields)},
            )
            return UpdateResult.failed(
                e.code, e.message, diverged_fields=e.diverged_fields
            )

        # 4. Persist
        updated_account = replace(
            current_account,
            active_status=new_status,
            credit_limit=new_credit,
            cash_credit_limit=new_cash,
            expiration_date=request.expiration_date,
            group_id=request.group_id if request.group_id is not None else current_account.group_id,
        )
        updated_customer = None
        if request.customer is not None:
            updated_customer = replace(request.customer, version=current_customer.version)

        changes = diff_snapshots(
            "account", current_account, updated_account, ACCOUNT_GUARDED_FIELDS
        ) + diff_snapshots(
            "customer", current_customer, updated_customer, CUSTOMER_GUARDED_FIELDS
        )

        audit = AuditRecord(
            audit_id=str(uuid4()),
            timestamp=self._clock.now(),
            actor_id=actor_id,
            account_id=current_account.account_id,
            changes=tuple(changes),
        )

        if not changes:
            logger.info("account_update_no_changes")
            return UpdateResult.succeeded(current_account, current_customer, audit)

        saved_account = current_account
        if any(c.entity == "account" for c in changes):
            saved_account = self._accounts.save(updated_account)
        saved_customer = current_customer
        if any(c.entity == "customer" for c in changes):
            saved_customer = self._customers.save(updated_customer)

        # 5. Audit
        self._audits.save(audit)

        logger.info(
            "account_update_applied",
            extra={
                "audit_id": audit.audit_id,
                "changed_fields": audit.changed_fields,
                "account_version": saved_account.version,
            },
        )
        return UpdateResult.succeeded(saved_account, saved_customer, audit)

    def _validate(
        self,
        request: AccountUpdateRequest,
        original_account: AccountSnapshot,
        original_customer: CustomerSnapshot | None,
    ) -> tuple[FieldError, ...]:
        result = validate_account_fields(request, self._clock.today(), self._rules)
        errors = list(result.errors)

        if not result.messages_for("account_id") and (
            request.account_id.strip() != original_account.account_id
        ):
            errors.append(
                FieldError("account_id", "Account ID does not match the account being edited")
            )
        if original_customer is not None and (
            original_customer.customer_id != original_account.customer_id
        ):
            errors.append(FieldError("customer_id", CUSTOMER_MISMATCH_MESSAGE))
        if request.customer is not None:
            if original_customer is None:
                errors.append(
                    FieldError("customer", "Customer edit requires the customer record as read")
                )
            elif request.customer.customer_id != original_customer.customer_id:
                errors.append(
                    FieldError("customer_id", "Customer ID cannot be changed")
                )
        return tuple(errors)
