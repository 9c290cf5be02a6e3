"""
Module: card_kernel.selectors.account_selector
Responsibility: Read-side queries over accounts, their owning customer and
    their audit history.  Used by callers that present an account for edit
    (the snapshot they read becomes the guard's "as read" state) and by
    audit review.
Architecture position: Kernel > Selectors.  Returns frozen snapshots only.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select

from card_kernel.domain.dtos import AccountSnapshot, AuditRecord, CustomerSnapshot
from card_kernel.models.account import AccountModel
from card_kernel.models.audit_record import AuditRecordModel
from card_kernel.models.customer import CustomerModel
from card_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AccountView:
    """An account and its owning customer as read together."""

    account: AccountSnapshot
    customer: CustomerSnapshot | None


class AccountSelector(BaseSelector[AccountModel]):
    """Read-only account queries."""

    def get_account(self, account_id: str) -> AccountSnapshot | None:
        model = self.session.get(AccountModel, account_id)
        return AccountSnapshot.from_model(model) if model is not None else None

    def get_account_with_customer(self, account_id: str) -> AccountView | None:
        """The account plus its customer, or None when the account is unknown."""
        model = self.session.get(AccountModel, account_id)
        if model is None:
            return None
        customer = self.session.get(CustomerModel, model.customer_id)
        return AccountView(
            account=AccountSnapshot.from_model(model),
            customer=CustomerSnapshot.from_model(customer) if customer is not None else None,
        )

    def audit_history(self, account_id: str) -> list[AuditRecord]:
        """Audit records for an account, oldest first."""
        stmt = (
            select(AuditRecordModel)
            .where(AuditRecordModel.account_id == account_id)
            .order_by(AuditRecordModel.timestamp, AuditRecordModel.audit_id)
        )
        return [AuditRecord.from_model(m) for m in self.session.scalars(stmt)]
