"""
Module: card_kernel.models.audit_record
Responsibility: ORM persistence for account-update audit records.
Architecture position: Kernel > Models.  May import from db/base.py and
    card_kernel.exceptions only.

Invariants enforced:
    - One row per successful account update, written in the same
      transaction as the update itself.
    - Append-only (same mapper-event guard as transactions).
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Index, String, event
from sqlalchemy.orm import Mapped, mapped_column

from card_kernel.db.base import Base
from card_kernel.exceptions import ImmutabilityViolationError


class AuditRecordModel(Base):
    """What an account update changed, when, and who made it."""

    __tablename__ = "account_audit_records"
    __table_args__ = (
        Index("idx_audit_account_time", "account_id", "timestamp"),
    )

    audit_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    account_id: Mapped[str] = mapped_column(String(11), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(50), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(nullable=False)

    # [{"entity": ..., "field": ..., "old_value": ..., "new_value": ...}, ...]
    changes: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<AuditRecord {self.audit_id} account={self.account_id}>"


@event.listens_for(AuditRecordModel, "before_update")
def _reject_audit_update(mapper, connection, target) -> None:
    raise ImmutabilityViolationError(
        "AuditRecord", target.audit_id, "audit records cannot be modified"
    )


@event.listens_for(AuditRecordModel, "before_delete")
def _reject_audit_delete(mapper, connection, target) -> None:
    raise ImmutabilityViolationError(
        "AuditRecord", target.audit_id, "audit records cannot be deleted"
    )
