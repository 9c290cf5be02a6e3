"""
BaseService -- abstract base for all kernel write-side collaborators.

Responsibility:
    Provides the common constructor and session-handling contract for the
    stores and the update orchestrator.  Every subclass receives a
    SQLAlchemy ``Session`` from its caller and persists with
    ``session.flush()``, never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or rollback themselves.  An account
      update, its customer update and its audit row therefore land (or
      roll back) together under the caller's ``session_scope()``.

Failure modes:
    - A subclass that commits breaks the all-or-nothing guarantee of a
      multi-row mutation.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from card_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services and stores.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
    """

    def __init__(self, session: Session):
        self.session = session
