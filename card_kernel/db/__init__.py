"""Database layer - engine, base classes and column types."""

from card_kernel.db.base import Base, FixedPointAmount, TrackedBase
from card_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "Base",
    "FixedPointAmount",
    "TrackedBase",
    "create_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
]
