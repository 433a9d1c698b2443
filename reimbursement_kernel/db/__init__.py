"""Database layer - engine, base classes, and column types."""

from reimbursement_kernel.db.base import (
    LIKE_ESCAPE,
    UUID,
    Base,
    UTCDateTime,
    UUIDString,
    escape_like,
)
from reimbursement_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "Base",
    "UTCDateTime",
    "UUIDString",
    "UUID",
    "LIKE_ESCAPE",
    "escape_like",
]
