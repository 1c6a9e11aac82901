"""Database infrastructure: engine, ORM models, and repositories."""

from claims_clearinghouse.infrastructure.database.engine import (
    close_db,
    get_async_session,
    init_db,
    read_session,
    serialized_session,
)
from claims_clearinghouse.infrastructure.database.orm_models import (
    AdminParameter,
    Base,
    Claim,
    ClaimEvent,
    TokenAccount,
    TokenAllowance,
)
from claims_clearinghouse.infrastructure.database.repositories import (
    ClaimRepository,
    EventRepository,
    ParameterRepository,
    TokenRepository,
    to_snapshot,
)

__all__ = [
    "AdminParameter",
    "Base",
    "Claim",
    "ClaimEvent",
    "TokenAccount",
    "TokenAllowance",
    "ClaimRepository",
    "EventRepository",
    "ParameterRepository",
    "TokenRepository",
    "to_snapshot",
    "get_async_session",
    "read_session",
    "serialized_session",
    "init_db",
    "close_db",
]
