"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject database sessions,
the caller's identity, the ledger clock, and the claim service.

Write routes take `get_write_session`, which admits one call at a time and
commits or rolls back the whole call as a unit. Read routes use a plain
request-scoped session.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from fastapi import Depends, Header

from claims_clearinghouse.config import Settings, get_settings
from claims_clearinghouse.domain.models import parse_address
from claims_clearinghouse.infrastructure.access_control import StaticAccessControl
from claims_clearinghouse.infrastructure.database.engine import (
    get_async_session,
    serialized_session,
)
from claims_clearinghouse.infrastructure.ledger import DatabaseTokenLedger
from claims_clearinghouse.services.claim_service import ClaimService

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncSession


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for a read request."""
    async for session in get_async_session():
        yield session


async def get_write_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session for a write request, holding the execution lock."""
    async with serialized_session() as session:
        yield session


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()


def get_clock() -> int:
    """Current ledger time in unix seconds."""
    return int(time.time())


def get_caller(
    x_caller_address: str = Header(..., alias="X-Caller-Address"),
) -> str:
    """Identity of the party making the call: 0x followed by 40 hex digits."""
    return parse_address(x_caller_address)


def get_access_control(
    settings: Settings = Depends(get_app_settings),
) -> StaticAccessControl:
    return StaticAccessControl.from_settings(settings)


def _build_service(
    session: AsyncSession,
    settings: Settings,
    access_control: StaticAccessControl,
) -> ClaimService:
    ledger = DatabaseTokenLedger(session, settings.custody_address)
    return ClaimService(session, ledger, access_control, settings=settings)


async def get_claim_service(
    session: AsyncSession = Depends(get_write_session),
    settings: Settings = Depends(get_app_settings),
    access_control: StaticAccessControl = Depends(get_access_control),
) -> ClaimService:
    """ClaimService bound to a serialized write session."""
    return _build_service(session, settings, access_control)


async def get_read_claim_service(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
    access_control: StaticAccessControl = Depends(get_access_control),
) -> ClaimService:
    """ClaimService bound to a read-only request session."""
    return _build_service(session, settings, access_control)


async def get_write_ledger(
    session: AsyncSession = Depends(get_write_session),
    settings: Settings = Depends(get_app_settings),
) -> DatabaseTokenLedger:
    return DatabaseTokenLedger(session, settings.custody_address)


async def get_read_ledger(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> DatabaseTokenLedger:
    return DatabaseTokenLedger(session, settings.custody_address)
