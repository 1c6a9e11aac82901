"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface
to the service layer. They accept an AsyncSession and never manage
their own transactions (that's the caller's responsibility).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from claims_clearinghouse.domain.enums import ClaimState
from claims_clearinghouse.domain.models import ClaimSnapshot
from claims_clearinghouse.infrastructure.database.orm_models import (
    AdminParameter,
    Claim,
    ClaimEvent,
    TokenAccount,
    TokenAllowance,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from claims_clearinghouse.domain.enums import EventType


def to_snapshot(claim: Claim) -> ClaimSnapshot:
    """Detach a claim row into a read-only snapshot."""
    return ClaimSnapshot(
        claim_idx=claim.id,
        state=ClaimState(claim.state),
        modified=claim.modified,
        deal_id=claim.deal_id,
        reason_note=claim.reason_note,
        requester_id=claim.requester_id,
        requester_address=claim.requester_address,
        requester_staked=claim.requester_staked,
        respondent_id=claim.respondent_id,
        respondent_address=claim.respondent_address,
        respondent_staked=claim.respondent_staked,
        resolution_note=claim.resolution_note,
    )


class ClaimRepository:
    """Append-only store of claims, indexed by sequential integer id."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def count(self) -> int:
        """Number of claims ever created."""
        result = await self._session.execute(select(func.count()).select_from(Claim))
        return int(result.scalar_one())

    async def create(self, claim: Claim) -> Claim:
        """Insert a claim under the next free index."""
        claim.id = await self.count()
        self._session.add(claim)
        await self._session.flush()
        return claim

    async def get_by_id(self, claim_idx: int) -> Claim | None:
        """Fetch a claim by its index."""
        if claim_idx < 0:
            return None
        return await self._session.get(Claim, claim_idx)

    async def save(self, claim: Claim) -> Claim:
        """Flush pending changes to a claim (call AFTER transition validation)."""
        await self._session.flush()
        return claim


class EventRepository:
    """Data access for the append-only notification log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(
        self,
        event_type: EventType,
        actor: str,
        created_at: int,
        claim_idx: int | None = None,
        deal_id: int | None = None,
        old_state: ClaimState | None = None,
        new_state: ClaimState | None = None,
        payload: dict | None = None,
    ) -> ClaimEvent:
        """Append a new event. This is the ONLY write operation allowed."""
        evt = ClaimEvent(
            event_type=event_type.value,
            claim_idx=claim_idx,
            deal_id=deal_id,
            old_state=old_state.value if old_state else None,
            new_state=new_state.value if new_state else None,
            actor=actor,
            payload=payload or {},
            created_at=created_at,
        )
        self._session.add(evt)
        await self._session.flush()
        return evt

    async def get_by_claim(self, claim_idx: int) -> list[ClaimEvent]:
        """Fetch all events for a claim in emission order."""
        result = await self._session.execute(
            select(ClaimEvent)
            .where(ClaimEvent.claim_idx == claim_idx)
            .order_by(ClaimEvent.id.asc())
        )
        return list(result.scalars().all())

    async def get_by_type(self, event_type: EventType) -> list[ClaimEvent]:
        """Fetch all events of one type in emission order."""
        result = await self._session.execute(
            select(ClaimEvent)
            .where(ClaimEvent.event_type == event_type.value)
            .order_by(ClaimEvent.id.asc())
        )
        return list(result.scalars().all())


class ParameterRepository:
    """Data access for administrator-managed parameters."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, name: str) -> int | None:
        param = await self._session.get(AdminParameter, name)
        return param.value if param is not None else None

    async def set(self, name: str, value: int, updated_by: str, updated_at: int) -> None:
        param = await self._session.get(AdminParameter, name)
        if param is None:
            param = AdminParameter(name=name, value=value)
            self._session.add(param)
        param.value = value
        param.updated_by = updated_by
        param.updated_at = updated_at
        await self._session.flush()


class TokenRepository:
    """Data access for the simulated token ledger's balances and allowances."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_account(self, address: str) -> TokenAccount | None:
        """Fetch an account without creating it."""
        return await self._session.get(TokenAccount, address)

    async def find_allowance(self, owner: str, spender: str) -> TokenAllowance | None:
        return await self._session.get(TokenAllowance, (owner, spender))

    async def get_account(self, address: str) -> TokenAccount:
        """Fetch an account, creating an empty one on first use (write paths only)."""
        account = await self._session.get(TokenAccount, address)
        if account is None:
            account = TokenAccount(address=address, balance=0)
            self._session.add(account)
            await self._session.flush()
        return account

    async def get_allowance(self, owner: str, spender: str) -> TokenAllowance:
        """Fetch an allowance, creating a zero one on first use."""
        allowance = await self._session.get(TokenAllowance, (owner, spender))
        if allowance is None:
            allowance = TokenAllowance(owner=owner, spender=spender, amount=0)
            self._session.add(allowance)
            await self._session.flush()
        return allowance

    async def flush(self) -> None:
        await self._session.flush()
