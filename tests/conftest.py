"""Shared test fixtures for the Claims Clearinghouse test suite.

Provides:
    - An in-memory SQLite database per test
    - A Clearinghouse harness that runs every call in its own serialized
      transaction, the way the API and MCP tools do
    - A mutable ledger clock
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from claims_clearinghouse.config import Settings
from claims_clearinghouse.infrastructure.access_control import StaticAccessControl
from claims_clearinghouse.infrastructure.database import engine as engine_module
from claims_clearinghouse.infrastructure.database.engine import read_session, serialized_session
from claims_clearinghouse.infrastructure.database.orm_models import Base
from claims_clearinghouse.infrastructure.database.repositories import EventRepository
from claims_clearinghouse.infrastructure.ledger import DatabaseTokenLedger
from claims_clearinghouse.services.claim_service import ClaimService

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

HOUR = 60 * 60
STAKE = 15_000_000
START_BALANCE = 100_000_000
T0 = 1_700_000_000

REQUESTER = "0x" + "1" * 40
RESPONDENT = "0x" + "2" * 40
STRANGER = "0x" + "3" * 40
ADMIN = "0x" + "a" * 40
OWNER = "0x" + "b" * 40


class Clock:
    """Ledger time handed to the service, in unix seconds."""

    def __init__(self, now: int = T0) -> None:
        self.now = now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now


class Clearinghouse:
    """Test harness over the service layer.

    Each call opens a fresh session inside serialized_session, so an error
    rolls back exactly what a failed API call would.
    """

    requester = REQUESTER
    respondent = RESPONDENT
    stranger = STRANGER
    admin = ADMIN

    def __init__(
        self,
        factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        clock: Clock,
    ) -> None:
        self.factory = factory
        self.settings = settings
        self.clock = clock

    def ledger(self, session: AsyncSession) -> DatabaseTokenLedger:
        return DatabaseTokenLedger(session, self.settings.custody_address)

    def service(
        self,
        session: AsyncSession,
        ledger: DatabaseTokenLedger | None = None,
    ) -> ClaimService:
        return ClaimService(
            session,
            ledger or self.ledger(session),
            StaticAccessControl.from_settings(self.settings),
            settings=self.settings,
        )

    async def call(self, method: str, *args, **kwargs):
        """Run one ClaimService method as a single atomic call."""
        async with serialized_session(self.factory) as session:
            return await getattr(self.service(session), method)(*args, **kwargs)

    async def call_with_ledger(
        self,
        ledger_factory: Callable[[AsyncSession], DatabaseTokenLedger],
        method: str,
        *args,
        **kwargs,
    ):
        async with serialized_session(self.factory) as session:
            svc = self.service(session, ledger_factory(session))
            return await getattr(svc, method)(*args, **kwargs)

    # --- Ledger helpers ---

    async def mint(self, address: str, amount: int = START_BALANCE) -> None:
        async with serialized_session(self.factory) as session:
            await self.ledger(session).mint(address, amount)

    async def approve(self, address: str, amount: int) -> None:
        async with serialized_session(self.factory) as session:
            await self.ledger(session).approve(address, amount)

    async def balance(self, address: str) -> int:
        async with read_session(self.factory) as session:
            return await self.ledger(session).balance_of(address)

    async def allowance(self, address: str) -> int:
        async with read_session(self.factory) as session:
            return await self.ledger(session).allowance(address)

    async def custody(self) -> int:
        return await self.balance(self.settings.custody_address)

    async def events(self, claim_idx: int) -> list:
        async with read_session(self.factory) as session:
            return await EventRepository(session).get_by_claim(claim_idx)

    # --- Claim helpers ---

    async def open_claim(self, amount: int = STAKE, requester: str = REQUESTER) -> int:
        await self.approve(requester, amount)
        claim = await self.call(
            "create_claim",
            caller=requester,
            deal_id=7,
            reason_note="Goods never arrived",
            requester_id="requester-1",
            respondent_id="respondent-1",
            amount=amount,
            now=self.clock.now,
        )
        return claim.claim_idx

    async def accept(self, claim_idx: int, respondent: str = RESPONDENT):
        claim = await self.call("get_claim", claim_idx)
        await self.approve(respondent, claim.requester_staked)
        return await self.call("accept", respondent, claim_idx, self.clock.now)

    async def resolve(self, claim_idx: int, note: str = "Refunded off-platform"):
        return await self.call("resolve", RESPONDENT, claim_idx, note, self.clock.now)

    async def close(self, claim_idx: int, caller: str = REQUESTER):
        return await self.call("close", caller, claim_idx, self.clock.now)

    async def accepted_claim(self, amount: int = STAKE) -> int:
        claim_idx = await self.open_claim(amount)
        await self.accept(claim_idx)
        return claim_idx

    async def resolved_claim(self, amount: int = STAKE) -> int:
        claim_idx = await self.accepted_claim(amount)
        await self.resolve(claim_idx)
        return claim_idx


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _fresh_execution_lock(monkeypatch: pytest.MonkeyPatch) -> None:
    """Each test runs on its own event loop; never share the lock across them."""
    monkeypatch.setattr(engine_module, "_execution_lock", None)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_env="development",
        database_url="sqlite+aiosqlite:///:memory:",
        default_min_stake=STAKE,
        owner_address=OWNER,
        administrator_addresses=ADMIN,
        simulated_ledger=True,
    )


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """A fresh in-memory database with the schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    await engine.dispose()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
async def clearinghouse(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
    clock: Clock,
) -> Clearinghouse:
    """Harness with both parties funded."""
    house = Clearinghouse(session_factory, settings, clock)
    await house.mint(REQUESTER)
    await house.mint(RESPONDENT)
    return house
