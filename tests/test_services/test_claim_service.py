"""Tests for the ClaimService lifecycle against an in-memory database.

Every call runs in its own serialized transaction, so a failing call is
checked for leaving storage, balances and the event trail untouched.
"""

from __future__ import annotations

import pytest

from claims_clearinghouse.domain.enums import ClaimState, EventType
from claims_clearinghouse.domain.exceptions import (
    ClaimNotFoundError,
    ClearinghouseError,
    InsufficientAuthorizationError,
    InsufficientFundsError,
    InvalidAddressError,
    InvalidStateError,
    StakeBelowMinimumError,
    StakeMismatchError,
    TooEarlyError,
    UnauthorizedError,
)
from claims_clearinghouse.infrastructure.ledger import DatabaseTokenLedger

HOUR = 60 * 60
STAKE = 15_000_000
START_BALANCE = 100_000_000


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


class TestCreateClaim:
    @pytest.mark.asyncio
    async def test_create_stakes_and_records(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.open_claim()
        claim = await clearinghouse.call("get_claim", claim_idx)

        assert claim_idx == 0
        assert claim.state == ClaimState.AWAITING_ACCEPTANCE
        assert claim.modified == clearinghouse.clock.now
        assert claim.requester_address == clearinghouse.requester
        assert claim.requester_staked == STAKE
        assert claim.respondent_address is None
        assert claim.respondent_staked == 0
        assert claim.resolution_note == ""

        assert await clearinghouse.balance(clearinghouse.requester) == START_BALANCE - STAKE
        assert await clearinghouse.custody() == STAKE

        events = await clearinghouse.events(claim_idx)
        assert [e.event_type for e in events] == [EventType.CLAIM_CREATED.value]
        assert events[0].payload == {"deal_id": 7, "claim_idx": 0}

    @pytest.mark.asyncio
    async def test_indices_are_sequential(self, clearinghouse) -> None:
        assert await clearinghouse.open_claim() == 0
        assert await clearinghouse.open_claim() == 1
        assert await clearinghouse.call("claims_count") == 2

    @pytest.mark.asyncio
    async def test_address_case_is_normalized(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.open_claim(requester=clearinghouse.requester.upper())
        claim = await clearinghouse.call("get_claim", claim_idx)
        assert claim.requester_address == clearinghouse.requester

    @pytest.mark.parametrize("caller", ["", "   ", "0x1234", "0x" + "1" * 41, "0x" + "g" * 40])
    @pytest.mark.asyncio
    async def test_malformed_caller_is_rejected(self, clearinghouse, caller: str) -> None:
        with pytest.raises(InvalidAddressError):
            await clearinghouse.call(
                "create_claim",
                caller=caller,
                deal_id=7,
                reason_note="Goods never arrived",
                requester_id="requester-1",
                respondent_id="respondent-1",
                amount=STAKE,
                now=clearinghouse.clock.now,
            )

        assert await clearinghouse.call("claims_count") == 0

    @pytest.mark.asyncio
    async def test_stake_above_minimum_is_accepted(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.open_claim(amount=STAKE + 1)
        claim = await clearinghouse.call("get_claim", claim_idx)
        assert claim.requester_staked == STAKE + 1

    @pytest.mark.asyncio
    async def test_below_minimum_is_rejected(self, clearinghouse) -> None:
        with pytest.raises(StakeBelowMinimumError):
            await clearinghouse.open_claim(amount=STAKE - 1)

        assert await clearinghouse.call("claims_count") == 0
        assert await clearinghouse.custody() == 0

    @pytest.mark.asyncio
    async def test_missing_authorization_rolls_back(self, clearinghouse) -> None:
        with pytest.raises(InsufficientAuthorizationError):
            await clearinghouse.call(
                "create_claim",
                caller=clearinghouse.requester,
                deal_id=7,
                reason_note="no approval given",
                requester_id="req",
                respondent_id="resp",
                amount=STAKE,
                now=clearinghouse.clock.now,
            )

        assert await clearinghouse.call("claims_count") == 0
        assert await clearinghouse.events(0) == []
        assert await clearinghouse.balance(clearinghouse.requester) == START_BALANCE

    @pytest.mark.asyncio
    async def test_insufficient_funds_rolls_back(self, clearinghouse) -> None:
        poor = "0x" + "9" * 40
        with pytest.raises(InsufficientFundsError):
            await clearinghouse.open_claim(requester=poor)

        assert await clearinghouse.call("claims_count") == 0


# ---------------------------------------------------------------------------
# Accept
# ---------------------------------------------------------------------------


class TestAccept:
    @pytest.mark.asyncio
    async def test_accept_pulls_matching_stake(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.open_claim()
        clearinghouse.clock.advance(5 * HOUR)

        claim = await clearinghouse.accept(claim_idx)

        assert claim.state == ClaimState.AWAITING_RESOLUTION
        assert claim.respondent_address == clearinghouse.respondent
        assert claim.respondent_staked == STAKE
        assert claim.modified == clearinghouse.clock.now
        assert await clearinghouse.custody() == 2 * STAKE

    @pytest.mark.asyncio
    async def test_requester_cannot_accept(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.open_claim()
        await clearinghouse.approve(clearinghouse.requester, STAKE)

        with pytest.raises(UnauthorizedError):
            await clearinghouse.call(
                "accept", clearinghouse.requester, claim_idx, clearinghouse.clock.now
            )

    @pytest.mark.asyncio
    async def test_short_authorization_is_a_stake_mismatch(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.open_claim()
        await clearinghouse.approve(clearinghouse.respondent, STAKE - 1)

        with pytest.raises(StakeMismatchError):
            await clearinghouse.call(
                "accept", clearinghouse.respondent, claim_idx, clearinghouse.clock.now
            )

        claim = await clearinghouse.call("get_claim", claim_idx)
        assert claim.state == ClaimState.AWAITING_ACCEPTANCE
        assert claim.respondent_address is None
        assert await clearinghouse.custody() == STAKE

    @pytest.mark.asyncio
    async def test_larger_authorization_pulls_exactly_the_stake(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.open_claim()
        await clearinghouse.approve(clearinghouse.respondent, 3 * STAKE)

        await clearinghouse.call(
            "accept", clearinghouse.respondent, claim_idx, clearinghouse.clock.now
        )

        assert await clearinghouse.balance(clearinghouse.respondent) == START_BALANCE - STAKE
        assert await clearinghouse.allowance(clearinghouse.respondent) == 2 * STAKE

    @pytest.mark.asyncio
    async def test_failed_transfer_leaves_claim_unaccepted(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.open_claim()
        poor = "0x" + "9" * 40
        await clearinghouse.approve(poor, STAKE)

        with pytest.raises(InsufficientFundsError):
            await clearinghouse.call("accept", poor, claim_idx, clearinghouse.clock.now)

        claim = await clearinghouse.call("get_claim", claim_idx)
        assert claim.state == ClaimState.AWAITING_ACCEPTANCE
        assert claim.respondent_address is None
        assert claim.respondent_staked == 0
        events = await clearinghouse.events(claim_idx)
        assert [e.event_type for e in events] == [EventType.CLAIM_CREATED.value]

    @pytest.mark.asyncio
    async def test_accept_still_allowed_after_acceptance_window(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.open_claim()
        clearinghouse.clock.advance(100 * HOUR)

        claim = await clearinghouse.accept(claim_idx)
        assert claim.state == ClaimState.AWAITING_RESOLUTION

    @pytest.mark.asyncio
    async def test_accept_twice_is_invalid(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.accepted_claim()
        await clearinghouse.approve(clearinghouse.stranger, STAKE)
        await clearinghouse.mint(clearinghouse.stranger)

        with pytest.raises(InvalidStateError):
            await clearinghouse.call(
                "accept", clearinghouse.stranger, claim_idx, clearinghouse.clock.now
            )

    @pytest.mark.asyncio
    async def test_unknown_claim(self, clearinghouse) -> None:
        with pytest.raises(ClaimNotFoundError):
            await clearinghouse.call("accept", clearinghouse.respondent, 3, 0)
        with pytest.raises(ClaimNotFoundError):
            await clearinghouse.call("accept", clearinghouse.respondent, -1, 0)


# ---------------------------------------------------------------------------
# Resolve
# ---------------------------------------------------------------------------


class TestResolve:
    @pytest.mark.asyncio
    async def test_resolve_refunds_only_the_respondent(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.accepted_claim()
        clearinghouse.clock.advance(HOUR)

        claim = await clearinghouse.resolve(claim_idx, note="Replacement shipped")

        assert claim.state == ClaimState.AWAITING_CONFIRMATION
        assert claim.resolution_note == "Replacement shipped"
        assert claim.respondent_staked == 0
        assert claim.requester_staked == STAKE
        assert await clearinghouse.balance(clearinghouse.respondent) == START_BALANCE
        assert await clearinghouse.custody() == STAKE

    @pytest.mark.parametrize("who", ["requester", "stranger"])
    @pytest.mark.asyncio
    async def test_only_respondent_may_resolve(self, clearinghouse, who: str) -> None:
        claim_idx = await clearinghouse.accepted_claim()

        with pytest.raises(UnauthorizedError):
            await clearinghouse.call(
                "resolve", getattr(clearinghouse, who), claim_idx, "x", clearinghouse.clock.now
            )

    @pytest.mark.asyncio
    async def test_resolve_before_accept(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.open_claim()
        with pytest.raises(UnauthorizedError):
            await clearinghouse.resolve(claim_idx)


# ---------------------------------------------------------------------------
# Close
# ---------------------------------------------------------------------------


class TestClose:
    @pytest.mark.parametrize("who", ["respondent", "stranger", "admin"])
    @pytest.mark.asyncio
    async def test_only_requester_may_close(self, clearinghouse, who: str) -> None:
        claim_idx = await clearinghouse.resolved_claim()
        clearinghouse.clock.advance(1000 * HOUR)

        with pytest.raises(UnauthorizedError):
            await clearinghouse.close(claim_idx, caller=getattr(clearinghouse, who))

    @pytest.mark.asyncio
    async def test_acceptance_expiry(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.open_claim()
        opened_at = clearinghouse.clock.now

        clearinghouse.clock.advance(72 * HOUR - 60)
        with pytest.raises(TooEarlyError) as exc_info:
            await clearinghouse.close(claim_idx)
        assert exc_info.value.available_at == opened_at + 72 * HOUR

        clearinghouse.clock.advance(60)
        claim = await clearinghouse.close(claim_idx)

        assert claim.state == ClaimState.CLOSED_AFTER_ACCEPTANCE_EXPIRED
        assert claim.requester_staked == 0
        assert await clearinghouse.balance(clearinghouse.requester) == START_BALANCE
        assert await clearinghouse.balance(clearinghouse.respondent) == START_BALANCE
        assert await clearinghouse.custody() == 0

    @pytest.mark.asyncio
    async def test_resolution_expiry_refunds_both(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.accepted_claim()

        clearinghouse.clock.advance(72 * HOUR - 1)
        with pytest.raises(TooEarlyError):
            await clearinghouse.close(claim_idx)

        clearinghouse.clock.advance(1)
        claim = await clearinghouse.close(claim_idx)

        assert claim.state == ClaimState.CLOSED_AFTER_RESOLUTION_EXPIRED
        assert claim.total_staked == 0
        assert await clearinghouse.balance(clearinghouse.requester) == START_BALANCE
        assert await clearinghouse.balance(clearinghouse.respondent) == START_BALANCE
        assert await clearinghouse.custody() == 0

    @pytest.mark.asyncio
    async def test_confirm_inside_window(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.resolved_claim()
        clearinghouse.clock.advance(24 * HOUR - 60)

        claim = await clearinghouse.close(claim_idx)
        assert claim.state == ClaimState.CLOSED
        events = await clearinghouse.events(claim_idx)
        assert events[-1].event_type == EventType.CLAIM_CLOSED.value

    @pytest.mark.asyncio
    async def test_confirmation_expiry_has_the_same_payout(self, clearinghouse) -> None:
        confirmed = await clearinghouse.resolved_claim()
        expired = await clearinghouse.resolved_claim()

        clearinghouse.clock.advance(24 * HOUR - 60)
        await clearinghouse.close(confirmed)
        after_confirm = await clearinghouse.balance(clearinghouse.requester)

        clearinghouse.clock.advance(60)
        claim = await clearinghouse.close(expired)

        assert claim.state == ClaimState.CLOSED_AFTER_CONFIRMATION_EXPIRED
        assert await clearinghouse.balance(clearinghouse.requester) - after_confirm == STAKE
        assert await clearinghouse.balance(clearinghouse.requester) == START_BALANCE
        assert await clearinghouse.custody() == 0

    @pytest.mark.asyncio
    async def test_closed_claim_is_immutable(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.resolved_claim()
        await clearinghouse.close(claim_idx)

        with pytest.raises(InvalidStateError):
            await clearinghouse.close(claim_idx)
        with pytest.raises(InvalidStateError):
            await clearinghouse.accept(claim_idx, respondent=clearinghouse.stranger)


# ---------------------------------------------------------------------------
# Custody conservation
# ---------------------------------------------------------------------------


class TestConservation:
    @pytest.mark.asyncio
    async def test_custody_matches_open_stakes(self, clearinghouse) -> None:
        first = await clearinghouse.accepted_claim()
        second = await clearinghouse.open_claim(amount=STAKE * 2)
        third = await clearinghouse.resolved_claim()

        total = 0
        for claim_idx in (first, second, third):
            total += (await clearinghouse.call("get_claim", claim_idx)).total_staked
        assert await clearinghouse.custody() == total == 2 * STAKE + 2 * STAKE + STAKE

        clearinghouse.clock.advance(72 * HOUR)
        for claim_idx in (first, second, third):
            await clearinghouse.close(claim_idx)

        assert await clearinghouse.custody() == 0
        assert await clearinghouse.balance(clearinghouse.requester) == START_BALANCE
        assert await clearinghouse.balance(clearinghouse.respondent) == START_BALANCE


# ---------------------------------------------------------------------------
# Re-entrancy
# ---------------------------------------------------------------------------


class ReentrantLedger(DatabaseTokenLedger):
    """Ledger that calls back into the service in the middle of every transfer."""

    def __init__(self, session, custody_address: str, reenter) -> None:
        super().__init__(session, custody_address)
        self._reenter = reenter
        self.observed: list[ClearinghouseError] = []

    async def _attack(self) -> None:
        try:
            await self._reenter()
        except ClearinghouseError as exc:
            self.observed.append(exc)

    async def transfer_to_custody(self, source: str, amount: int) -> None:
        await self._attack()
        await super().transfer_to_custody(source, amount)

    async def transfer_from_custody(self, destination: str, amount: int) -> None:
        await self._attack()
        await super().transfer_from_custody(destination, amount)


class TestReentrancy:
    @pytest.mark.asyncio
    async def test_reentrant_close_sees_closed_claim(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.resolved_claim()
        ledgers: list[ReentrantLedger] = []

        def build(session):
            async def close_again() -> None:
                svc = clearinghouse.service(session)
                await svc.close(clearinghouse.requester, claim_idx, clearinghouse.clock.now)

            ledger = ReentrantLedger(session, clearinghouse.settings.custody_address, close_again)
            ledgers.append(ledger)
            return ledger

        claim = await clearinghouse.call_with_ledger(
            build, "close", clearinghouse.requester, claim_idx, clearinghouse.clock.now
        )

        assert claim.state == ClaimState.CLOSED
        assert len(ledgers[0].observed) == 1
        assert isinstance(ledgers[0].observed[0], InvalidStateError)
        assert await clearinghouse.balance(clearinghouse.requester) == START_BALANCE
        assert await clearinghouse.custody() == 0

    @pytest.mark.asyncio
    async def test_reentrant_accept_sees_accepted_claim(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.open_claim()
        await clearinghouse.approve(clearinghouse.respondent, 2 * STAKE)
        ledgers: list[ReentrantLedger] = []

        def build(session):
            async def accept_again() -> None:
                svc = clearinghouse.service(session)
                await svc.accept(clearinghouse.respondent, claim_idx, clearinghouse.clock.now)

            ledger = ReentrantLedger(session, clearinghouse.settings.custody_address, accept_again)
            ledgers.append(ledger)
            return ledger

        await clearinghouse.call_with_ledger(
            build, "accept", clearinghouse.respondent, claim_idx, clearinghouse.clock.now
        )

        assert isinstance(ledgers[0].observed[0], InvalidStateError)
        assert await clearinghouse.balance(clearinghouse.respondent) == START_BALANCE - STAKE
        assert await clearinghouse.custody() == 2 * STAKE


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


class TestReads:
    @pytest.mark.asyncio
    async def test_get_claim_not_found(self, clearinghouse) -> None:
        with pytest.raises(ClaimNotFoundError):
            await clearinghouse.call("get_claim", 0)

    @pytest.mark.asyncio
    async def test_status_reports_open_windows(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.resolved_claim()
        resolved_at = clearinghouse.clock.now

        status = await clearinghouse.call("get_status", claim_idx, resolved_at + HOUR)

        assert status["state"] == "AWAITING_CONFIRMATION"
        assert status["is_terminal"] is False
        assert set(status["allowed_events"]) == {"requester_confirms", "confirmation_expired"}
        by_outcome = {a["outcome"]: a for a in status["actions"]}
        assert by_outcome["ClaimClosed"]["open"] is True
        assert by_outcome["ClaimClosed"]["available_until"] == resolved_at + 24 * HOUR
        assert by_outcome["ClaimClosedAfterConfirmationExpired"]["open"] is False

    @pytest.mark.asyncio
    async def test_events_in_emission_order(self, clearinghouse) -> None:
        claim_idx = await clearinghouse.resolved_claim()
        await clearinghouse.close(claim_idx)

        events = await clearinghouse.call("get_events", claim_idx)

        assert [e.event_type for e in events] == [
            "ClaimCreated", "ClaimAccepted", "ClaimResolved", "ClaimClosed",
        ]
        assert [e.new_state for e in events] == [
            "AWAITING_ACCEPTANCE", "AWAITING_RESOLUTION", "AWAITING_CONFIRMATION", "CLOSED",
        ]
        assert events[1].actor == clearinghouse.respondent
