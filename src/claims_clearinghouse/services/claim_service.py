"""Claim Service: the dispute lifecycle.

This is the application layer that coordinates between:
    - the transition table (who may do what, from which state, and when)
    - the escrow manager (custody movements)
    - repositories and the event notifier (storage and audit trail)

Both REST routes and MCP tools call into this service. Every write runs
inside the caller's transaction; an exception anywhere aborts the whole call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from claims_clearinghouse.config import get_settings
from claims_clearinghouse.domain.enums import ClaimAction, EscrowEffect
from claims_clearinghouse.domain.exceptions import (
    ClaimNotFoundError,
    StakeBelowMinimumError,
)
from claims_clearinghouse.domain.models import (
    ClaimNotification,
    ClaimSnapshot,
    parse_address,
)
from claims_clearinghouse.domain.state_machine import ClaimStateMachine
from claims_clearinghouse.domain.transitions import allowed_actions, plan_transition
from claims_clearinghouse.infrastructure.database.orm_models import Claim
from claims_clearinghouse.infrastructure.database.repositories import (
    ClaimRepository,
    EventRepository,
    ParameterRepository,
    to_snapshot,
)
from claims_clearinghouse.logging_config import bound_context, get_logger
from claims_clearinghouse.services.admin_config import AdminConfig
from claims_clearinghouse.services.escrow_manager import EscrowManager
from claims_clearinghouse.services.event_notifier import EventNotifier

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from claims_clearinghouse.config import Settings
    from claims_clearinghouse.domain.collaborators import AccessControl, TokenLedger
    from claims_clearinghouse.domain.models import MinStakeUpdated
    from claims_clearinghouse.domain.transitions import TransitionPlan
    from claims_clearinghouse.infrastructure.database.orm_models import ClaimEvent

logger = get_logger(__name__)


class ClaimService:
    """Manages the claim lifecycle."""

    def __init__(
        self,
        session: AsyncSession,
        ledger: TokenLedger,
        access_control: AccessControl,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._session = session
        self._claim_repo = ClaimRepository(session)
        self._event_repo = EventRepository(session)
        self._escrow = EscrowManager(ledger)
        self._notifier = EventNotifier(self._event_repo)
        self._admin = AdminConfig(
            ParameterRepository(session),
            access_control,
            self._notifier,
            default_min_stake=settings.default_min_stake,
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_claim(
        self,
        caller: str,
        deal_id: int,
        reason_note: str,
        requester_id: str,
        respondent_id: str,
        amount: int,
        now: int,
    ) -> ClaimSnapshot:
        """Open a claim and stake `amount` from the caller, who becomes the requester."""
        caller = parse_address(caller)
        claim_idx = await self._claim_repo.count()

        with bound_context(claim_idx=claim_idx, action=ClaimAction.CREATE.value):
            plan = plan_transition(
                ClaimSnapshot.vacant(claim_idx, deal_id),
                ClaimAction.CREATE,
                caller,
                now,
            )

            minimum = await self._admin.get_minimum_stake()
            if amount < minimum:
                raise StakeBelowMinimumError(amount, minimum)

            claim = await self._claim_repo.create(
                Claim(
                    state=plan.new_state.value,
                    modified=now,
                    deal_id=deal_id,
                    reason_note=reason_note,
                    requester_id=requester_id,
                    requester_address=caller,
                    requester_staked=amount,
                    respondent_id=respondent_id,
                    respondent_address=None,
                    respondent_staked=0,
                    resolution_note="",
                )
            )

            await self._escrow.stake(caller, amount)
            await self._notify(claim, plan, caller, now)

            logger.info("claim.created", deal_id=deal_id, amount=amount, requester=caller)
            return to_snapshot(claim)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def accept(self, caller: str, claim_idx: int, now: int) -> ClaimSnapshot:
        """Respondent accepts the claim, matching the requester's stake."""
        return await self._advance(ClaimAction.ACCEPT, caller, claim_idx, now)

    async def resolve(
        self,
        caller: str,
        claim_idx: int,
        resolution_note: str,
        now: int,
    ) -> ClaimSnapshot:
        """Respondent resolves the claim and takes back their stake."""
        return await self._advance(
            ClaimAction.RESOLVE, caller, claim_idx, now, resolution_note=resolution_note
        )

    async def close(self, caller: str, claim_idx: int, now: int) -> ClaimSnapshot:
        """Requester closes the claim.

        The outcome depends on the state and the time elapsed since the last
        transition: confirmation inside the 24h window, or expiry of the
        acceptance, resolution or confirmation window.
        """
        return await self._advance(ClaimAction.CLOSE, caller, claim_idx, now)

    async def _advance(
        self,
        action: ClaimAction,
        caller: str,
        claim_idx: int,
        now: int,
        resolution_note: str | None = None,
    ) -> ClaimSnapshot:
        caller = parse_address(caller)

        with bound_context(claim_idx=claim_idx, action=action.value):
            claim = await self._get_claim_or_raise(claim_idx)
            plan = plan_transition(to_snapshot(claim), action, caller, now)

            if EscrowEffect.STAKE_RESPONDENT in plan.effects:
                await self._escrow.ensure_covered(caller, claim.requester_staked)

            movements = self._write_transition(claim, plan, caller, now, resolution_note)
            await self._claim_repo.save(claim)

            for destination, amount, pull in movements:
                if pull:
                    await self._escrow.stake(destination, amount)
                else:
                    await self._escrow.release(destination, amount)

            await self._notify(claim, plan, caller, now)

            logger.info(
                f"claim.{action.value}",
                old_state=plan.old_state.value,
                new_state=plan.new_state.value,
                caller=caller,
            )
            return to_snapshot(claim)

    @staticmethod
    def _write_transition(
        claim: Claim,
        plan: TransitionPlan,
        caller: str,
        now: int,
        resolution_note: str | None,
    ) -> list[tuple[str, int, bool]]:
        """Apply the plan to the row and return the custody movements it implies.

        Each movement is (address, amount, pull). Released stakes are zeroed
        here, before any transfer is issued.
        """
        movements: list[tuple[str, int, bool]] = []

        for effect in plan.effects:
            if effect is EscrowEffect.STAKE_RESPONDENT:
                claim.respondent_address = caller
                claim.respondent_staked = claim.requester_staked
                movements.append((caller, claim.respondent_staked, True))
            elif effect is EscrowEffect.REFUND_REQUESTER:
                movements.append((claim.requester_address, claim.requester_staked, False))
                claim.requester_staked = 0
            elif effect is EscrowEffect.REFUND_RESPONDENT:
                movements.append((claim.respondent_address, claim.respondent_staked, False))
                claim.respondent_staked = 0

        if resolution_note is not None:
            claim.resolution_note = resolution_note

        claim.state = plan.new_state.value
        claim.modified = now
        return movements

    async def _notify(
        self,
        claim: Claim,
        plan: TransitionPlan,
        caller: str,
        now: int,
    ) -> None:
        notification = ClaimNotification(
            event_type=plan.notification,
            deal_id=claim.deal_id,
            claim_idx=claim.id,
        )
        await self._notifier.emit(
            notification,
            actor=caller,
            now=now,
            old_state=plan.old_state,
            new_state=plan.new_state,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def claims_count(self) -> int:
        return await self._claim_repo.count()

    async def get_claim(self, claim_idx: int) -> ClaimSnapshot:
        claim = await self._get_claim_or_raise(claim_idx)
        return to_snapshot(claim)

    async def get_status(self, claim_idx: int, now: int) -> dict:
        """Current state plus the actions still reachable from it."""
        snapshot = await self.get_claim(claim_idx)
        sm = ClaimStateMachine(current_state=snapshot.state.value)

        return {
            "claim_idx": snapshot.claim_idx,
            "state": snapshot.state.value,
            "is_terminal": snapshot.is_terminal,
            "modified": snapshot.modified,
            "allowed_events": sm.get_allowed_events(),
            "actions": allowed_actions(snapshot, now),
        }

    async def get_events(self, claim_idx: int) -> list[ClaimEvent]:
        await self._get_claim_or_raise(claim_idx)
        return await self._event_repo.get_by_claim(claim_idx)

    async def custody_balance(self) -> int:
        return await self._escrow.custody_balance()

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    async def get_minimum_stake(self) -> int:
        return await self._admin.get_minimum_stake()

    async def set_minimum_stake(self, caller: str, new_value: int, now: int) -> MinStakeUpdated:
        return await self._admin.set_minimum_stake(caller, new_value, now)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_claim_or_raise(self, claim_idx: int) -> Claim:
        claim = await self._claim_repo.get_by_id(claim_idx)
        if claim is None:
            raise ClaimNotFoundError(claim_idx)
        return claim
