"""Table-driven transition evaluator.

Every write action against a claim is decided here, in one place, before any
custody movement happens. A call is checked in a fixed order:

    1. Unauthorized:  no rule for the action admits the caller
    2. InvalidState:  no authorized rule starts from the current state
    3. TooEarly:      no remaining rule's timing window contains the elapsed time

The surviving rule names the ClaimStateMachine event to fire, the escrow
effects to apply and the notification to emit. The state machine computes
the target state, so an edge missing from the guard can never be planned.
"""

from __future__ import annotations

from dataclasses import dataclass

from statemachine.exceptions import TransitionNotAllowed

from claims_clearinghouse.domain.enums import (
    CallerRole,
    ClaimAction,
    ClaimState,
    EscrowEffect,
    EventType,
)
from claims_clearinghouse.domain.exceptions import (
    InvalidStateError,
    TooEarlyError,
    UnauthorizedError,
)
from claims_clearinghouse.domain.models import ClaimSnapshot
from claims_clearinghouse.domain.state_machine import validate_transition

HOUR = 60 * 60

ACCEPTANCE_PERIOD = 72 * HOUR
RESOLUTION_PERIOD = 72 * HOUR
CONFIRMATION_PERIOD = 24 * HOUR


@dataclass(frozen=True)
class TransitionRule:
    """One row of the transition table.

    Attributes:
        action: Public action that selects this row.
        from_state: State the claim must be in.
        event: ClaimStateMachine event fired on success.
        role: Who may invoke the action.
        effects: Escrow movements, applied in order after the state write.
        notification: Event emitted on success.
        not_before: Minimum seconds since `modified` (inclusive), if gated.
        not_after: Seconds since `modified` from which the row stops applying.
    """

    action: ClaimAction
    from_state: ClaimState
    event: str
    role: CallerRole
    effects: tuple[EscrowEffect, ...]
    notification: EventType
    not_before: int | None = None
    not_after: int | None = None

    def admits(self, caller: str, claim: ClaimSnapshot) -> bool:
        if self.role is CallerRole.ANYONE:
            return True
        if self.role is CallerRole.NOT_REQUESTER:
            return caller != claim.requester_address
        if self.role is CallerRole.REQUESTER:
            return caller == claim.requester_address
        return claim.respondent_address is not None and caller == claim.respondent_address

    def window_contains(self, elapsed: int) -> bool:
        if self.not_before is not None and elapsed < self.not_before:
            return False
        if self.not_after is not None and elapsed >= self.not_after:
            return False
        return True


TRANSITION_TABLE: tuple[TransitionRule, ...] = (
    TransitionRule(
        action=ClaimAction.CREATE,
        from_state=ClaimState.NULL,
        event="claim_created",
        role=CallerRole.ANYONE,
        effects=(EscrowEffect.STAKE_REQUESTER,),
        notification=EventType.CLAIM_CREATED,
    ),
    TransitionRule(
        action=ClaimAction.ACCEPT,
        from_state=ClaimState.AWAITING_ACCEPTANCE,
        event="respondent_accepts",
        role=CallerRole.NOT_REQUESTER,
        effects=(EscrowEffect.STAKE_RESPONDENT,),
        notification=EventType.CLAIM_ACCEPTED,
    ),
    TransitionRule(
        action=ClaimAction.CLOSE,
        from_state=ClaimState.AWAITING_ACCEPTANCE,
        event="acceptance_expired",
        role=CallerRole.REQUESTER,
        effects=(EscrowEffect.REFUND_REQUESTER,),
        notification=EventType.CLAIM_CLOSED_AFTER_ACCEPTANCE_EXPIRED,
        not_before=ACCEPTANCE_PERIOD,
    ),
    TransitionRule(
        action=ClaimAction.RESOLVE,
        from_state=ClaimState.AWAITING_RESOLUTION,
        event="respondent_resolves",
        role=CallerRole.RESPONDENT,
        effects=(EscrowEffect.REFUND_RESPONDENT,),
        notification=EventType.CLAIM_RESOLVED,
    ),
    TransitionRule(
        action=ClaimAction.CLOSE,
        from_state=ClaimState.AWAITING_RESOLUTION,
        event="resolution_expired",
        role=CallerRole.REQUESTER,
        effects=(EscrowEffect.REFUND_REQUESTER, EscrowEffect.REFUND_RESPONDENT),
        notification=EventType.CLAIM_CLOSED_AFTER_RESOLUTION_EXPIRED,
        not_before=RESOLUTION_PERIOD,
    ),
    TransitionRule(
        action=ClaimAction.CLOSE,
        from_state=ClaimState.AWAITING_CONFIRMATION,
        event="requester_confirms",
        role=CallerRole.REQUESTER,
        effects=(EscrowEffect.REFUND_REQUESTER,),
        notification=EventType.CLAIM_CLOSED,
        not_after=CONFIRMATION_PERIOD,
    ),
    TransitionRule(
        action=ClaimAction.CLOSE,
        from_state=ClaimState.AWAITING_CONFIRMATION,
        event="confirmation_expired",
        role=CallerRole.REQUESTER,
        effects=(EscrowEffect.REFUND_REQUESTER,),
        notification=EventType.CLAIM_CLOSED_AFTER_CONFIRMATION_EXPIRED,
        not_before=CONFIRMATION_PERIOD,
    ),
)


@dataclass(frozen=True)
class TransitionPlan:
    """The validated outcome of an action, ready to be applied."""

    rule: TransitionRule
    old_state: ClaimState
    new_state: ClaimState

    @property
    def effects(self) -> tuple[EscrowEffect, ...]:
        return self.rule.effects

    @property
    def notification(self) -> EventType:
        return self.rule.notification


def plan_transition(
    claim: ClaimSnapshot,
    action: ClaimAction,
    caller: str,
    now: int,
) -> TransitionPlan:
    """Validate `action` by `caller` at ledger time `now` against the table.

    Raises:
        UnauthorizedError: The caller does not hold the role for this action.
        InvalidStateError: The action is not defined from the claim's state.
        TooEarlyError: The timing gate has not elapsed yet.
    """
    candidates = [rule for rule in TRANSITION_TABLE if rule.action == action]
    if not candidates:
        raise ValueError(f"Unknown action '{action}'")

    authorized = [rule for rule in candidates if rule.admits(caller, claim)]
    if not authorized:
        raise UnauthorizedError(caller, action.value)

    applicable = [rule for rule in authorized if rule.from_state == claim.state]
    if not applicable:
        raise InvalidStateError(claim.state.value, action.value)

    elapsed = now - claim.modified
    timely = [rule for rule in applicable if rule.window_contains(elapsed)]
    if not timely:
        available_at = claim.modified + min(rule.not_before or 0 for rule in applicable)
        raise TooEarlyError(claim.claim_idx, available_at)

    rule = timely[0]
    try:
        new_state = ClaimState(validate_transition(claim.state.value, rule.event))
    except TransitionNotAllowed as err:
        raise InvalidStateError(claim.state.value, action.value) from err

    return TransitionPlan(rule=rule, old_state=claim.state, new_state=new_state)


def allowed_actions(claim: ClaimSnapshot, now: int) -> list[dict]:
    """Describe the rules that can still fire from the claim's state.

    Each entry carries the action, the role that may invoke it, the ledger
    times bounding its window (None where unbounded) and whether `now` falls
    inside that window.
    """
    return [
        {
            "action": rule.action.value,
            "role": rule.role.value,
            "outcome": rule.notification.value,
            "available_from": (
                claim.modified + rule.not_before if rule.not_before is not None else None
            ),
            "available_until": (
                claim.modified + rule.not_after if rule.not_after is not None else None
            ),
            "open": rule.window_contains(now - claim.modified),
        }
        for rule in TRANSITION_TABLE
        if rule.from_state == claim.state
    ]
