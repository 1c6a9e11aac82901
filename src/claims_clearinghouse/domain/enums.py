"""Domain enumerations for the Claims Clearinghouse.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

import enum


class ClaimState(enum.StrEnum):
    """Lifecycle states of a claim.

    State transitions are enforced by the ClaimStateMachine guard.
    See domain/state_machine.py for the transition table.
    """

    NULL = "NULL"
    AWAITING_ACCEPTANCE = "AWAITING_ACCEPTANCE"
    AWAITING_RESOLUTION = "AWAITING_RESOLUTION"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
    CLOSED_AFTER_ACCEPTANCE_EXPIRED = "CLOSED_AFTER_ACCEPTANCE_EXPIRED"
    CLOSED_AFTER_RESOLUTION_EXPIRED = "CLOSED_AFTER_RESOLUTION_EXPIRED"
    CLOSED_AFTER_CONFIRMATION_EXPIRED = "CLOSED_AFTER_CONFIRMATION_EXPIRED"
    CLOSED = "CLOSED"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {
        ClaimState.CLOSED_AFTER_ACCEPTANCE_EXPIRED,
        ClaimState.CLOSED_AFTER_RESOLUTION_EXPIRED,
        ClaimState.CLOSED_AFTER_CONFIRMATION_EXPIRED,
        ClaimState.CLOSED,
    }
)


class ClaimAction(enum.StrEnum):
    """Public write actions a caller can invoke against a claim."""

    CREATE = "create"
    ACCEPT = "accept"
    RESOLVE = "resolve"
    CLOSE = "close"


class CallerRole(enum.StrEnum):
    """Who may invoke a transition, relative to the claim's parties."""

    ANYONE = "anyone"
    NOT_REQUESTER = "not_requester"
    REQUESTER = "requester"
    RESPONDENT = "respondent"


class EscrowEffect(enum.StrEnum):
    """Custody movements bound to a transition.

    Applied by the claim service through the EscrowManager, in declaration
    order, after the new state has been written.
    """

    STAKE_REQUESTER = "stake_requester"
    STAKE_RESPONDENT = "stake_respondent"
    REFUND_REQUESTER = "refund_requester"
    REFUND_RESPONDENT = "refund_respondent"


class EventType(enum.StrEnum):
    """Types of notifications recorded in the claim_events table.

    Every successful call MUST produce exactly one event.
    This is the append-only trail observers rebuild claim state from.
    """

    # Lifecycle events
    CLAIM_CREATED = "ClaimCreated"
    CLAIM_ACCEPTED = "ClaimAccepted"
    CLAIM_RESOLVED = "ClaimResolved"

    # Closing events
    CLAIM_CLOSED = "ClaimClosed"
    CLAIM_CLOSED_AFTER_ACCEPTANCE_EXPIRED = "ClaimClosedAfterAcceptanceExpired"
    CLAIM_CLOSED_AFTER_RESOLUTION_EXPIRED = "ClaimClosedAfterResolutionExpired"
    CLAIM_CLOSED_AFTER_CONFIRMATION_EXPIRED = "ClaimClosedAfterConfirmationExpired"

    # Administration events
    MIN_STAKE_UPDATED = "MinStakeUpdated"
