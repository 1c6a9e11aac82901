"""Domain layer: pure business logic with zero framework dependencies."""

from claims_clearinghouse.domain.collaborators import AccessControl, TokenLedger
from claims_clearinghouse.domain.enums import (
    CallerRole,
    ClaimAction,
    ClaimState,
    EscrowEffect,
    EventType,
)
from claims_clearinghouse.domain.exceptions import (
    ClaimNotFoundError,
    ClearinghouseError,
    InvalidAddressError,
    InvalidStateError,
    TooEarlyError,
    UnauthorizedError,
)
from claims_clearinghouse.domain.models import (
    ClaimNotification,
    ClaimSnapshot,
    MinStakeUpdated,
)
from claims_clearinghouse.domain.state_machine import (
    ClaimStateMachine,
    validate_transition,
)
from claims_clearinghouse.domain.transitions import (
    TRANSITION_TABLE,
    TransitionPlan,
    plan_transition,
)

__all__ = [
    "AccessControl",
    "TokenLedger",
    "CallerRole",
    "ClaimAction",
    "ClaimState",
    "EscrowEffect",
    "EventType",
    "ClaimNotFoundError",
    "ClearinghouseError",
    "InvalidAddressError",
    "InvalidStateError",
    "TooEarlyError",
    "UnauthorizedError",
    "ClaimNotification",
    "ClaimSnapshot",
    "MinStakeUpdated",
    "ClaimStateMachine",
    "validate_transition",
    "TRANSITION_TABLE",
    "TransitionPlan",
    "plan_transition",
]
