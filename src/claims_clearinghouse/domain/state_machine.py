"""Claim State Machine Guard.

Uses python-statemachine to enforce legal state transitions at the domain level.
No matter what the API or the MCP tools ask for, an illegal transition
(e.g., AWAITING_ACCEPTANCE -> CLOSED) will raise TransitionNotAllowed.

The state machine is instantiated per-claim and validates transitions before
the ORM model's state field is updated.

Transition table:
    NULL                  -> AWAITING_ACCEPTANCE                (claim_created)
    AWAITING_ACCEPTANCE   -> AWAITING_RESOLUTION                (respondent_accepts)
    AWAITING_ACCEPTANCE   -> CLOSED_AFTER_ACCEPTANCE_EXPIRED    (acceptance_expired)
    AWAITING_RESOLUTION   -> AWAITING_CONFIRMATION              (respondent_resolves)
    AWAITING_RESOLUTION   -> CLOSED_AFTER_RESOLUTION_EXPIRED    (resolution_expired)
    AWAITING_CONFIRMATION -> CLOSED                             (requester_confirms)
    AWAITING_CONFIRMATION -> CLOSED_AFTER_CONFIRMATION_EXPIRED  (confirmation_expired)
"""

from __future__ import annotations

from statemachine import State, StateMachine


class ClaimStateMachine(StateMachine):
    """State machine that guards claim lifecycle transitions.

    Usage:
        sm = ClaimStateMachine(current_state="AWAITING_ACCEPTANCE")
        sm.respondent_accepts()  # transitions to AWAITING_RESOLUTION
        sm.current_state         # State('AWAITING_RESOLUTION', ...)
    """

    # --- States ---
    NULL = State("NULL", initial=True)
    AWAITING_ACCEPTANCE = State("AWAITING_ACCEPTANCE")
    AWAITING_RESOLUTION = State("AWAITING_RESOLUTION")
    AWAITING_CONFIRMATION = State("AWAITING_CONFIRMATION")
    CLOSED_AFTER_ACCEPTANCE_EXPIRED = State("CLOSED_AFTER_ACCEPTANCE_EXPIRED", final=True)
    CLOSED_AFTER_RESOLUTION_EXPIRED = State("CLOSED_AFTER_RESOLUTION_EXPIRED", final=True)
    CLOSED_AFTER_CONFIRMATION_EXPIRED = State("CLOSED_AFTER_CONFIRMATION_EXPIRED", final=True)
    CLOSED = State("CLOSED", final=True)

    # --- Events / Transitions ---

    # Opening
    claim_created = NULL.to(AWAITING_ACCEPTANCE)

    # Respondent actions
    respondent_accepts = AWAITING_ACCEPTANCE.to(AWAITING_RESOLUTION)
    respondent_resolves = AWAITING_RESOLUTION.to(AWAITING_CONFIRMATION)

    # Requester closing
    acceptance_expired = AWAITING_ACCEPTANCE.to(CLOSED_AFTER_ACCEPTANCE_EXPIRED)
    resolution_expired = AWAITING_RESOLUTION.to(CLOSED_AFTER_RESOLUTION_EXPIRED)
    requester_confirms = AWAITING_CONFIRMATION.to(CLOSED)
    confirmation_expired = AWAITING_CONFIRMATION.to(CLOSED_AFTER_CONFIRMATION_EXPIRED)

    def __init__(self, current_state: str = "NULL") -> None:
        """Initialize the state machine at a given state.

        Args:
            current_state: The current ClaimState value (e.g., "AWAITING_RESOLUTION").
                           Must match one of the State value strings exactly.
        """
        valid_values = {s.value for s in self.states}
        if current_state not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown state '{current_state}'. Valid states: {valid}"
            )
        # start_value expects the string value, not the State object
        super().__init__(start_value=current_state)

    @property
    def claim_state(self) -> str:
        """Return the current state value as a string (matches ClaimState enum)."""
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        # Newer releases expose the identifier as `id` and a display label as `name`
        return [getattr(event, "id", None) or event.name for event in self.allowed_events]


def validate_transition(current_state: str, event_name: str) -> str:
    """Validate a state transition and return the new state.

    Creates a temporary state machine, fires the named event, and returns
    the resulting state string.

    Raises:
        TransitionNotAllowed: If the transition is illegal.
        ValueError: If the state or event name is invalid.
    """
    sm = ClaimStateMachine(current_state=current_state)

    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_state}: {sm.get_allowed_events()}"
        )

    event_method()
    return sm.claim_state
