"""Read-only domain records.

ClaimSnapshot is what every read operation hands out: a frozen copy of the
claim row, detached from the ORM session so callers cannot mutate storage
through it. Notifications are the payloads the EventNotifier emits.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass

from claims_clearinghouse.domain.enums import ClaimState, EventType
from claims_clearinghouse.domain.exceptions import InvalidAddressError

_ADDRESS_RE = re.compile(r"0x[0-9a-f]{40}")


def normalize_address(address: str) -> str:
    """Canonical form used for every address comparison (lowercase hex)."""
    return address.strip().lower()


def parse_address(address: str) -> str:
    """Normalize a party address supplied from outside, rejecting malformed ones."""
    normalized = normalize_address(address)
    if not _ADDRESS_RE.fullmatch(normalized):
        raise InvalidAddressError(address)
    return normalized


@dataclass(frozen=True)
class ClaimSnapshot:
    """Point-in-time copy of a claim record.

    Attributes:
        claim_idx: Sequential identifier, starting at zero.
        state: Current lifecycle state.
        modified: Ledger time (unix seconds) of the last transition.
        deal_id: Opaque identifier of the underlying deal.
        reason_note: Requester-supplied reason for the claim.
        requester_id: Application-level identity of the requester.
        requester_address: Custody endpoint of the requester.
        requester_staked: Amount held in custody for the requester.
        respondent_id: Application-level identity of the respondent.
        respondent_address: Custody endpoint of the respondent, None until accepted.
        respondent_staked: Amount held in custody for the respondent.
        resolution_note: Respondent-supplied note, empty until resolved.
    """

    claim_idx: int
    state: ClaimState
    modified: int
    deal_id: int
    reason_note: str
    requester_id: str
    requester_address: str
    requester_staked: int
    respondent_id: str
    respondent_address: str | None
    respondent_staked: int
    resolution_note: str

    @classmethod
    def vacant(cls, claim_idx: int, deal_id: int = 0) -> ClaimSnapshot:
        """The implicit NULL record occupying a slot before `create`."""
        return cls(
            claim_idx=claim_idx,
            state=ClaimState.NULL,
            modified=0,
            deal_id=deal_id,
            reason_note="",
            requester_id="",
            requester_address="",
            requester_staked=0,
            respondent_id="",
            respondent_address=None,
            respondent_staked=0,
            resolution_note="",
        )

    @property
    def total_staked(self) -> int:
        return self.requester_staked + self.respondent_staked

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def to_dict(self) -> dict:
        data = asdict(self)
        data["state"] = self.state.value
        return data


@dataclass(frozen=True)
class ClaimNotification:
    """Emitted once per successful claim transition."""

    event_type: EventType
    deal_id: int
    claim_idx: int

    def to_dict(self) -> dict:
        return {"deal_id": self.deal_id, "claim_idx": self.claim_idx}


@dataclass(frozen=True)
class MinStakeUpdated:
    """Emitted when an administrator replaces the minimum stake."""

    previous: int
    new: int

    @property
    def event_type(self) -> EventType:
        return EventType.MIN_STAKE_UPDATED

    def to_dict(self) -> dict:
        return {"previous": self.previous, "new": self.new}


Notification = ClaimNotification | MinStakeUpdated
