"""Pydantic schemas for the Claims API.

These schemas define the request/response shapes for the REST API and
MCP tools. They are separate from the ORM models and the domain snapshots
to keep clean boundaries between the API and the lower layers.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateClaimRequest(BaseModel):
    """Request body for opening a claim. The caller becomes the requester."""

    deal_id: int = Field(
        ...,
        ge=0,
        description="Identifier of the deal the dispute is about",
        examples=[42],
    )
    reason_note: str = Field(
        ...,
        max_length=5000,
        description="Why the requester is opening the claim",
        examples=["Goods never arrived"],
    )
    requester_id: str = Field(
        ...,
        max_length=66,
        description="Application-level identity of the requester",
    )
    respondent_id: str = Field(
        ...,
        max_length=66,
        description="Application-level identity of the respondent",
    )
    amount: int = Field(
        ...,
        ge=0,
        description="Stake pulled from the requester; must reach the minimum stake",
        examples=[15_000_000],
    )


class ResolveClaimRequest(BaseModel):
    """Request body for the respondent resolving a claim."""

    resolution_note: str = Field(
        ...,
        max_length=5000,
        description="How the respondent resolved the dispute",
    )


class SetMinStakeRequest(BaseModel):
    """Request body for replacing the minimum stake."""

    min_stake: int = Field(..., ge=0, description="New minimum stake for future claims")


class ApproveRequest(BaseModel):
    """Authorize custody to pull up to `amount` from the caller."""

    amount: int = Field(..., ge=0)


class MintRequest(BaseModel):
    """Credit simulated tokens to an address."""

    address: str = Field(
        ...,
        min_length=42,
        max_length=42,
        description="Address to credit (0x-prefixed, 42 chars)",
    )
    amount: int = Field(..., ge=0)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class ClaimResponse(BaseModel):
    """Response schema for a claim."""

    model_config = ConfigDict(from_attributes=True)

    claim_idx: int
    state: str
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


class ClaimCountResponse(BaseModel):
    count: int


class ClaimActionResponse(BaseModel):
    """One transition still reachable from the claim's state."""

    action: str
    role: str
    outcome: str
    available_from: int | None = Field(
        default=None, description="Ledger time from which the action may fire"
    )
    available_until: int | None = Field(
        default=None, description="Ledger time from which the action no longer applies"
    )
    open: bool


class ClaimStatusResponse(BaseModel):
    """Lightweight status check response."""

    claim_idx: int
    state: str
    is_terminal: bool
    modified: int
    allowed_events: list[str] = Field(
        description="State machine events that can fire from the current state"
    )
    actions: list[ClaimActionResponse]


class ClaimEventResponse(BaseModel):
    """Response schema for a recorded notification."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    event_type: str
    claim_idx: int | None
    deal_id: int | None
    old_state: str | None
    new_state: str | None
    actor: str
    payload: dict | None = None
    created_at: int


class MinStakeResponse(BaseModel):
    min_stake: int


class MinStakeUpdatedResponse(BaseModel):
    previous: int
    new: int


class LedgerAccountResponse(BaseModel):
    """Balance and custody authorization of one address."""

    address: str
    balance: int
    allowance: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    database: str = "unknown"
