"""Pydantic API schemas."""

from claims_clearinghouse.schemas.claims import (
    ApproveRequest,
    ClaimActionResponse,
    ClaimCountResponse,
    ClaimEventResponse,
    ClaimResponse,
    ClaimStatusResponse,
    CreateClaimRequest,
    HealthResponse,
    LedgerAccountResponse,
    MinStakeResponse,
    MinStakeUpdatedResponse,
    MintRequest,
    ResolveClaimRequest,
    SetMinStakeRequest,
)

__all__ = [
    "ApproveRequest",
    "ClaimActionResponse",
    "ClaimCountResponse",
    "ClaimEventResponse",
    "ClaimResponse",
    "ClaimStatusResponse",
    "CreateClaimRequest",
    "HealthResponse",
    "LedgerAccountResponse",
    "MinStakeResponse",
    "MinStakeUpdatedResponse",
    "MintRequest",
    "ResolveClaimRequest",
    "SetMinStakeRequest",
]
