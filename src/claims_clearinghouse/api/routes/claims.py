"""Claim REST API routes.

These endpoints provide the HTTP interface for opening, advancing and
inspecting claims. The MCP tools in mcp_server/tools.py call the same
service layer, ensuring consistency.

Routes:
    POST   /api/v1/claims                  Open a claim (caller becomes requester)
    GET    /api/v1/claims/count            Number of claims ever created
    GET    /api/v1/claims/{idx}            Claim details
    GET    /api/v1/claims/{idx}/status     Lightweight status check
    GET    /api/v1/claims/{idx}/events     Notification trail
    POST   /api/v1/claims/{idx}/accept     Respondent accepts
    POST   /api/v1/claims/{idx}/resolve    Respondent resolves
    POST   /api/v1/claims/{idx}/close      Requester closes
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from claims_clearinghouse.api.deps import (
    get_caller,
    get_claim_service,
    get_clock,
    get_read_claim_service,
)
from claims_clearinghouse.logging_config import get_logger
from claims_clearinghouse.schemas.claims import (
    ClaimCountResponse,
    ClaimEventResponse,
    ClaimResponse,
    ClaimStatusResponse,
    CreateClaimRequest,
    ResolveClaimRequest,
)
from claims_clearinghouse.services.claim_service import ClaimService

router = APIRouter(prefix="/api/v1/claims", tags=["Claims"])
logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=ClaimResponse,
    status_code=201,
    summary="Open a claim",
)
async def create_claim(
    request: CreateClaimRequest,
    caller: str = Depends(get_caller),
    now: int = Depends(get_clock),
    svc: ClaimService = Depends(get_claim_service),
) -> ClaimResponse:
    """Open a claim in AWAITING_ACCEPTANCE, staking `amount` from the caller."""
    claim = await svc.create_claim(
        caller=caller,
        deal_id=request.deal_id,
        reason_note=request.reason_note,
        requester_id=request.requester_id,
        respondent_id=request.respondent_id,
        amount=request.amount,
        now=now,
    )
    return ClaimResponse.model_validate(claim.to_dict())


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@router.get(
    "/count",
    response_model=ClaimCountResponse,
    summary="Number of claims",
)
async def claims_count(
    svc: ClaimService = Depends(get_read_claim_service),
) -> ClaimCountResponse:
    return ClaimCountResponse(count=await svc.claims_count())


@router.get(
    "/{claim_idx}",
    response_model=ClaimResponse,
    summary="Get claim details",
)
async def get_claim(
    claim_idx: int,
    svc: ClaimService = Depends(get_read_claim_service),
) -> ClaimResponse:
    claim = await svc.get_claim(claim_idx)
    return ClaimResponse.model_validate(claim.to_dict())


@router.get(
    "/{claim_idx}/status",
    response_model=ClaimStatusResponse,
    summary="Lightweight status check",
)
async def get_claim_status(
    claim_idx: int,
    now: int = Depends(get_clock),
    svc: ClaimService = Depends(get_read_claim_service),
) -> ClaimStatusResponse:
    """Current state, the state machine events still possible, and their timing windows."""
    return ClaimStatusResponse.model_validate(await svc.get_status(claim_idx, now))


@router.get(
    "/{claim_idx}/events",
    response_model=list[ClaimEventResponse],
    summary="Get notification trail",
)
async def get_claim_events(
    claim_idx: int,
    svc: ClaimService = Depends(get_read_claim_service),
) -> list[ClaimEventResponse]:
    events = await svc.get_events(claim_idx)
    return [ClaimEventResponse.model_validate(e) for e in events]


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


@router.post(
    "/{claim_idx}/accept",
    response_model=ClaimResponse,
    summary="Respondent accepts the claim",
)
async def accept_claim(
    claim_idx: int,
    caller: str = Depends(get_caller),
    now: int = Depends(get_clock),
    svc: ClaimService = Depends(get_claim_service),
) -> ClaimResponse:
    """Stake the requester's amount from the caller. AWAITING_ACCEPTANCE -> AWAITING_RESOLUTION."""
    claim = await svc.accept(caller, claim_idx, now)
    return ClaimResponse.model_validate(claim.to_dict())


@router.post(
    "/{claim_idx}/resolve",
    response_model=ClaimResponse,
    summary="Respondent resolves the claim",
)
async def resolve_claim(
    claim_idx: int,
    request: ResolveClaimRequest,
    caller: str = Depends(get_caller),
    now: int = Depends(get_clock),
    svc: ClaimService = Depends(get_claim_service),
) -> ClaimResponse:
    """Refund the respondent. AWAITING_RESOLUTION -> AWAITING_CONFIRMATION."""
    claim = await svc.resolve(caller, claim_idx, request.resolution_note, now)
    return ClaimResponse.model_validate(claim.to_dict())


@router.post(
    "/{claim_idx}/close",
    response_model=ClaimResponse,
    summary="Requester closes the claim",
)
async def close_claim(
    claim_idx: int,
    caller: str = Depends(get_caller),
    now: int = Depends(get_clock),
    svc: ClaimService = Depends(get_claim_service),
) -> ClaimResponse:
    """Confirm a resolution or close after a window lapsed; the terminal state depends on timing."""
    claim = await svc.close(caller, claim_idx, now)
    logger.info("api.claim_closed", claim_idx=claim_idx, state=claim.state.value)
    return ClaimResponse.model_validate(claim.to_dict())
