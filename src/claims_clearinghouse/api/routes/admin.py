"""Administrator routes.

Routes:
    GET    /api/v1/admin/min-stake    Current minimum stake
    PUT    /api/v1/admin/min-stake    Replace the minimum stake (administrator only)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from claims_clearinghouse.api.deps import (
    get_caller,
    get_claim_service,
    get_clock,
    get_read_claim_service,
)
from claims_clearinghouse.schemas.claims import (
    MinStakeResponse,
    MinStakeUpdatedResponse,
    SetMinStakeRequest,
)
from claims_clearinghouse.services.claim_service import ClaimService

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


@router.get("/min-stake", response_model=MinStakeResponse, summary="Get the minimum stake")
async def get_min_stake(
    svc: ClaimService = Depends(get_read_claim_service),
) -> MinStakeResponse:
    return MinStakeResponse(min_stake=await svc.get_minimum_stake())


@router.put(
    "/min-stake",
    response_model=MinStakeUpdatedResponse,
    summary="Set the minimum stake",
)
async def set_min_stake(
    request: SetMinStakeRequest,
    caller: str = Depends(get_caller),
    now: int = Depends(get_clock),
    svc: ClaimService = Depends(get_claim_service),
) -> MinStakeUpdatedResponse:
    """Applies to claims opened afterwards. Stakes already in custody are unaffected."""
    updated = await svc.set_minimum_stake(caller, request.min_stake, now)
    return MinStakeUpdatedResponse(previous=updated.previous, new=updated.new)
