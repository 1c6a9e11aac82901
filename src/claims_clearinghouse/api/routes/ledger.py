"""Simulated token ledger routes.

Lets parties fund themselves and authorize custody against the bundled
database ledger. Minting is administrator only and disappears entirely
when `simulated_ledger` is switched off.

Routes:
    GET    /api/v1/ledger/{address}   Balance and custody authorization
    POST   /api/v1/ledger/approve     Authorize custody to pull from the caller
    POST   /api/v1/ledger/mint        Credit tokens (administrator only)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from claims_clearinghouse.api.deps import (
    get_access_control,
    get_app_settings,
    get_caller,
    get_read_ledger,
    get_write_ledger,
)
from claims_clearinghouse.config import Settings
from claims_clearinghouse.domain.exceptions import UnauthorizedError
from claims_clearinghouse.domain.models import parse_address
from claims_clearinghouse.infrastructure.access_control import StaticAccessControl
from claims_clearinghouse.infrastructure.ledger import DatabaseTokenLedger
from claims_clearinghouse.schemas.claims import (
    ApproveRequest,
    LedgerAccountResponse,
    MintRequest,
)

router = APIRouter(prefix="/api/v1/ledger", tags=["Ledger"])


async def _account(ledger: DatabaseTokenLedger, address: str) -> LedgerAccountResponse:
    return LedgerAccountResponse(
        address=address,
        balance=await ledger.balance_of(address),
        allowance=await ledger.allowance(address),
    )


@router.get("/{address}", response_model=LedgerAccountResponse, summary="Get an account")
async def get_account(
    address: str,
    ledger: DatabaseTokenLedger = Depends(get_read_ledger),
) -> LedgerAccountResponse:
    return await _account(ledger, parse_address(address))


@router.post("/approve", response_model=LedgerAccountResponse, summary="Authorize custody")
async def approve(
    request: ApproveRequest,
    caller: str = Depends(get_caller),
    ledger: DatabaseTokenLedger = Depends(get_write_ledger),
) -> LedgerAccountResponse:
    """Replace the caller's custody authorization with `amount`."""
    await ledger.approve(caller, request.amount)
    return await _account(ledger, caller)


@router.post("/mint", response_model=LedgerAccountResponse, summary="Mint simulated tokens")
async def mint(
    request: MintRequest,
    caller: str = Depends(get_caller),
    settings: Settings = Depends(get_app_settings),
    access_control: StaticAccessControl = Depends(get_access_control),
    ledger: DatabaseTokenLedger = Depends(get_write_ledger),
) -> LedgerAccountResponse:
    if not settings.simulated_ledger:
        raise HTTPException(status_code=404, detail="Minting is only available on the simulated ledger")
    if not access_control.is_administrator(caller):
        raise UnauthorizedError(caller, "mint tokens")

    address = parse_address(request.address)
    await ledger.mint(address, request.amount)
    return await _account(ledger, address)
