"""MCP Tool definitions for the Claims Clearinghouse.

These tools expose the clearinghouse functionality via the Model Context Protocol,
allowing AI agents to discover and call them programmatically.

Tools:
    - open_claim: Open a claim, staking from the caller
    - accept_claim: Respondent accepts a claim
    - resolve_claim: Respondent resolves a claim
    - close_claim: Requester closes a claim
    - get_claim: Claim details
    - check_claim_status: State and reachable actions
    - claims_count: Number of claims ever opened
    - get_min_stake / set_min_stake: Minimum stake threshold
    - approve_custody: Authorize custody on the simulated ledger
    - ledger_account: Balance and authorization of an address

The MCP server is mounted into FastAPI at /mcp via app.mount().
Each tool manages its own database session (no FastAPI Depends available);
write tools go through serialized_session and read tools through
read_session, like the REST routes.
"""

from __future__ import annotations

import time

from mcp.server.fastmcp import FastMCP

from claims_clearinghouse.config import get_settings
from claims_clearinghouse.domain.exceptions import ClearinghouseError
from claims_clearinghouse.domain.models import parse_address
from claims_clearinghouse.infrastructure.access_control import StaticAccessControl
from claims_clearinghouse.infrastructure.database.engine import (
    read_session,
    serialized_session,
)
from claims_clearinghouse.infrastructure.ledger import DatabaseTokenLedger
from claims_clearinghouse.logging_config import get_logger
from claims_clearinghouse.services.claim_service import ClaimService

logger = get_logger(__name__)

# Initialize the MCP server
# This will be mounted into the FastAPI app in main.py
mcp = FastMCP(
    "Claims Clearinghouse",
    json_response=True,
)


def _service(session) -> ClaimService:
    settings = get_settings()
    ledger = DatabaseTokenLedger(session, settings.custody_address)
    return ClaimService(
        session,
        ledger,
        StaticAccessControl.from_settings(settings),
        settings=settings,
    )


def _now() -> int:
    return int(time.time())


def _error(tool: str, exc: Exception) -> dict:
    """Report a failed call back to the agent."""
    if isinstance(exc, ClearinghouseError):
        logger.warning(f"mcp.{tool}.rejected", code=exc.code, error=exc.message)
        return {"error": exc.code, "message": exc.message}
    logger.exception(f"mcp.{tool}.error")
    return {"error": "INTERNAL_ERROR", "message": str(exc)}


@mcp.tool()
async def open_claim(
    caller_address: str,
    deal_id: int,
    reason_note: str,
    requester_id: str,
    respondent_id: str,
    amount: int,
) -> dict:
    """Open a dispute claim. You become the requester.

    Custody must already be authorized to pull `amount` from your address
    (see approve_custody), and `amount` must reach the minimum stake.

    Args:
        caller_address: Your address (0x-prefixed, 42 chars).
        deal_id: Identifier of the deal being disputed.
        reason_note: Why you are opening the claim.
        requester_id: Your application-level identity.
        respondent_id: The counterparty's application-level identity.
        amount: Stake to place in custody.

    Returns:
        Claim details including the claim_idx you'll need for future calls.
    """
    try:
        async with serialized_session() as session:
            claim = await _service(session).create_claim(
                caller=caller_address,
                deal_id=deal_id,
                reason_note=reason_note,
                requester_id=requester_id,
                respondent_id=respondent_id,
                amount=amount,
                now=_now(),
            )
        return {
            **claim.to_dict(),
            "message": "Claim opened. The respondent has 72h to accept it.",
        }
    except Exception as exc:
        return _error("open_claim", exc)


@mcp.tool()
async def accept_claim(caller_address: str, claim_idx: int) -> dict:
    """Accept a claim as the respondent, matching the requester's stake.

    Args:
        caller_address: Your address; must differ from the requester's.
        claim_idx: Index of the claim.
    """
    try:
        async with serialized_session() as session:
            claim = await _service(session).accept(caller_address, claim_idx, _now())
        return {
            **claim.to_dict(),
            "message": "Claim accepted. Resolve it within 72h to recover your stake.",
        }
    except Exception as exc:
        return _error("accept_claim", exc)


@mcp.tool()
async def resolve_claim(caller_address: str, claim_idx: int, resolution_note: str) -> dict:
    """Resolve an accepted claim as the respondent. Your stake is returned.

    Args:
        caller_address: The respondent's address.
        claim_idx: Index of the claim.
        resolution_note: How the dispute was resolved.
    """
    try:
        async with serialized_session() as session:
            claim = await _service(session).resolve(
                caller_address, claim_idx, resolution_note, _now()
            )
        return {
            **claim.to_dict(),
            "message": "Claim resolved. The requester may now confirm it.",
        }
    except Exception as exc:
        return _error("resolve_claim", exc)


@mcp.tool()
async def close_claim(caller_address: str, claim_idx: int) -> dict:
    """Close a claim as the requester.

    Confirms a resolution within 24h, or closes a claim whose acceptance,
    resolution or confirmation window has lapsed.

    Args:
        caller_address: The requester's address.
        claim_idx: Index of the claim.
    """
    try:
        async with serialized_session() as session:
            claim = await _service(session).close(caller_address, claim_idx, _now())
        return {**claim.to_dict(), "message": f"Claim closed as {claim.state.value}."}
    except Exception as exc:
        return _error("close_claim", exc)


@mcp.tool()
async def get_claim(claim_idx: int) -> dict:
    """Fetch the full record of a claim."""
    try:
        async with read_session() as session:
            claim = await _service(session).get_claim(claim_idx)
            return claim.to_dict()
    except Exception as exc:
        return _error("get_claim", exc)


@mcp.tool()
async def check_claim_status(claim_idx: int) -> dict:
    """Check the state of a claim and which actions are open right now.

    Returns:
        State, allowed state machine events, and per-action timing windows.
    """
    try:
        async with read_session() as session:
            return await _service(session).get_status(claim_idx, _now())
    except Exception as exc:
        return _error("check_claim_status", exc)


@mcp.tool()
async def claims_count() -> dict:
    """Number of claims ever opened."""
    try:
        async with read_session() as session:
            return {"count": await _service(session).claims_count()}
    except Exception as exc:
        return _error("claims_count", exc)


@mcp.tool()
async def get_min_stake() -> dict:
    """Current minimum stake for new claims."""
    try:
        async with read_session() as session:
            return {"min_stake": await _service(session).get_minimum_stake()}
    except Exception as exc:
        return _error("get_min_stake", exc)


@mcp.tool()
async def set_min_stake(caller_address: str, min_stake: int) -> dict:
    """Replace the minimum stake (administrators only).

    Args:
        caller_address: An administrator address.
        min_stake: New threshold for claims opened afterwards.
    """
    try:
        async with serialized_session() as session:
            updated = await _service(session).set_minimum_stake(
                caller_address, min_stake, _now()
            )
        return updated.to_dict()
    except Exception as exc:
        return _error("set_min_stake", exc)


@mcp.tool()
async def approve_custody(caller_address: str, amount: int) -> dict:
    """Authorize custody to pull up to `amount` from your address.

    Replaces any earlier authorization.
    """
    try:
        caller = parse_address(caller_address)
        async with serialized_session() as session:
            ledger = DatabaseTokenLedger(session, get_settings().custody_address)
            await ledger.approve(caller, amount)
            return {"address": caller, "allowance": await ledger.allowance(caller)}
    except Exception as exc:
        return _error("approve_custody", exc)


@mcp.tool()
async def ledger_account(address: str) -> dict:
    """Token balance of an address and how much custody may pull from it."""
    try:
        address = parse_address(address)
        async with read_session() as session:
            ledger = DatabaseTokenLedger(session, get_settings().custody_address)
            return {
                "address": address,
                "balance": await ledger.balance_of(address),
                "allowance": await ledger.allowance(address),
            }
    except Exception as exc:
        return _error("ledger_account", exc)
