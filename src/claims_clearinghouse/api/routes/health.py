"""Health check endpoint.

Verifies connectivity to the database and returns structured status.
Used by Docker healthchecks, load balancers, and monitoring systems.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from claims_clearinghouse.api.deps import get_db_session
from claims_clearinghouse.logging_config import get_logger
from claims_clearinghouse.schemas.claims import HealthResponse

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the application and its database.",
)
async def health_check(session: AsyncSession = Depends(get_db_session)) -> HealthResponse:
    """Check database connectivity."""
    try:
        await session.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as exc:
        db_status = f"unhealthy: {exc}"
        logger.error("health.db_check_failed", error=str(exc))

    return HealthResponse(
        status="ok" if db_status == "healthy" else "degraded",
        version="0.1.0",
        database=db_status,
    )
