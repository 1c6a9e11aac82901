"""FastAPI application entry point for the Claims Clearinghouse.

Lifecycle:
    1. Startup: Initialize logging and the database, create tables (dev mode / SQLite).
    2. Running: Serve REST API + MCP tools on a single Uvicorn process.
    3. Shutdown: Dispose of the database engine.

The MCP server is mounted at /mcp so AI agents can discover tools
alongside the REST API at /api/v1/*. `mcp_transport` selects SSE or
streamable HTTP; the latter runs its session manager inside the lifespan.

Run with:
    uv run uvicorn claims_clearinghouse.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from claims_clearinghouse.config import get_settings
from claims_clearinghouse.logging_config import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )
    logger = get_logger(__name__)
    logger.info(
        "app.starting",
        env=settings.app_env,
        debug=settings.app_debug,
        simulated_ledger=settings.simulated_ledger,
    )

    from claims_clearinghouse.infrastructure.database.engine import close_db, init_db

    await init_db()

    async with AsyncExitStack() as stack:
        if settings.mcp_transport == "streamable-http":
            from claims_clearinghouse.mcp_server.tools import mcp

            await stack.enter_async_context(mcp.session_manager.run())

        logger.info(
            "app.started",
            host=settings.app_host,
            port=settings.app_port,
            mcp_transport=settings.mcp_transport,
        )

        yield

        logger.info("app.shutting_down")

    await close_db()
    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Application factory: creates and configures the FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Claims Clearinghouse",
        description=(
            "Dispute resolution between two counterparties, "
            "with both stakes held in custody until the claim closes."
        ),
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # --- Middleware ---
    from claims_clearinghouse.api.middleware import setup_middleware

    setup_middleware(app)

    # --- REST API Routes ---
    from claims_clearinghouse.api.routes.admin import router as admin_router
    from claims_clearinghouse.api.routes.claims import router as claims_router
    from claims_clearinghouse.api.routes.health import router as health_router
    from claims_clearinghouse.api.routes.ledger import router as ledger_router

    app.include_router(health_router)
    app.include_router(claims_router)
    app.include_router(admin_router)
    app.include_router(ledger_router)

    # --- MCP Server (mounted as sub-application) ---
    from claims_clearinghouse.mcp_server.tools import mcp

    if settings.mcp_transport == "streamable-http":
        mcp_app = mcp.streamable_http_app()
    else:
        mcp_app = mcp.sse_app()
    app.mount("/mcp", mcp_app)

    return app


# The app instance used by Uvicorn
app = create_app()
