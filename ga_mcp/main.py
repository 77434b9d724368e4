"""
FastAPI application entry point for the GA4 reporting tool server.

Configures logging, binds the Data API client for the configured property,
registers the tool-call router and exposes an unauthenticated health check.

Startup fails when GA4_PROPERTY_ID is missing: a running instance with no
property could never serve a report. Missing authentication secrets do not
stop startup, but every tool request is then rejected and /health says why.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from fastapi import FastAPI

from ga_mcp.api.mcp import router as mcp_router
from ga_mcp.core.analytics_client import close_client, init_client
from ga_mcp.core.config import get_settings
from ga_mcp.core.dependencies import SettingsDep
from ga_mcp.core.exceptions import ConfigurationError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for startup and shutdown.

    On startup:
        - Validate configuration (missing property id is fatal)
        - Bind the shared Data API client
    On shutdown:
        - Close the client's channels
    """
    settings = get_settings()
    logger.info(f"{settings.server_name} {settings.server_version} starting")

    if not (settings.ga4_property_id or '').strip():
        raise ConfigurationError("Missing env: GA4_PROPERTY_ID")
    if not settings.auth_configured:
        logger.warning("No MCP_PATH_TOKEN or MCP_API_KEY set; all tool requests will be rejected")

    await init_client(settings)

    yield

    logger.info(f"{settings.server_name} shutting down")
    try:
        await close_client()
    except Exception as e:
        logger.error(f"Error closing analytics client: {e}")


app = FastAPI(
    title="GA4 Reporting Tool Server",
    version="2.1.0",
    description=(
        "Google Analytics 4 reporting tools over HTTP. Accepts flat tool calls "
        "and JSON-RPC 2.0 (initialize, tools/list, tools/call)."
    ),
    lifespan=lifespan,
)

app.include_router(mcp_router)


@app.get("/health")
async def health_check(settings: SettingsDep) -> Dict[str, Any]:
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status and any configuration problems. Reports 'degraded'
        while configuration is incomplete.
    """
    problems = settings.config_errors()
    return {
        "status": "healthy" if not problems else "degraded",
        "configErrors": problems,
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ga_mcp.main:app",
        host="0.0.0.0",
        port=get_settings().port,
    )
