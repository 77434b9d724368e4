"""
FastAPI dependency injection module for the GA4 reporting tool server.

Key Dependencies Provided:
- get_settings_dependency / SettingsDep: The cached Settings instance
- get_registry: The process-wide, read-only tool registry
- get_gateway / GatewayDep: Invocation gateway bound to settings and client
- require_authorization / AuthorizedDep: Fail-closed shared-secret check

Authentication:
    A request is authorized when any configured secret matches:
    - the ``{token}`` path segment of ``/mcp/{token}`` (MCP_PATH_TOKEN)
    - the ``x-api-key`` header (MCP_API_KEY)
    - the ``key`` query parameter (MCP_API_KEY)

    With neither secret configured every request is rejected; the health
    endpoint reports the missing configuration.

Usage Examples:
    @router.post("/mcp")
    async def call(body: Any, _: AuthorizedDep, gateway: GatewayDep):
        return await gateway.handle(body)

    # In tests
    app.dependency_overrides[get_gateway] = lambda: gateway
"""

import logging
import secrets
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status

from ga_mcp.core.analytics_client import get_client
from ga_mcp.core.config import Settings, get_settings
from ga_mcp.services.gateway import Gateway
from ga_mcp.services.registry import ToolRegistry
from ga_mcp.services.reports import build_registry

logger = logging.getLogger(__name__)

API_KEY_HEADER = 'x-api-key'
API_KEY_QUERY = 'key'


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can swap it with
    ``app.dependency_overrides[get_settings_dependency]``.
    """
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]


# =============================================================================
# Gateway Dependency
# =============================================================================

@lru_cache()
def get_registry() -> ToolRegistry:
    """Build the tool registry once per process."""
    return build_registry()


async def get_gateway(settings: SettingsDep) -> Gateway:
    """Gateway over the shared registry and the shared backend client."""
    client = await get_client()
    return Gateway(get_registry(), settings, client)


GatewayDep = Annotated[Gateway, Depends(get_gateway)]


# =============================================================================
# Authentication Dependency
# =============================================================================

def _matches(candidate: Optional[str], secret: Optional[str]) -> bool:
    if not candidate or not secret:
        return False
    return secrets.compare_digest(candidate.encode('utf-8'), secret.encode('utf-8'))


def is_authorized(
    settings: Settings,
    path_token: Optional[str] = None,
    header_key: Optional[str] = None,
    query_key: Optional[str] = None,
) -> bool:
    """
    Check presented credentials against the configured secrets.

    Returns:
        True when at least one credential matches its secret. Always False
        when no secret is configured.
    """
    if not settings.auth_configured:
        return False
    return (
        _matches(path_token, settings.mcp_path_token)
        or _matches(header_key, settings.mcp_api_key)
        or _matches(query_key, settings.mcp_api_key)
    )


async def require_authorization(request: Request, settings: SettingsDep) -> None:
    """
    Reject the request with 401 unless it carries a valid credential.

    Raises:
        HTTPException(401): No secret configured or no credential matched.
    """
    authorized = is_authorized(
        settings,
        path_token=request.path_params.get('token'),
        header_key=request.headers.get(API_KEY_HEADER),
        query_key=request.query_params.get(API_KEY_QUERY),
    )
    if not authorized:
        if not settings.auth_configured:
            logger.warning("Rejecting request: no MCP_PATH_TOKEN or MCP_API_KEY configured")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


AuthorizedDep = Annotated[None, Depends(require_authorization)]
