"""
Core infrastructure package.

Provides:
- Configuration management via pydantic-settings
- The Data API client and its lifecycle
- The error taxonomy shared by every layer

Simplified imports:

    from ga_mcp.core import get_settings, get_client, ToolError

The FastAPI dependencies live in ``ga_mcp.core.dependencies`` and are not
re-exported here, since they import the services layer.
"""

# =============================================================================
# Re-exports from ga_mcp.core.config
# =============================================================================
from ga_mcp.core.config import Settings, get_settings

# =============================================================================
# Re-exports from ga_mcp.core.analytics_client
# =============================================================================
from ga_mcp.core.analytics_client import AnalyticsClient, init_client, get_client, close_client

# =============================================================================
# Re-exports from ga_mcp.core.exceptions
# =============================================================================
from ga_mcp.core.exceptions import (
    ToolError,
    ConfigurationError,
    ValidationError,
    BackendQueryError,
    NotResolvableError,
    NotFoundError,
    InvalidRequestError,
)

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Backend client lifecycle (from analytics_client.py)
    'AnalyticsClient',
    'init_client',
    'get_client',
    'close_client',
    # Errors (from exceptions.py)
    'ToolError',
    'ConfigurationError',
    'ValidationError',
    'BackendQueryError',
    'NotResolvableError',
    'NotFoundError',
    'InvalidRequestError',
]
