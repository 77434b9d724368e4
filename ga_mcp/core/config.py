"""
Settings and environment management module for the GA4 reporting tool server.

This module provides centralized configuration management using pydantic-settings,
which automatically loads settings from environment variables and .env files.

Key Features:
- Environment variable validation and type coercion
- Legacy environment variable aliases (GA_PROPERTY_ID, GA4_PROPERTY, MCP_KEY)
- Immutable settings value, constructed once and passed into the backend
  client and the invocation gateway
- Singleton pattern via @lru_cache for efficient access

Environment Variables:
- GA4_PROPERTY_ID: Numeric GA4 property id, e.g. "423169216" (Required to serve reports)
- MCP_PATH_TOKEN: Secret accepted as the last path segment of /mcp/{token}
- MCP_API_KEY: Secret accepted in the x-api-key header or ?key= query parameter
- SERVER_NAME / SERVER_VERSION: Reported by the JSON-RPC initialize method
- MAX_ERROR_CHARS: Upper bound for error messages returned to callers (default: 800)
- BACKEND_TIMEOUT_SECONDS: Per-call timeout for Data API requests (default: 60)

Usage:
    from ga_mcp.core.config import get_settings

    settings = get_settings()
    property_name = settings.property_resource
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The instance is frozen: handlers receive it through the tool context and
    can never mutate process-wide configuration.

    Attributes:
        ga4_property_id: GA4 property id used for every report. One property
            per running instance.
        mcp_path_token: Secret accepted as a path segment.
        mcp_api_key: Secret accepted as a header or query parameter.
        server_name: Name reported to JSON-RPC clients.
        server_version: Version reported to JSON-RPC clients.
        max_error_chars: Length at which error messages are truncated.
        backend_timeout_seconds: Timeout passed to every Data API call.
        port: Port used when the app is started directly.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
        frozen=True,
    )

    # =========================================================================
    # Backend
    # =========================================================================

    ga4_property_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices('ga4_property_id', 'ga_property_id', 'ga4_property'),
    )

    backend_timeout_seconds: float = 60.0

    # =========================================================================
    # Authentication secrets (either one enables access)
    # =========================================================================

    mcp_path_token: Optional[str] = None

    mcp_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices('mcp_api_key', 'mcp_key'),
    )

    # =========================================================================
    # Server
    # =========================================================================

    server_name: str = 'ga-mcp'
    server_version: str = '2.1.0'
    max_error_chars: int = 800
    port: int = 8080

    @property
    def property_resource(self) -> str:
        """Resource name of the configured property, e.g. ``properties/123``."""
        property_id = (self.ga4_property_id or '').strip()
        if property_id.startswith('properties/'):
            return property_id
        return f'properties/{property_id}'

    @property
    def auth_configured(self) -> bool:
        return bool(self.mcp_path_token or self.mcp_api_key)

    def config_errors(self) -> List[str]:
        """
        List human-readable configuration problems.

        Used by the startup check (fatal when the property id is missing)
        and by the health endpoint, which surfaces the same list.

        Returns:
            List of problem descriptions; empty when fully configured.
        """
        errors: List[str] = []
        if not (self.ga4_property_id or '').strip():
            errors.append('Missing env: GA4_PROPERTY_ID')
        if not self.auth_configured:
            errors.append('Missing auth env: set MCP_PATH_TOKEN or MCP_API_KEY')
        return errors


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns:
        Settings: The cached settings instance.

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()
