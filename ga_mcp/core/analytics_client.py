"""
Async Google Analytics Data API client module.

This module wraps the google-analytics-data async clients behind a small,
dict-in/dict-out surface so the services layer never touches protobuf
messages. It implements the same lazily-initialized singleton lifecycle the
rest of the app relies on:

- init_client(): Create the shared client at application startup
- get_client(): Get the client instance (initializes if needed)
- close_client(): Close the underlying gRPC channels at shutdown

Wire Format:
    Requests are plain dicts in the Data API REST (camelCase) form, e.g.
    ``{"dateRanges": [...], "dimensions": [{"name": "date"}], ...}``. They are
    parsed with the proto message's ``from_json`` so REST field names and
    protobuf JSON values ("300s" durations, int64 strings) are accepted as-is.
    Responses are converted back to camelCase dicts.

Endpoints Used:
    - v1beta runReport: Core reports
    - v1beta getMetadata: Dimension/metric catalog for the property
    - v1alpha runFunnelReport: Funnel reports

Authentication:
    Application Default Credentials. On Cloud Run this is the service account
    the revision runs as; locally GOOGLE_APPLICATION_CREDENTIALS.

Usage:
    client = await get_client()
    response = await client.run_report({
        "dateRanges": [{"startDate": "7daysAgo", "endDate": "yesterday"}],
        "metrics": [{"name": "sessions"}],
    })
"""

import json
import logging
from typing import Any, Dict, Optional

from google.analytics import data_v1alpha, data_v1beta
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.protobuf import json_format

from ga_mcp.core.config import Settings, get_settings
from ga_mcp.core.exceptions import BackendQueryError, ConfigurationError

logger = logging.getLogger(__name__)

# Errors raised by the Google client stack for failed calls: transport,
# quota, permission, invalid field names and missing credentials.
BACKEND_ERRORS = (
    google_exceptions.GoogleAPIError,
    auth_exceptions.GoogleAuthError,
)


def message_to_dict(message: Any) -> Dict[str, Any]:
    """Convert a proto-plus response into a camelCase dict."""
    return type(message).to_dict(
        message,
        preserving_proto_field_name=False,
        use_integers_for_enums=False,
    )


class AnalyticsClient:
    """
    Dict-level facade over the Data API for one configured property.

    The google clients are created on first use so that constructing the
    facade never requires credentials, and so the async gRPC channels are
    bound to the running event loop.

    Args:
        settings: Immutable application settings (property id, timeout).
        data_client: Optional pre-built v1beta async client.
        funnel_client: Optional pre-built v1alpha async client.
    """

    def __init__(
        self,
        settings: Settings,
        data_client: Optional[data_v1beta.BetaAnalyticsDataAsyncClient] = None,
        funnel_client: Optional[data_v1alpha.AlphaAnalyticsDataAsyncClient] = None,
    ) -> None:
        self._settings = settings
        self._data_client = data_client
        self._funnel_client = funnel_client

    @property
    def settings(self) -> Settings:
        return self._settings

    def property_name(self) -> str:
        """
        Resource name of the configured property.

        Raises:
            ConfigurationError: If GA4_PROPERTY_ID is not configured. Raised
                before any backend call is attempted.
        """
        if not (self._settings.ga4_property_id or '').strip():
            raise ConfigurationError('Missing env: GA4_PROPERTY_ID')
        return self._settings.property_resource

    def _beta(self) -> data_v1beta.BetaAnalyticsDataAsyncClient:
        if self._data_client is None:
            self._data_client = data_v1beta.BetaAnalyticsDataAsyncClient()
        return self._data_client

    def _alpha(self) -> data_v1alpha.AlphaAnalyticsDataAsyncClient:
        if self._funnel_client is None:
            self._funnel_client = data_v1alpha.AlphaAnalyticsDataAsyncClient()
        return self._funnel_client

    @staticmethod
    def _parse(message_cls: Any, payload: Dict[str, Any]) -> Any:
        try:
            return message_cls.from_json(json.dumps(payload))
        except json_format.ParseError as e:
            raise BackendQueryError(f'Invalid Data API request: {e}') from e

    async def run_report(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run a core report.

        Args:
            body: REST-form RunReportRequest without ``property``; the
                configured property is filled in here.

        Returns:
            REST-form RunReportResponse dict with ``dimensionHeaders``,
            ``metricHeaders`` and ``rows``.

        Raises:
            ConfigurationError: Property id missing.
            BackendQueryError: The call failed. Not retried.
        """
        payload = {**body, 'property': self.property_name()}
        request = self._parse(data_v1beta.RunReportRequest, payload)
        try:
            response = await self._beta().run_report(
                request=request,
                timeout=self._settings.backend_timeout_seconds,
            )
        except BACKEND_ERRORS as e:
            raise BackendQueryError(f'runReport failed: {e}') from e
        return message_to_dict(response)

    async def get_metadata(self) -> Dict[str, Any]:
        """Fetch the dimension/metric catalog, including custom definitions."""
        name = f'{self.property_name()}/metadata'
        try:
            response = await self._beta().get_metadata(
                request=data_v1beta.GetMetadataRequest(name=name),
                timeout=self._settings.backend_timeout_seconds,
            )
        except BACKEND_ERRORS as e:
            raise BackendQueryError(f'getMetadata failed: {e}') from e
        return message_to_dict(response)

    async def run_funnel_report(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run a funnel report on the v1alpha endpoint.

        Returns:
            REST-form RunFunnelReportResponse dict with ``funnelTable`` and
            ``funnelVisualization`` sub-reports.
        """
        payload = {**body, 'property': self.property_name()}
        request = self._parse(data_v1alpha.RunFunnelReportRequest, payload)
        try:
            response = await self._alpha().run_funnel_report(
                request=request,
                timeout=self._settings.backend_timeout_seconds,
            )
        except BACKEND_ERRORS as e:
            raise BackendQueryError(f'runFunnelReport failed: {e}') from e
        return message_to_dict(response)

    async def close(self) -> None:
        for client in (self._data_client, self._funnel_client):
            if client is not None:
                await client.transport.close()
        self._data_client = None
        self._funnel_client = None


# =============================================================================
# Client Lifecycle
# =============================================================================

_client: Optional[AnalyticsClient] = None


async def init_client(settings: Optional[Settings] = None) -> AnalyticsClient:
    """
    Initialize the shared client. Idempotent.

    Args:
        settings: Settings to bind; defaults to get_settings().
    """
    global _client
    if _client is None:
        _client = AnalyticsClient(settings or get_settings())
        logger.info(f"Analytics client bound to {_client.settings.property_resource}")
    return _client


async def get_client() -> AnalyticsClient:
    """Get the shared client, initializing it if needed."""
    if _client is None:
        await init_client()
    assert _client is not None, "Client should be initialized after init_client()"
    return _client


async def close_client() -> None:
    """Close the shared client's channels. Safe to call when not initialized."""
    global _client
    if _client is not None:
        await _client.close()
        _client = None
