"""
Pytest Configuration and Shared Fixtures for the GA4 Reporting Tool Server Tests.

This module provides fixtures for all tests, supporting:
- Async test execution with pytest-asyncio (``@pytest.mark.asyncio``)
- Frozen Settings instances that never read the process environment or .env
- A mocked AnalyticsClient returning REST-form Data API payloads
- Builders for runReport, funnel and metadata responses
- Daily series fixtures for anomaly detection tests

The backend is never contacted: every test stubs the dict-level client, so
the services under test see exactly the payload shapes the real client
returns.
"""

from typing import Any, Callable, Dict, List, Sequence
from unittest.mock import AsyncMock

import pytest

from ga_mcp.core.analytics_client import AnalyticsClient
from ga_mcp.core.config import Settings
from ga_mcp.models.schemas import TimeSeriesPoint
from ga_mcp.services.gateway import Gateway
from ga_mcp.services.registry import ToolContext
from ga_mcp.services.reports import build_registry


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Configure custom pytest markers.

    Custom markers defined:
    - contract: Wire-format tests for the two call shapes
    """
    config.addinivalue_line(
        "markers", "contract: marks tests asserting the external wire format"
    )


# ============================================================
# RESPONSE BUILDERS
# ============================================================

def build_report_response(
    dimensions: Sequence[str],
    metrics: Sequence[str],
    rows: Sequence[Sequence[Any]],
) -> Dict[str, Any]:
    """
    Build a REST-form runReport response.

    Each entry of ``rows`` lists dimension values followed by metric values,
    in header order. Metric values are stringified like the real API does.
    """
    body_rows = []
    for row in rows:
        dims = row[:len(dimensions)]
        mets = row[len(dimensions):]
        body_rows.append({
            'dimensionValues': [{'value': value} for value in dims],
            'metricValues': [{'value': str(value)} for value in mets],
        })
    return {
        'dimensionHeaders': [{'name': name} for name in dimensions],
        'metricHeaders': [{'name': name, 'type': 'TYPE_INTEGER'} for name in metrics],
        'rows': body_rows,
        'rowCount': len(body_rows),
    }


@pytest.fixture
def report_response() -> Callable[..., Dict[str, Any]]:
    """
    Factory fixture for runReport payloads.

    Usage:
        def test_pivot(report_response):
            payload = report_response(['country'], ['sessions'], [['JP', 10]])
    """
    return build_report_response


# ============================================================
# SETTINGS FIXTURES
# ============================================================

def make_settings(**overrides: Any) -> Settings:
    """Settings that ignore the process environment and .env file."""
    values: Dict[str, Any] = {
        'ga4_property_id': '123456789',
        'mcp_api_key': 'test-api-key',
        'mcp_path_token': 'test-path-token',
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def mock_settings() -> Settings:
    """Fully configured settings: property id plus both secrets."""
    return make_settings()


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """Factory for settings with individual fields overridden."""
    return make_settings


# ============================================================
# CLIENT / CONTEXT FIXTURES
# ============================================================

@pytest.fixture
def mock_client(mock_settings: Settings) -> AsyncMock:
    """
    AnalyticsClient double whose coroutine methods return REST-form dicts.

    Defaults to empty responses; tests set ``return_value`` or
    ``side_effect`` on ``run_report``, ``get_metadata`` and
    ``run_funnel_report`` as needed.
    """
    client = AsyncMock(spec=AnalyticsClient)
    client.settings = mock_settings
    client.run_report.return_value = {'dimensionHeaders': [], 'metricHeaders': [], 'rows': []}
    client.get_metadata.return_value = {'dimensions': [], 'metrics': []}
    client.run_funnel_report.return_value = {}
    return client


@pytest.fixture
def tool_context(mock_settings: Settings, mock_client: AsyncMock) -> ToolContext:
    return ToolContext(settings=mock_settings, client=mock_client)


@pytest.fixture
def gateway(mock_settings: Settings, mock_client: AsyncMock) -> Gateway:
    """Gateway over the real tool registry and the mocked client."""
    return Gateway(build_registry(), mock_settings, mock_client)


# ============================================================
# SAMPLE PAYLOADS
# ============================================================

@pytest.fixture
def channel_response() -> Dict[str, Any]:
    """Channel summary rows, including one with an empty channel label."""
    return build_report_response(
        ['sessionDefaultChannelGroup'],
        ['sessions', 'activeUsers', 'keyEvents', 'sessionKeyEventRate'],
        [
            ['Organic Search', 1200, 900, 40, 0.0333],
            ['Direct', 800, 700, 20, 0.025],
            ['', 5, 5, 0, 0],
        ],
    )


@pytest.fixture
def metadata_response() -> Dict[str, Any]:
    return {
        'name': 'properties/123456789/metadata',
        'dimensions': [
            {'apiName': 'country', 'uiName': 'Country', 'description': 'The country of the user.'},
            {'apiName': 'deviceCategory', 'uiName': 'Device category', 'description': 'Desktop, tablet or mobile.'},
            {'apiName': 'sessionSourceMedium', 'uiName': 'Session source / medium', 'description': 'Source and medium.'},
        ],
        'metrics': [
            {'apiName': 'sessions', 'uiName': 'Sessions', 'description': 'The number of sessions.'},
            {'apiName': 'activeUsers', 'uiName': 'Active users', 'description': 'Distinct users who visited.'},
            {'apiName': 'keyEvents', 'uiName': 'Key events', 'description': 'Count of key events.'},
        ],
    }


@pytest.fixture
def funnel_response() -> Dict[str, Any]:
    """Two-step funnel with a breakdown-free visualization sub-report."""
    return {
        'funnelTable': {
            'dimensionHeaders': [{'name': 'funnelStepName'}],
            'metricHeaders': [
                {'name': 'activeUsers', 'type': 'TYPE_INTEGER'},
                {'name': 'funnelStepCompletionRate', 'type': 'TYPE_FLOAT'},
            ],
            'rows': [
                {'dimensionValues': [{'value': '1. View'}], 'metricValues': [{'value': '1000'}, {'value': '0.4'}]},
                {'dimensionValues': [{'value': '2. Purchase'}], 'metricValues': [{'value': '400'}, {'value': '0'}]},
            ],
        },
        'funnelVisualization': {
            'dimensionHeaders': [{'name': 'funnelStepName'}, {'name': 'date'}],
            'metricHeaders': [{'name': 'activeUsers', 'type': 'TYPE_INTEGER'}],
            'rows': [
                {'dimensionValues': [{'value': '1. View'}, {'value': '20250101'}], 'metricValues': [{'value': '600'}]},
            ],
        },
    }


# ============================================================
# TIME SERIES FIXTURES
# ============================================================

def make_series(values: Sequence[float], start_day: int = 1, month: str = '2025-01') -> List[TimeSeriesPoint]:
    """Daily points with consecutive ISO dates."""
    return [
        TimeSeriesPoint(date=f'{month}-{start_day + i:02d}', value=value)
        for i, value in enumerate(values)
    ]


@pytest.fixture
def series_factory() -> Callable[..., List[TimeSeriesPoint]]:
    return make_series


@pytest.fixture
def flat_series() -> List[TimeSeriesPoint]:
    """Fourteen identical days; never anomalous."""
    return make_series([50] * 14)


@pytest.fixture
def spike_series() -> List[TimeSeriesPoint]:
    """Seven flat days followed by a tenfold spike."""
    return make_series([10] * 7 + [100])


@pytest.fixture
def noisy_series() -> List[TimeSeriesPoint]:
    """Baseline alternating around 100 with one drop on the last day."""
    return make_series([98, 102, 99, 101, 100, 97, 103, 100, 40])
