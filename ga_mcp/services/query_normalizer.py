"""
Query Normalizer Service.

Turns a declarative ReportRequest into a Data API runReport body and pivots
the column-oriented response into field-named rows.

Response Shape (REST form):
    {
        "dimensionHeaders": [{"name": "sessionDefaultChannelGroup"}],
        "metricHeaders": [{"name": "sessions", "type": "TYPE_INTEGER"}],
        "rows": [
            {
                "dimensionValues": [{"value": "Organic Search"}],
                "metricValues": [{"value": "1234"}]
            }
        ]
    }

Pivot Rules:
    - Each row gets exactly one key per header, zipped positionally.
    - Dimension values are strings; missing or null values become "".
    - Metric values are coerced with to_number(); null, missing, non-numeric
      and non-finite values become 0.

The pivot is shared with the funnel flattener, whose two sub-tables use the
same header/value layout.

Usage:
    from ga_mcp.services.query_normalizer import run_report

    rows = await run_report(
        ReportRequest(
            dimensions=["sessionDefaultChannelGroup"],
            metrics=["sessions"],
            startDate="7daysAgo",
            endDate="yesterday",
            limit=50,
            orderBy=OrderBy(metric="sessions"),
        ),
        client,
    )
"""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Union

from ga_mcp.core.analytics_client import AnalyticsClient
from ga_mcp.core.exceptions import BackendQueryError
from ga_mcp.models.schemas import ReportRequest

logger = logging.getLogger(__name__)

Number = Union[int, float]
ReportRow = Dict[str, Any]


# =============================================================================
# Value Coercion
# =============================================================================


def to_number(value: Any) -> Number:
    """
    Coerce a backend metric value to a finite number.

    Args:
        value: Raw metric value, normally a numeric string such as "42" or
            "0.1234".

    Returns:
        The parsed number, as an int when integral. 0 for None, non-numeric
        input, NaN and infinities.

    Example:
        >>> to_number("42")
        42
        >>> to_number("0.25")
        0.25
        >>> to_number("abc"), to_number(None), to_number("NaN")
        (0, 0, 0)
    """
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    if number.is_integer():
        return int(number)
    return number


def yyyymmdd_to_iso(value: str) -> str:
    """
    Convert the Data API ``date`` dimension (YYYYMMDD) to ISO form.

    Anything that is not an 8-character string is returned unchanged.

    >>> yyyymmdd_to_iso("20250131")
    '2025-01-31'
    """
    if not value or len(value) != 8:
        return value
    return f'{value[0:4]}-{value[4:6]}-{value[6:8]}'


# =============================================================================
# Request Construction
# =============================================================================


def build_report_body(request: ReportRequest) -> Dict[str, Any]:
    """
    Build the REST-form runReport body for a ReportRequest.

    The property is not included; the client adds the configured one.
    Optional parts (ordering, filter) are omitted entirely when unset.
    """
    body: Dict[str, Any] = {
        'dateRanges': [{'startDate': request.startDate, 'endDate': request.endDate}],
        'dimensions': [{'name': name} for name in request.dimensions],
        'metrics': [{'name': name} for name in request.metrics],
        'limit': str(request.limit),
    }
    if request.orderBy is not None:
        body['orderBys'] = [
            {'metric': {'metricName': request.orderBy.metric}, 'desc': request.orderBy.desc}
        ]
    if request.dimensionFilter:
        body['dimensionFilter'] = request.dimensionFilter
    if request.keepEmptyRows:
        body['keepEmptyRows'] = True
    return body


# =============================================================================
# Response Pivot
# =============================================================================


def _header_names(headers: Optional[Sequence[Dict[str, Any]]]) -> List[str]:
    return [(header or {}).get('name') or '' for header in (headers or [])]


def _cell(values: Optional[Sequence[Dict[str, Any]]], index: int) -> Any:
    if not values or index >= len(values):
        return None
    return (values[index] or {}).get('value')


def pivot_rows(response: Optional[Dict[str, Any]]) -> List[ReportRow]:
    """
    Pivot a header/value table into a list of field-named rows.

    Args:
        response: Any REST-form table with ``dimensionHeaders``,
            ``metricHeaders`` and ``rows``. A runReport response or a funnel
            sub-report. None is treated as an empty table.

    Returns:
        One dict per backend row, in backend order, each with exactly
        ``len(dimensionHeaders) + len(metricHeaders)`` keys.

    Raises:
        BackendQueryError: If the payload is not a mapping.
    """
    if response is None:
        return []
    if not isinstance(response, dict):
        raise BackendQueryError(f'Malformed report payload: expected object, got {type(response).__name__}')

    dimension_names = _header_names(response.get('dimensionHeaders'))
    metric_names = _header_names(response.get('metricHeaders'))

    rows: List[ReportRow] = []
    for raw in response.get('rows') or []:
        raw = raw or {}
        dimension_values = raw.get('dimensionValues')
        metric_values = raw.get('metricValues')

        row: ReportRow = {}
        for i, name in enumerate(dimension_names):
            value = _cell(dimension_values, i)
            row[name] = '' if value is None else str(value)
        for i, name in enumerate(metric_names):
            row[name] = to_number(_cell(metric_values, i))
        rows.append(row)

    return rows


# =============================================================================
# Main Entry Point
# =============================================================================


async def run_report(request: ReportRequest, client: AnalyticsClient) -> List[ReportRow]:
    """
    Run one report and return its normalized rows.

    Raises:
        ConfigurationError: The property id is not configured. Raised by the
            client before the backend is contacted.
        BackendQueryError: The backend call failed. Not retried here.
    """
    body = build_report_body(request)
    response = await client.run_report(body)
    rows = pivot_rows(response)
    logger.info(
        f"runReport dims={request.dimensions} metrics={len(request.metrics)} "
        f"range={request.startDate}..{request.endDate} rows={len(rows)}"
    )
    return rows
