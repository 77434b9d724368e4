"""
Comparison Merger Service.

Joins current-period and comparison-period rows on a grouping key and
produces per-group current/previous/delta/pctChange records.

Rules:
    - A current group with no previous counterpart is merged against an
      all-zero previous record; it is never dropped.
    - delta is computed for numeric fields only.
    - pctChange is None whenever the previous value is 0, so division by
      zero is never attempted.
    - Output is sorted descending by the current value of the primary volume
      metric. The sort is stable: ties keep input order.

The two backend calls of a comparison have no ordering dependency and are
issued concurrently. The comparison period is queried without the current
period's top-N limit, so a group that ranked lower last period still finds
its counterpart.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ga_mcp.core.analytics_client import AnalyticsClient
from ga_mcp.models.schemas import ComparisonRow, DateRange, ReportRequest
from ga_mcp.services.query_normalizer import ReportRow, run_report

logger = logging.getLogger(__name__)

# Key used for the single group of a comparison without a grouping dimension.
TOTAL_KEY = '(total)'

# Row cap for the comparison period; the Data API's own default page size.
PREVIOUS_PERIOD_ROW_LIMIT = 10000


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def safe_pct_change(current: float, previous: float) -> Optional[float]:
    """
    Relative change from previous to current.

    Returns:
        (current - previous) / previous, or None when previous is 0.
    """
    if not previous:
        return None
    return (current - previous) / previous


def _group_key(row: ReportRow, key_field: Optional[str]) -> str:
    if key_field is None:
        return TOTAL_KEY
    return str(row.get(key_field, ''))


def merge_periods(
    current: Sequence[ReportRow],
    previous: Sequence[ReportRow],
    key_field: Optional[str],
    sort_metric: Optional[str] = None,
) -> List[ComparisonRow]:
    """
    Merge two normalized result sets into comparison rows.

    Args:
        current: Rows of the current period.
        previous: Rows of the comparison period.
        key_field: Dimension to join on. None joins the (single) total rows.
        sort_metric: Primary volume metric to order by. Defaults to the first
            numeric field of the first current row.

    Returns:
        One ComparisonRow per current group.

    Example:
        >>> rows = merge_periods(
        ...     [{"channel": "Direct", "sessions": 120}],
        ...     [{"channel": "Direct", "sessions": 100}],
        ...     "channel",
        ... )
        >>> rows[0].delta["sessions"], rows[0].pctChange["sessions"]
        (20, 0.2)
    """
    previous_by_key: Dict[str, ReportRow] = {}
    for row in previous:
        previous_by_key.setdefault(_group_key(row, key_field), row)

    merged: List[ComparisonRow] = []
    for row in current:
        key = _group_key(row, key_field)
        metric_fields = [name for name, value in row.items() if name != key_field and _is_number(value)]

        prior = previous_by_key.get(key)
        current_values = {name: row[name] for name in metric_fields}
        previous_values: Dict[str, Any] = {}
        delta: Dict[str, Union[int, float]] = {}
        pct_change: Dict[str, Optional[float]] = {}

        for name in metric_fields:
            prior_value = prior.get(name) if prior is not None else 0
            if not _is_number(prior_value):
                prior_value = 0
            previous_values[name] = prior_value
            delta[name] = current_values[name] - prior_value
            pct_change[name] = safe_pct_change(current_values[name], prior_value)

        merged.append(ComparisonRow(
            key=key,
            current=current_values,
            previous=previous_values,
            delta=delta,
            pctChange=pct_change,
        ))

    if sort_metric is None and merged:
        sort_metric = next(iter(merged[0].current), None)
    if sort_metric is not None:
        merged.sort(key=lambda r: r.current.get(sort_metric, 0), reverse=True)

    return merged


async def fetch_both_periods(
    request: ReportRequest,
    previous_range: DateRange,
    client: AnalyticsClient,
) -> Tuple[List[ReportRow], List[ReportRow]]:
    """
    Run the same report over the current and the comparison period.

    Both calls are issued concurrently; the merge needs both to complete and
    a failure in either propagates. The previous period is fetched up to
    PREVIOUS_PERIOD_ROW_LIMIT rows rather than the current top-N.
    """
    previous_request = request.model_copy(update={
        'startDate': previous_range.startDate,
        'endDate': previous_range.endDate,
        'limit': max(request.limit, PREVIOUS_PERIOD_ROW_LIMIT),
    })
    current_rows, previous_rows = await asyncio.gather(
        run_report(request, client),
        run_report(previous_request, client),
    )
    logger.info(
        f"Comparison fetched current={len(current_rows)} previous={len(previous_rows)} rows"
    )
    return current_rows, previous_rows
