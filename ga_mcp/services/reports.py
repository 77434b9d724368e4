"""
Report Tool Catalog.

Every tool the server exposes is defined here and assembled into the
read-only ToolRegistry by build_registry().

Summary Reports (data-driven):
    The single-dimension summaries share one "build request -> run -> shape"
    template. Each is a ReportDescriptor naming its grouping dimension, the
    output label for that dimension, its metric set and its defaults; adding
    a summary means adding a descriptor, not a handler.

    - ga_channel_summary_plus: sessionDefaultChannelGroup
    - ga_landing_pages_top: landingPagePlusQueryString
    - ga_source_medium_summary: sessionSourceMedium
    - ga_device_summary: deviceCategory

Other Reports:
    - ga_kpi_overview: Property-level KPIs, one row
    - ga_daily_trend: sessions/activeUsers per day, ISO dates, ascending
    - ga_run_report: Free-form report over any dimensions and metrics
    - ga_metadata_search: Dimension/metric catalog search
    - ga_compare_periods: Period-over-period comparison per group
    - ga_detect_anomalies: Trailing-window spike/drop detection per day
    - ga_funnel_report: Multi-step funnel with optional breakdown

Every handler returns a plain dict; the gateway serializes it.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel

from ga_mcp.core.exceptions import NotResolvableError, ValidationError
from ga_mcp.models.schemas import (
    BASE_KEY_EVENT_METRICS,
    ComparePeriodsArgs,
    DailyTrendArgs,
    DetectAnomaliesArgs,
    DimensionSummaryArgs,
    FunnelReportArgs,
    KpiOverviewArgs,
    LandingPagesArgs,
    MetadataSearchArgs,
    OrderBy,
    ReportRequest,
    RunReportArgs,
    TimeSeriesPoint,
)
from ga_mcp.services.anomaly import detect_anomalies
from ga_mcp.services.comparison import fetch_both_periods, merge_periods
from ga_mcp.services.funnel import compile_funnel, flatten_funnel_response
from ga_mcp.services.metadata import metadata_search_tool
from ga_mcp.services.period_resolver import NOT_RESOLVABLE_HINT, resolve_previous_period
from ga_mcp.services.query_normalizer import ReportRow, run_report, yyyymmdd_to_iso
from ga_mcp.services.registry import ToolContext, ToolDefinition, ToolRegistry

logger = logging.getLogger(__name__)

NOT_SET = '(not set)'

# Upper bound on rows for day-grained reports; a year and a half of days.
DAILY_ROW_LIMIT = 1000

KPI_METRICS: List[str] = [
    'sessions',
    'activeUsers',
    'newUsers',
    'screenPageViews',
    'keyEvents',
    'sessionKeyEventRate',
    'userKeyEventRate',
]

TREND_METRICS: List[str] = ['sessions', 'activeUsers']

_DAYS_AGO = re.compile(r'^(\d+)daysAgo$')


# =============================================================================
# Helper Functions
# =============================================================================


def key_event_metrics(metrics: List[str], key_event_name: Optional[str]) -> List[str]:
    """
    Append the key-event-scoped session rate when a key event is named.

    >>> key_event_metrics(['sessions'], 'purchase')
    ['sessions', 'sessionKeyEventRate:purchase']
    """
    result = list(metrics)
    if key_event_name:
        scoped = f'sessionKeyEventRate:{key_event_name}'
        if scoped not in result:
            result.append(scoped)
    return result


def _is_rate(metric: str) -> bool:
    return 'Rate' in metric


def sum_totals(rows: List[ReportRow], metrics: List[str]) -> Dict[str, Any]:
    """Column totals for volume metrics; rates are not additive and are skipped."""
    return {
        metric: sum(row.get(metric, 0) for row in rows)
        for metric in metrics
        if not _is_rate(metric)
    }


def lookback_start(end_date: str, days: int) -> str:
    """
    Start date of a ``days``-long window ending at ``end_date`` (inclusive).

    Relative end dates stay relative; ISO end dates produce an ISO start.

    >>> lookback_start('yesterday', 30)
    '30daysAgo'
    >>> lookback_start('2025-01-31', 31)
    '2025-01-01'
    """
    if end_date == 'today':
        return f'{days - 1}daysAgo'
    if end_date == 'yesterday':
        return f'{days}daysAgo'
    match = _DAYS_AGO.match(end_date)
    if match:
        return f'{int(match.group(1)) + days - 1}daysAgo'
    end = date.fromisoformat(end_date)
    return (end - timedelta(days=days - 1)).isoformat()


def _base_result(report: str, ctx: ToolContext, start_date: str, end_date: str) -> Dict[str, Any]:
    return {
        'report': report,
        'propertyId': ctx.settings.ga4_property_id,
        'dateRange': {'startDate': start_date, 'endDate': end_date},
    }


# =============================================================================
# Data-Driven Summary Reports
# =============================================================================


@dataclass(frozen=True)
class ReportDescriptor:
    """
    Declarative definition of a single-dimension summary report.

    Attributes:
        name: Tool name.
        description: Tool description.
        report: Value of the ``report`` key in the result.
        dimension: Grouping dimension API name.
        label: Output field name for the dimension value.
        args_model: Argument model; must provide startDate, endDate, limit
            and keyEventName.
        metrics: Metric set before key-event scoping.
        order_by: Metric to order by, descending.
        with_totals: Whether to add column totals.
    """
    name: str
    description: str
    report: str
    dimension: str
    label: str
    args_model: Type[BaseModel] = DimensionSummaryArgs
    metrics: tuple = tuple(BASE_KEY_EVENT_METRICS)
    order_by: Optional[str] = 'sessions'
    with_totals: bool = True

    def build_request(self, args: Any) -> ReportRequest:
        return ReportRequest(
            dimensions=[self.dimension],
            metrics=key_event_metrics(list(self.metrics), args.keyEventName),
            startDate=args.startDate,
            endDate=args.endDate,
            limit=args.limit,
            orderBy=OrderBy(metric=self.order_by, desc=True) if self.order_by else None,
        )

    def shape_row(self, row: ReportRow, metrics: List[str]) -> Dict[str, Any]:
        shaped: Dict[str, Any] = {self.label: row.get(self.dimension) or NOT_SET}
        for metric in metrics:
            shaped[metric] = row.get(metric, 0)
        return shaped


SUMMARY_REPORTS: List[ReportDescriptor] = [
    ReportDescriptor(
        name='ga_channel_summary_plus',
        description='Sessions, users and key events by default channel group (Organic, Paid, Social, Referral...)',
        report='channel_summary_plus',
        dimension='sessionDefaultChannelGroup',
        label='channel',
    ),
    ReportDescriptor(
        name='ga_landing_pages_top',
        description='Top landing pages (with query string) by sessions',
        report='landing_pages_top',
        dimension='landingPagePlusQueryString',
        label='landingPage',
        args_model=LandingPagesArgs,
        with_totals=False,
    ),
    ReportDescriptor(
        name='ga_source_medium_summary',
        description='Sessions, users and key events by session source / medium',
        report='source_medium_summary',
        dimension='sessionSourceMedium',
        label='sourceMedium',
    ),
    ReportDescriptor(
        name='ga_device_summary',
        description='Sessions, users and key events by device category',
        report='device_summary',
        dimension='deviceCategory',
        label='device',
    ),
]


async def run_summary(descriptor: ReportDescriptor, args: Any, ctx: ToolContext) -> Dict[str, Any]:
    """Shared template: build request, run it, shape rows, add totals."""
    request = descriptor.build_request(args)
    rows = await run_report(request, ctx.client)
    shaped = [descriptor.shape_row(row, request.metrics) for row in rows]

    result = _base_result(descriptor.report, ctx, args.startDate, args.endDate)
    result['keyEventName'] = args.keyEventName or None
    if descriptor.with_totals:
        result['totals'] = sum_totals(rows, request.metrics)
    result['rows'] = shaped
    return result


def _summary_handler(descriptor: ReportDescriptor) -> Callable:
    async def handler(args: Any, ctx: ToolContext) -> Dict[str, Any]:
        return await run_summary(descriptor, args, ctx)
    handler.__name__ = f'{descriptor.report}_tool'
    return handler


# =============================================================================
# Other Core Reports
# =============================================================================


async def kpi_overview_tool(args: KpiOverviewArgs, ctx: ToolContext) -> Dict[str, Any]:
    metrics = list(KPI_METRICS)
    if args.keyEventName:
        metrics.append(f'sessionKeyEventRate:{args.keyEventName}')
        metrics.append(f'userKeyEventRate:{args.keyEventName}')

    rows = await run_report(
        ReportRequest(metrics=metrics, startDate=args.startDate, endDate=args.endDate, limit=1),
        ctx.client,
    )

    result = _base_result('kpi_overview', ctx, args.startDate, args.endDate)
    result['keyEventName'] = args.keyEventName or None
    result['kpis'] = rows[0] if rows else {}
    return result


async def fetch_daily_rows(
    ctx: ToolContext,
    metrics: List[str],
    start_date: str,
    end_date: str,
    dimension_filter: Optional[Dict[str, Any]] = None,
) -> List[ReportRow]:
    """Day-grained rows with ISO dates, ascending by date."""
    rows = await run_report(
        ReportRequest(
            dimensions=['date'],
            metrics=metrics,
            startDate=start_date,
            endDate=end_date,
            limit=DAILY_ROW_LIMIT,
            dimensionFilter=dimension_filter,
            keepEmptyRows=True,
        ),
        ctx.client,
    )
    for row in rows:
        row['date'] = yyyymmdd_to_iso(row.get('date', ''))
    return sorted(rows, key=lambda r: r['date'])


async def daily_trend_tool(args: DailyTrendArgs, ctx: ToolContext) -> Dict[str, Any]:
    start_date = args.startDate or f'{args.days}daysAgo'
    rows = await fetch_daily_rows(ctx, TREND_METRICS, start_date, args.endDate)

    result = _base_result('daily_trend', ctx, start_date, args.endDate)
    result['rows'] = [
        {'date': row['date'], **{metric: row.get(metric, 0) for metric in TREND_METRICS}}
        for row in rows
    ]
    return result


async def run_report_tool(args: RunReportArgs, ctx: ToolContext) -> Dict[str, Any]:
    request = ReportRequest(
        dimensions=args.dimensions,
        metrics=args.metrics,
        startDate=args.startDate,
        endDate=args.endDate,
        limit=args.limit,
        orderBy=OrderBy(metric=args.orderByMetric, desc=args.desc) if args.orderByMetric else None,
        dimensionFilter=args.dimensionFilter,
    )
    rows = await run_report(request, ctx.client)

    result = _base_result('custom_report', ctx, args.startDate, args.endDate)
    result['dimensions'] = args.dimensions
    result['metrics'] = args.metrics
    result['rowCount'] = len(rows)
    result['rows'] = rows
    return result


# =============================================================================
# Derived Analytics Reports
# =============================================================================


async def compare_periods_tool(args: ComparePeriodsArgs, ctx: ToolContext) -> Dict[str, Any]:
    """
    Period-over-period comparison.

    Raises:
        NotResolvableError: When the comparison period cannot be derived from
            the given date expressions. Nothing is queried in that case.
    """
    previous_range = resolve_previous_period(args.startDate, args.endDate, args.compareMode)
    if previous_range is None:
        raise NotResolvableError(
            f"{NOT_RESOLVABLE_HINT} Got startDate={args.startDate!r}, "
            f"endDate={args.endDate!r}, compareMode={args.compareMode.value!r}.",
            details={'startDate': args.startDate, 'endDate': args.endDate},
        )

    metrics = key_event_metrics(args.metrics, args.keyEventName)
    primary_metric = metrics[0]
    request = ReportRequest(
        dimensions=[args.dimension] if args.dimension else [],
        metrics=metrics,
        startDate=args.startDate,
        endDate=args.endDate,
        limit=args.limit,
        orderBy=OrderBy(metric=primary_metric, desc=True),
    )

    current_rows, previous_rows = await fetch_both_periods(request, previous_range, ctx.client)
    merged = merge_periods(current_rows, previous_rows, args.dimension, sort_metric=primary_metric)

    result = _base_result('compare_periods', ctx, args.startDate, args.endDate)
    result['comparisonDateRange'] = previous_range.model_dump()
    result['compareMode'] = args.compareMode.value
    result['dimension'] = args.dimension
    result['keyEventName'] = args.keyEventName or None
    result['rows'] = [row.model_dump() for row in merged]
    return result


async def detect_anomalies_tool(args: DetectAnomaliesArgs, ctx: ToolContext) -> Dict[str, Any]:
    try:
        start_date = lookback_start(args.endDate, args.days)
    except ValueError as e:
        raise ValidationError(
            f"Invalid endDate {args.endDate!r}: {e}",
            errors=[{'loc': ['endDate'], 'msg': str(e)}],
        ) from e
    rows = await fetch_daily_rows(ctx, [args.metric], start_date, args.endDate, args.dimensionFilter)
    series = [TimeSeriesPoint(date=row['date'], value=row.get(args.metric, 0)) for row in rows]

    anomalies = detect_anomalies(series, args.metric, args.windowDays, args.zThreshold)
    logger.info(
        f"Anomaly scan metric={args.metric} points={len(series)} "
        f"window={args.windowDays} z>={args.zThreshold} flagged={len(anomalies)}"
    )

    result = _base_result('anomalies', ctx, start_date, args.endDate)
    result['metric'] = args.metric
    result['windowDays'] = args.windowDays
    result['zThreshold'] = args.zThreshold
    result['seriesLength'] = len(series)
    result['pointsEvaluated'] = max(0, len(series) - args.windowDays)
    result['anomalies'] = [a.model_dump(mode='json') for a in anomalies]
    return result


async def funnel_report_tool(args: FunnelReportArgs, ctx: ToolContext) -> Dict[str, Any]:
    body = compile_funnel(
        args.steps,
        args.startDate,
        args.endDate,
        is_open_funnel=args.isOpenFunnel,
        breakdown_dimension=args.breakdownDimension,
        breakdown_limit=args.breakdownLimit,
    )
    response = await ctx.client.run_funnel_report(body)
    tables = flatten_funnel_response(response)

    result = _base_result('funnel', ctx, args.startDate, args.endDate)
    result['isOpenFunnel'] = args.isOpenFunnel
    result['steps'] = [step.name for step in args.steps]
    result['breakdownDimension'] = args.breakdownDimension
    result.update(tables)
    return result


# =============================================================================
# Registry Assembly
# =============================================================================


def tool_definitions() -> List[ToolDefinition]:
    """All tools, in the order ``tools/list`` reports them."""
    tools: List[ToolDefinition] = [
        ToolDefinition(
            name='ga_metadata_search',
            description='Search the dimensions and metrics available to the property',
            args_model=MetadataSearchArgs,
            handler=metadata_search_tool,
        ),
        ToolDefinition(
            name='ga_kpi_overview',
            description='KPI summary: sessions, users, page views, key events and key event rates',
            args_model=KpiOverviewArgs,
            handler=kpi_overview_tool,
        ),
    ]
    tools.extend(
        ToolDefinition(
            name=descriptor.name,
            description=descriptor.description,
            args_model=descriptor.args_model,
            handler=_summary_handler(descriptor),
        )
        for descriptor in SUMMARY_REPORTS
    )
    tools.extend([
        ToolDefinition(
            name='ga_daily_trend',
            description='Daily sessions and active users for the last N days',
            args_model=DailyTrendArgs,
            handler=daily_trend_tool,
        ),
        ToolDefinition(
            name='ga_run_report',
            description='Run a custom report over any dimensions and metrics',
            args_model=RunReportArgs,
            handler=run_report_tool,
        ),
        ToolDefinition(
            name='ga_compare_periods',
            description='Compare a period with the previous period or the previous year, per group',
            args_model=ComparePeriodsArgs,
            handler=compare_periods_tool,
        ),
        ToolDefinition(
            name='ga_detect_anomalies',
            description='Flag daily spikes and drops of a metric against a trailing baseline',
            args_model=DetectAnomaliesArgs,
            handler=detect_anomalies_tool,
        ),
        ToolDefinition(
            name='ga_funnel_report',
            description='Multi-step funnel completion and abandonment (2-10 steps)',
            args_model=FunnelReportArgs,
            handler=funnel_report_tool,
        ),
    ])
    return tools


def build_registry() -> ToolRegistry:
    """Assemble the process-wide registry. Called once at startup."""
    return ToolRegistry(tool_definitions())
