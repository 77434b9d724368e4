"""
Package initialization file for ga_mcp models.

Re-exports the enumerations and pydantic schemas so other modules can import
them from ``ga_mcp.models`` directly.

Usage:
    from ga_mcp.models import ReportRequest, CompareMode, FunnelStepSpec
"""

# =============================================================================
# Enums
# =============================================================================

from ga_mcp.models.enums import (
    AnomalyDirection,
    CallShape,
    CompareMode,
    ErrorCode,
    InvocationState,
    MetadataKind,
)

# =============================================================================
# Schemas
# =============================================================================

from ga_mcp.models.schemas import (
    BASE_KEY_EVENT_METRICS,
    MAX_FUNNEL_STEPS,
    MIN_FUNNEL_STEPS,
    # Report primitives
    DateRange,
    OrderBy,
    ReportRequest,
    # Derived analytics
    TimeSeriesPoint,
    ComparisonRow,
    AnomalyRecord,
    FunnelStepSpec,
    # Tool arguments
    DateRangeArgs,
    KpiOverviewArgs,
    DimensionSummaryArgs,
    LandingPagesArgs,
    DailyTrendArgs,
    RunReportArgs,
    MetadataSearchArgs,
    ComparePeriodsArgs,
    DetectAnomaliesArgs,
    FunnelReportArgs,
    # Envelopes
    FlatToolCall,
    ToolCallParams,
    JsonRpcRequest,
    ErrorBody,
)

__all__ = [
    'AnomalyDirection',
    'CallShape',
    'CompareMode',
    'ErrorCode',
    'InvocationState',
    'MetadataKind',
    'BASE_KEY_EVENT_METRICS',
    'MAX_FUNNEL_STEPS',
    'MIN_FUNNEL_STEPS',
    'DateRange',
    'OrderBy',
    'ReportRequest',
    'TimeSeriesPoint',
    'ComparisonRow',
    'AnomalyRecord',
    'FunnelStepSpec',
    'DateRangeArgs',
    'KpiOverviewArgs',
    'DimensionSummaryArgs',
    'LandingPagesArgs',
    'DailyTrendArgs',
    'RunReportArgs',
    'MetadataSearchArgs',
    'ComparePeriodsArgs',
    'DetectAnomaliesArgs',
    'FunnelReportArgs',
    'FlatToolCall',
    'ToolCallParams',
    'JsonRpcRequest',
    'ErrorBody',
]
