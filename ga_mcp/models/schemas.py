"""
Pydantic request/response models for the GA4 reporting tool server.

This module provides type-safe validation for everything that crosses a
boundary:

- Report primitives: DateRange, OrderBy, ReportRequest
- Derived analytics records: TimeSeriesPoint, ComparisonRow, AnomalyRecord
- Funnel step descriptors: FunnelStepSpec
- Tool argument models: one per registered tool; their JSON schema is the
  tool's declared ``inputSchema``. Scalar fields are strict, so "50" is not
  an integer and 1 is not a boolean
- Call envelopes: FlatToolCall, JsonRpcRequest, ToolCallParams

Field names are camelCase to match the wire format callers already use.
All models use Pydantic v2 syntax.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationInfo,
    field_validator,
)

from ga_mcp.models.enums import AnomalyDirection, CompareMode, MetadataKind


# Relative expressions understood by the Data API, or an ISO calendar date.
DATE_EXPRESSION_PATTERN = r'^(today|yesterday|\d+daysAgo|\d{4}-\d{2}-\d{2})$'

DateExpression = Annotated[
    StrictStr,
    Field(
        pattern=DATE_EXPRESSION_PATTERN,
        description="Relative date (today, yesterday, NdaysAgo) or YYYY-MM-DD",
    ),
]

# Protobuf JSON duration, e.g. "300s" or "1.5s".
DURATION_PATTERN = r'^\d+(\.\d+)?s$'

# Metrics shared by the key-event oriented summaries.
BASE_KEY_EVENT_METRICS: List[str] = [
    'sessions',
    'activeUsers',
    'keyEvents',
    'sessionKeyEventRate',
]

MIN_FUNNEL_STEPS = 2
MAX_FUNNEL_STEPS = 10


# =============================================================================
# Report Primitives
# =============================================================================


class DateRange(BaseModel):
    """Inclusive date range in Data API date-expression form."""
    model_config = ConfigDict(frozen=True)

    startDate: str
    endDate: str


class OrderBy(BaseModel):
    """Single-metric ordering passed straight through to the backend."""
    metric: str = Field(..., min_length=1)
    desc: bool = True


class ReportRequest(BaseModel):
    """
    Declarative shape of one Data API report.

    The response header vector is ``dimensions`` followed by ``metrics``, in
    the order given here.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "dimensions": ["sessionDefaultChannelGroup"],
                "metrics": ["sessions", "activeUsers"],
                "startDate": "7daysAgo",
                "endDate": "yesterday",
                "limit": 50,
                "orderBy": {"metric": "sessions", "desc": True},
            }
        }
    )

    dimensions: List[str] = Field(default_factory=list)
    metrics: List[str] = Field(default_factory=list)
    startDate: str
    endDate: str
    limit: int = Field(default=100, gt=0)
    orderBy: Optional[OrderBy] = None
    dimensionFilter: Optional[Dict[str, Any]] = None
    keepEmptyRows: bool = False


# =============================================================================
# Derived Analytics Records
# =============================================================================


class TimeSeriesPoint(BaseModel):
    """One day of a metric series. Series are ordered ascending by date."""
    date: str
    value: float


class ComparisonRow(BaseModel):
    """
    Current vs previous period values for one group.

    ``pctChange[field]`` is None whenever the previous value is zero or
    missing.
    """
    key: str
    current: Dict[str, Any]
    previous: Dict[str, Any]
    delta: Dict[str, Union[int, float]]
    pctChange: Dict[str, Optional[float]]


class AnomalyRecord(BaseModel):
    """A point whose deviation from its trailing baseline crossed the threshold."""
    date: str
    metric: str
    value: float
    baselineMean: float
    baselineStd: float
    zScore: Optional[float]
    direction: AnomalyDirection


class FunnelStepSpec(BaseModel):
    """
    One funnel stage.

    ``withinDurationFromPriorStep`` uses the protobuf JSON duration form
    ("300s"). Optional fields are independent of each other.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: StrictStr = Field(..., min_length=1)
    eventName: StrictStr = Field(..., min_length=1)
    pageLocationContains: Optional[StrictStr] = Field(
        default=None,
        description="Case-insensitive substring the page_location parameter must contain",
    )
    isDirectlyFollowedBy: StrictBool = False
    withinDurationFromPriorStep: Optional[str] = Field(
        default=None,
        pattern=DURATION_PATTERN,
        description="Maximum time since the prior step, e.g. 300s",
    )


# =============================================================================
# Tool Argument Models
# =============================================================================


class DateRangeArgs(BaseModel):
    """Arguments shared by every dated report."""
    model_config = ConfigDict(str_strip_whitespace=True)

    startDate: DateExpression = "7daysAgo"
    endDate: DateExpression = "yesterday"


class KpiOverviewArgs(DateRangeArgs):
    keyEventName: Optional[StrictStr] = None


class DimensionSummaryArgs(DateRangeArgs):
    """Arguments for the single-dimension summary reports."""
    keyEventName: Optional[StrictStr] = None
    limit: StrictInt = Field(default=50, ge=1, le=200)


class LandingPagesArgs(DimensionSummaryArgs):
    startDate: DateExpression = "30daysAgo"
    limit: StrictInt = Field(default=20, ge=1, le=200)


class DailyTrendArgs(BaseModel):
    """``startDate`` defaults to ``{days}daysAgo`` when omitted."""
    model_config = ConfigDict(str_strip_whitespace=True)

    days: StrictInt = Field(default=30, ge=1, le=366)
    startDate: Optional[DateExpression] = None
    endDate: DateExpression = "yesterday"


class RunReportArgs(DateRangeArgs):
    """Free-form report over any dimensions and metrics."""
    dimensions: List[StrictStr] = Field(default_factory=list, max_length=9)
    metrics: List[StrictStr] = Field(..., min_length=1, max_length=10)
    limit: StrictInt = Field(default=100, ge=1, le=10000)
    orderByMetric: Optional[StrictStr] = None
    desc: StrictBool = True
    dimensionFilter: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Data API FilterExpression, passed through unchanged",
    )

    @field_validator('orderByMetric')
    @classmethod
    def _order_metric_requested(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        metrics = info.data.get('metrics')
        if value is not None and metrics is not None and value not in metrics:
            raise ValueError('orderByMetric must be one of the requested metrics')
        return value


class MetadataSearchArgs(BaseModel):
    kind: MetadataKind = MetadataKind.ALL
    query: StrictStr = ""
    limit: StrictInt = Field(default=50, ge=1, le=200)


class ComparePeriodsArgs(DateRangeArgs):
    """
    Period-over-period comparison of one grouping dimension.

    With ``dimension`` set to None the report compares property totals.
    """
    dimension: Optional[StrictStr] = "sessionDefaultChannelGroup"
    metrics: List[StrictStr] = Field(
        default_factory=lambda: list(BASE_KEY_EVENT_METRICS),
        min_length=1,
        max_length=10,
    )
    compareMode: CompareMode = CompareMode.PREVIOUS_PERIOD
    keyEventName: Optional[StrictStr] = None
    limit: StrictInt = Field(default=50, ge=1, le=200)


class DetectAnomaliesArgs(BaseModel):
    """Daily anomaly scan over the last ``days`` days ending at ``endDate``."""
    model_config = ConfigDict(str_strip_whitespace=True)

    metric: StrictStr = Field(default="sessions", min_length=1)
    days: StrictInt = Field(default=60, ge=2, le=366)
    endDate: DateExpression = "yesterday"
    windowDays: StrictInt = Field(default=7, ge=1, le=90)
    zThreshold: StrictFloat = Field(default=2.5, gt=0, le=10)
    dimensionFilter: Optional[Dict[str, Any]] = None


class FunnelReportArgs(DateRangeArgs):
    steps: List[FunnelStepSpec] = Field(
        ...,
        min_length=MIN_FUNNEL_STEPS,
        max_length=MAX_FUNNEL_STEPS,
    )
    startDate: DateExpression = "30daysAgo"
    isOpenFunnel: StrictBool = False
    breakdownDimension: Optional[StrictStr] = None
    breakdownLimit: StrictInt = Field(default=10, ge=1, le=50)


# =============================================================================
# Call Envelopes
# =============================================================================


class FlatToolCall(BaseModel):
    """Flat call shape; ``tool`` is accepted as an alias of ``name``."""
    name: Optional[str] = None
    tool: Optional[str] = None
    arguments: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('arguments', mode='before')
    @classmethod
    def _null_arguments_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def tool_name(self) -> Optional[str]:
        return self.name or self.tool


class ToolCallParams(BaseModel):
    name: str = Field(..., min_length=1)
    arguments: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('arguments', mode='before')
    @classmethod
    def _null_arguments_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class JsonRpcRequest(BaseModel):
    jsonrpc: Literal["2.0"]
    id: Optional[Union[int, str]] = None
    method: str
    params: Dict[str, Any] = Field(default_factory=dict)


class ErrorBody(BaseModel):
    code: int
    message: str
