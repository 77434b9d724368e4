"""
Services Module

Business logic for the GA4 reporting tool server. Every service is stateless;
the backend client and settings are passed in explicitly.

Services:
- query_normalizer: ReportRequest -> runReport body; response pivot to rows
- period_resolver: Previous-period / previous-year date range derivation
- comparison: Current vs previous period merge with deltas and % change
- anomaly: Trailing-window z-score spike/drop detection (numpy)
- funnel: Funnel step compilation and funnel response flattening
- metadata: Dimension/metric catalog search
- reports: Tool handlers and registry assembly
- registry: Read-only tool catalog
- gateway: Call-shape decoding, dispatch and response envelopes

All services are consumed by the API layer (ga_mcp/api/) through the gateway.
"""

# =============================================================================
# Query Normalizer Exports
# =============================================================================

from ga_mcp.services.query_normalizer import (
    build_report_body,
    pivot_rows,
    run_report,
    to_number,
    yyyymmdd_to_iso,
)

# =============================================================================
# Derived Analytics Exports
# =============================================================================

from ga_mcp.services.period_resolver import resolve_previous_period
from ga_mcp.services.comparison import fetch_both_periods, merge_periods, safe_pct_change
from ga_mcp.services.anomaly import detect_anomalies
from ga_mcp.services.funnel import compile_funnel, compile_step, flatten_funnel_response
from ga_mcp.services.metadata import search_metadata

# =============================================================================
# Registry & Gateway Exports
# =============================================================================

from ga_mcp.services.registry import ToolContext, ToolDefinition, ToolRegistry
from ga_mcp.services.reports import build_registry
from ga_mcp.services.gateway import Gateway, Invocation

__all__ = [
    # ----- Query Normalizer -----
    'build_report_body',
    'pivot_rows',
    'run_report',
    'to_number',
    'yyyymmdd_to_iso',
    # ----- Derived Analytics -----
    'resolve_previous_period',
    'fetch_both_periods',
    'merge_periods',
    'safe_pct_change',
    'detect_anomalies',
    'compile_funnel',
    'compile_step',
    'flatten_funnel_response',
    'search_metadata',
    # ----- Registry & Gateway -----
    'ToolContext',
    'ToolDefinition',
    'ToolRegistry',
    'build_registry',
    'Gateway',
    'Invocation',
]
