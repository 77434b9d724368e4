"""
Funnel Compiler Service.

Compiles ordered FunnelStepSpecs into the Data API v1alpha funnel structure
and flattens the two sub-reports of a runFunnelReport response.

Step Compilation:
    {"name": "Checkout", "eventName": "begin_checkout",
     "pageLocationContains": "/checkout", "withinDurationFromPriorStep": "600s"}

    becomes

    {
        "name": "Checkout",
        "isDirectlyFollowedBy": false,
        "withinDurationFromPriorStep": "600s",
        "filterExpression": {
            "funnelEventFilter": {
                "eventName": "begin_checkout",
                "funnelParameterFilterExpression": {
                    "funnelParameterFilter": {
                        "eventParameterName": "page_location",
                        "stringFilter": {
                            "matchType": "CONTAINS",
                            "value": "/checkout",
                            "caseSensitive": false
                        }
                    }
                }
            }
        }
    }

    The parameter filter is nested inside the event filter, so both must hold.

Flattening:
    ``funnelTable`` and ``funnelVisualization`` each carry their own header
    set (the visualization usually adds a breakdown or date dimension), so
    each is pivoted independently.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ga_mcp.core.exceptions import ValidationError
from ga_mcp.models.schemas import MAX_FUNNEL_STEPS, MIN_FUNNEL_STEPS, FunnelStepSpec
from ga_mcp.services.query_normalizer import ReportRow, pivot_rows

logger = logging.getLogger(__name__)

PAGE_LOCATION_PARAMETER = 'page_location'


def compile_step(step: FunnelStepSpec) -> Dict[str, Any]:
    """Compile one step into a REST-form FunnelStep."""
    event_filter: Dict[str, Any] = {'eventName': step.eventName}
    if step.pageLocationContains:
        event_filter['funnelParameterFilterExpression'] = {
            'funnelParameterFilter': {
                'eventParameterName': PAGE_LOCATION_PARAMETER,
                'stringFilter': {
                    'matchType': 'CONTAINS',
                    'value': step.pageLocationContains,
                    'caseSensitive': False,
                },
            }
        }

    compiled: Dict[str, Any] = {
        'name': step.name,
        'isDirectlyFollowedBy': step.isDirectlyFollowedBy,
        'filterExpression': {'funnelEventFilter': event_filter},
    }
    if step.withinDurationFromPriorStep:
        compiled['withinDurationFromPriorStep'] = step.withinDurationFromPriorStep
    return compiled


def compile_funnel(
    steps: Sequence[FunnelStepSpec],
    start_date: str,
    end_date: str,
    is_open_funnel: bool = False,
    breakdown_dimension: Optional[str] = None,
    breakdown_limit: int = 10,
) -> Dict[str, Any]:
    """
    Build the REST-form runFunnelReport body (without ``property``).

    Args:
        steps: Ordered step descriptors, 2 to 10 of them.
        start_date: Report start date expression.
        end_date: Report end date expression.
        is_open_funnel: Whether users may enter at any step.
        breakdown_dimension: Optional dimension to break the table down by.
        breakdown_limit: Maximum breakdown values.

    Raises:
        ValidationError: If the step count is outside 2..10.
    """
    if not MIN_FUNNEL_STEPS <= len(steps) <= MAX_FUNNEL_STEPS:
        raise ValidationError(
            f"A funnel needs {MIN_FUNNEL_STEPS}-{MAX_FUNNEL_STEPS} steps, got {len(steps)}",
            errors=[{'loc': ['steps'], 'msg': 'step count out of range'}],
        )

    body: Dict[str, Any] = {
        'dateRanges': [{'startDate': start_date, 'endDate': end_date}],
        'funnel': {
            'isOpenFunnel': is_open_funnel,
            'steps': [compile_step(step) for step in steps],
        },
    }
    if breakdown_dimension:
        body['funnelBreakdown'] = {
            'breakdownDimension': {'name': breakdown_dimension},
            'limit': str(breakdown_limit),
        }
    return body


def flatten_funnel_response(response: Dict[str, Any]) -> Dict[str, List[ReportRow]]:
    """
    Pivot both funnel sub-reports.

    Returns:
        {"table": [...], "visualization": [...]}; a missing sub-report
        yields an empty list.
    """
    table = pivot_rows(response.get('funnelTable'))
    visualization = pivot_rows(response.get('funnelVisualization'))
    logger.info(f"Funnel flattened table={len(table)} visualization={len(visualization)} rows")
    return {'table': table, 'visualization': visualization}
