"""
Metadata search over the property's dimension/metric catalog.

The getMetadata response lists every standard and custom dimension and
metric with its API name, UI name and description. Searching is a simple
case-insensitive substring match on any of the three.
"""

import logging
from typing import Any, Dict, List

from ga_mcp.models.enums import MetadataKind
from ga_mcp.models.schemas import MetadataSearchArgs
from ga_mcp.services.registry import ToolContext

logger = logging.getLogger(__name__)


def _entries(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            'apiName': item.get('apiName'),
            'uiName': item.get('uiName'),
            'description': item.get('description'),
        }
        for item in items or []
    ]


def _matches(entry: Dict[str, Any], query: str) -> bool:
    if not query:
        return True
    return any(query in str(entry.get(field) or '').lower() for field in ('apiName', 'uiName', 'description'))


def search_metadata(
    metadata: Dict[str, Any],
    kind: MetadataKind = MetadataKind.ALL,
    query: str = '',
    limit: int = 50,
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Filter a REST-form Metadata payload.

    Args:
        metadata: getMetadata response with ``dimensions`` and ``metrics``.
        kind: Restrict results to dimensions or metrics.
        query: Case-insensitive substring; empty matches everything.
        limit: Maximum entries per list.

    Returns:
        {"dimensions": [...], "metrics": [...]}; the list excluded by
        ``kind`` is empty.
    """
    needle = (query or '').lower().strip()
    kind = MetadataKind(kind)

    dimensions: List[Dict[str, Any]] = []
    metrics: List[Dict[str, Any]] = []
    if kind != MetadataKind.METRIC:
        dimensions = [e for e in _entries(metadata.get('dimensions')) if _matches(e, needle)][:limit]
    if kind != MetadataKind.DIMENSION:
        metrics = [e for e in _entries(metadata.get('metrics')) if _matches(e, needle)][:limit]

    return {'dimensions': dimensions, 'metrics': metrics}


async def metadata_search_tool(args: MetadataSearchArgs, ctx: ToolContext) -> Dict[str, Any]:
    metadata = await ctx.client.get_metadata()
    found = search_metadata(metadata, args.kind, args.query, args.limit)
    logger.info(
        f"Metadata search query={args.query!r} kind={args.kind.value} "
        f"dimensions={len(found['dimensions'])} metrics={len(found['metrics'])}"
    )
    return {
        'report': 'metadata_search',
        'propertyId': ctx.settings.ga4_property_id,
        'kind': args.kind.value,
        'query': args.query,
        **found,
    }
