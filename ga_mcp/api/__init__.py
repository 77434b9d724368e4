"""
API package initialization.

- mcp: Tool-call transport (POST /mcp, POST /mcp/{token}, GET /tools)
"""

from ga_mcp.api.mcp import router as mcp_router

__all__ = [
    "mcp_router",
]
