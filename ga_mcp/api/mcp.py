"""
FastAPI router for the tool-call transport.

Endpoints:
- POST /mcp: Tool call in either call shape; credentials via header or query
- POST /mcp/{token}: Same, with the path-token credential
- GET /tools: Tool catalog (name, description, inputSchema)

JSON-RPC responses are always HTTP 200 with the outcome in the envelope;
notifications get 202 and no body. Flat-shape failures also carry an HTTP
status derived from the error code:

    -32601 (not found)                -> 404
    -32602 / -32600 (bad request)     -> 400
    -32000 / -32603 (server failure)  -> 500
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Response, status
from fastapi.responses import JSONResponse

from ga_mcp.core.dependencies import AuthorizedDep, GatewayDep
from ga_mcp.models.enums import ErrorCode
from ga_mcp.services.gateway import is_jsonrpc

logger = logging.getLogger(__name__)

router = APIRouter(tags=["mcp"])

FLAT_ERROR_STATUS: Dict[int, int] = {
    ErrorCode.METHOD_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_PARAMS: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
}


async def _dispatch(body: Any, gateway: Any) -> Response:
    response = await gateway.handle(body)
    if response is None:
        return Response(status_code=status.HTTP_202_ACCEPTED)

    status_code = status.HTTP_200_OK
    if not is_jsonrpc(body) and 'error' in response:
        status_code = FLAT_ERROR_STATUS.get(
            response['error']['code'],
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return JSONResponse(content=response, status_code=status_code)


@router.post("/mcp")
async def call_tool(
    _: AuthorizedDep,
    gateway: GatewayDep,
    body: Any = Body(...),
) -> Response:
    """
    Invoke a tool.

    Accepts the flat shape ``{"name", "arguments"}`` or a JSON-RPC 2.0
    request (``initialize``, ``tools/list``, ``tools/call``).
    """
    return await _dispatch(body, gateway)


@router.post("/mcp/{token}")
async def call_tool_with_token(
    token: str,
    _: AuthorizedDep,
    gateway: GatewayDep,
    body: Any = Body(...),
) -> Response:
    """Invoke a tool, authorized by the path token."""
    return await _dispatch(body, gateway)


@router.get("/tools")
async def list_tools(_: AuthorizedDep, gateway: GatewayDep) -> Dict[str, Any]:
    """
    List registered tools.

    Returns:
        {"tools": [{"name", "description", "inputSchema"}, ...]}
    """
    return {"tools": gateway.registry.list_tools()}
