"""
Invocation Gateway.

Single entry point for tool calls, whatever shape they arrive in. Two
decoders normalize a request body into one Invocation record; the gateway
resolves the tool, validates arguments, runs the handler and renders the
result (or error) back in the caller's shape.

Call Shapes:
    Flat:      {"name" | "tool": "<tool>", "arguments": {...}}
    JSON-RPC:  {"jsonrpc": "2.0", "id": 7, "method": "tools/call",
                "params": {"name": "<tool>", "arguments": {...}}}

Invocation States:
    Received -> Authorized -> Validated -> Executing -> Completed | Failed

    Authorization happens at the HTTP layer before the body is decoded, so
    every decoded invocation starts out Authorized. Unknown tools and bad
    arguments go straight to Failed; the handler never runs for them.

Envelopes:
    Success:   {"content": [{"type": "text", "text": "<pretty JSON>"}]}
    Failure:   {"code": -32601, "message": "..."} (message truncated)

    JSON-RPC wraps these as ``result`` / ``error`` next to the echoed id.
    The flat shape returns the success envelope as-is and the failure under
    ``error``.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ga_mcp.core.analytics_client import AnalyticsClient
from ga_mcp.core.config import Settings
from ga_mcp.core.exceptions import InvalidRequestError, NotFoundError, ToolError, truncate_message
from ga_mcp.models.enums import CallShape, ErrorCode, InvocationState
from ga_mcp.models.schemas import FlatToolCall, JsonRpcRequest, ToolCallParams
from ga_mcp.services.registry import ToolContext, ToolRegistry

logger = logging.getLogger(__name__)

JSONRPC_VERSION = '2.0'
PROTOCOL_VERSION = '2024-11-05'

RequestId = Optional[Union[int, str]]


# =============================================================================
# Invocation Record
# =============================================================================


@dataclass
class Invocation:
    """One tool call, independent of the shape it arrived in."""
    tool_name: Optional[str]
    arguments: Dict[str, Any] = field(default_factory=dict)
    shape: CallShape = CallShape.FLAT
    request_id: RequestId = None
    state: InvocationState = InvocationState.RECEIVED

    def advance(self, state: InvocationState) -> None:
        logger.debug(f"Invocation {self.tool_name} {self.state.value} -> {state.value}")
        self.state = state


@dataclass
class InvocationOutcome:
    """Result of executing an Invocation: exactly one of result/error is set."""
    invocation: Invocation
    result: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# =============================================================================
# Decoders
# =============================================================================


def is_jsonrpc(body: Any) -> bool:
    return isinstance(body, dict) and body.get('jsonrpc') == JSONRPC_VERSION


def decode_flat_call(body: Dict[str, Any]) -> Invocation:
    """
    Decode the flat call shape.

    Raises:
        InvalidRequestError: Neither ``name`` nor ``tool`` is present, or
            ``arguments`` is not an object.
    """
    try:
        call = FlatToolCall.model_validate(body)
    except PydanticValidationError as e:
        raise InvalidRequestError(f'Invalid request: {e.errors()[0].get("msg", "malformed body")}') from e
    if not call.tool_name:
        raise InvalidRequestError('Invalid request: expected "name" or "tool"')
    return Invocation(
        tool_name=call.tool_name,
        arguments=call.arguments,
        shape=CallShape.FLAT,
        state=InvocationState.AUTHORIZED,
    )


def decode_jsonrpc_call(request: JsonRpcRequest) -> Invocation:
    """
    Decode the ``params`` of a JSON-RPC ``tools/call``.

    Raises:
        InvalidRequestError: ``params`` lacks a tool name.
    """
    try:
        params = ToolCallParams.model_validate(request.params)
    except PydanticValidationError as e:
        raise InvalidRequestError('Invalid request: tools/call requires params.name') from e
    return Invocation(
        tool_name=params.name,
        arguments=params.arguments,
        shape=CallShape.JSONRPC,
        request_id=request.id,
        state=InvocationState.AUTHORIZED,
    )


# =============================================================================
# Gateway
# =============================================================================


class Gateway:
    """
    Dispatches decoded invocations against the tool registry.

    Args:
        registry: Read-only tool catalog.
        settings: Frozen settings; bounds error message length and supplies
            the server identity reported by ``initialize``.
        client: Backend client handed to handlers through the ToolContext.
    """

    def __init__(self, registry: ToolRegistry, settings: Settings, client: AnalyticsClient) -> None:
        self.registry = registry
        self.settings = settings
        self.client = client

    # -------------------------------------------------------------------------
    # Envelopes
    # -------------------------------------------------------------------------

    @staticmethod
    def success_envelope(payload: Any) -> Dict[str, Any]:
        text = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
        return {'content': [{'type': 'text', 'text': text}]}

    def error_body(self, code: Union[ErrorCode, int], message: str) -> Dict[str, Any]:
        return {
            'code': int(code),
            'message': truncate_message(message, self.settings.max_error_chars),
        }

    @staticmethod
    def jsonrpc_result(request_id: RequestId, result: Dict[str, Any]) -> Dict[str, Any]:
        return {'jsonrpc': JSONRPC_VERSION, 'id': request_id, 'result': result}

    @staticmethod
    def jsonrpc_error(request_id: RequestId, error: Dict[str, Any]) -> Dict[str, Any]:
        return {'jsonrpc': JSONRPC_VERSION, 'id': request_id, 'error': error}

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def execute(self, invocation: Invocation) -> InvocationOutcome:
        """
        Resolve, validate and run one invocation.

        Never raises: every failure is captured as an error body on the
        returned outcome. Known failures keep their code; anything else is
        logged with its traceback and reported as an internal error.
        """
        try:
            tool = self.registry.get(invocation.tool_name)
            args = tool.validate(invocation.arguments)
            invocation.advance(InvocationState.VALIDATED)

            invocation.advance(InvocationState.EXECUTING)
            payload = await tool.handler(args, ToolContext(settings=self.settings, client=self.client))
        except ToolError as e:
            invocation.advance(InvocationState.FAILED)
            logger.warning(f"Tool {invocation.tool_name} failed ({int(e.code)}): {truncate_message(e.message, 200)}")
            return InvocationOutcome(invocation, error=self.error_body(e.code, e.message))
        except Exception as e:
            invocation.advance(InvocationState.FAILED)
            logger.exception(f"Unexpected error in tool {invocation.tool_name}")
            return InvocationOutcome(invocation, error=self.error_body(ErrorCode.INTERNAL_ERROR, str(e) or type(e).__name__))

        invocation.advance(InvocationState.COMPLETED)
        logger.info(f"Tool {invocation.tool_name} completed ({invocation.shape.value})")
        return InvocationOutcome(invocation, result=self.success_envelope(payload))

    # -------------------------------------------------------------------------
    # Request Handling
    # -------------------------------------------------------------------------

    async def handle(self, body: Any) -> Optional[Dict[str, Any]]:
        """
        Handle one request body in either call shape.

        Returns:
            The response body, or None for JSON-RPC notifications, which get
            no response.
        """
        if is_jsonrpc(body):
            return await self.handle_jsonrpc(body)
        return await self.handle_flat(body)

    async def handle_flat(self, body: Any) -> Dict[str, Any]:
        if not isinstance(body, dict):
            return {'error': self.error_body(ErrorCode.INVALID_REQUEST, 'Invalid request: expected a JSON object')}
        try:
            invocation = decode_flat_call(body)
        except InvalidRequestError as e:
            return {'error': self.error_body(e.code, e.message)}

        outcome = await self.execute(invocation)
        if outcome.ok:
            return outcome.result
        return {'error': outcome.error}

    async def handle_jsonrpc(self, body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        request_id = body.get('id')
        try:
            request = JsonRpcRequest.model_validate(body)
        except PydanticValidationError:
            return self.jsonrpc_error(
                request_id if isinstance(request_id, (int, str)) else None,
                self.error_body(ErrorCode.INVALID_REQUEST, 'Invalid request: malformed JSON-RPC envelope'),
            )

        method = request.method
        if method.startswith('notifications/'):
            logger.debug(f"Notification {method} acknowledged")
            return None

        if method == 'initialize':
            return self.jsonrpc_result(request.id, self.server_info())
        if method == 'tools/list':
            return self.jsonrpc_result(request.id, {'tools': self.registry.list_tools()})
        if method == 'ping':
            return self.jsonrpc_result(request.id, {})
        if method != 'tools/call':
            error = NotFoundError(f'Method not found: {method}')
            return self.jsonrpc_error(request.id, self.error_body(error.code, error.message))

        try:
            invocation = decode_jsonrpc_call(request)
        except InvalidRequestError as e:
            return self.jsonrpc_error(request.id, self.error_body(ErrorCode.INVALID_PARAMS, e.message))

        outcome = await self.execute(invocation)
        if outcome.ok:
            return self.jsonrpc_result(request.id, outcome.result)
        return self.jsonrpc_error(request.id, outcome.error)

    def server_info(self) -> Dict[str, Any]:
        return {
            'protocolVersion': PROTOCOL_VERSION,
            'serverInfo': {'name': self.settings.server_name, 'version': self.settings.server_version},
            'capabilities': {'tools': {}},
        }
