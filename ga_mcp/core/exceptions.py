"""
Error taxonomy for the GA4 reporting tool server.

Every failure a tool invocation can hit is one of the classes below. They are
raised anywhere in the services layer and recovered in exactly one place, the
invocation gateway, which turns them into a ``{code, message}`` envelope.

Codes follow JSON-RPC 2.0 where a standard code exists:
    - NotFoundError       -> -32601 (method/tool not found)
    - ValidationError     -> -32602 (invalid params)
    - ConfigurationError  -> -32000 (server error: instance misconfigured)
    - BackendQueryError   -> -32000 (server error: Data API failure)
    - NotResolvableError  -> -32000 (server error: comparison period unknown)

Anything else reaching the gateway is reported as -32603 (internal error).
"""

from typing import Any, Dict, List, Optional

from ga_mcp.models.enums import ErrorCode


class ToolError(Exception):
    """Base class for errors reported to callers with a stable code."""

    code: ErrorCode = ErrorCode.SERVER_ERROR

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ToolError):
    """A required setting (the GA4 property id) is absent."""


class ValidationError(ToolError):
    """
    Caller-supplied arguments do not match the tool's declared shape.

    Attributes:
        errors: Flattened list of ``{loc, msg}`` entries, one per failed field.
    """

    code = ErrorCode.INVALID_PARAMS

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message, details={'errors': errors or []})
        self.errors = errors or []


class BackendQueryError(ToolError):
    """The Data API call failed or returned data that could not be read."""


class NotResolvableError(ToolError):
    """The comparison period cannot be derived from the given date expressions."""


class NotFoundError(ToolError):
    """Unknown tool or JSON-RPC method name."""

    code = ErrorCode.METHOD_NOT_FOUND


class InvalidRequestError(ToolError):
    """The request body matches neither supported call shape."""

    code = ErrorCode.INVALID_REQUEST


def truncate_message(message: str, limit: int = 800) -> str:
    """
    Bound an error message so oversized backend bodies never reach callers.

    >>> truncate_message('x' * 801, 800)[-3:]
    '...'
    """
    if len(message) > limit:
        return message[:limit] + '...'
    return message
