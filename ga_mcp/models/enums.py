"""
Enumeration definitions for the GA4 reporting tool server.

String enums inherit from both `str` and `Enum` so pydantic models serialize
them as their plain values in tool results and JSON schemas.
"""

from enum import Enum


class CompareMode(str, Enum):
    """
    How the comparison period of a period-over-period report is derived.

    - previous_period: The block of equal length immediately before the
      current one. Requires relative dates ("28daysAgo" .. "yesterday").
    - previous_year: The same calendar dates one year earlier. Requires ISO
      dates on both ends.
    """
    PREVIOUS_PERIOD = "previous_period"
    PREVIOUS_YEAR = "previous_year"


class AnomalyDirection(str, Enum):
    """Sign of an anomaly's z-score."""
    SPIKE = "spike"
    DROP = "drop"


class MetadataKind(str, Enum):
    """Which half of the metadata catalog a search covers."""
    ALL = "all"
    DIMENSION = "dimension"
    METRIC = "metric"


class CallShape(str, Enum):
    """
    Wire shape an invocation arrived in.

    - flat: {"name": "...", "arguments": {...}} (``tool`` accepted for ``name``)
    - jsonrpc: {"jsonrpc": "2.0", "id": ..., "method": "tools/call", "params": {...}}
    """
    FLAT = "flat"
    JSONRPC = "jsonrpc"


class InvocationState(str, Enum):
    """
    Lifecycle of one tool invocation.

    Received -> Authorized -> Validated -> Executing -> Completed | Failed.
    Completed and Failed are terminal.
    """
    RECEIVED = "received"
    AUTHORIZED = "authorized"
    VALIDATED = "validated"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class ErrorCode(int, Enum):
    """
    Error codes carried by failure envelopes.

    Standard JSON-RPC 2.0 codes plus one server-defined code (-32000) for
    domain failures: missing configuration, backend errors and comparison
    periods that cannot be resolved.
    """
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    SERVER_ERROR = -32000
