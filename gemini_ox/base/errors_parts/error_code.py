"""
Normalized error codes (taxonomy) and pipeline stages.

Defines the `ErrorCode` enumeration used by the dispatcher and error
classification helpers, and the `Stage` enumeration naming the pipeline stage
where a failure originated. Values are lowercase snake_case and are considered
a stable public contract for logging and analytics.
"""
from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Enumerated normalized error codes representing failure categories."""

    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    TRANSIENT = "transient"
    CONNECTION = "connection"
    PROTOCOL = "protocol"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER_ERROR = "server_error"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class Stage(str, Enum):
    """Pipeline stage that produced an error."""

    BUILD = "build"
    DISPATCH = "dispatch"
    DECODE = "decode"
    SCHEMA = "schema"


__all__ = ["ErrorCode", "Stage"]
