"""Unified error taxonomy public surface.

This module re-exports the one-class-per-file implementations under
``gemini_ox.base.errors_parts`` to maintain a stable import path.
"""

from .errors_parts.error_code import ErrorCode, Stage
from .errors_parts.gemini_error import GeminiError
from .errors_parts.validation_error import ValidationError
from .errors_parts.dispatch_error import DispatchError, DispatchErrorKind
from .errors_parts.decode_error import DecodeError, DecodeErrorKind
from .errors_parts.schema_mismatch import SchemaIssue, SchemaMismatch
from .errors_parts.transport_error import TransportError, TransportErrorKind
from .errors_parts.classification import (
    classify_exception,
    classify_status,
    is_transient_status,
)

__all__ = [
    "ErrorCode",
    "Stage",
    "GeminiError",
    "ValidationError",
    "DispatchError",
    "DispatchErrorKind",
    "DecodeError",
    "DecodeErrorKind",
    "SchemaIssue",
    "SchemaMismatch",
    "TransportError",
    "TransportErrorKind",
    "classify_exception",
    "classify_status",
    "is_transient_status",
]
