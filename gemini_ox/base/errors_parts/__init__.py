"""Errors parts package public surface.

Re-exports individual error taxonomy components for optional direct imports.
Prefer importing from `gemini_ox.base.errors` for the stable surface.
"""

from .error_code import ErrorCode, Stage
from .gemini_error import GeminiError
from .validation_error import ValidationError
from .dispatch_error import DispatchError, DispatchErrorKind
from .decode_error import DecodeError, DecodeErrorKind
from .schema_mismatch import SchemaIssue, SchemaMismatch
from .transport_error import TransportError, TransportErrorKind
from .classification import classify_exception, classify_status, is_transient_status

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
