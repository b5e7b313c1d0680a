"""
gemini_ox base package

Service-agnostic building blocks of the generate pipeline:

- Models: immutable turns, parts and the validated request with its builder
- Schema: shape trees, wire declaration, validation, derivation from types
- Dispatch: rate-limited, retrying dispatcher over a pluggable transport
- Streaming: incremental decoder and response aggregator
- Tools: function-calling registry
- Ambient: error taxonomy, logging, cancellation, clock, timeouts
"""

from .cancellation import CancellationToken, CancelledError
from .clock import Clock, SystemClock
from .dispatch import Dispatcher, ResponseStream, SerializedRequest
from .errors import (
    DecodeError,
    DecodeErrorKind,
    DispatchError,
    DispatchErrorKind,
    ErrorCode,
    GeminiError,
    SchemaIssue,
    SchemaMismatch,
    Stage,
    TransportError,
    TransportErrorKind,
    ValidationError,
)
from .http import HttpxTransport, MemoryByteStream, Transport, TransportResponse
from .models import (
    AggregatedResponse,
    CodeExecutionResult,
    ExecutableCode,
    FileReference,
    FinishReason,
    FunctionCall,
    FunctionCallingMode,
    FunctionDeclaration,
    FunctionResponse,
    GenerateContentRequest,
    GenerateContentRequestBuilder,
    GenerationConfig,
    HarmBlockThreshold,
    HarmCategory,
    InlineData,
    Part,
    Role,
    SafetySetting,
    Text,
    ToolConfig,
    Turn,
    UsageMetadata,
)
from .resilience import NoopLimiter, RateLimiter, RetryConfig, TokenBucket
from .timeouts import TimeoutConfig, get_timeout_config

__all__ = [
    # Models
    "Text",
    "InlineData",
    "FileReference",
    "FunctionCall",
    "FunctionResponse",
    "ExecutableCode",
    "CodeExecutionResult",
    "Part",
    "Role",
    "Turn",
    "GenerationConfig",
    "HarmCategory",
    "HarmBlockThreshold",
    "SafetySetting",
    "FunctionCallingMode",
    "ToolConfig",
    "FunctionDeclaration",
    "UsageMetadata",
    "FinishReason",
    "AggregatedResponse",
    "GenerateContentRequest",
    "GenerateContentRequestBuilder",
    # Errors
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
    # Dispatch
    "Dispatcher",
    "SerializedRequest",
    "ResponseStream",
    "Transport",
    "TransportResponse",
    "MemoryByteStream",
    "HttpxTransport",
    "RateLimiter",
    "NoopLimiter",
    "TokenBucket",
    "RetryConfig",
    "TimeoutConfig",
    "get_timeout_config",
    # Runtime
    "CancellationToken",
    "CancelledError",
    "Clock",
    "SystemClock",
]
