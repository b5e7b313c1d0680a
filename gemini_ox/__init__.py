"""gemini_ox package

Async client library for the Gemini ``generateContent`` REST API.

Purpose:
    Build multimodal requests (text, binary attachments, function-call
    exchanges) with a validating builder, dispatch them with rate limiting and
    retry, and decode single-shot and streamed responses into one result model.

Public API (re-exported):
    - Version: ``__version__``
    - Client: :class:`GeminiClient`, :class:`FileUpload`, :class:`ToolBox`
    - Requests: :class:`GenerateContentRequest`, :class:`Turn` and the parts
    - Results: :class:`AggregatedResponse` and the generation events
    - Schemas: ``declare``, ``validate``, ``schema_from_type``
    - Errors: :class:`GeminiError` and its subclasses
    - Configuration: :func:`load_settings`, :func:`configure_logger`
"""

from .base import *  # noqa: F401,F403
from .base import __all__ as _base_all
from .base.logging import configure_logger, get_logger
from .base.schema import (
    ArraySchema,
    EnumSchema,
    ObjectSchema,
    PrimitiveKind,
    PrimitiveSchema,
    SchemaNode,
    declare,
    schema_from_signature,
    schema_from_type,
    validate,
)
from .base.streaming import (
    ErrorEvent,
    FinishReasonEvent,
    FunctionCallDelta,
    GenerationEvent,
    PartEvent,
    ResponseAggregator,
    StreamDecoder,
    TextDelta,
    UsageMetadataEvent,
    decode_stream,
    fold_events,
    parse_response,
)
from .base.tools import ToolBox
from .config import ClientSettings, Model, load_settings
from .gemini import FileUpload, GeminiClient, GeminiClientBuilder

__version__ = "0.1.0"

__all__ = list(_base_all) + [
    "__version__",
    "configure_logger",
    "get_logger",
    "ArraySchema",
    "EnumSchema",
    "ObjectSchema",
    "PrimitiveKind",
    "PrimitiveSchema",
    "SchemaNode",
    "declare",
    "schema_from_signature",
    "schema_from_type",
    "validate",
    "ErrorEvent",
    "FinishReasonEvent",
    "FunctionCallDelta",
    "GenerationEvent",
    "PartEvent",
    "ResponseAggregator",
    "StreamDecoder",
    "TextDelta",
    "UsageMetadataEvent",
    "decode_stream",
    "fold_events",
    "parse_response",
    "ToolBox",
    "ClientSettings",
    "Model",
    "load_settings",
    "FileUpload",
    "GeminiClient",
    "GeminiClientBuilder",
]
