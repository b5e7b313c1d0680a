"""Rate-limited, retrying dispatcher."""

from .request import ResponseStream, SerializedRequest
from .dispatcher import Dispatcher, parse_error_body

__all__ = ["Dispatcher", "ResponseStream", "SerializedRequest", "parse_error_body"]
