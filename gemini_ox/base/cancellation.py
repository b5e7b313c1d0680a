"""Cancellation primitives (public API facade).

Purpose
-------
Expose stable cancellation constructs via the canonical
``gemini_ox.base.cancellation`` import path while the concrete
implementations live under ``cancellation_parts``.

Notes
-----
- ``CancellationToken`` signals cancellation to token waits, byte waits and
  whole dispatches; it can be polled or awaited.
- ``CancelledError`` is raised by operations that observe a cancellation request.
"""

from .cancellation_parts.cancelled_error import CancelledError
from .cancellation_parts.cancellation_token import CancellationToken

__all__ = ["CancellationToken", "CancelledError"]
