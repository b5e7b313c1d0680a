"""Cancellation error type.

Defines the public ``CancelledError`` used to signal caller-requested
cancellation of a token wait, a byte wait, or a whole dispatch.
"""

from __future__ import annotations


class CancelledError(RuntimeError):
    """Raised when an operation observes a cancellation request.

    Distinct from :class:`asyncio.CancelledError` (task cancellation) so that
    caller-driven cancellation can be mapped to a structured dispatch error
    instead of unwinding the event loop task.
    """

__all__ = ["CancelledError"]
