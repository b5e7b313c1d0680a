"""Structured logging context carried through a single generate call."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class LogContext:
    """Common fields attached to every event of one request.

    ``operation`` is ``generate``, ``stream`` or ``tool``; ``request_id`` is a
    client generated correlation id (the service does not return one).
    ``extra`` keys are merged last and may shadow the named fields.
    """

    model: Optional[str] = None
    operation: Optional[str] = None
    request_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        merged: Dict[str, Any] = {"model": self.model, "operation": self.operation, "request_id": self.request_id}
        merged.update(self.extra or {})
        return {k: v for k, v in merged.items() if v is not None}


__all__ = ["LogContext"]
