"""Token accounting reported by the service."""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class UsageMetadata:
    prompt_token_count: int = 0
    candidates_token_count: int = 0
    total_token_count: int = 0
    cached_content_token_count: Optional[int] = None

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "UsageMetadata":
        return cls(
            prompt_token_count=int(data.get("promptTokenCount") or 0),
            candidates_token_count=int(data.get("candidatesTokenCount") or 0),
            total_token_count=int(data.get("totalTokenCount") or 0),
            cached_content_token_count=data.get("cachedContentTokenCount"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


__all__ = ["UsageMetadata"]
