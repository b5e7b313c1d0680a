"""Feedback on the prompt itself; a blocked prompt produces no candidates."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .safety import SafetyRating


class BlockReason(str, Enum):
    BLOCK_REASON_UNSPECIFIED = "BLOCK_REASON_UNSPECIFIED"
    SAFETY = "SAFETY"
    OTHER = "OTHER"
    BLOCKLIST = "BLOCKLIST"
    PROHIBITED_CONTENT = "PROHIBITED_CONTENT"
    IMAGE_SAFETY = "IMAGE_SAFETY"

    @classmethod
    def parse(cls, value: "BlockReason | str") -> "BlockReason":
        """Unknown values become ``OTHER``."""
        if isinstance(value, BlockReason):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class PromptFeedback:
    block_reason: Optional[BlockReason] = None
    safety_ratings: Tuple[SafetyRating, ...] = ()

    @property
    def blocked(self) -> bool:
        return self.block_reason is not None


__all__ = ["BlockReason", "PromptFeedback"]
