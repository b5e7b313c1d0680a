"""Why the model stopped generating."""
from __future__ import annotations

from enum import Enum


class FinishReason(str, Enum):
    FINISH_REASON_UNSPECIFIED = "FINISH_REASON_UNSPECIFIED"
    STOP = "STOP"
    MAX_TOKENS = "MAX_TOKENS"
    SAFETY = "SAFETY"
    RECITATION = "RECITATION"
    LANGUAGE = "LANGUAGE"
    OTHER = "OTHER"
    BLOCKLIST = "BLOCKLIST"
    PROHIBITED_CONTENT = "PROHIBITED_CONTENT"
    SPII = "SPII"
    MALFORMED_FUNCTION_CALL = "MALFORMED_FUNCTION_CALL"

    @classmethod
    def parse(cls, value: "FinishReason | str") -> "FinishReason":
        """Map a wire string to a member; unknown values become ``OTHER``."""
        if isinstance(value, FinishReason):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.OTHER


__all__ = ["FinishReason"]
