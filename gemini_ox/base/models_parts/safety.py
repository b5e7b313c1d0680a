"""
Safety settings sent with every request, and the ratings returned with responses.

Unless the caller overrides them, requests carry ``BLOCK_NONE`` for the four
adjustable harm categories.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple


class HarmCategory(str, Enum):
    HARASSMENT = "HARM_CATEGORY_HARASSMENT"
    HATE_SPEECH = "HARM_CATEGORY_HATE_SPEECH"
    SEXUALLY_EXPLICIT = "HARM_CATEGORY_SEXUALLY_EXPLICIT"
    DANGEROUS_CONTENT = "HARM_CATEGORY_DANGEROUS_CONTENT"
    CIVIC_INTEGRITY = "HARM_CATEGORY_CIVIC_INTEGRITY"


class HarmBlockThreshold(str, Enum):
    UNSPECIFIED = "HARM_BLOCK_THRESHOLD_UNSPECIFIED"
    BLOCK_LOW_AND_ABOVE = "BLOCK_LOW_AND_ABOVE"
    BLOCK_MEDIUM_AND_ABOVE = "BLOCK_MEDIUM_AND_ABOVE"
    BLOCK_ONLY_HIGH = "BLOCK_ONLY_HIGH"
    BLOCK_NONE = "BLOCK_NONE"
    OFF = "OFF"


@dataclass(frozen=True)
class SafetySetting:
    category: HarmCategory
    threshold: HarmBlockThreshold

    def to_wire(self) -> Dict[str, Any]:
        return {"category": self.category.value, "threshold": self.threshold.value}


@dataclass(frozen=True)
class SafetyRating:
    """Harm probability the service assigned to a prompt or candidate.

    ``category`` stays a plain string so categories newer than
    :class:`HarmCategory` are kept as received.
    """

    category: str
    probability: str
    blocked: bool = False


DEFAULT_SAFETY_SETTINGS: Tuple[SafetySetting, ...] = (
    SafetySetting(HarmCategory.HARASSMENT, HarmBlockThreshold.BLOCK_NONE),
    SafetySetting(HarmCategory.HATE_SPEECH, HarmBlockThreshold.BLOCK_NONE),
    SafetySetting(HarmCategory.SEXUALLY_EXPLICIT, HarmBlockThreshold.BLOCK_NONE),
    SafetySetting(HarmCategory.DANGEROUS_CONTENT, HarmBlockThreshold.BLOCK_NONE),
)

__all__ = ["HarmCategory", "HarmBlockThreshold", "SafetySetting", "SafetyRating", "DEFAULT_SAFETY_SETTINGS"]
