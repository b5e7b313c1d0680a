"""gemini_ox.config.defaults
=========================

Central place for small, stable default values used across the package.
They can be overridden through the settings file, environment variables or
in-code overrides (see :mod:`gemini_ox.config.settings`).

Only plain constants and the :class:`Model` enum live here; no I/O and no
imports from the rest of the package.
"""

from __future__ import annotations

from enum import Enum


class Model(str, Enum):
    """Well-known model names (any other model string is accepted as well)."""

    GEMINI_15_FLASH = "gemini-1.5-flash"
    GEMINI_15_PRO = "gemini-1.5-pro"
    GEMINI_20_FLASH = "gemini-2.0-flash"
    GEMINI_25_FLASH = "gemini-2.5-flash"
    GEMINI_25_PRO = "gemini-2.5-pro"

    def __str__(self) -> str:
        return self.value


# ---- Service endpoint ----
GEMINI_DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"
GEMINI_DEFAULT_API_VERSION = "v1beta"
GEMINI_DEFAULT_MODEL = Model.GEMINI_15_FLASH.value

# Header carrying the API key on every request.
GEMINI_API_KEY_HEADER = "x-goog-api-key"


# ---- Retry ----
RETRY_DEFAULT_MAX_ATTEMPTS = 3
RETRY_DEFAULT_BASE_DELAY = 1.0
RETRY_DEFAULT_MAX_DELAY = 30.0
RETRY_DEFAULT_JITTER = 0.1


# ---- Admission control ----
# Free-tier friendly: 15 requests per minute.
RATE_LIMIT_DEFAULT_CAPACITY = 15
RATE_LIMIT_DEFAULT_REFILL_PER_SECOND = 15 / 60.0


__all__ = [
    "Model",
    "GEMINI_DEFAULT_BASE_URL",
    "GEMINI_DEFAULT_API_VERSION",
    "GEMINI_DEFAULT_MODEL",
    "GEMINI_API_KEY_HEADER",
    "RETRY_DEFAULT_MAX_ATTEMPTS",
    "RETRY_DEFAULT_BASE_DELAY",
    "RETRY_DEFAULT_MAX_DELAY",
    "RETRY_DEFAULT_JITTER",
    "RATE_LIMIT_DEFAULT_CAPACITY",
    "RATE_LIMIT_DEFAULT_REFILL_PER_SECOND",
]
