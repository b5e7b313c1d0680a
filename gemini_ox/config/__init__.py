"""Configuration layer: defaults, environment mapping and merged settings.

Public API
----------
* load_settings(overrides: dict | None = None) -> ClientSettings
* is_placeholder(value) -> bool
* Model: well-known model names
"""
from __future__ import annotations

from .defaults import (
    GEMINI_API_KEY_HEADER,
    GEMINI_DEFAULT_API_VERSION,
    GEMINI_DEFAULT_BASE_URL,
    GEMINI_DEFAULT_MODEL,
    Model,
)
from .env import CONFIG_FILE_ENV, is_placeholder, resolve_env
from .settings import (
    ClientSettings,
    RateLimitSettings,
    RetrySettings,
    TimeoutSettings,
    load_settings,
    reset_settings_cache,
)

__all__ = [
    "CONFIG_FILE_ENV",
    "ClientSettings",
    "GEMINI_API_KEY_HEADER",
    "GEMINI_DEFAULT_API_VERSION",
    "GEMINI_DEFAULT_BASE_URL",
    "GEMINI_DEFAULT_MODEL",
    "Model",
    "RateLimitSettings",
    "RetrySettings",
    "TimeoutSettings",
    "is_placeholder",
    "load_settings",
    "reset_settings_cache",
    "resolve_env",
]
