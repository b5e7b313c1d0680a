"""gemini_ox.config.env
====================

Environment variable names read by the configuration layer, plus the
placeholder heuristic shared by every source.

Failure Modes
-------------
Helpers never raise on unset variables; callers decide how to proceed.
"""

from __future__ import annotations

import os
from typing import Dict, Optional, Tuple

CONFIG_FILE_ENV = "GEMINI_OX_CONFIG_FILE"

# Setting field -> ordered env var names (canonical first).
ENV_FIELDS: Dict[str, Tuple[str, ...]] = {
    "api_key": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),  # pragma: allowlist secret - env names only
    "model": ("GEMINI_MODEL",),
    "base_url": ("GEMINI_BASE_URL",),
    "api_version": ("GEMINI_API_VERSION",),
}

_PLACEHOLDER_MARKERS = ("placeholder", "changeme", "your-api-key", "your_api_key", "<")


def is_placeholder(val: Optional[str]) -> bool:
    """Return True if ``val`` looks like a placeholder rather than a real value.

    Heuristics: contains 'placeholder', 'changeme', 'your-api-key' or an angle
    bracket, or starts with 'test_'. Case-insensitive.
    """
    if val is None:
        return False
    v = str(val).strip().lower()
    return any(marker in v for marker in _PLACEHOLDER_MARKERS) or v.startswith("test_")


def resolve_env(field: str) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(value, env_var_used)`` for a setting field.

    Empty and placeholder values are skipped; ``(None, None)`` when nothing
    usable is set.
    """
    for name in ENV_FIELDS.get(field, ()):
        val = os.environ.get(name)
        if val and not is_placeholder(val):
            return val.strip(), name
    return None, None


__all__ = ["CONFIG_FILE_ENV", "ENV_FIELDS", "is_placeholder", "resolve_env"]
