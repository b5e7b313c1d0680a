"""Pytest configuration for the gemini_ox test suite.

Fixtures:
    - fake_clock: a :class:`FakeClock` starting at t=1000.
    - log_records: routes every ``gemini_ox`` record to a list handler at
      DEBUG level for the duration of a test.
    - clean_env: removes configuration environment variables.
"""

from __future__ import annotations

import logging
from typing import Iterator

import pytest

from gemini_ox.base.logging import BASE_LOGGER_NAME, get_logger
from gemini_ox.config import reset_settings_cache
from gemini_ox.tests.utils import FakeClock, ListHandler

_CONFIG_ENV = (
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "GEMINI_MODEL",
    "GEMINI_BASE_URL",
    "GEMINI_API_VERSION",
    "GEMINI_OX_CONFIG_FILE",
    "GEMINI_OX_TIMEOUT_OVERALL_SECONDS",
    "GEMINI_OX_TIMEOUT_ATTEMPT_SECONDS",
)


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock(start=1000.0)


@pytest.fixture()
def log_records() -> Iterator[ListHandler]:
    base = get_logger(BASE_LOGGER_NAME)
    handler = ListHandler()
    saved_handlers, saved_level = list(base.handlers), base.level
    base.handlers[:] = [handler]
    base.setLevel(logging.DEBUG)
    try:
        yield handler
    finally:
        base.handlers[:] = saved_handlers
        base.setLevel(saved_level)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[pytest.MonkeyPatch]:
    for name in _CONFIG_ENV:
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    yield monkeypatch
    reset_settings_cache()
