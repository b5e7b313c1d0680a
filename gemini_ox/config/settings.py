"""Client settings and the layered loader.

Sources are merged in a predictable order (later wins):

1. Built-in defaults (:mod:`gemini_ox.config.defaults`)
2. Optional JSON or YAML file pointed to by ``GEMINI_OX_CONFIG_FILE``
3. Environment variables (``GEMINI_API_KEY``, ``GEMINI_MODEL``,
   ``GEMINI_BASE_URL``, ``GEMINI_API_VERSION``)
4. In-code overrides passed to :func:`load_settings`

Nested sections (``retry``, ``rate_limit``, ``timeouts``) merge key by key.
Placeholder strings are dropped from every source.

Example file::

    api_key: ${GEMINI_API_KEY}   # placeholder syntax is ignored
    model: gemini-1.5-pro
    retry:
      max_attempts: 5
    rate_limit:
      capacity: 60
      refill_per_second: 1.0
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..base.clock import Clock
from ..base.errors import ValidationError
from ..base.resilience import NoopLimiter, RateLimiter, RetryConfig, TokenBucket
from ..base.timeouts import TimeoutConfig, get_timeout_config
from .defaults import (
    GEMINI_DEFAULT_API_VERSION,
    GEMINI_DEFAULT_BASE_URL,
    GEMINI_DEFAULT_MODEL,
    RATE_LIMIT_DEFAULT_CAPACITY,
    RATE_LIMIT_DEFAULT_REFILL_PER_SECOND,
    RETRY_DEFAULT_BASE_DELAY,
    RETRY_DEFAULT_JITTER,
    RETRY_DEFAULT_MAX_ATTEMPTS,
    RETRY_DEFAULT_MAX_DELAY,
)
from .env import CONFIG_FILE_ENV, ENV_FIELDS, is_placeholder, resolve_env


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class RetrySettings(_Section):
    max_attempts: int = Field(RETRY_DEFAULT_MAX_ATTEMPTS, ge=1)
    base_delay: float = Field(RETRY_DEFAULT_BASE_DELAY, ge=0)
    max_delay: float = Field(RETRY_DEFAULT_MAX_DELAY, ge=0)
    jitter: float = Field(RETRY_DEFAULT_JITTER, ge=0, le=1)

    def to_retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            jitter=self.jitter,
        )


class RateLimitSettings(_Section):
    """Token bucket parameters; ``enabled=False`` selects a pass-through limiter."""

    enabled: bool = True
    capacity: int = Field(RATE_LIMIT_DEFAULT_CAPACITY, ge=1)
    refill_per_second: float = Field(RATE_LIMIT_DEFAULT_REFILL_PER_SECOND, gt=0)

    def build_limiter(self, clock: Optional[Clock] = None) -> RateLimiter:
        if not self.enabled:
            return NoopLimiter(clock)
        return TokenBucket(self.capacity, self.refill_per_second, clock)


class TimeoutSettings(_Section):
    overall_seconds: Optional[float] = Field(None, gt=0)
    attempt_seconds: Optional[float] = Field(None, gt=0)

    @classmethod
    def from_env(cls) -> "TimeoutSettings":
        cfg = get_timeout_config()
        return cls(overall_seconds=cfg.overall_seconds, attempt_seconds=cfg.attempt_seconds)

    def to_timeout_config(self) -> TimeoutConfig:
        return TimeoutConfig(overall_seconds=self.overall_seconds, attempt_seconds=self.attempt_seconds)


class ClientSettings(BaseModel):
    """Everything needed to build a :class:`~gemini_ox.gemini.GeminiClient`."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    api_key: Optional[str] = Field(None, repr=False)
    model: str = GEMINI_DEFAULT_MODEL
    base_url: str = GEMINI_DEFAULT_BASE_URL
    api_version: str = GEMINI_DEFAULT_API_VERSION
    retry: RetrySettings = Field(default_factory=RetrySettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    timeouts: TimeoutSettings = Field(default_factory=TimeoutSettings.from_env)

    @field_validator("base_url")
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("model", "api_version")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be non-empty")
        return value.strip()


_FILE_CACHE: Optional[Dict[str, Any]] = None
_FILE_GUARD: Optional[str] = None


def _load_config_file() -> Dict[str, Any]:
    """Return the parsed settings file (JSON first, then YAML); ``{}`` when unset."""
    global _FILE_CACHE, _FILE_GUARD  # noqa: PLW0603 - module cache
    path = os.getenv(CONFIG_FILE_ENV) or ""
    if _FILE_CACHE is not None and _FILE_GUARD == path:
        return _FILE_CACHE
    data: Any = {}
    p = Path(path)
    if path and p.is_file():
        text = p.read_text(encoding="utf-8")
        try:
            data = json.loads(text)
        except ValueError:
            try:
                data = yaml.safe_load(text) or {}
            except yaml.YAMLError as exc:
                raise ValidationError.single(f"{CONFIG_FILE_ENV} file {path!r} is neither JSON nor YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ValidationError.single(f"{CONFIG_FILE_ENV} file {path!r} must contain a mapping")
    _FILE_CACHE = data
    _FILE_GUARD = path
    return data


def _clean(data: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, str) and is_placeholder(value):
            continue
        if isinstance(value, str) and value.startswith("${"):
            continue
        out[key] = _clean(value) if isinstance(value, Mapping) else value
    return out


def _merge(base: Dict[str, Any], extra: Mapping[str, Any]) -> Dict[str, Any]:
    for key, value in extra.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def _env_overrides() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for field in ENV_FIELDS:
        value, _ = resolve_env(field)
        if value is not None:
            out[field] = value
    return out


def load_settings(overrides: Optional[Mapping[str, Any]] = None) -> ClientSettings:
    """Return merged :class:`ClientSettings`.

    Merge order (later wins): defaults -> config file -> env vars -> overrides.

    Raises:
        ValidationError: the config file is unreadable or a merged value is
            out of range.
    """
    cfg: Dict[str, Any] = {}
    cfg = _merge(cfg, _clean(_load_config_file()))
    cfg = _merge(cfg, _env_overrides())
    if overrides:
        cfg = _merge(cfg, _clean(overrides))
    try:
        return ClientSettings.model_validate(cfg)
    except PydanticValidationError as exc:
        violations = [f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()]
        raise ValidationError(violations=violations) from exc


def reset_settings_cache() -> None:
    """Forget the cached config file (tests switch files between cases)."""
    global _FILE_CACHE, _FILE_GUARD  # noqa: PLW0603 - module cache
    _FILE_CACHE = None
    _FILE_GUARD = None


__all__ = [
    "ClientSettings",
    "RetrySettings",
    "RateLimitSettings",
    "TimeoutSettings",
    "load_settings",
    "reset_settings_cache",
]
