"""Config models and loader.

This module defines the Pydantic model holding a proxy's options, plus
environment-based settings that supply defaults for them. Options are fixed
when a proxy is built; the model is frozen so nothing can change them later.
"""

from __future__ import annotations

import json
import time
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..observability.metrics import StatsSink


class ProxyCacheOptions(BaseModel):
    """Options for a single proxy.

    Attributes
    ----------
    max_size: int
        Maximum number of cached entries.
    max_age: float
        Seconds before an entry expires; ``0`` disables expiry. A
        ``datetime.timedelta`` is accepted as well.
    stale: bool
        Serve an expired but still resident entry once instead of missing.
    peek: bool
        Read without refreshing recency, so ``max_age`` applies to hot keys.
    tombstone: bool
        Cache ``None`` results too.
    typed_keys: bool
        Use type-tagged keys instead of the joined ``method:arg`` form.
    copy_results: bool
        Hand every caller its own deep copy of the result.
    stats: Optional[StatsSink]
        Metrics sink; each proxy gets its own ``NullStats`` when unset.
    timer: Callable[[], float]
        Clock used for entry ages.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    max_size: int = Field(10000, ge=1, description="Maximum cached entries")
    max_age: float = Field(60.0, ge=0, description="Entry lifetime in seconds")
    stale: bool = False
    peek: bool = True
    tombstone: bool = True
    typed_keys: bool = False
    copy_results: bool = True
    stats: Optional[Any] = Field(default=None, description="StatsSink instance")
    timer: Callable[[], float] = time.monotonic

    @field_validator("max_age", mode="before")
    @classmethod
    def coerce_timedelta(cls, value: Any) -> Any:
        if isinstance(value, timedelta):
            return value.total_seconds()
        return value

    @field_validator("stats")
    @classmethod
    def check_stats(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, StatsSink):
            raise ValueError("stats must provide gauge(), incr() and timer()")
        return value

    @staticmethod
    def load(path: Path) -> "ProxyCacheOptions":
        """Load options from a JSON file.

        Only plain values can come from a file; ``stats`` and ``timer`` keep
        their defaults.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return ProxyCacheOptions.model_validate(data)


class EnvSettings(BaseSettings):
    """Environment-driven settings and .env support.

    Attributes
    ----------
    log_level: str
        Logging level name (e.g., "DEBUG", "INFO"). Defaults to "INFO".
    max_size: int
        Default for ``ProxyCacheOptions.max_size``.
    max_age: float
        Default for ``ProxyCacheOptions.max_age`` in seconds.
    stale, peek, tombstone, typed_keys, copy_results: bool
        Defaults for the matching ``ProxyCacheOptions`` flags.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="PROXY_CACHE_", extra="ignore"
    )

    log_level: str = Field("INFO")
    max_size: int = Field(10000, ge=1)
    max_age: float = Field(60.0, ge=0)
    stale: bool = False
    peek: bool = True
    tombstone: bool = True
    typed_keys: bool = False
    copy_results: bool = True

    def to_options(self, **overrides: Any) -> ProxyCacheOptions:
        """Build proxy options from these settings, with `overrides` on top."""
        data = self.model_dump(exclude={"log_level"})
        data.update(overrides)
        return ProxyCacheOptions.model_validate(data)
