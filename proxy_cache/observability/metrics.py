"""Metrics sinks for cache traffic.

A :class:`StatsSink` receives counters, gauges and timers, each tagged with
the wrapped method (``method:<name>``). Proxies default to their own
:class:`NullStats`; pass any object with the same three methods (a statsd or
Datadog client, for example) to forward metrics elsewhere.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence, runtime_checkable

logger = logging.getLogger(__name__)

CALLS = "proxy-cache.calls"
SIZE = "proxy-cache.size"
HIT = "proxy-cache.hit"
MISS = "proxy-cache.miss"
DURATION = "proxy-cache.duration"


@runtime_checkable
class StatsSink(Protocol):
    """Interface expected from a metrics collector."""

    def gauge(self, name: str, value: float, tags: Sequence[str]) -> None: ...

    def incr(self, name: str, delta: int, tags: Sequence[str]) -> None: ...

    def timer(self, name: str, ms: float, tags: Sequence[str]) -> None: ...


class NullStats:
    """Sink that discards everything."""

    def gauge(self, name: str, value: float, tags: Sequence[str]) -> None:
        return None

    def incr(self, name: str, delta: int, tags: Sequence[str]) -> None:
        return None

    def timer(self, name: str, ms: float, tags: Sequence[str]) -> None:
        return None


class LoggingStats:
    """Sink that emits each metric as a DEBUG log record.

    Useful in development, where a metrics backend is not running but the
    hit/miss pattern of a proxy is still of interest.
    """

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    def _emit(self, kind: str, name: str, value: float, tags: Sequence[str]) -> None:
        tag_list: List[str] = list(tags)
        self._log.debug(
            f"{name} {kind}={value} tags={','.join(tag_list)}",
            extra={"metric": name, "kind": kind, "value": value, "tags": tag_list},
        )

    def gauge(self, name: str, value: float, tags: Sequence[str]) -> None:
        self._emit("gauge", name, value, tags)

    def incr(self, name: str, delta: int, tags: Sequence[str]) -> None:
        self._emit("incr", name, delta, tags)

    def timer(self, name: str, ms: float, tags: Sequence[str]) -> None:
        self._emit("timer", name, ms, tags)
