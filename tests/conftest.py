"""Pytest configuration for test suite.

Ensures the project root is on ``sys.path`` so imports like
``import proxy_cache`` resolve correctly regardless of the working directory
pytest chooses, and provides a controllable clock and a recording metrics
sink.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Tuple

import pytest


def _ensure_project_root_on_syspath() -> None:
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)
    if project_root_str not in sys.path:
        # Prepend to prefer local sources over site-packages
        sys.path.insert(0, project_root_str)


_ensure_project_root_on_syspath()


class FakeClock:
    """Manually advanced clock for entry ages."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingStats:
    """Metrics sink that keeps every call for later assertions."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, str, float, Tuple[str, ...]]] = []

    def gauge(self, name, value, tags):
        self.calls.append(("gauge", name, value, tuple(tags)))

    def incr(self, name, delta, tags):
        self.calls.append(("incr", name, delta, tuple(tags)))

    def timer(self, name, ms, tags):
        self.calls.append(("timer", name, ms, tuple(tags)))

    def names(self, kind: str) -> List[str]:
        return [name for k, name, _, _ in self.calls if k == kind]

    def count(self, kind: str, name: str) -> int:
        return sum(1 for k, n, _, _ in self.calls if k == kind and n == name)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stats() -> RecordingStats:
    return RecordingStats()
