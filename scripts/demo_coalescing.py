#!/usr/bin/env python3
"""
Coalescing demo

Wraps a deliberately slow fake user client in a ProxyCache, fires a burst of
concurrent identical calls, then repeats the burst after the cache is warm.
Each metric the proxy emits is logged through LoggingStats, so the hit/miss
pattern is visible at DEBUG.

Usage:
    python scripts/demo_coalescing.py --callers 20 --delay 0.5 --log-level DEBUG

Expected output:
    - First burst: one upstream call for all callers
    - Second burst: zero upstream calls (served from cache)
    - After --max-age seconds: one upstream call again

Environment:
    PROXY_CACHE_* variables (see EnvSettings) set the cache defaults.
"""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from proxy_cache import EnvSettings, LoggingStats, ProxyCache, setup_logging  # noqa: E402

logger = logging.getLogger("demo_coalescing")


class SlowUserClient:
    """Fake API client whose lookups take `delay` seconds."""

    def __init__(self, delay: float):
        self.delay = delay
        self.upstream_calls = 0

    async def fetch_user(self, user_id: int) -> dict:
        self.upstream_calls += 1
        await asyncio.sleep(self.delay)
        return {"id": user_id, "name": f"user-{user_id}"}


async def burst(client: ProxyCache, callers: int, user_id: int) -> float:
    """Issue `callers` concurrent lookups of `user_id`; return elapsed seconds."""
    start = time.perf_counter()
    results = await asyncio.gather(*(client.fetch_user(user_id) for _ in range(callers)))
    elapsed = time.perf_counter() - start
    assert all(result == results[0] for result in results)
    return elapsed


async def run(callers: int, delay: float, max_age: float) -> None:
    settings = EnvSettings()
    backend = SlowUserClient(delay)
    options = settings.to_options(max_age=max_age, stats=LoggingStats())
    client = ProxyCache(backend, ["fetch_user"], options)

    for label in ("cold", "warm"):
        before = backend.upstream_calls
        elapsed = await burst(client, callers, user_id=1)
        logger.info(
            f"{label} burst: {callers} callers, "
            f"{backend.upstream_calls - before} upstream call(s), {elapsed:.3f}s"
        )

    logger.info(f"waiting {max_age + 0.1:.1f}s for the entry to expire")
    await asyncio.sleep(max_age + 0.1)
    before = backend.upstream_calls
    elapsed = await burst(client, callers, user_id=1)
    logger.info(
        f"expired burst: {callers} callers, "
        f"{backend.upstream_calls - before} upstream call(s), {elapsed:.3f}s"
    )


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="ProxyCache coalescing demo")
    parser.add_argument("--callers", type=int, default=10)
    parser.add_argument("--delay", type=float, default=0.3)
    parser.add_argument("--max-age", type=float, default=1.0)
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args()

    setup_logging(args.log_level or EnvSettings().log_level)
    asyncio.run(run(args.callers, args.delay, args.max_age))
    return 0


if __name__ == "__main__":
    sys.exit(main())
