"""
In-flight call coordination for identical concurrent requests.

Tracks, per cache key, the callers waiting on an upstream call that has not
resolved yet. The first caller for a key becomes the leader and issues the
upstream call; later callers for the same key only get a future to await.
When the call settles, every waiter is completed in arrival order and the key
returns to idle.

All methods are synchronous. The registry relies on the event loop never
switching tasks between a membership check and the insert that follows it.
"""

import asyncio
import copy
import logging
from typing import Any, Dict, List, Tuple

logger = logging.getLogger(__name__)


class InFlightRegistry:
    """Per-key queues of futures waiting on an outstanding upstream call.

    An entry for a key exists exactly while an upstream call for that key is
    outstanding.
    """

    def __init__(self, *, copy_results: bool = True):
        """
        Initialize an empty registry.

        Parameters
        ----------
        copy_results : bool
            Hand each waiter its own deep copy of the result instead of the
            shared object.
        """
        self.copy_results = copy_results
        self._waiters: Dict[str, List[asyncio.Future]] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._waiters

    def __len__(self) -> int:
        return len(self._waiters)

    def pending(self, key: str) -> int:
        """Return the number of callers queued on `key`."""
        return len(self._waiters.get(key, ()))

    def enqueue(self, key: str) -> Tuple[asyncio.Future, bool]:
        """
        Queue a caller on `key`.

        Returns
        -------
        Tuple[asyncio.Future, bool]
            The future the caller should await, and whether the caller is the
            leader that must issue the upstream call.
        """
        future = asyncio.get_running_loop().create_future()
        waiters = self._waiters.get(key)
        if waiters is None:
            self._waiters[key] = [future]
            return future, True
        waiters.append(future)
        logger.debug(
            "proxy_cache.inflight.joined",
            extra={"key": key, "waiters": len(waiters)},
        )
        return future, False

    def _pop(self, key: str) -> List[asyncio.Future]:
        try:
            return self._waiters.pop(key)
        except KeyError as exc:
            raise KeyError(f"no call in flight for key {key!r}") from exc

    def resolve(self, key: str, result: Any) -> int:
        """
        Complete every waiter on `key` with `result`, first caller first.

        Waiters that were cancelled in the meantime are skipped. A waiter whose
        copy of the result cannot be made gets the copy error instead.

        Returns
        -------
        int
            Number of waiters that received the result.
        """
        delivered = 0
        for future in self._pop(key):
            if future.done():
                continue
            if not self.copy_results:
                future.set_result(result)
                delivered += 1
                continue
            try:
                value = copy.deepcopy(result)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.warning(
                    "proxy_cache.inflight.copy_failed",
                    extra={"key": key, "error": str(exc)},
                )
                future.set_exception(exc)
                continue
            future.set_result(value)
            delivered += 1
        return delivered

    def reject(self, key: str, exc: BaseException) -> int:
        """Fail every waiter on `key` with the same exception, in order."""
        delivered = 0
        for future in self._pop(key):
            if future.done():
                continue
            future.set_exception(exc)
            delivered += 1
        return delivered

    def cancel(self, key: str) -> int:
        """Cancel every waiter on `key` after the upstream call was cancelled."""
        cancelled = 0
        for future in self._pop(key):
            if future.cancel():
                cancelled += 1
        return cancelled
