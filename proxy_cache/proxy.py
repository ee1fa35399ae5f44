"""
Caching proxy for an object's asynchronous methods.

``ProxyCache`` wraps an existing object and replaces a chosen set of its
methods with versions that

- serve repeated calls from a bounded, age-limited cache, and
- collapse concurrent identical calls into one upstream call whose result is
  handed to every waiting caller.

Everything else on the object is forwarded untouched, so the proxy can be
dropped in wherever the original was used::

    client = ProxyCache(UserClient(), ["fetch_user"], max_age=30)
    user = await client.fetch_user(1)
"""

from __future__ import annotations

import asyncio
import copy
import functools
import inspect
import logging
import numbers
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Union

from .config.models import ProxyCacheOptions
from .observability.metrics import CALLS, DURATION, HIT, MISS, SIZE, NullStats
from .utils.cache import MISSING, CacheStore
from .utils.inflight import InFlightRegistry
from .utils.keys import make_key, make_typed_key

logger = logging.getLogger(__name__)

_SCALARS = (str, bytes, bytearray, numbers.Number)
_STATE = frozenset(
    {
        "_parent",
        "_methods",
        "_options",
        "_stats",
        "_store",
        "_inflight",
        "_tasks",
        "_make_key",
        "_passthrough",
    }
)


def _build_options(
    options: Union[ProxyCacheOptions, Mapping[str, Any], None],
    overrides: Mapping[str, Any],
) -> ProxyCacheOptions:
    if options is None:
        data: Dict[str, Any] = {}
    elif isinstance(options, ProxyCacheOptions):
        if not overrides:
            return options
        data = {name: getattr(options, name) for name in ProxyCacheOptions.model_fields}
    elif isinstance(options, Mapping):
        data = dict(options)
    else:
        raise TypeError("Options must be a ProxyCacheOptions or a mapping.")
    data.update(overrides)
    return ProxyCacheOptions.model_validate(data)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


class ProxyCache:  # pylint: disable=too-many-instance-attributes
    """
    Proxy that caches and coalesces calls to selected async methods.

    The proxy keeps its own state in underscore-prefixed attributes; any other
    attribute is looked up on the wrapped instance.
    """

    def __init__(
        self,
        instance: Any,
        methods: Union[List[str], tuple],
        options: Union[ProxyCacheOptions, Mapping[str, Any], None] = None,
        *,
        passthrough: Optional[Iterable[str]] = None,
        **overrides: Any,
    ):
        """
        Wrap `instance`, caching the methods named in `methods`.

        Parameters
        ----------
        instance : object
            Object whose methods are wrapped and whose other members are
            forwarded.
        methods : list of str
            Names of the methods to cache. Each must be callable on
            `instance`.
        options : ProxyCacheOptions or mapping, optional
            Cache options; see :class:`ProxyCacheOptions`.
        passthrough : iterable of str, optional
            Restrict forwarding to these members. Each must exist on
            `instance`. When omitted, every attribute is forwarded.
        **overrides
            Individual options applied on top of `options`.

        Raises
        ------
        TypeError
            If `instance` is not an object, `methods` is not a list of names,
            or a named method is not callable.
        AttributeError
            If a `passthrough` member does not exist on `instance`.
        ValueError
            If an option is out of range.
        """
        if instance is None or isinstance(instance, _SCALARS):
            raise TypeError("Instance must be an object.")
        if not isinstance(methods, (list, tuple)) or not all(
            isinstance(name, str) for name in methods
        ):
            raise TypeError("Methods must be a list of method names.")

        opts = _build_options(options, overrides)

        for name in methods:
            if name in _STATE or hasattr(ProxyCache, name):
                raise TypeError(f"Cannot cache {name!r}: name is reserved by the proxy.")
            if not callable(getattr(instance, name, None)):
                raise TypeError(f"Can only cache methods! {name!r} is not callable.")

        allowed: Optional[frozenset] = None
        if passthrough is not None:
            allowed = frozenset(passthrough)
            missing = sorted(name for name in allowed if not hasattr(instance, name))
            if missing:
                raise AttributeError(
                    f"{type(instance).__name__} has no member(s) {', '.join(missing)}"
                )

        self._parent = instance
        self._methods = tuple(methods)
        self._options = opts
        self._stats = opts.stats if opts.stats is not None else NullStats()
        self._store = CacheStore(
            opts.max_size,
            opts.max_age,
            stale=opts.stale,
            peek=opts.peek,
            timer=opts.timer,
        )
        self._inflight = InFlightRegistry(copy_results=opts.copy_results)
        self._tasks: Set[asyncio.Task] = set()
        self._make_key: Callable[..., str] = (
            make_typed_key if opts.typed_keys else make_key
        )
        self._passthrough = allowed

        for name in self._methods:
            setattr(self, name, self._wrap(name))

        logger.debug(
            "proxy_cache.created",
            extra={
                "target": type(instance).__name__,
                "methods": list(self._methods),
                "max_size": opts.max_size,
                "max_age": opts.max_age,
            },
        )

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails; guard against lookups made
        # before __init__ has stored the parent (copy, pickle).
        state = self.__dict__
        if "_parent" not in state:
            raise AttributeError(name)
        allowed = state.get("_passthrough")
        if allowed is not None and name not in allowed:
            raise AttributeError(
                f"{type(state['_parent']).__name__} proxy does not expose {name!r}"
            )
        return getattr(state["_parent"], name)

    def __repr__(self) -> str:
        return (
            f"<ProxyCache {type(self._parent).__name__} "
            f"methods={list(self._methods)} size={len(self._store)}>"
        )

    def _copy(self, value: Any) -> Any:
        return copy.deepcopy(value) if self._options.copy_results else value

    def _wrap(self, name: str) -> Callable[..., Any]:
        """Build the caching coroutine function that stands in for `name`."""
        original = getattr(self._parent, name)
        tags = [f"method:{name}"]

        @functools.wraps(original)
        async def cached(*args: Any, **kwargs: Any) -> Any:
            key = self._make_key(name, args, kwargs)
            self._stats.incr(CALLS, 1, tags)
            self._stats.gauge(SIZE, len(self._store), tags)

            value = self._store.lookup(key)
            if value is not MISSING:
                self._stats.incr(HIT, 1, tags)
                logger.debug("proxy_cache.hit", extra={"method": name, "key": key})
                value = self._copy(value)
                # Hits are delivered on a later loop iteration, like misses.
                await asyncio.sleep(0)
                return value

            # No await between the lookup above and the enqueue below.
            future, leader = self._inflight.enqueue(key)
            if leader:
                self._stats.incr(MISS, 1, tags)
                logger.debug("proxy_cache.miss", extra={"method": name, "key": key})
                task = asyncio.create_task(self._call_upstream(name, key, tags, args, kwargs))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
            return await future

        return cached

    async def _call_upstream(
        self,
        name: str,
        key: str,
        tags: List[str],
        args: tuple,
        kwargs: Dict[str, Any],
    ) -> None:
        """Run the real method once and settle every caller waiting on `key`."""
        start = time.perf_counter()
        try:
            result = getattr(self._parent, name)(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
        except asyncio.CancelledError:
            self._stats.timer(DURATION, _elapsed_ms(start), tags)
            logger.warning(
                "proxy_cache.upstream_cancelled", extra={"method": name, "key": key}
            )
            self._inflight.cancel(key)
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._stats.timer(DURATION, _elapsed_ms(start), tags)
            logger.warning(
                "proxy_cache.upstream_failed",
                extra={
                    "method": name,
                    "key": key,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            self._inflight.reject(key, exc)
            return
        except BaseException as exc:
            # KeyboardInterrupt, SystemExit and the like still settle the key.
            self._stats.timer(DURATION, _elapsed_ms(start), tags)
            logger.warning(
                "proxy_cache.upstream_aborted",
                extra={"method": name, "key": key, "error_type": type(exc).__name__},
            )
            self._inflight.reject(key, exc)
            raise

        self._stats.timer(DURATION, _elapsed_ms(start), tags)
        stored = result
        if self._options.copy_results:
            try:
                stored = copy.deepcopy(result)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.warning(
                    "proxy_cache.copy_failed",
                    extra={"method": name, "key": key, "error": str(exc)},
                )
                self._inflight.reject(key, exc)
                return
        if result is not None or self._options.tombstone:
            self._store.set(key, stored)
        self._inflight.resolve(key, stored)


def unwrap(proxy: ProxyCache) -> Any:
    """Return the instance wrapped by `proxy`."""
    return proxy._parent  # pylint: disable=protected-access


def cache_of(proxy: ProxyCache) -> CacheStore:
    """Return the cache store owned by `proxy`."""
    return proxy._store  # pylint: disable=protected-access


def options_of(proxy: ProxyCache) -> ProxyCacheOptions:
    """Return the options `proxy` was built with."""
    return proxy._options  # pylint: disable=protected-access
