"""
Proxy cache package.

Wraps an object's async methods with a bounded, age-limited cache and
coalesces concurrent identical calls into one upstream call. See
:class:`proxy_cache.proxy.ProxyCache`.
"""

from .__version__ import __version__
from .config.models import EnvSettings, ProxyCacheOptions
from .observability import LoggingStats, NullStats, StatsSink, setup_logging
from .proxy import ProxyCache, cache_of, options_of, unwrap

__all__ = [
    "__version__",
    "EnvSettings",
    "LoggingStats",
    "NullStats",
    "ProxyCache",
    "ProxyCacheOptions",
    "StatsSink",
    "cache_of",
    "options_of",
    "setup_logging",
    "unwrap",
]
