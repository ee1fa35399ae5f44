"""
Version information for proxy-cache.

The package version is read from the installed distribution metadata, so
pyproject.toml stays the single source of truth.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("proxy-cache")
except PackageNotFoundError:
    # Running from a source checkout without an install
    __version__ = "0.0.0-dev"
