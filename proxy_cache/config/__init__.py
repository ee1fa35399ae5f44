"""Configuration models."""

from .models import EnvSettings, ProxyCacheOptions

__all__ = ["EnvSettings", "ProxyCacheOptions"]
