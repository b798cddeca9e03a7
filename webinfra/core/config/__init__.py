"""Operator configuration."""

from .settings import Settings, cfg

__all__ = ["Settings", "cfg"]
