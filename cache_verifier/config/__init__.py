"""Configuration module for the cache verifier."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
