"""
Configuration management for Backend TrustChain.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for service configuration.
"""

from backend_trustchain.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
