"""
Configuration management for Backend SolView.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for provider keys, timeouts and API options.
"""

from backend_solview.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
