"""
Configuration management for Backend BuyBot.

Loads and validates settings from environment variables and an optional .env
file. Exposes a single source of truth for all service configuration.
"""

from backend_buybot.config.settings import LinkConfig, Settings, get_settings, load_settings  # noqa: F401

__all__ = ["LinkConfig", "Settings", "get_settings", "load_settings"]
