"""Configuration module for chatmeter."""

from chatmeter.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
