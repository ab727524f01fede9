"""Configuration package."""

from propertyxchange.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
