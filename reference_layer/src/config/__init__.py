"""Configuration module for reference layer."""

from .settings import DEFAULT_DOC_PATH, Settings, get_settings

__all__ = [
    "DEFAULT_DOC_PATH",
    "Settings",
    "get_settings",
]
