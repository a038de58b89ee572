"""
Configuration package initialization.

Settings are loaded from environment variables prefixed with ``FLEETLINK_``,
an optional ``.env`` file, or a YAML file via ``LinkSettings.from_yaml``.
"""

from .manager import (
    PRODUCTION_BASE_URL,
    Environment,
    FallbackPolicy,
    LinkSettings,
    get_settings,
)

__all__ = [
    "PRODUCTION_BASE_URL",
    "Environment",
    "FallbackPolicy",
    "LinkSettings",
    "get_settings",
]
