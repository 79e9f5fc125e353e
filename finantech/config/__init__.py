"""Configuration package."""

from finantech.config.settings import (
    AppSettings,
    DatabaseSettings,
    ExportSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "ExportSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
