"""
Configuration Management for FinanTech

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Nothing else in the package reads environment variables directly, so the
database location and export directory can be swapped in one place.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Local SQLite store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANTECH_DB_",
        extra="ignore"
    )

    path: str = Field(
        default="finantech.db",
        description="Path to the SQLite database file (':memory:' for a throwaway store)"
    )
    timeout_seconds: float = Field(
        default=5.0,
        ge=0.0,
        le=60.0,
        description="How long to wait on a locked database before failing"
    )


class ExportSettings(BaseSettings):
    """Spreadsheet CSV export configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANTECH_EXPORT_",
        extra="ignore"
    )

    directory: str = Field(
        default=".",
        description="Directory where exported CSV files are written"
    )
    title: str = Field(
        default="Danillo Gastos Mensais",
        description="Title written above the month header"
    )
    file_prefix: str = Field(
        default="finantech_export",
        description="Prefix of generated export file names"
    )

    @field_validator('file_prefix')
    @classmethod
    def validate_file_prefix(cls, v: str) -> str:
        """The prefix ends up in a file name, so no path separators."""
        if not v or "/" in v or "\\" in v:
            raise ValueError(f"Invalid export file prefix: {v!r}")
        return v

    @property
    def directory_path(self) -> Path:
        """Export directory as an absolute path."""
        return Path(self.directory).expanduser().resolve()


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Unsupported log level: {v}. Allowed: {sorted(allowed)}")
        return v.upper()


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def export(self) -> ExportSettings:
        return ExportSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with an extra
    "<name>_error" entry for each section that failed.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    sections = {
        "database": lambda: settings.database,
        "export": lambda: settings.export,
        "app": lambda: settings.app,
    }
    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
