"""
Configuration Management for Smart Wallet

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here so it is easy to see which
external dependencies exist (Gemini, the snapshot file) and which
ledger limits are tunable.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini advisory model configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=512,
        ge=64,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class StorageSettings(BaseSettings):
    """Snapshot persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )

    snapshot_path: str = Field(
        default="data/smart_wallet_db.json",
        description="Path of the JSON snapshot file"
    )
    debounce_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Quiet period before a pending snapshot is written"
    )
    backup_prefix: str = Field(
        default="smart_wallet_backup",
        description="File name prefix for exported backups"
    )

    @field_validator('snapshot_path')
    @classmethod
    def validate_snapshot_path(cls, v: str) -> str:
        """A directory is not a valid snapshot target."""
        if Path(v).is_dir():
            raise ValueError(f"Snapshot path points to a directory: {v}")
        return v


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

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    audit_log_limit: int = Field(
        default=500,
        ge=1,
        le=10000,
        description="Number of audit entries retained (newest first)"
    )
    currency_label: str = Field(
        default="EGP",
        description="Currency label used in audit details and notifications"
    )
    upcoming_horizon_days: int = Field(
        default=7,
        ge=0,
        le=31,
        description="How many days ahead a due obligation is reported as upcoming"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Sub-settings are loaded lazily so a missing Gemini key only
    matters to the code that talks to Gemini.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus an
    `<name>_error` entry for each failing section.
    """
    results = {}
    settings = get_settings()

    for name in ("gemini", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
