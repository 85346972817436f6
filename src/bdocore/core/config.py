"""Configuration management for bdocore.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Settings are read once and cached;
call ``get_settings.cache_clear()`` to pick up environment changes.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library configuration settings.

    Settings are loaded from environment variables and .env files.
    All configuration values are validated on first access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="BDOCORE_",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "production", "testing"] = "development"

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Expression Evaluator Settings
    max_expression_depth: int = Field(
        default=64,
        ge=1,
        description="Maximum nesting depth of an expression tree before evaluation aborts",
    )
    short_circuit_logical: bool = Field(
        default=True,
        description="Stop evaluating AND/OR arguments once the result is known",
    )

    # Filter Tree Settings
    max_filter_depth: int = Field(
        default=32,
        ge=1,
        description="Maximum group nesting accepted when loading a filter payload",
    )
    default_root_operator: Literal["And", "Or"] = "And"

    @field_validator("default_root_operator", mode="before")
    @classmethod
    def normalize_root_operator(cls, v: str) -> str:
        """Accept AND/and/And spellings for the root operator."""
        if isinstance(v, str):
            return v.strip().capitalize()
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Cached settings instance.
    """
    return Settings()
