"""Central configuration for the AI job board.

This module uses Pydantic Settings for validation and env management.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class DatabaseSettings(BaseSettings):
    """Database configuration."""
    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str = Field(
        default="sqlite+aiosqlite:///./jobboard.db",
        description="Async database connection URL",
    )
    echo: bool = Field(default=False)


class ScoringSettings(BaseSettings):
    """Scoring service (OpenAI chat completions) configuration."""
    model_config = SettingsConfigDict(
        env_prefix="SCORING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "SCORING_API_KEY"),
        description="Credential for the scoring service",
    )
    model: str = Field(default="gpt-3.5-turbo")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(default=10, ge=1, le=256)


class MatchingSettings(BaseSettings):
    """Batch matching and ranking configuration."""
    model_config = SettingsConfigDict(
        env_prefix="MATCHING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    delay_seconds: float = Field(
        default=0.1,
        ge=0.0,
        description="Pause between consecutive scoring calls",
    )
    min_percentage: int = Field(
        default=50,
        ge=0,
        le=100,
        description="Matches must score strictly above this to be listed",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration."""
    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = Field(default="INFO")
    format: Literal["json", "text"] = Field(default="json")
    file: str | None = Field(default=None)

    @field_validator("level")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.upper()


class Settings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(default=Environment.DEVELOPMENT)
    debug: bool = Field(default=False)
    app_name: str = Field(default="AI Job Board")
    version: str = Field(default="0.1.0")

    # Sub-configs
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
