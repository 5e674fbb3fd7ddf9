"""Application configuration loaded from .env via Pydantic settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the strategy builder and its engine client."""

    app_name: str = Field(default="Strategy Builder", alias="APP_NAME")
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    strategy_engine_base_url: str = Field(
        default="http://localhost:8000",
        alias="STRATEGY_ENGINE_BASE_URL",
    )
    strategy_engine_api_prefix: str = Field(default="/api/v1", alias="STRATEGY_ENGINE_API_PREFIX")
    strategy_engine_timeout_seconds: float = Field(
        default=30.0,
        alias="STRATEGY_ENGINE_TIMEOUT_SECONDS",
    )

    default_strategy_category: str = Field(default="trend", alias="DEFAULT_STRATEGY_CATEGORY")
    default_strategy_version: str = Field(default="1.0.0", alias="DEFAULT_STRATEGY_VERSION")
    default_strategy_author: str = Field(default="", alias="DEFAULT_STRATEGY_AUTHOR")
    default_ensemble_method: str = Field(default="mean", alias="DEFAULT_ENSEMBLE_METHOD")
    default_fee_rate: float = Field(default=0.0002, alias="DEFAULT_FEE_RATE")
    default_digits: int = Field(default=2, alias="DEFAULT_DIGITS")
    default_template_key: str = Field(default="bi_long", alias="DEFAULT_TEMPLATE_KEY")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("strategy_engine_api_prefix", mode="before")
    @classmethod
    def _normalize_api_prefix(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().strip("/")
            if not normalized:
                return ""
            return f"/{normalized}"
        return value

    @field_validator("strategy_engine_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("STRATEGY_ENGINE_TIMEOUT_SECONDS must be positive.")
        return value

    @property
    def strategy_engine_url(self) -> str:
        return f"{self.strategy_engine_base_url.strip().rstrip('/')}{self.strategy_engine_api_prefix}"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
