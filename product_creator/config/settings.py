"""
Application settings and configuration management.

This module handles all environment variables, provider API keys, and
pipeline defaults using Pydantic settings management for type safety and
validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All provider credentials are optional and stored as SecretStr to prevent
    accidental logging. A provider whose key is absent is simply not
    configured.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    # Provider API Keys
    groq_api_key: Optional[SecretStr] = Field(default=None, alias="GROQ_API_KEY")
    cerebras_api_key: Optional[SecretStr] = Field(default=None, alias="CEREBRAS_API_KEY")
    google_ai_api_key: Optional[SecretStr] = Field(default=None, alias="GOOGLE_AI_API_KEY")
    mistral_api_key: Optional[SecretStr] = Field(default=None, alias="MISTRAL_API_KEY")
    deepseek_api_key: Optional[SecretStr] = Field(default=None, alias="DEEPSEEK_API_KEY")
    openrouter_api_key: Optional[SecretStr] = Field(default=None, alias="OPENROUTER_API_KEY")
    anthropic_api_key: Optional[SecretStr] = Field(default=None, alias="ANTHROPIC_API_KEY")

    # Application Configuration
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        alias="APP_ENV"
    )
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        alias="LOG_LEVEL"
    )
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # Timeouts (per call class)
    text_timeout_seconds: float = Field(default=30.0, gt=0, alias="TEXT_TIMEOUT_SECONDS")
    vision_timeout_seconds: float = Field(default=90.0, gt=0, alias="VISION_TIMEOUT_SECONDS")
    connection_test_timeout_seconds: float = Field(
        default=15.0, gt=0, alias="CONNECTION_TEST_TIMEOUT_SECONDS"
    )

    # Generation Settings
    vision_temperature: float = Field(default=0.3, alias="VISION_TEMPERATURE")
    vision_max_tokens: int = Field(default=4000, alias="VISION_MAX_TOKENS")
    content_temperature: float = Field(default=0.7, alias="CONTENT_TEMPERATURE")
    content_max_tokens: int = Field(default=3000, alias="CONTENT_MAX_TOKENS")

    # Pipeline Defaults
    default_language: Literal["pl", "en", "de"] = Field(default="pl", alias="DEFAULT_LANGUAGE")
    default_currency: str = Field(default="PLN", alias="DEFAULT_CURRENCY")
    default_vat_rate: float = Field(default=23.0, ge=0, le=100, alias="DEFAULT_VAT_RATE")
    default_price_gross: float = Field(default=99.99, gt=0, alias="DEFAULT_PRICE_GROSS")

    # Image Fetching
    image_fetch_timeout_seconds: float = Field(default=30.0, gt=0, alias="IMAGE_FETCH_TIMEOUT_SECONDS")
    image_fetch_max_retries: int = Field(default=3, ge=1, alias="IMAGE_FETCH_MAX_RETRIES")

    # OpenRouter attribution headers
    openrouter_referer: str = Field(
        default="https://github.com/product-ai-creator",
        alias="OPENROUTER_REFERER",
    )
    openrouter_app_title: str = Field(default="Product AI Creator", alias="OPENROUTER_APP_TITLE")

    # Output Settings
    output_dir: Path = Field(default=Path("outputs/products"), alias="OUTPUT_DIR")

    @field_validator("default_currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Currency must be a three-letter ISO code."""
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError(f"Invalid currency code: {v}")
        return v

    def get_api_key(self, field_name: str) -> Optional[str]:
        """
        Return the plain credential stored in ``field_name``.

        Blank values count as missing so that an empty ``GROQ_API_KEY=`` line
        in a .env file does not mark the provider as configured.
        """
        secret = getattr(self, field_name, None)
        if secret is None:
            return None
        value = secret.get_secret_value().strip()
        return value or None

    def configured_providers(self) -> list[str]:
        """Names of the credential fields that hold a usable key."""
        return [
            name for name in type(self).model_fields
            if name.endswith("_api_key") and self.get_api_key(name)
        ]


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
