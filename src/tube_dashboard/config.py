"""Configuration helpers for the video dashboard."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

# Values shipped in example .env files; treated exactly like an unset value.
PLACEHOLDER_VALUES = frozenset(
    {
        "your_search_webhook_url_here",
        "your_generate_titles_webhook_url_here",
        "your_generate_images_webhook_url_here",
        "your_baserow_api_url_here",
        "your_baserow_table_id_here",
        "your_baserow_api_token_here",
    }
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    search_webhook: Optional[str] = Field(
        None,
        alias="SEARCH_WEBHOOK",
        description="Webhook that runs a video search and fills the table.",
    )
    generate_titles_webhook: Optional[str] = Field(
        None,
        alias="GENERATE_TITLES_WEBHOOK",
        description="Webhook that returns AI title candidates.",
    )
    generate_images_webhook: Optional[str] = Field(
        None,
        alias="GENERATE_IMAGES_WEBHOOK",
        description="Webhook that generates thumbnail images.",
    )
    baserow_api_url: Optional[str] = Field(
        None,
        alias="BASEROW_API_URL",
        description="Base URL of the table-storage service, e.g. https://baserow.example.com.",
    )
    baserow_table_id: Optional[str] = Field(
        None, alias="BASEROW_TABLE_ID", description="Identifier of the video table."
    )
    baserow_api_token: Optional[str] = Field(
        None, alias="BASEROW_API_TOKEN", description="Database token for the table API."
    )
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    host: str = Field("127.0.0.1", alias="DASHBOARD_HOST")
    port: int = Field(8000, alias="DASHBOARD_PORT")


def get_settings() -> Settings:
    """Return a settings instance built from the current environment."""
    return Settings()


def is_configured(value: Optional[str]) -> bool:
    """True when ``value`` is set, non-blank and not a known placeholder."""
    if value is None:
        return False
    stripped = value.strip()
    return bool(stripped) and stripped not in PLACEHOLDER_VALUES


def require_configured(value: Optional[str], label: str) -> str:
    """Return the stripped value or raise ConfigError naming ``label``."""
    if not is_configured(value):
        raise ConfigError(f"{label} not configured.")
    return value.strip()
