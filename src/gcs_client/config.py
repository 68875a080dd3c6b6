"""Configuration management."""

import logging
from functools import cache

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings

from .consts import METADATA_TOKEN_URL, OAUTH2_TOKEN_URL, STORAGE_READ_WRITE_SCOPE


class Config(BaseSettings):
    """Configuration for token sources and the HTTP transport."""

    model_config = ConfigDict(
        env_prefix="GCSCLIENT_", case_sensitive=False, extra="ignore"
    )
    credentials_file: str | None = Field(
        default=None,
        description="Path to a service account or authorized user JSON file; "
        "the metadata server is used when unset",
    )
    token_url: str = Field(
        default=OAUTH2_TOKEN_URL, description="OAuth2 token endpoint"
    )
    metadata_token_url: str = Field(
        default=METADATA_TOKEN_URL,
        description="Compute metadata server token endpoint",
    )
    scopes: list[str] = Field(
        default=[STORAGE_READ_WRITE_SCOPE],
        description="OAuth2 scopes requested for service account tokens",
    )
    log_level: str = Field(
        default="INFO",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
        description="Logging level",
    )
    timeout_seconds: int = Field(
        default=30, gt=0, le=300, description="HTTP request timeout in seconds"
    )


@cache
def get_config() -> Config:
    """Get a cached Config instance."""
    return Config()


def setup_logging(log_level: str | None = None) -> logging.Logger:
    """Configure logging for the entire application.

    Uses the configured ``log_level`` unless one is given.
    """
    log_level = log_level or get_config().log_level
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,  # Override any existing configuration
    )
    return logging.getLogger("gcs-client")
