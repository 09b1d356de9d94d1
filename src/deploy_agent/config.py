"""Settings for the deployment agent, loaded with pydantic-settings.

Values come from ``DEPLOY_AGENT_*`` environment variables or a ``.env`` file.

Usage:
    from deploy_agent.config import get_settings

    settings = get_settings()
    store = ConfigurationStore(settings.config_file)
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def default_config_file() -> Path:
    return Path.home() / ".deploy-agent.yaml"


class Settings(BaseSettings):
    """Deployment agent settings.

    All fields are optional with sensible defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="DEPLOY_AGENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    config_file: Path = Field(
        default_factory=default_config_file,
        description="Path to the YAML file holding all projects",
    )

    # Logging configuration
    service_name: str = Field(
        default="deploy-agent",
        description="Service name for structured logging",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    log_level: str = Field(
        default="WARNING",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    scan_all_networks: bool = Field(
        default=False,
        description=(
            "Check every token whose network contains the client IP "
            "instead of only the first one"
        ),
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @field_validator("config_file")
    @classmethod
    def expand_config_file(cls, v: Path) -> Path:
        return v.expanduser()


def get_settings() -> Settings:
    return Settings()
