"""
Configuration management for the Outscraper client using Pydantic.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from outscraper_aio.exceptions import ConfigurationError

# --- Setup Logging ---
log = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.app.outscraper.com"

# Absorbs binary rounding in ratios such as 0.3 / 0.1
_BUDGET_EPSILON = 1e-9


def attempt_budget(max_wait: float, poll_interval: float) -> int:
    """Number of archive lookups that fit in ``max_wait``: floor(max_wait / poll_interval)."""
    return math.floor(max_wait / poll_interval + _BUDGET_EPSILON)

# --- Nested Configuration Models ---


class ApiConfig(BaseModel):
    """Remote API connection settings."""

    base_url: str = Field(default=DEFAULT_API_URL, description="Base URL of the Outscraper API.")
    timeout: float = Field(default=180.0, gt=0, description="Total HTTP request timeout in seconds.")
    client_name: str = Field(
        default="Python Async SDK",
        description="Value sent in the Client header, followed by the library version.",
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class PollingConfig(BaseModel):
    """Archive polling settings, fixed for the lifetime of a client."""

    poll_interval: float = Field(default=5.0, gt=0, description="Seconds to sleep between archive lookups.")
    max_wait: float = Field(default=60 * 60, gt=0, description="Overall time budget for a polled job in seconds.")

    @model_validator(mode="after")
    def check_budget(self) -> "PollingConfig":
        if self.max_wait < self.poll_interval:
            raise ValueError("max_wait must be greater than or equal to poll_interval")
        return self

    @property
    def max_attempts(self) -> int:
        return attempt_budget(self.max_wait, self.poll_interval)


class MonitoringConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")
    json_logs: bool = Field(default=False, description="Render console logs as JSON lines.")

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    api_key: Optional[SecretStr] = None
    api: ApiConfig = Field(default_factory=ApiConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="OUTSCRAPER_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls()
        return cls(**yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    paths_to_check = [
        current_dir / "outscraper.yaml",
        current_dir / "outscraper.yml",
    ]
    for path in paths_to_check:
        if path.exists():
            return path
    return None


def load_config(path: Path | None = None) -> Config:
    """
    Build a ``Config`` from ``path`` (or the environment alone when ``path`` is None).

    Raises:
        ConfigurationError: the file is not valid YAML, or a value from the
            file or the environment fails validation
    """
    try:
        return Config.from_yaml(path) if path else Config()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid configuration file {path}: {e}") from e
