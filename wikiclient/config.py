"""
Configuration management for wikiclient.

Settings come from an optional YAML file and from WIKICLIENT_* environment
variables. Values in the file take precedence over the environment.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "wikiclient/0.1 (MediaWiki API client)"


class WikiClientSettings(BaseSettings):
    """Client settings."""

    # API Settings
    api_url: str = Field("https://en.wikipedia.org/w/api.php", description="Action API endpoint")
    user_agent: str = Field(DEFAULT_USER_AGENT, description="User-Agent header sent with every request")

    # Transport Settings
    timeout: float = Field(30.0, gt=0, description="HTTP timeout in seconds")
    max_retries: int = Field(3, ge=0, description="Retries for HTTP 429, 5xx and timeouts")
    rate_limit_delay: float = Field(0.1, ge=0, description="Minimum seconds between requests")

    # Sent with queries and page writes (seconds, None to omit)
    maxlag: int | None = Field(5, ge=0, description="Server replication lag tolerance")
    login_throttle_retries: int = Field(2, ge=0, description="Waits allowed when login is throttled")

    # Logging Settings
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: str | None = None

    model_config = {"env_prefix": "WIKICLIENT_"}


def load_config_file(config_path: str | Path) -> dict[str, Any]:
    """
    Load settings from a YAML file.

    The file may hold the settings at the top level or under a
    ``wikiclient:`` section.

    Returns:
        Settings dictionary

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationError: If the file is not a YAML mapping
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    section = config.get("wikiclient", config)
    if not isinstance(section, dict):
        raise ConfigurationError(f"'wikiclient' section of {path} must be a mapping")
    return section


def load_settings(config_path: str | Path | None = None, **overrides: Any) -> WikiClientSettings:
    """
    Build settings from the config file, the environment and overrides.

    Args:
        config_path: Optional YAML file
        **overrides: Explicit values, e.g. from command line options; None values are ignored

    Returns:
        WikiClientSettings instance

    Raises:
        ConfigurationError: If a value is out of range or has the wrong type
    """
    values: dict[str, Any] = {}
    if config_path is not None:
        values.update(load_config_file(config_path))
        logger.debug(f"Loaded settings from {config_path}")
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return WikiClientSettings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e
