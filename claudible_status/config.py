# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Client configuration with environment variable and YAML support."""
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from claudible_status.core.exceptions import ConfigurationError


DEFAULT_STATE_DIR = Path.home() / ".claudible"


class StatusConfig(BaseSettings):
    """Dashboard client configuration.

    All settings can be overridden via environment variables with CLAUDIBLE_ prefix.
    Example: CLAUDIBLE_RECONNECT_DELAY_SECONDS=5 overrides the reconnect delay.
    """

    model_config = SettingsConfigDict(
        env_prefix="CLAUDIBLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Endpoints
    lookup_url: str = Field(
        default="https://claudible.io/dashboard/lookup",
        description="Dashboard lookup endpoint (request/response)",
    )
    stream_url: str = Field(
        default="wss://claudible.io/dashboard/ws",
        description="Dashboard live update WebSocket endpoint",
    )

    # Timeouts
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="HTTP request timeout",
    )
    connect_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="HTTP connect timeout",
    )
    stream_open_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="WebSocket opening handshake timeout",
    )

    # Live updates
    reconnect_delay_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Fixed delay between stream reconnect attempts",
    )
    usage_history_limit: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum usage records kept in the snapshot",
    )

    # Local state
    state_dir: Path = Field(
        default=DEFAULT_STATE_DIR,
        description="Directory for the stored API key and cached balance",
    )


def load_config(config_path: Path | None = None) -> StatusConfig:
    """Load configuration from an optional YAML file plus the environment.

    Resolution order for the YAML file:
    1. Explicit config_path parameter (if provided)
    2. CLAUDIBLE_SETTINGS environment variable (if set)
    3. Default: 'settings.yaml' in the state directory, if it exists

    Without a file, configuration comes from the environment and defaults.
    Values from the file take precedence over environment variables.

    Args:
        config_path: Optional explicit path to the configuration file.

    Returns:
        StatusConfig populated from the file and environment.

    Raises:
        FileNotFoundError: If an explicitly requested file does not exist.
        ConfigurationError: If the file is malformed or fails validation.
    """
    explicit = config_path is not None
    if config_path is None:
        env_path = os.environ.get("CLAUDIBLE_SETTINGS")
        if env_path:
            config_path = Path(env_path)
            explicit = True
        else:
            config_path = DEFAULT_STATE_DIR / "settings.yaml"

    data: dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Malformed configuration file {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")
    elif explicit:
        raise FileNotFoundError(f"Configuration file not found at {config_path}")

    try:
        return StatusConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
