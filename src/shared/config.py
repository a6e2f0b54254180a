"""Configuration management for the Toolbox client.

Supports YAML configuration files and environment variable overrides.
Configuration is loaded once and cached.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ToolboxSettings(BaseSettings):
    """Client connection and logging settings."""
    url: str = Field(default="http://127.0.0.1:5000", description="Toolbox server base URL")
    protocol: str = Field(default="2025-06-18", description="'toolbox' or an MCP protocol version")
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
    client_name: Optional[str] = Field(default=None, description="Client name sent during the MCP handshake")

    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_prefix="TOOLBOX_",
        env_file=".env",
        extra="ignore"
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ToolboxSettings":
        """Load settings from a YAML file, falling back to defaults."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)


@lru_cache
def get_settings() -> ToolboxSettings:
    """Get cached client settings."""
    config_path = os.environ.get("TOOLBOX_CONFIG_PATH", "config/settings.yaml")
    return ToolboxSettings.from_yaml(config_path)
