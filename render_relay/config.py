"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from render_relay.errors import ConfigError

DEFAULT_RENDER_API_URL = "https://api.render.com/v1"


class RenderConfig(BaseModel):
    webhook_secret: str = ""
    api_url: str = DEFAULT_RENDER_API_URL
    # Create a key at https://render.com/docs/api#1-create-an-api-key
    api_token: str = ""
    # None leaves httpx's transport default in place
    timeout: float | None = None
    # Skip notifications for image-backed deploys
    require_git_deploy: bool = False


class DiscordConfig(BaseModel):
    token: str = ""
    channel_id: str = ""
    ready_timeout: float = 30.0


class ServerConfig(BaseModel):
    bind: str = "0.0.0.0"
    port: int = 3001
    path: str = "/webhook"
    shutdown_timeout: float = 10.0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    render: RenderConfig = Field(default_factory=RenderConfig)
    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = "INFO"
    log_json: bool = False

    def validate_required(self) -> None:
        """Raise ConfigError listing every required value that is unset."""
        required = {
            "render.webhook_secret": self.render.webhook_secret,
            "render.api_token": self.render.api_token,
            "discord.token": self.discord.token,
            "discord.channel_id": self.discord.channel_id,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigError(f"missing required configuration: {', '.join(missing)}")


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config."""
    yaml_data: dict[str, Any] = {}

    if config_path is None:
        config_path = os.environ.get("RELAY_CONFIG")

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"config file not found: {path}")
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}

    # YAML values become init kwargs; pydantic-settings gives those priority,
    # so env vars are merged on top explicitly.
    env_settings = Settings()
    merged = _deep_merge(yaml_data, env_settings.model_dump(exclude_unset=True))
    return Settings(**merged)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
