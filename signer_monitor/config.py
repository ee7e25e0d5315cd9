"""Configuration management for the signer monitor."""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

from .errors import ConfigError


REQUIRED_ENV_VARS = {
    "signer_public_keys": "SIGNER_PUBLIC_KEYS",
    "discord_webhook_url": "DISCORD_WEBHOOK_URL",
    "check_interval": "CHECK_INTERVAL",
    "api_url": "API_URL",
    "repeat_checks": "REPEAT_CHECKS",
}

OPTIONAL_ENV_VARS = {
    "rpc_url": "RPC_URL",
    "log_level": "LOG_LEVEL",
    "check_concurrency": "CHECK_CONCURRENCY",
}

CONFIG_PATH_ENV_VAR = "SIGNER_MONITOR_CONFIG"


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def split_signer_keys(value: Any) -> list[str]:
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(v) for v in value]
    else:
        return []
    return [item.strip() for item in items if item and item.strip()]


class MonitorConfig(BaseModel):
    """Runtime configuration for the signer monitor."""

    signer_public_keys: list[str] = Field(min_length=1, description="Signer public keys to watch")
    discord_webhook_url: str = Field(min_length=1, description="Webhook receiving alerts")
    check_interval: int = Field(gt=0, description="Seconds between ticks in repeating mode")
    api_url: str = Field(min_length=1, description="Chain indexing API base URL")
    repeat_checks: bool = Field(description="Run on an interval instead of once")
    rpc_url: Optional[str] = Field(default=None, description="Node RPC base URL; enables the health check")
    log_level: str = Field(default="INFO", description="Logging level")
    check_concurrency: int = Field(default=10, gt=0, description="Max signer checks in flight per tick")

    @field_validator("signer_public_keys", mode="before")
    @classmethod
    def _split_keys(cls, value: Any) -> list[str]:
        return split_signer_keys(value)

    @field_validator("repeat_checks", mode="before")
    @classmethod
    def _coerce_repeat(cls, value: Any) -> bool:
        return parse_bool(value)

    # Runs before min_length, so whitespace-only URLs are rejected.
    @field_validator("api_url", "rpc_url", "discord_webhook_url", mode="before")
    @classmethod
    def _strip_url(cls, value: Any, info: ValidationInfo) -> Any:
        if not isinstance(value, str):
            return value
        s = value.strip().rstrip("/")
        if not s and info.field_name == "rpc_url":
            return None
        return s

    @property
    def health_check_enabled(self) -> bool:
        return bool(self.rpc_url)


def load_config_file(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config YAML must be a mapping: {path}")
    return data


def load_config(
    config_path: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> MonitorConfig:
    """Load configuration from an optional YAML file, overridden by environment variables."""
    if env is None:
        env = os.environ
    if config_path is None:
        config_path = env.get(CONFIG_PATH_ENV_VAR)

    config_data: Dict[str, Any] = {}
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        config_data = load_config_file(path)

    for key, env_name in {**REQUIRED_ENV_VARS, **OPTIONAL_ENV_VARS}.items():
        value = env.get(env_name)
        if value is not None and value != "":
            config_data[key] = value

    missing = [
        env_name
        for key, env_name in REQUIRED_ENV_VARS.items()
        if config_data.get(key) in (None, "", [])
    ]
    if missing:
        raise ConfigError(
            "Missing required environment variable(s): " + ", ".join(missing)
        )

    try:
        return MonitorConfig(**config_data)
    except ValidationError as e:
        problems = []
        for err in e.errors():
            loc = ".".join(str(p) for p in err.get("loc", ()))
            problems.append(f"{loc}: {err.get('msg')}")
        raise ConfigError("Invalid configuration: " + "; ".join(problems)) from e
