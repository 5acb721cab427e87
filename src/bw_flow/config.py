"""Load bw-flow settings and configure logging."""

import json
import logging
import os
import sys
from pathlib import Path

from pydantic import BaseModel, ValidationError, field_validator

DEFAULT_CONFIG_PATH = Path("~/.config/bw-flow/config.json")
CONFIG_ENV_VAR = "BW_FLOW_CONFIG"


class ConfigError(ValueError):
    """The config file exists but cannot be used."""


class Settings(BaseModel):
    reasoning_marker: str = "💭"
    log_level: str = "WARNING"
    preview_max_len: int = 300

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("preview_max_len")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value


def resolve_config_path(config_path: str | Path | None = None) -> tuple[Path, bool]:
    """Return ``(path, explicit)``.

    Priority:
    1. explicit function argument
    2. ``BW_FLOW_CONFIG`` environment variable
    3. default ``~/.config/bw-flow/config.json``
    """
    raw_path = config_path or os.getenv(CONFIG_ENV_VAR)
    if raw_path:
        return Path(raw_path).expanduser(), True
    return DEFAULT_CONFIG_PATH.expanduser(), False


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings. A missing default config file just means defaults."""
    path, explicit = resolve_config_path(config_path)
    if not path.exists():
        if explicit:
            raise FileNotFoundError(f"Config file not found: {path}")
        return Settings()

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file: {path}") from e

    if not isinstance(payload, dict):
        raise ConfigError(f"Config root must be a JSON object: {path}")

    try:
        return Settings.model_validate(payload)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=level.upper(),
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )
