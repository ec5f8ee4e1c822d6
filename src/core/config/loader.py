"""Locate, parse and validate config/app.json."""
import json
import os
from pathlib import Path

from pydantic import ValidationError

from src.core.config.env import load_env_from_path
from src.core.config.models import AppConfig
from src.core.exceptions import ConfigError

DEFAULT_CONFIG_PATH = "config/app.json"


def resolve_config_path(
    config_path: str | Path | None = None,
    project_root: Path | None = None,
    env: dict[str, str] | None = None,
) -> Path:
    """Explicit path, else CONFIG_PATH, else config/app.json; relative paths resolve against project_root."""
    env = env if env is not None else os.environ
    path = Path(config_path or env.get("CONFIG_PATH") or DEFAULT_CONFIG_PATH)
    if not path.is_absolute():
        path = (project_root or Path.cwd()) / path
    return path


def load_app_config(
    config_path: str | Path | None = None,
    project_root: Path | None = None,
    env: dict[str, str] | None = None,
) -> AppConfig:
    """Load AppConfig, then the env file it names (without overriding the process env)."""
    path = resolve_config_path(config_path, project_root, env)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config schema in {path}: expected a JSON object")
    try:
        config = AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config schema in {path}: {e}") from e
    load_env_from_path(config.env_file_path, project_root or Path.cwd())
    return config
