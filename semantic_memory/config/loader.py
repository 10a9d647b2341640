"""Locate, read and write the semantic-memory config file."""

import json
import os
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from semantic_memory.config.schema import Config

CONFIG_PATH_ENV = "SEMANTIC_MEMORY_CONFIG"
DEFAULT_CONFIG_DIR = Path.home() / ".semantic-memory"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"


def resolve_config_path(config_path: Path | None = None) -> Path:
    """
    Pick the config file to use.

    An explicit path wins, then ``$SEMANTIC_MEMORY_CONFIG``, then
    ~/.semantic-memory/config.json.
    """
    if config_path is not None:
        return config_path.expanduser()
    from_env = os.environ.get(CONFIG_PATH_ENV)
    if from_env:
        return Path(from_env).expanduser()
    return DEFAULT_CONFIG_FILE


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from the config file and environment variables.

    Priority: environment variables > config file > defaults. A missing
    file is not an error; an unreadable or invalid one is logged and
    ignored.
    """
    path = resolve_config_path(config_path)
    if not path.exists():
        logger.debug(f"No config file at {path}, using defaults")
        return Config()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        config = Config(**data)
    except (OSError, ValueError, ValidationError) as e:
        logger.warning(f"Failed to load config from {path}: {e}, using defaults")
        return Config()

    logger.debug(f"Config loaded from {path}")
    return config


def save_default_config(config_path: Path | None = None, overwrite: bool = False) -> Path:
    """
    Write the default configuration as JSON.

    Args:
        config_path: Target file; resolved like load_config.
        overwrite: Replace an existing file instead of raising.

    Returns:
        Path where config was saved.

    Raises:
        FileExistsError: If the file exists and overwrite is False.
    """
    path = resolve_config_path(config_path)
    if path.exists() and not overwrite:
        raise FileExistsError(f"Config already exists at {path}")

    path.parent.mkdir(parents=True, exist_ok=True)
    data = Config().model_dump(mode="json")
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")

    logger.info(f"Default config saved to {path}")
    return path
