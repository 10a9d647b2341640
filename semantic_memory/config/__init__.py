"""Configuration module."""

from semantic_memory.config.schema import Config, EmbeddingConfig, SearchConfig, StorageConfig
from semantic_memory.config.loader import load_config, save_default_config

__all__ = [
    "Config",
    "EmbeddingConfig",
    "SearchConfig",
    "StorageConfig",
    "load_config",
    "save_default_config",
]
