"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageConfig(BaseModel):
    """Persistent store configuration."""

    db_path: str = "~/.semantic-memory/memory.db"


class EmbeddingConfig(BaseModel):
    """Embedding model configuration."""

    model_name: str = "sentence-transformers/all-MiniLM-L6-v2"
    dimensions: int = Field(default=384, ge=1)
    device: str | None = None
    load_on_startup: bool = True


class SearchConfig(BaseModel):
    """Default search parameters."""

    threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    limit: int = Field(default=10, ge=1)


class ServerConfig(BaseModel):
    """MCP server configuration."""

    name: str = "semantic-memory"


class Config(BaseSettings):
    """Root configuration for semantic-memory."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="SEMANTIC_MEMORY_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment variables win over values loaded from the config file.
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @property
    def db_path(self) -> Path:
        """Get expanded database path."""
        return Path(self.storage.db_path).expanduser()
