"""semantic-memory: short text memories with semantic retrieval."""

__version__ = "0.1.0"
