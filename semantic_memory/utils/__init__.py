"""Utility functions."""

from semantic_memory.utils.helpers import format_error, truncate_output
from semantic_memory.utils.log import setup_logging

__all__ = ["format_error", "setup_logging", "truncate_output"]
