"""Configuration package — settings, logging, and exceptions."""

from config.exceptions import (
    NovelTreeError,
    StructureError,
    InvariantViolationError,
    DatabaseError,
    NovelNotFoundError,
    ValidationError,
    InvalidConfigError,
)
from config.logging_config import setup_logging
from config.settings import Settings, get_settings, load_settings

__all__ = [
    "Settings",
    "get_settings",
    "load_settings",
    "setup_logging",
    "NovelTreeError",
    "StructureError",
    "InvariantViolationError",
    "DatabaseError",
    "NovelNotFoundError",
    "ValidationError",
    "InvalidConfigError",
]
