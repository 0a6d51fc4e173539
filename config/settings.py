"""Configuration settings loaded from .env file."""

from pathlib import Path

from pydantic import ValidationError as PydanticValidationError
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

from config.exceptions import InvalidConfigError


class Settings(BaseSettings):
    """Application settings, loaded from .env file.

    Id prefixes and default titles feed item creation; the storage and log
    paths are only used by the CLI host.
    """

    # Storage
    sqlite_db_path: Path = Path("./data/novels.db")

    # Item creation
    chapter_id_prefix: str = "chap"
    volume_id_prefix: str = "vol"
    default_chapter_title: str = "新章节"
    default_volume_title: str = "新卷"
    select_created_chapter: bool = True

    # Raise on a malformed candidate tree instead of rejecting the edit
    strict_invariants: bool = False

    # Logging
    log_dir: Path = Path("./data/logs")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("chapter_id_prefix", "volume_id_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("id prefix must not be empty")
        return v

    @field_validator("default_chapter_title", "default_volume_title")
    @classmethod
    def validate_default_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("default title must not be blank")
        return v

    @field_validator("sqlite_db_path", "log_dir")
    @classmethod
    def ensure_parent_dirs(cls, v: Path) -> Path:
        v.parent.mkdir(parents=True, exist_ok=True)
        return v

    @model_validator(mode="after")
    def validate_distinct_prefixes(self) -> "Settings":
        if self.chapter_id_prefix == self.volume_id_prefix:
            raise ValueError(
                f"chapter_id_prefix and volume_id_prefix must differ "
                f"(both are '{self.chapter_id_prefix}')"
            )
        return self


def load_settings(**overrides) -> Settings:
    """Build Settings, reporting bad values as InvalidConfigError.

    Raises:
        InvalidConfigError: with one `details` entry per offending field.
    """
    try:
        return Settings(**overrides)
    except PydanticValidationError as e:
        details = {
            ".".join(str(part) for part in err["loc"]) or "settings": err["msg"]
            for err in e.errors()
        }
        raise InvalidConfigError("Invalid configuration", details) from e


_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = load_settings()
    return _settings_instance
