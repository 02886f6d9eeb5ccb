"""Runtime settings for the trainer.

Values come from `KATA_*` environment variables or a `.env` file in the
working directory; everything has a usable default.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path.home() / ".kata"


class TrainerSettings(BaseSettings):
    """Settings for the statistics store, lessons and debug output."""

    db_path: Path = DEFAULT_DATA_DIR / "kata.db"
    connection_type: Literal["local", "postgres"] = "local"
    # libpq connection string, only read when connection_type is "postgres"
    postgres_dsn: Optional[str] = None
    language: str = "go"
    debug_mode: Literal["quiet", "loud"] = "quiet"
    lesson_length: int = Field(default=20, ge=1)
    review_limit: int = Field(default=10, ge=1)
    schedule_on_record: bool = True

    model_config = SettingsConfigDict(
        env_prefix="KATA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("language")
    @classmethod
    def normalize_language(cls, v: str) -> str:
        """Language names are matched case-insensitively."""
        return v.strip().lower()


def load_settings(**overrides: object) -> TrainerSettings:
    """Build settings from the environment, with keyword overrides taking precedence."""
    return TrainerSettings(**overrides)  # type: ignore[arg-type]
