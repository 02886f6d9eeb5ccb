"""Tests for TrainerSettings loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from helpers.config import DEFAULT_DATA_DIR, TrainerSettings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate settings from the developer's environment and any .env file."""
    for name in (
        "KATA_DB_PATH",
        "KATA_CONNECTION_TYPE",
        "KATA_POSTGRES_DSN",
        "KATA_LANGUAGE",
        "KATA_DEBUG_MODE",
        "KATA_LESSON_LENGTH",
        "KATA_REVIEW_LIMIT",
        "KATA_SCHEDULE_ON_RECORD",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults() -> None:
    settings = TrainerSettings()
    assert settings.db_path == DEFAULT_DATA_DIR / "kata.db"
    assert settings.connection_type == "local"
    assert settings.postgres_dsn is None
    assert settings.language == "go"
    assert settings.debug_mode == "quiet"
    assert settings.lesson_length == 20
    assert settings.review_limit == 10
    assert settings.schedule_on_record is True


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("KATA_DB_PATH", str(tmp_path / "stats.db"))
    monkeypatch.setenv("KATA_LANGUAGE", "Python")
    monkeypatch.setenv("KATA_LESSON_LENGTH", "35")
    monkeypatch.setenv("KATA_SCHEDULE_ON_RECORD", "false")
    settings = TrainerSettings()
    assert settings.db_path == tmp_path / "stats.db"
    assert settings.language == "python"
    assert settings.lesson_length == 35
    assert settings.schedule_on_record is False


def test_dotenv_file(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("KATA_REVIEW_LIMIT=4\nKATA_DEBUG_MODE=loud\n", encoding="utf-8")
    settings = TrainerSettings()
    assert settings.review_limit == 4
    assert settings.debug_mode == "loud"


def test_load_settings_overrides_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KATA_REVIEW_LIMIT", "7")
    assert load_settings(review_limit=3).review_limit == 3


@pytest.mark.parametrize(
    "field,value",
    [("lesson_length", 0), ("review_limit", -1), ("connection_type", "mysql"), ("debug_mode", "chatty")],
)
def test_invalid_values(field: str, value: object) -> None:
    with pytest.raises(ValidationError):
        load_settings(**{field: value})
