"""Pytest configuration for the test suite.

Database fixtures run against a temporary SQLite file (`ConnectionType.LOCAL`).
Time is controlled with `FakeClock` so scheduling and durations are exact.
"""

import datetime
import sys
from pathlib import Path
from typing import Generator

import pytest

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from db.database_manager import ConnectionType, DatabaseManager
from helpers.debug_util import DebugUtil

START_TIME = datetime.datetime(2024, 1, 15, 9, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime.datetime = START_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, seconds: float = 0.0, days: float = 0.0) -> datetime.datetime:
        self.now = self.now + datetime.timedelta(seconds=seconds, days=days)
        return self.now


@pytest.fixture(scope="function")
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="function")
def temp_db(tmp_path: Path) -> Generator[DatabaseManager, None, None]:
    """Create a temporary DatabaseManager backed by a SQLite file.

    Ensures the connection is closed after the test.
    """
    debug_util = DebugUtil("loud")
    db = DatabaseManager(
        str(tmp_path / "kata_test.db"), connection_type=ConnectionType.LOCAL, debug_util=debug_util
    )
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def db_manager(temp_db: DatabaseManager) -> DatabaseManager:
    """DatabaseManager on a fresh, empty database."""
    return temp_db


@pytest.fixture(scope="function")
def db_with_tables(db_manager: DatabaseManager) -> DatabaseManager:
    """Ensure all application tables exist for the current test."""
    db_manager.init_tables()
    return db_manager
