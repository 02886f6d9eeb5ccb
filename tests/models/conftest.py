"""Model test fixtures: managers wired to a temporary database."""

import pytest

from db.database_manager import DatabaseManager
from models.key_stat_manager import KeyStatManager
from models.session_manager import SessionManager
from tests.conftest import FakeClock


@pytest.fixture(scope="function")
def session_manager(db_with_tables: DatabaseManager) -> SessionManager:
    return SessionManager(db_with_tables)


@pytest.fixture(scope="function")
def key_stat_manager(db_with_tables: DatabaseManager, clock: FakeClock) -> KeyStatManager:
    return KeyStatManager(db_with_tables, clock=clock)
