"""Tests for the DatabaseManager class.

Covers connection handling, query helpers, transactions and schema creation
against a temporary SQLite database.
"""

from pathlib import Path

import pytest

from db.database_manager import ConnectionType, DatabaseManager
from db.exceptions import DatabaseError, DBConnectionError

TEST_TABLE_NAME = "test_table"
TEST_DATA = [
    (1, "Alice", 30, "alice@example.com"),
    (2, "Bob", 25, "bob@example.com"),
    (3, "Charlie", 35, "charlie@example.com"),
]


@pytest.fixture
def initialized_db(db_manager: DatabaseManager) -> DatabaseManager:
    """Seed the per-test database with sample data."""
    db_manager.execute(
        f"""
        CREATE TABLE {TEST_TABLE_NAME} (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            age INTEGER,
            email TEXT UNIQUE
        )
        """
    )
    db_manager.execute_many(f"INSERT INTO {TEST_TABLE_NAME} VALUES (?, ?, ?, ?)", TEST_DATA)
    return db_manager


class TestDatabaseManagerInitialization:
    """Test cases for DatabaseManager initialization and basic functionality."""

    def test_init_local(self, db_manager: DatabaseManager) -> None:
        assert db_manager.connection_type == ConnectionType.LOCAL
        assert not db_manager.is_postgres
        result = db_manager.fetchone("SELECT 1 AS test_value")
        assert result == {"test_value": 1}

    def test_default_is_in_memory(self) -> None:
        with DatabaseManager() as db:
            assert db.db_path == ":memory:"
            db.init_tables()
            assert db.list_tables() == ["key_stats", "practice_sessions"]

    def test_invalid_connection_type_raises_error(self) -> None:
        with pytest.raises(DBConnectionError):
            DatabaseManager(connection_type=None)  # type: ignore[arg-type]

    def test_postgres_requires_dsn(self) -> None:
        with pytest.raises(DBConnectionError):
            DatabaseManager(connection_type=ConnectionType.POSTGRES)

    def test_unopenable_path(self, tmp_path: Path) -> None:
        with pytest.raises(DBConnectionError):
            DatabaseManager(str(tmp_path / "missing" / "dir" / "kata.db"))

    def test_close_is_idempotent(self, tmp_path: Path) -> None:
        db = DatabaseManager(str(tmp_path / "close.db"))
        db.close()
        db.close()
        with pytest.raises(DBConnectionError):
            db.execute("SELECT 1")

    def test_context_manager_closes(self, tmp_path: Path) -> None:
        with DatabaseManager(str(tmp_path / "ctx.db")) as db:
            db.execute("CREATE TABLE test (id INTEGER PRIMARY KEY)")
            assert db.table_exists("test")
        with pytest.raises(DBConnectionError):
            db.fetchall("SELECT * FROM test")


class TestQueries:
    def test_fetchall_returns_dicts(self, initialized_db: DatabaseManager) -> None:
        rows = initialized_db.fetchall(f"SELECT id, name FROM {TEST_TABLE_NAME} ORDER BY id")
        assert rows == [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}, {"id": 3, "name": "Charlie"}]

    def test_fetchone_with_params(self, initialized_db: DatabaseManager) -> None:
        row = initialized_db.fetchone(f"SELECT age FROM {TEST_TABLE_NAME} WHERE name = ?", ("Bob",))
        assert row == {"age": 25}
        assert initialized_db.fetchone(f"SELECT age FROM {TEST_TABLE_NAME} WHERE id = ?", (99,)) is None

    def test_writes_are_committed(self, tmp_path: Path) -> None:
        path = str(tmp_path / "commit.db")
        with DatabaseManager(path) as db:
            db.execute("CREATE TABLE t (v INTEGER)")
            db.execute("INSERT INTO t VALUES (?)", (5,))
        with DatabaseManager(path) as db:
            assert db.fetchall("SELECT v FROM t") == [{"v": 5}]

    def test_table_exists_and_list_tables(self, initialized_db: DatabaseManager) -> None:
        assert initialized_db.table_exists(TEST_TABLE_NAME)
        assert not initialized_db.table_exists("nope")
        assert initialized_db.list_tables() == [TEST_TABLE_NAME]

    def test_prepare_query_leaves_sqlite_placeholders(self, db_manager: DatabaseManager) -> None:
        assert db_manager._prepare_query("SELECT ?") == "SELECT ?"


class TestTransactions:
    def test_commit_on_success(self, initialized_db: DatabaseManager) -> None:
        with initialized_db.transaction():
            assert initialized_db.in_transaction
            initialized_db.execute(f"DELETE FROM {TEST_TABLE_NAME} WHERE id = ?", (1,))
            initialized_db.execute(f"DELETE FROM {TEST_TABLE_NAME} WHERE id = ?", (2,))
        assert not initialized_db.in_transaction
        assert len(initialized_db.fetchall(f"SELECT id FROM {TEST_TABLE_NAME}")) == 1

    def test_rollback_on_error(self, initialized_db: DatabaseManager) -> None:
        with pytest.raises(RuntimeError):
            with initialized_db.transaction():
                initialized_db.execute(f"DELETE FROM {TEST_TABLE_NAME}")
                raise RuntimeError("boom")
        assert len(initialized_db.fetchall(f"SELECT id FROM {TEST_TABLE_NAME}")) == 3

    def test_failed_statement_rolls_back_whole_block(self, initialized_db: DatabaseManager) -> None:
        with pytest.raises(DatabaseError):
            with initialized_db.transaction():
                initialized_db.execute(
                    f"INSERT INTO {TEST_TABLE_NAME} VALUES (?, ?, ?, ?)", (4, "Dana", 41, "d@example.com")
                )
                initialized_db.execute(
                    f"INSERT INTO {TEST_TABLE_NAME} VALUES (?, ?, ?, ?)", (5, "Eve", 22, "alice@example.com")
                )
        assert initialized_db.fetchone(f"SELECT id FROM {TEST_TABLE_NAME} WHERE id = 4") is None

    def test_nested_blocks_join_outer(self, initialized_db: DatabaseManager) -> None:
        with pytest.raises(RuntimeError):
            with initialized_db.transaction():
                with initialized_db.transaction():
                    initialized_db.execute(f"DELETE FROM {TEST_TABLE_NAME} WHERE id = 3")
                assert initialized_db.in_transaction
                raise RuntimeError("abort outer")
        assert initialized_db.fetchone(f"SELECT id FROM {TEST_TABLE_NAME} WHERE id = 3") == {"id": 3}


class TestSchema:
    def test_init_tables_is_repeatable(self, db_with_tables: DatabaseManager) -> None:
        db_with_tables.init_tables()
        assert db_with_tables.list_tables() == ["key_stats", "practice_sessions"]

    def test_key_stats_defaults(self, db_with_tables: DatabaseManager) -> None:
        db_with_tables.execute(
            "INSERT INTO key_stats (key_char, last_practiced) VALUES (?, ?)",
            ("a", "2024-01-01 00:00:00.000000"),
        )
        row = db_with_tables.fetchone("SELECT * FROM key_stats WHERE key_char = 'a'")
        assert row is not None
        assert row["errors"] == 0
        assert row["interval_days"] == 0
        assert row["ease_factor"] == 2.5
