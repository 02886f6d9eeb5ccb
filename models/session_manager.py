"""SessionManager for practice_sessions persistence and history queries.

Provides typed insert and query helpers for `Session` objects and delegates
all DB calls to `DatabaseManager`.
"""

import datetime
import logging
from typing import List, Mapping, Optional

from db.database_manager import DatabaseManager
from db.exceptions import DatabaseError
from helpers.debug_util import DebugUtil
from models.session import Session

logger = logging.getLogger(__name__)

_SESSION_COLUMNS = "session_id, text, wpm, accuracy, duration, error_count, timestamp"


def format_timestamp(value: datetime.datetime) -> str:
    """Fixed-width ISO form so timestamps stored as text sort chronologically."""
    return value.isoformat(sep=" ", timespec="microseconds")


def parse_timestamp(value: object) -> datetime.datetime:
    """Accept the datetime PostgreSQL returns or the ISO text SQLite returns."""
    if isinstance(value, datetime.datetime):
        return value
    return datetime.datetime.fromisoformat(str(value))


class SessionManager:
    """Manages persistence and aggregate queries for `Session` records.

    Sessions are append-only: there is no update or delete path.
    """

    def __init__(self, db_manager: DatabaseManager, debug_util: Optional[DebugUtil] = None) -> None:
        """Initialize manager with a `DatabaseManager` dependency."""
        self.db_manager = db_manager
        self.debug_util = debug_util or DebugUtil()

    def _row_to_session(self, row: Mapping[str, object]) -> Session:
        """Convert a DB row into a `Session` instance."""
        return Session(
            session_id=str(row["session_id"]),
            text=str(row["text"]),
            wpm=float(str(row["wpm"])),
            accuracy=float(str(row["accuracy"])),
            duration_seconds=float(str(row["duration"])),
            error_count=int(str(row["error_count"])),
            timestamp=parse_timestamp(row["timestamp"]),
        )

    def save_session(self, session: Session) -> str:
        """Insert a new Session and return its `session_id`.

        Joins the caller's transaction when one is open.
        """
        try:
            self.db_manager.execute(
                f"INSERT INTO practice_sessions ({_SESSION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    session.session_id,
                    session.text,
                    session.wpm,
                    session.accuracy,
                    session.duration_seconds,
                    session.error_count,
                    format_timestamp(session.timestamp),
                ),
            )
            self.debug_util.debugMessage(f"Saved session {session.session_id}")
            return session.session_id
        except DatabaseError as e:
            logger.error("Error saving session: %s", e)
            raise

    def get_session_by_id(self, session_id: str) -> Optional[Session]:
        """Retrieve a session by its `session_id`. Returns None if not found."""
        row = self.db_manager.fetchone(
            f"SELECT {_SESSION_COLUMNS} FROM practice_sessions WHERE session_id = ?",
            (session_id,),
        )
        if not row:
            return None
        return self._row_to_session(row)

    def get_recent_sessions(self, limit: int = 10) -> List[Session]:
        """Most recent sessions first."""
        rows = self.db_manager.fetchall(
            f"""
            SELECT {_SESSION_COLUMNS}
            FROM practice_sessions
            ORDER BY timestamp DESC, session_id ASC
            LIMIT ?
            """,
            (limit,),
        )
        return [self._row_to_session(r) for r in rows]

    def get_sessions_for_graph(self, limit: int = 20) -> List[Session]:
        """Oldest sessions first, for plotting progress over time."""
        rows = self.db_manager.fetchall(
            f"""
            SELECT {_SESSION_COLUMNS}
            FROM practice_sessions
            ORDER BY timestamp ASC, session_id ASC
            LIMIT ?
            """,
            (limit,),
        )
        return [self._row_to_session(r) for r in rows]

    def get_average_wpm(self) -> float:
        """Mean WPM over all sessions; 0.0 when there are none."""
        row = self.db_manager.fetchone("SELECT AVG(wpm) AS avg_wpm FROM practice_sessions")
        if not row or row["avg_wpm"] is None:
            return 0.0
        return float(str(row["avg_wpm"]))

    def count_sessions(self) -> int:
        row = self.db_manager.fetchone("SELECT COUNT(*) AS session_count FROM practice_sessions")
        return int(str(row["session_count"])) if row else 0
