"""PracticeService: the API the terminal front end talks to.

It owns no state beyond the handles it gives out. Each handle wraps one
TypingEngine; recording a handle persists the Session and folds the run's
per-character outcomes into the key ledger in one transaction.

When no database is available the service runs with statistics disabled:
recording returns the in-memory Session and ledger queries return [].
"""

import datetime
import logging
import uuid
from typing import Callable, List, Optional, Sequence

from db.database_manager import DatabaseManager
from db.exceptions import DatabaseError
from helpers.debug_util import DebugUtil
from models.error_analysis import ErrorAnalysis, analyze_errors
from models.key_stat import KeyStat
from models.key_stat_manager import KeyStatManager
from models.keystroke import KeyEvent
from models.lesson_generator import (
    Corpus,
    LessonGenerator,
    LessonType,
    WeakKey,
    weak_keys_from_stats,
)
from models.outcome import accumulate_outcomes
from models.session import Session
from models.session_manager import SessionManager
from models.typing_engine import SessionStats, TypingEngine

logger = logging.getLogger(__name__)

DEFAULT_LESSON_LENGTH = 20
DEFAULT_REVIEW_LIMIT = 10


class SessionHandle:
    """One practice run in progress, and its recorded Session once saved."""

    def __init__(self, engine: TypingEngine) -> None:
        self.session_id = str(uuid.uuid4())
        self.engine = engine
        self.session: Optional[Session] = None

    @property
    def is_recorded(self) -> bool:
        return self.session is not None


class PracticeService:
    """Glue between the typing engine, the statistics store and lesson generation."""

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        generator: Optional[LessonGenerator] = None,
        clock: Optional[Callable[[], datetime.datetime]] = None,
        schedule_on_record: bool = True,
        review_limit: int = DEFAULT_REVIEW_LIMIT,
        lesson_length: int = DEFAULT_LESSON_LENGTH,
        debug_util: Optional[DebugUtil] = None,
    ) -> None:
        self.db_manager = db_manager
        self.generator = generator or LessonGenerator()
        self.clock = clock or datetime.datetime.now
        self.schedule_on_record = schedule_on_record
        self.review_limit = review_limit
        self.lesson_length = lesson_length
        self.debug_util = debug_util or DebugUtil()

        self.session_manager: Optional[SessionManager] = None
        self.key_stat_manager: Optional[KeyStatManager] = None
        if db_manager is not None:
            self.session_manager = SessionManager(db_manager, self.debug_util)
            self.key_stat_manager = KeyStatManager(db_manager, self.debug_util, clock=self.clock)

    @property
    def stats_enabled(self) -> bool:
        return self.db_manager is not None

    def create_session(self, target: str) -> SessionHandle:
        """Start a new run against `target`.

        Raises:
            ValueError: If the target is empty or only whitespace.
        """
        if not target or not target.strip():
            raise ValueError("Target text cannot be empty or whitespace only")
        return SessionHandle(TypingEngine(target, clock=self.clock))

    def apply_keystroke(self, handle: SessionHandle, event: KeyEvent) -> None:
        handle.engine.process_key(event)

    def is_finished(self, handle: SessionHandle) -> bool:
        return handle.engine.is_finished

    def get_live_stats(self, handle: SessionHandle) -> SessionStats:
        return handle.engine.get_stats()

    def analyze_errors(self, handle: SessionHandle) -> ErrorAnalysis:
        engine = handle.engine
        return analyze_errors(engine.target, engine.user_input)

    def _build_session(self, handle: SessionHandle) -> Session:
        engine = handle.engine
        stats = engine.get_stats()
        return Session(
            session_id=handle.session_id,
            text=engine.target_text,
            wpm=stats.wpm,
            accuracy=stats.accuracy,
            duration_seconds=stats.duration_seconds,
            error_count=engine.error_count,
            timestamp=engine.end_time or self.clock(),
        )

    def record_outcome(self, handle: SessionHandle) -> Session:
        """Persist the run and update the key ledger, at most once per handle.

        Finished and abandoned runs may both be recorded.

        Raises:
            DatabaseError: Nothing was written; the handle can be recorded again.
        """
        if handle.session is not None:
            return handle.session

        session = self._build_session(handle)
        if self.db_manager is None or self.session_manager is None or self.key_stat_manager is None:
            self.debug_util.debugMessage("Statistics disabled; session not persisted")
            handle.session = session
            return session

        outcomes = accumulate_outcomes(handle.engine.target, handle.engine.user_input)
        try:
            with self.db_manager.transaction():
                self.session_manager.save_session(session)
                self.key_stat_manager.apply_outcomes(
                    outcomes, now=session.timestamp, schedule=self.schedule_on_record
                )
        except DatabaseError as e:
            logger.error("Failed to record session %s: %s", session.session_id, e)
            raise

        handle.session = session
        logger.info(
            "Recorded session %s (%.1f wpm, %.1f%% accuracy)",
            session.session_id,
            session.wpm,
            session.accuracy,
        )
        return session

    def due_keys(self, limit: Optional[int] = None) -> List[KeyStat]:
        if self.key_stat_manager is None:
            return []
        return self.key_stat_manager.get_due_keys(
            limit=self.review_limit if limit is None else limit, now=self.clock()
        )

    def weakest_keys(self, limit: Optional[int] = None) -> List[KeyStat]:
        if self.key_stat_manager is None:
            return []
        return self.key_stat_manager.get_weakest_keys(
            limit=self.review_limit if limit is None else limit
        )

    def recent_sessions(self, limit: int = 10) -> List[Session]:
        if self.session_manager is None:
            return []
        return self.session_manager.get_recent_sessions(limit)

    def build_weakness_lesson(
        self,
        weak_keys: Sequence[WeakKey],
        corpus: Optional[Corpus] = None,
        length: Optional[int] = None,
    ) -> str:
        return self.generator.generate_weakness_lesson(
            weak_keys, self.lesson_length if length is None else length, corpus=corpus
        )

    def next_weakness_lesson(self, length: Optional[int] = None) -> str:
        """Lesson for due keys, else the weakest keys, else plain vocabulary."""
        if length is None:
            length = self.lesson_length
        stats = self.due_keys()
        source = "due"
        if not stats:
            stats = self.weakest_keys()
            source = "weakest"
        weak_keys = weak_keys_from_stats(stats)
        if not weak_keys:
            self.debug_util.debugMessage("No review data yet; using a vocabulary lesson")
            return self.generator.generate_lesson(LessonType.WORDS, length)
        self.debug_util.debugMessage(
            f"Weakness lesson from {source} keys: {''.join(k.key for k in weak_keys)!r}"
        )
        return self.build_weakness_lesson(weak_keys, length=length)
