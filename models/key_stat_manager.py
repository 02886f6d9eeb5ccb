"""KeyStatManager: the persisted per-character ledger and its review queries.

Requirements summary (as implemented):

- One `key_stats` row per character, keyed by `key_char`. Rows are created
  on first observation and never deleted.
- `apply_outcomes()` folds one run's per-character deltas into the ledger in a
  single transaction: counters are incremented on conflict, `last_practiced`
  is set to the run time, and (when scheduling is on) the SM-2 fields are
  replaced by the result of `update_sm2` graded from that character's
  accuracy in the run. A failure leaves every row as it was.
- `get_due_keys()` returns characters with at least 3 attempts whose review
  interval has elapsed, stalest first.
- `get_weakest_keys()` returns characters with at least 5 attempts, highest
  error rate first, ties broken by character.
"""

import datetime
import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from db.database_manager import DatabaseManager
from db.exceptions import DatabaseError
from helpers.debug_util import DebugUtil
from models.key_stat import KeyStat, quality_for_accuracy, update_sm2
from models.outcome import OutcomeAccumulator
from models.session_manager import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

MIN_ATTEMPTS_DUE = 3
MIN_ATTEMPTS_WEAKEST = 5

_KEY_STAT_COLUMNS = (
    "key_char, errors, successes, last_practiced, interval_days, repetitions, ease_factor"
)

_UPSERT_SCHEDULED = f"""
    INSERT INTO key_stats ({_KEY_STAT_COLUMNS})
    VALUES (?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT (key_char) DO UPDATE SET
        errors = key_stats.errors + excluded.errors,
        successes = key_stats.successes + excluded.successes,
        last_practiced = excluded.last_practiced,
        interval_days = excluded.interval_days,
        repetitions = excluded.repetitions,
        ease_factor = excluded.ease_factor
"""

_UPSERT_COUNTS_ONLY = f"""
    INSERT INTO key_stats ({_KEY_STAT_COLUMNS})
    VALUES (?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT (key_char) DO UPDATE SET
        errors = key_stats.errors + excluded.errors,
        successes = key_stats.successes + excluded.successes,
        last_practiced = excluded.last_practiced
"""

_REPLACE_SCHEDULE = """
    UPDATE key_stats
    SET last_practiced = ?, interval_days = ?, repetitions = ?, ease_factor = ?
    WHERE key_char = ?
"""


class KeyStatManager:
    """Manages the key_stats ledger.

    All DB operations go through `DatabaseManager`; only `db.exceptions`
    errors escape.
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        debug_util: Optional[DebugUtil] = None,
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ) -> None:
        self.db_manager = db_manager
        self.debug_util = debug_util or DebugUtil()
        self._clock = clock or datetime.datetime.now

    def _row_to_key_stat(self, row: Mapping[str, object]) -> KeyStat:
        return KeyStat(
            key=str(row["key_char"]),
            errors=int(str(row["errors"])),
            successes=int(str(row["successes"])),
            last_practiced=parse_timestamp(row["last_practiced"]),
            interval=int(str(row["interval_days"])),
            repetitions=int(str(row["repetitions"])),
            ease_factor=float(str(row["ease_factor"])),
        )

    def get_key_stat(self, key: str) -> Optional[KeyStat]:
        """Return the ledger row for `key`, or None if it was never observed."""
        row = self.db_manager.fetchone(
            f"SELECT {_KEY_STAT_COLUMNS} FROM key_stats WHERE key_char = ?", (key,)
        )
        return self._row_to_key_stat(row) if row else None

    def _get_many(self, keys: Iterable[str]) -> Dict[str, KeyStat]:
        key_list = list(keys)
        if not key_list:
            return {}
        placeholders = ",".join(["?"] * len(key_list))
        rows = self.db_manager.fetchall(
            f"SELECT {_KEY_STAT_COLUMNS} FROM key_stats WHERE key_char IN ({placeholders})",
            tuple(key_list),
        )
        stats = [self._row_to_key_stat(r) for r in rows]
        return {s.key: s for s in stats}

    def get_all_key_stats(self) -> List[KeyStat]:
        """Every ledger row, most practised first."""
        rows = self.db_manager.fetchall(
            f"""
            SELECT {_KEY_STAT_COLUMNS}
            FROM key_stats
            ORDER BY (errors + successes) DESC, key_char ASC
            """
        )
        return [self._row_to_key_stat(r) for r in rows]

    def apply_outcomes(
        self,
        outcomes: OutcomeAccumulator,
        now: Optional[datetime.datetime] = None,
        schedule: bool = True,
    ) -> List[KeyStat]:
        """Fold one run's per-character outcomes into the ledger atomically.

        Args:
            outcomes: Per-character error/success deltas for the run.
            now: Practice time recorded on every touched row.
            schedule: Also advance each character's SM-2 state. Every run
                counts as one review of each character in it, whether or not
                the key was due.

        Returns:
            The resulting ledger rows, in the accumulator's order.

        Raises:
            DatabaseError: The batch was rolled back; no row changed.
        """
        if len(outcomes) == 0:
            return []
        practiced_at = now or self._clock()

        try:
            with self.db_manager.transaction():
                existing = self._get_many(outcomes.keys())
                updated: List[KeyStat] = []
                params: List[Tuple[object, ...]] = []
                for outcome in outcomes:
                    current = existing.get(outcome.key) or KeyStat(
                        key=outcome.key, last_practiced=practiced_at
                    )
                    stat = current.model_copy(
                        update={
                            "errors": current.errors + outcome.errors,
                            "successes": current.successes + outcome.successes,
                            "last_practiced": practiced_at,
                        }
                    )
                    if schedule:
                        quality = quality_for_accuracy(outcome.accuracy)
                        stat = update_sm2(stat, quality, practiced_at)
                    updated.append(stat)
                    params.append(
                        (
                            outcome.key,
                            outcome.errors,
                            outcome.successes,
                            format_timestamp(practiced_at),
                            stat.interval,
                            stat.repetitions,
                            stat.ease_factor,
                        )
                    )
                query = _UPSERT_SCHEDULED if schedule else _UPSERT_COUNTS_ONLY
                self.db_manager.execute_many(query, params)
        except DatabaseError as e:
            logger.error("Error applying key outcomes, batch rolled back: %s", e)
            raise

        self.debug_util.debugMessage(f"Updated {len(updated)} key_stats rows")
        return updated

    def review_key(
        self, key: str, quality: int, now: Optional[datetime.datetime] = None
    ) -> Optional[KeyStat]:
        """Apply a single SM-2 review to an existing row without touching its counters.

        Returns the updated row, or None if the character has no ledger row.
        """
        stat = self.get_key_stat(key)
        if stat is None:
            return None
        reviewed = update_sm2(stat, quality, now or self._clock())
        self.db_manager.execute(
            _REPLACE_SCHEDULE,
            (
                format_timestamp(reviewed.last_practiced),
                reviewed.interval,
                reviewed.repetitions,
                reviewed.ease_factor,
                key,
            ),
        )
        return reviewed

    def get_due_keys(
        self,
        limit: int = 10,
        now: Optional[datetime.datetime] = None,
        min_attempts: int = MIN_ATTEMPTS_DUE,
    ) -> List[KeyStat]:
        """Characters whose review interval has elapsed, stalest first."""
        if limit <= 0:
            return []
        at = now or self._clock()
        rows = self.db_manager.fetchall(
            f"""
            SELECT {_KEY_STAT_COLUMNS}
            FROM key_stats
            WHERE (errors + successes) >= ?
            ORDER BY last_practiced ASC, key_char ASC
            """,
            (min_attempts,),
        )
        due: List[KeyStat] = []
        for row in rows:
            stat = self._row_to_key_stat(row)
            if stat.is_due(at):
                due.append(stat)
                if len(due) >= limit:
                    break
        return due

    def get_weakest_keys(
        self, limit: int = 10, min_attempts: int = MIN_ATTEMPTS_WEAKEST
    ) -> List[KeyStat]:
        """Characters with the highest error rate first."""
        if limit <= 0:
            return []
        rows = self.db_manager.fetchall(
            f"""
            SELECT {_KEY_STAT_COLUMNS}
            FROM key_stats
            WHERE (errors + successes) >= ?
            ORDER BY CAST(errors AS DOUBLE PRECISION) / (errors + successes) DESC, key_char ASC
            LIMIT ?
            """,
            (max(1, min_attempts), limit),
        )
        return [self._row_to_key_stat(r) for r in rows]
