"""
ExportService: write session history and the key ledger to JSON or CSV.
"""

import csv
import datetime
import logging
from pathlib import Path
from typing import Callable, List, Optional, TextIO, Union

from pydantic import BaseModel, Field

from models.key_stat import KeyStat
from models.key_stat_manager import KeyStatManager
from models.session import Session
from models.session_manager import SessionManager

logger = logging.getLogger(__name__)

EXPORT_SESSION_LIMIT = 1000
EXPORT_FORMATS = ("json", "csv")
CSV_HEADER = ["ID", "Timestamp", "WPM", "Accuracy", "Duration", "ErrorCount"]


class ExportData(BaseModel):
    """Everything a JSON export contains."""

    export_date: datetime.datetime
    average_wpm: float = 0.0
    sessions: List[Session] = Field(default_factory=list)
    key_statistics: List[KeyStat] = Field(default_factory=list)


def default_export_path(fmt: str, today: Optional[datetime.date] = None) -> str:
    """File name used when the caller gives none, e.g. kata-stats-2024-01-31.json."""
    fmt = fmt.lower()
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt!r}")
    day = today or datetime.date.today()
    return f"kata-stats-{day.isoformat()}.{fmt}"


class ExportService:
    def __init__(
        self,
        session_manager: SessionManager,
        key_stat_manager: KeyStatManager,
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ) -> None:
        self.session_manager = session_manager
        self.key_stat_manager = key_stat_manager
        self.clock = clock or datetime.datetime.now

    def gather(self) -> ExportData:
        return ExportData(
            export_date=self.clock(),
            average_wpm=self.session_manager.get_average_wpm(),
            sessions=self.session_manager.get_recent_sessions(EXPORT_SESSION_LIMIT),
            key_statistics=self.key_stat_manager.get_all_key_stats(),
        )

    def to_json(self, output_file: Union[str, Path, TextIO]) -> None:
        """Write the full export as indented JSON."""
        payload = self.gather().model_dump_json(indent=2)
        if isinstance(output_file, (str, Path)):
            Path(output_file).write_text(payload, encoding="utf-8")
        else:
            output_file.write(payload)
        logger.info("Exported statistics to JSON")

    def to_csv(self, output_file: Union[str, Path, TextIO]) -> None:
        """Write one CSV row per session, newest first.

        Numbers are written with two decimals.
        """
        sessions = self.session_manager.get_recent_sessions(EXPORT_SESSION_LIMIT)

        close_file = False
        if isinstance(output_file, (str, Path)):
            f = open(output_file, "w", newline="", encoding="utf-8")
            close_file = True
        else:
            f = output_file

        try:
            writer = csv.writer(f)
            writer.writerow(CSV_HEADER)
            for s in sessions:
                writer.writerow(
                    [
                        s.session_id,
                        s.timestamp.isoformat(timespec="seconds"),
                        f"{s.wpm:.2f}",
                        f"{s.accuracy:.2f}",
                        f"{s.duration_seconds:.2f}",
                        s.error_count,
                    ]
                )
        finally:
            if close_file:
                f.close()
        logger.info("Exported %d sessions to CSV", len(sessions))

    def export(self, fmt: str, output_file: Optional[Union[str, Path]] = None) -> str:
        """Export in `fmt` ("json" or "csv") and return the path written."""
        fmt = fmt.lower()
        path = str(output_file) if output_file else default_export_path(fmt, self.clock().date())
        if fmt == "json":
            self.to_json(path)
        elif fmt == "csv":
            self.to_csv(path)
        else:
            raise ValueError(f"Unsupported export format: {fmt!r}")
        return path
