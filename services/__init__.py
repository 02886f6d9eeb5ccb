"""Service initialization module.

Factory helpers to create and wire services with their dependencies.
"""

from __future__ import annotations

import logging
from typing import Optional

from db.database_manager import ConnectionType, DatabaseManager
from db.exceptions import DatabaseError
from helpers.config import TrainerSettings, load_settings
from helpers.debug_util import DebugUtil
from models.lesson_generator import LessonGenerator, get_corpus
from services.export_service import ExportService
from services.practice_service import PracticeService

logger = logging.getLogger(__name__)

__all__ = ["ExportService", "PracticeService", "init_services", "open_database"]


def open_database(settings: TrainerSettings, debug_util: Optional[DebugUtil] = None) -> DatabaseManager:
    """Connect to the configured store and make sure its tables exist.

    Raises:
        DBConnectionError: If the store cannot be reached.
        DatabaseError: If the schema cannot be created.
    """
    if settings.connection_type == "postgres":
        db_manager = DatabaseManager(
            connection_type=ConnectionType.POSTGRES,
            debug_util=debug_util,
            dsn=settings.postgres_dsn,
        )
    else:
        db_path = settings.db_path.expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        db_manager = DatabaseManager(str(db_path), ConnectionType.LOCAL, debug_util=debug_util)

    try:
        db_manager.init_tables()
    except DatabaseError:
        db_manager.close()
        raise
    return db_manager


def init_services(settings: Optional[TrainerSettings] = None) -> PracticeService:
    """Build a PracticeService from settings.

    If the statistics store cannot be opened the service still works with
    statistics disabled.

    Example:
        service = init_services(load_settings(db_path="/tmp/kata.db"))
    """
    settings = settings or load_settings()
    debug_util = DebugUtil(settings.debug_mode)
    generator = LessonGenerator(get_corpus(settings.language))

    db_manager: Optional[DatabaseManager] = None
    try:
        db_manager = open_database(settings, debug_util)
    except (DatabaseError, OSError) as e:
        logger.warning("Statistics disabled, could not open database: %s", e)

    return PracticeService(
        db_manager,
        generator=generator,
        schedule_on_record=settings.schedule_on_record,
        review_limit=settings.review_limit,
        lesson_length=settings.lesson_length,
        debug_util=debug_util,
    )
