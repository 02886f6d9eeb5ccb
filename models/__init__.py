"""
Models package for the Kata typing trainer.

This package contains the data models, the typing engine and the managers
that persist sessions and per-key statistics.
"""

# Import key modules to make them available at the package level

__all__ = [
    "KeyStatManager",
    "LessonGenerator",
    "SessionManager",
    "TypingEngine",
]

from .key_stat_manager import KeyStatManager
from .lesson_generator import LessonGenerator
from .session_manager import SessionManager
from .typing_engine import TypingEngine
