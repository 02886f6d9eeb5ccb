"""Helper utilities for the Kata typing trainer.

This package contains settings loading and debug output helpers used across
the models and services.
"""

from .config import TrainerSettings, load_settings  # noqa: F401
from .debug_util import DebugUtil  # noqa: F401
