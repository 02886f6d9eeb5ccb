"""Debug utilities for controlling debug output across the trainer.

Provides a centralized way to handle debug messages, supporting both quiet mode
(logging only) and loud mode (print to stdout).
"""

import logging
import os

DEBUG_MODE_ENV = "KATA_DEBUG_MODE"
_VALID_MODES = ("quiet", "loud")


class DebugUtil:
    """Manage debug output based on debug mode setting.

    Supports two modes:
    - "quiet": Debug messages are logged only
    - "loud": Debug messages are printed to stdout
    """

    def __init__(self, mode: str | None = None) -> None:
        """Initialize from an explicit mode or the KATA_DEBUG_MODE environment variable.

        Defaults to "quiet" if neither is set or the value is invalid.
        """
        raw_mode = mode if mode is not None else os.environ.get(DEBUG_MODE_ENV, "quiet")
        self._mode = raw_mode.lower() if raw_mode.lower() in _VALID_MODES else "quiet"

        self._logger = logging.getLogger(self.__class__.__name__)
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            handler.setFormatter(formatter)
            self._logger.addHandler(handler)
            self._logger.setLevel(logging.DEBUG)

    def debug_mode(self) -> str:
        """Get the current debug mode ("quiet" or "loud")."""
        return self._mode

    def debugMessage(self, *args: object) -> None:
        """Output a debug message based on the current debug mode.

        In "quiet" mode messages go to the logger at DEBUG level.
        In "loud" mode they are printed to stdout with a "[DEBUG]" prefix.
        """
        if self._mode == "loud":
            print("[DEBUG]", *args)
        else:
            message = " ".join(str(arg) for arg in args)
            if message:
                self._logger.debug(message)

    def set_mode(self, mode: str) -> None:
        """Change the debug mode. Invalid values fall back to "quiet"."""
        self._mode = mode.lower() if mode.lower() in _VALID_MODES else "quiet"

    def is_loud(self) -> bool:
        """Check if debug mode is set to loud."""
        return self._mode == "loud"

    def is_quiet(self) -> bool:
        """Check if debug mode is set to quiet."""
        return self._mode == "quiet"
