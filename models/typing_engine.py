"""Typing engine: live character-by-character diff of input against a target.

The engine owns one practice run. It turns key events into the current
input buffer, keeps the error count consistent with that buffer after every
event, detects completion, and derives speed and accuracy figures.
"""

import datetime
import logging
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

from models.keystroke import KeyEvent

logger = logging.getLogger(__name__)

CHARS_PER_WORD = 5.0
MIN_DURATION_SECONDS = 1.0
WHITESPACE = (" ", "\t", "\n")

Clock = Callable[[], datetime.datetime]


class SessionStats(NamedTuple):
    """Speed and accuracy of a run, live or final."""

    wpm: float
    accuracy: float
    duration_seconds: float


def delete_last_word(chars: Sequence[str]) -> List[str]:
    """Remove one trailing word and any whitespace typed after it.

    "hello world" -> "hello ", "hello  " -> "", "" -> "".
    """
    end = len(chars) - 1
    while end >= 0 and chars[end] in WHITESPACE:
        end -= 1
    if end < 0:
        return []
    start = end
    while start >= 0 and chars[start] not in WHITESPACE:
        start -= 1
    return list(chars[: start + 1])


def count_errors(target: Sequence[str], typed: Sequence[str]) -> int:
    """Mismatched positions over the shared prefix plus every excess keystroke."""
    overlap = min(len(typed), len(target))
    mismatches = sum(1 for i in range(overlap) if typed[i] != target[i])
    return mismatches + max(0, len(typed) - len(target))


class TypingEngine:
    """Diff state for one practice run.

    The target is fixed at construction. `is_finished` flips to True exactly
    once, when the input covers the target and its first `len(target)`
    characters match it; after that every key event is ignored.
    """

    def __init__(self, target: str, clock: Optional[Clock] = None) -> None:
        self._target: Tuple[str, ...] = tuple(target)
        self._input: List[str] = []
        self._clock: Clock = clock or datetime.datetime.now
        self.start_time: Optional[datetime.datetime] = None
        self.end_time: Optional[datetime.datetime] = None
        self.is_finished = False
        self.error_count = 0

    @property
    def target(self) -> Tuple[str, ...]:
        return self._target

    @property
    def target_text(self) -> str:
        return "".join(self._target)

    @property
    def user_input(self) -> Tuple[str, ...]:
        return tuple(self._input)

    @property
    def input_text(self) -> str:
        return "".join(self._input)

    @property
    def has_started(self) -> bool:
        return self.start_time is not None

    def process_key(self, event: KeyEvent) -> None:
        """Apply one key event to the input buffer."""
        if self.is_finished:
            return

        if self.start_time is None:
            self.start_time = self._clock()

        if event.is_backspace:
            if self._input:
                self._input.pop()
                self._recount_errors()
        elif event.is_delete_word:
            if self._input:
                self._input = delete_last_word(self._input)
                self._recount_errors()
        else:
            text = event.printable_text()
            if text is None:
                logger.debug("Ignoring non-printable key %r", event.key)
                return
            self._append(text)

        self._check_completion()

    def type_text(self, text: str) -> None:
        """Feed `text` one character at a time, as if typed."""
        for ch in text:
            self.process_key(KeyEvent.char(ch))

    def _append(self, text: str) -> None:
        # Earlier positions are untouched by an append, so only the new ones are scored.
        start = len(self._input)
        self._input.extend(text)
        for i in range(start, len(self._input)):
            if i >= len(self._target) or self._input[i] != self._target[i]:
                self.error_count += 1

    def _recount_errors(self) -> None:
        self.error_count = count_errors(self._target, self._input)

    def _check_completion(self) -> None:
        target_len = len(self._target)
        if len(self._input) < target_len:
            return
        if tuple(self._input[:target_len]) == self._target:
            self.is_finished = True
            self.end_time = self._clock()

    def get_stats(self) -> SessionStats:
        """Return (wpm, accuracy, duration_seconds).

        Before the first keystroke everything is zero. While running the
        duration is measured up to now; once finished, up to `end_time`.
        """
        if self.start_time is None:
            return SessionStats(0.0, 0.0, 0.0)

        end = self.end_time or self._clock()
        duration = max((end - self.start_time).total_seconds(), MIN_DURATION_SECONDS)

        correct_chars = max(0, len(self._target) - self.error_count)
        wpm = (correct_chars / CHARS_PER_WORD) / duration * 60.0

        typed = len(self._input)
        if typed == 0:
            accuracy = 100.0
        else:
            accuracy = max(0, typed - self.error_count) / typed * 100.0

        return SessionStats(wpm=wpm, accuracy=accuracy, duration_seconds=duration)
