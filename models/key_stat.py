"""KeyStat ledger row and the SM-2 spaced-repetition update.

Each distinct character the user has been asked to type gets one KeyStat.
The error/success counters only ever grow; the SM-2 fields (interval,
repetitions, ease factor) decide when the character is due for review.
"""

from __future__ import annotations

import datetime
import math
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
PASSING_QUALITY = 3

# Accuracy (percent) -> SM-2 quality, checked top-down.
QUALITY_THRESHOLDS = (
    (95.0, 5),
    (85.0, 4),
    (70.0, 3),
    (50.0, 2),
    (30.0, 1),
)


class KeyStat(BaseModel):
    """Pydantic model for one row of the key_stats ledger."""

    key: str
    errors: int = Field(default=0, ge=0)
    successes: int = Field(default=0, ge=0)
    last_practiced: datetime.datetime
    interval: int = Field(default=0, ge=0, description="Days until the next review")
    repetitions: int = Field(default=0, ge=0, description="Consecutive passing reviews")
    ease_factor: float = Field(default=DEFAULT_EASE_FACTOR, ge=MIN_EASE_FACTOR)

    model_config = {
        "extra": "forbid",
        "validate_assignment": True,
    }

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        """A ledger row is keyed by exactly one character."""
        if len(v) != 1:
            raise ValueError("key must be a single character")
        return v

    @property
    def attempts(self) -> int:
        return self.errors + self.successes

    @property
    def error_rate(self) -> float:
        """Share of attempts typed wrong, 0.0 when never attempted."""
        if self.attempts == 0:
            return 0.0
        return self.errors / self.attempts

    def days_since_practice(self, now: datetime.datetime) -> float:
        """Fractional days between `last_practiced` and `now`."""
        return (now - self.last_practiced).total_seconds() / 86400.0

    def is_due(self, now: datetime.datetime) -> bool:
        """Whether the review interval has elapsed since the last practice."""
        return self.days_since_practice(now) >= self.interval

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump()
        data["error_rate"] = self.error_rate
        return data


def clamp_quality(quality: int) -> int:
    return max(0, min(5, quality))


def quality_for_accuracy(accuracy: float) -> int:
    """Map an accuracy percentage onto an SM-2 quality score (0-5).

    >= 95 -> 5, >= 85 -> 4, >= 70 -> 3, >= 50 -> 2, >= 30 -> 1, otherwise 0.
    """
    for threshold, quality in QUALITY_THRESHOLDS:
        if accuracy >= threshold:
            return quality
    return 0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def update_sm2(stat: KeyStat, quality: int, now: datetime.datetime) -> KeyStat:
    """Return a copy of `stat` after one SM-2 review graded `quality`.

    A passing grade (>= 3) advances the interval 1 -> 6 -> interval * ease
    and extends the repetition streak; a failing grade restarts at a one day
    interval. The ease factor moves by the standard SM-2 delta and never
    drops below 1.3. Counters are left untouched.
    """
    q = clamp_quality(quality)

    if q >= PASSING_QUALITY:
        if stat.repetitions == 0:
            interval = 1
        elif stat.repetitions == 1:
            interval = 6
        else:
            interval = _round_half_up(stat.interval * stat.ease_factor)
        repetitions = stat.repetitions + 1
    else:
        repetitions = 0
        interval = 1

    ease_factor = stat.ease_factor + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
    ease_factor = max(MIN_EASE_FACTOR, ease_factor)

    return stat.model_copy(
        update={
            "interval": interval,
            "repetitions": repetitions,
            "ease_factor": ease_factor,
            "last_practiced": now,
        }
    )
