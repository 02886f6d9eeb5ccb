"""Session model: the immutable record of one completed (or abandoned) practice run."""

from __future__ import annotations

import datetime
import uuid
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator


class Session(BaseModel):
    """Pydantic model for a typing practice session, matching the practice_sessions table.

    Instances are frozen: a Session is written once when a run is recorded and
    never changed afterwards.
    """

    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    text: str
    wpm: float = Field(ge=0.0)
    accuracy: float = Field(ge=0.0, le=100.0)
    duration_seconds: float = Field(ge=0.0)
    error_count: int = Field(ge=0)
    timestamp: datetime.datetime

    model_config = {
        "extra": "forbid",
        "frozen": True,
    }

    @field_validator("session_id")
    @classmethod
    def validate_uuid(cls, v: str) -> str:
        """Validate that the provided value is a valid UUID string."""
        uuid.UUID(v)
        return v

    @property
    def char_count(self) -> int:
        return len(self.text)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the model to a plain dict using Pydantic v2 `model_dump()`."""
        return self.model_dump()

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Session":
        """Create a Session from a dict, ignoring calculated properties."""
        data = d.copy()
        data.pop("char_count", None)
        try:
            return cls.model_validate(data)
        except ValueError as e:
            raise ValueError(f"Invalid session data: {str(e)}") from e

    def get_summary(self) -> str:
        """Return a one-line summary of the session."""
        return (
            f"Session {self.session_id}: {self.wpm:.0f} WPM, {self.accuracy:.1f}% accuracy, "
            f"{self.duration_seconds:.1f}s, {self.error_count} errors "
            f"({self.text[:10]}...)"
        )
