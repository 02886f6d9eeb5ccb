"""Key event model delivered to the typing engine."""

from typing import Optional

from pydantic import BaseModel, field_validator

BACKSPACE = "backspace"
DELETE_WORD_KEYS = frozenset({"ctrl+backspace", "ctrl+h", "ctrl+w"})
ENTER = "enter"
TAB = "tab"
SPACE = "space"


def clean_text(text: str) -> str:
    """Normalize line endings to "\\n" and drop other control characters."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return "".join(ch for ch in text if ch.isprintable() or ch in "\n\t")


class KeyEvent(BaseModel):
    """A single key press as reported by the terminal layer.

    `key` is the key name ("backspace", "ctrl+h", "enter", ...) or the
    literal character for plain keys. `text` carries the printable runes
    that came with the press and may hold more than one character for
    pasted or composed input.
    """

    key: str = ""
    text: str = ""

    model_config = {"frozen": True}

    @field_validator("key", mode="before")
    @classmethod
    def _normalize_key(cls, v: object) -> str:
        """Key names are compared case-insensitively; literal characters are kept."""
        if v is None:
            return ""
        if not isinstance(v, str):
            v = str(v)
        return v if len(v) == 1 else v.lower()

    @field_validator("text", mode="before")
    @classmethod
    def _coerce_text(cls, v: object) -> str:
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @classmethod
    def char(cls, ch: str) -> "KeyEvent":
        """Build the event for typing `ch` (newline and tab map to their keys)."""
        if ch == "\n":
            return cls(key=ENTER)
        if ch == "\t":
            return cls(key=TAB)
        return cls(key=ch, text=ch)

    def printable_text(self) -> Optional[str]:
        """Return the characters this event appends, or None if it appends nothing."""
        if self.key == ENTER:
            return "\n"
        if self.key == TAB:
            return "\t"
        text = clean_text(self.text)
        if text:
            return text
        if self.key == SPACE:
            return " "
        if len(self.key) == 1 and self.key.isprintable():
            return self.key
        return None

    @property
    def is_backspace(self) -> bool:
        return self.key == BACKSPACE

    @property
    def is_delete_word(self) -> bool:
        return self.key in DELETE_WORD_KEYS
