"""Lesson text generation: drills from static corpora and weakness lessons.

A weakness lesson is built from the characters the ledger reports as due or
weak: every corpus token containing one of them goes into a candidate pool,
and the lesson is drawn from that pool at random.
"""

import enum
import logging
import random
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, Field

from models.key_stat import KeyStat

logger = logging.getLogger(__name__)

MIN_POOL_SIZE = 5


class LessonType(enum.Enum):
    """Kinds of generated lesson."""

    BIGRAMS = "bigrams"
    WORDS = "words"
    SYMBOLS = "symbols"
    CODE = "code"
    FILE = "file"
    WEAKNESSES = "weaknesses"


class WeakKey(BaseModel):
    """A character to emphasise and how often it is mistyped."""

    key: str
    error_rate: float = Field(ge=0.0, le=1.0)

    @classmethod
    def from_key_stat(cls, stat: KeyStat) -> "WeakKey":
        return cls(key=stat.key, error_rate=stat.error_rate)


def weak_keys_from_stats(stats: Sequence[KeyStat]) -> List[WeakKey]:
    """Convert ledger rows to weak keys, skipping characters never attempted."""
    return [WeakKey.from_key_stat(s) for s in stats if s.attempts > 0]


class Corpus(BaseModel):
    """Static practice material for one programming language."""

    language: str
    words: List[str]
    bigrams: List[str]
    symbols: List[str]
    snippets: List[str]

    def tokens(self) -> List[str]:
        """Words, bigrams and symbols in that order, without repeats."""
        seen = set()
        result: List[str] = []
        for token in [*self.words, *self.bigrams, *self.symbols]:
            if token not in seen:
                seen.add(token)
                result.append(token)
        return result


GO_CORPUS = Corpus(
    language="go",
    words=[
        "func", "package", "import", "return", "if", "else", "for", "range",
        "struct", "interface", "type", "var", "const", "go", "defer", "map",
        "chan", "select", "case", "switch", "break", "continue", "fallthrough",
        "goto", "true", "false", "nil", "error", "string", "int", "bool",
    ],
    bigrams=[
        "fu", "un", "nc", "ct", "ti", "io", "on", "re", "et", "tu", "ur", "rn",
        "if", "er", "rr", "ni", "il", "pa", "ac", "ck", "ka", "ag", "ge",
        "st", "tr", "ru", "uc", "in", "nt", "ty", "pe", "ra", "an", "ng",
    ],
    symbols=[
        "{}", "[]", "()", "!=", "==", "<=", ">=", "&&", "||", ":=", "...",
        "<-", "->", "*", "&", "%", "+=", "-=", "*=", "/=",
    ],
    snippets=[
        "func main() {\n\tfmt.Println(\"Hello\")\n}",
        "if err != nil {\n\treturn err\n}",
        "for i := 0; i < len(items); i++ {\n\tfmt.Println(items[i])\n}",
        "for _, item := range items {\n\tprocess(item)\n}",
        "type User struct {\n\tID   int\n\tName string\n}",
        "func (u *User) GetName() string {\n\treturn u.Name\n}",
        "ch := make(chan int, 10)",
        "defer file.Close()",
        "result, err := doSomething()",
        "switch value {\ncase 1:\n\treturn \"one\"\ndefault:\n\treturn \"other\"\n}",
    ],
)

PYTHON_CORPUS = Corpus(
    language="python",
    words=[
        "def", "class", "import", "from", "return", "if", "elif", "else", "for",
        "while", "in", "not", "and", "or", "is", "None", "True", "False", "with",
        "as", "try", "except", "finally", "raise", "lambda", "yield", "pass",
        "break", "continue", "self", "print", "len", "dict", "list",
    ],
    bigrams=[
        "de", "ef", "cl", "la", "as", "ss", "im", "mp", "po", "or", "rt", "re",
        "et", "tu", "ur", "rn", "wh", "hi", "il", "le", "ex", "xc", "ce", "ep",
        "pt", "ra", "ai", "is", "se", "lf", "in", "nt", "pr", "ri",
    ],
    symbols=[
        "()", "[]", "{}", ":", "==", "!=", "<=", ">=", "->", "**", "//", "+=",
        "-=", "*=", "@", "#", "_", "__", "'", "\"",
    ],
    snippets=[
        "def main():\n    print(\"Hello\")",
        "if value is None:\n    return default",
        "for i, item in enumerate(items):\n    print(i, item)",
        "with open(path) as f:\n    data = f.read()",
        "class User:\n    def __init__(self, name):\n        self.name = name",
        "try:\n    run()\nexcept ValueError as e:\n    log(e)",
        "squares = [x * x for x in range(10)]",
        "counts = {}\ncounts[key] = counts.get(key, 0) + 1",
        "result = sorted(items, key=lambda x: x.score)",
        "while queue:\n    node = queue.pop()",
    ],
)

CORPORA: Dict[str, Corpus] = {c.language: c for c in (GO_CORPUS, PYTHON_CORPUS)}


def get_corpus(language: str) -> Corpus:
    """Look up a built-in corpus by language name."""
    try:
        return CORPORA[language.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unknown language: {language!r}. Available: {', '.join(sorted(CORPORA))}"
        ) from None


class LessonGenerator:
    """Builds lesson text from a corpus.

    Pass a seeded `random.Random` for reproducible lessons.
    """

    def __init__(self, corpus: Optional[Corpus] = None, rng: Optional[random.Random] = None) -> None:
        self.corpus = corpus or GO_CORPUS
        self.rng = rng or random.Random()

    def _draw(self, pool: Sequence[str], count: int, sep: str = " ") -> str:
        return sep.join(self.rng.choice(pool) for _ in range(count))

    def generate_lesson(self, lesson_type: LessonType, length: int) -> str:
        """Generate a drill of `length` tokens (or snippets, for CODE).

        FILE and WEAKNESSES lessons have their own entry points; passed here
        they produce a word drill.
        """
        if lesson_type == LessonType.BIGRAMS:
            return self._draw(self.corpus.bigrams, length)
        if lesson_type == LessonType.SYMBOLS:
            return self._draw(self.corpus.symbols, length)
        if lesson_type == LessonType.CODE:
            count = min(length, len(self.corpus.snippets))
            return self._draw(self.corpus.snippets, count, sep="\n\n")
        return self._draw(self.corpus.words, length)

    def generate_from_file(self, path: Union[str, Path]) -> str:
        """Use a text file's contents as the lesson.

        Raises:
            ValueError: If the file holds only whitespace.
            OSError: If the file cannot be read.
        """
        content = Path(path).read_text(encoding="utf-8").strip()
        if not content:
            raise ValueError(f"Lesson file is empty: {path}")
        return content

    def generate_weakness_lesson(
        self,
        weak_keys: Sequence[WeakKey],
        length: int,
        corpus: Optional[Corpus] = None,
    ) -> str:
        """Generate `length` tokens that exercise the given weak characters.

        Falls back to a plain word lesson when there are no weak keys.
        """
        source = corpus or self.corpus
        if not weak_keys:
            logger.info("No weak keys supplied; generating a vocabulary lesson")
            return LessonGenerator(source, self.rng).generate_lesson(LessonType.WORDS, length)

        pool = build_candidate_pool(weak_keys, source)
        return self._draw(pool, length)


def build_candidate_pool(weak_keys: Sequence[WeakKey], corpus: Corpus) -> List[str]:
    """Collect corpus tokens containing any weak character, first match first.

    Matching is case-sensitive. A pool smaller than MIN_POOL_SIZE is topped
    up with the rest of the corpus.
    """
    seen = set()
    pool: List[str] = []
    for weak in weak_keys:
        for token in corpus.tokens():
            if weak.key in token and token not in seen:
                seen.add(token)
                pool.append(token)

    if len(pool) < MIN_POOL_SIZE:
        for token in corpus.tokens():
            if token not in seen:
                seen.add(token)
                pool.append(token)
    return pool
