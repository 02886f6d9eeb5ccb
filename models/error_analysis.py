"""Character and bigram error breakdown of a single run."""

from typing import Dict, List, Sequence, Tuple

from pydantic import BaseModel, Field


class ErrorAnalysis(BaseModel):
    """Which target characters, and which two-character sequences, were mistyped."""

    char_errors: Dict[str, int] = Field(default_factory=dict)
    bigram_errors: Dict[str, int] = Field(default_factory=dict)

    @property
    def total_errors(self) -> int:
        return sum(self.char_errors.values())

    def top_chars(self, n: int = 5) -> List[Tuple[str, int]]:
        """Most frequently mistyped characters, ties broken by character."""
        return sorted(self.char_errors.items(), key=lambda kv: (-kv[1], kv[0]))[:n]

    def top_bigrams(self, n: int = 5) -> List[Tuple[str, int]]:
        """Most frequently mistyped bigrams, ties broken by bigram."""
        return sorted(self.bigram_errors.items(), key=lambda kv: (-kv[1], kv[0]))[:n]


def analyze_errors(target: Sequence[str], typed: Sequence[str]) -> ErrorAnalysis:
    """Count mistyped target characters and the bigrams that end in a mistake.

    Only the prefix both sequences share is compared. A bigram is the target
    character before the mistake followed by the mistyped target character.
    """
    analysis = ErrorAnalysis()
    for i in range(min(len(typed), len(target))):
        if typed[i] == target[i]:
            continue
        expected = target[i]
        analysis.char_errors[expected] = analysis.char_errors.get(expected, 0) + 1
        if i > 0:
            bigram = target[i - 1] + expected
            analysis.bigram_errors[bigram] = analysis.bigram_errors.get(bigram, 0) + 1
    return analysis
