"""Per-character outcome accumulation for one practice run."""

from typing import Dict, Iterator, List, Sequence, Tuple

from pydantic import BaseModel, Field


class CharacterOutcome(BaseModel):
    """Errors and successes for one target character within a single run."""

    key: str
    errors: int = Field(default=0, ge=0)
    successes: int = Field(default=0, ge=0)

    @property
    def attempts(self) -> int:
        return self.errors + self.successes

    @property
    def accuracy(self) -> float:
        """Percentage of this character's attempts typed correctly."""
        if self.attempts == 0:
            return 100.0
        return self.successes / self.attempts * 100.0


class OutcomeAccumulator:
    """Ordered accumulator of per-character deltas.

    Iteration follows the order in which characters were first recorded, so
    a batch written from it always touches ledger rows in the same order.
    """

    def __init__(self) -> None:
        self._outcomes: Dict[str, CharacterOutcome] = {}

    def record(self, key: str, correct: bool) -> None:
        outcome = self._outcomes.get(key)
        if outcome is None:
            outcome = CharacterOutcome(key=key)
            self._outcomes[key] = outcome
        if correct:
            outcome.successes += 1
        else:
            outcome.errors += 1

    def __iter__(self) -> Iterator[CharacterOutcome]:
        return iter(list(self._outcomes.values()))

    def __len__(self) -> int:
        return len(self._outcomes)

    def __contains__(self, key: object) -> bool:
        return key in self._outcomes

    def get(self, key: str) -> CharacterOutcome:
        return self._outcomes[key]

    def keys(self) -> List[str]:
        return list(self._outcomes)

    def totals(self) -> Tuple[int, int]:
        """(errors, successes) summed over every character."""
        errors = sum(o.errors for o in self._outcomes.values())
        successes = sum(o.successes for o in self._outcomes.values())
        return errors, successes


def accumulate_outcomes(target: Sequence[str], typed: Sequence[str]) -> OutcomeAccumulator:
    """Classify each compared target character as a success or an error.

    Only positions present in both sequences are compared; excess input
    and untyped target characters contribute nothing.
    """
    accumulator = OutcomeAccumulator()
    for i in range(min(len(typed), len(target))):
        accumulator.record(target[i], typed[i] == target[i])
    return accumulator
