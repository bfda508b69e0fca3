"""Data classes for the review scheduler domain model."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
PASSING_GRADE = 3


class InvalidGradeError(ValueError):
    """Raised when raw input cannot be converted into a QualityGrade."""


class QualityGrade(IntEnum):
    """Learner's self-assessed recall quality for a single review."""

    BLACKOUT = 0
    INCORRECT = 1  # wrong, but the answer was recognized
    DIFFICULT_CORRECT = 2
    HESITANT_CORRECT = 3
    EASY_CORRECT = 4
    PERFECT = 5

    @property
    def is_pass(self) -> bool:
        return self.value >= PASSING_GRADE

    @classmethod
    def parse(cls, raw) -> "QualityGrade":
        """Convert a raw rating (int or digit string) into a grade.

        Out-of-range or non-numeric values raise InvalidGradeError.
        """
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, bool) or isinstance(raw, float):
            raise InvalidGradeError(f"Grade must be an integer 0-5, got {raw!r}")
        if isinstance(raw, str):
            text = raw.strip()
            if not text.isdecimal() or not text.isascii():
                raise InvalidGradeError(f"Grade must be an integer 0-5, got {raw!r}")
            raw = int(text)
        if not isinstance(raw, int):
            raise InvalidGradeError(f"Grade must be an integer 0-5, got {raw!r}")
        try:
            return cls(raw)
        except ValueError:
            raise InvalidGradeError(f"Grade must be between 0 and 5, got {raw}") from None


class Difficulty(str, Enum):
    HARD = "Hard"
    MEDIUM = "Medium"
    EASY = "Easy"


@dataclass(frozen=True)
class ReviewState:
    """Per-card scheduling data. Never mutated; advance() returns a new one."""

    repetitions: int
    ease_factor: float
    interval: int
    next_review_date: datetime
    last_review_date: Optional[datetime] = None

    @classmethod
    def initial(cls, now: datetime) -> "ReviewState":
        return cls(
            repetitions=0,
            ease_factor=DEFAULT_EASE_FACTOR,
            interval=0,
            next_review_date=now,
        )
