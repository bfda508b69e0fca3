"""SM-2 spaced repetition algorithm."""
import math
from dataclasses import replace
from datetime import datetime, timedelta

from recall_scheduler.models import MIN_EASE_FACTOR, QualityGrade, ReviewState


def next_ease_factor(ease_factor: float, grade: QualityGrade) -> float:
    """Apply the SM-2 ease recurrence, floored at MIN_EASE_FACTOR."""
    q = int(grade)
    new_ef = ease_factor + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
    return max(MIN_EASE_FACTOR, new_ef)


def advance(current: ReviewState, grade: QualityGrade, now: datetime) -> ReviewState:
    """Calculate the state after one graded review.

    Args:
        current: State before the review.
        grade: Quality of recall (0=complete blackout, 5=perfect).
        now: Instant of the review. The next review date is anchored here,
            never to the previously stored due date.

    Returns:
        A new ReviewState; ``current`` is left untouched.
    """
    new_ef = next_ease_factor(current.ease_factor, grade)

    if grade.is_pass:
        repetitions = current.repetitions + 1
        if repetitions == 1:
            interval = 1
        elif repetitions == 2:
            interval = 6
        else:
            # Truncate, don't round: growth applies to the previous interval
            interval = math.floor(current.interval * new_ef)
    else:
        # Incorrect, reset
        repetitions = 0
        interval = 1

    return replace(
        current,
        repetitions=repetitions,
        ease_factor=new_ef,
        interval=interval,
        next_review_date=now + timedelta(days=interval),
        last_review_date=now,
    )


def is_due(state: ReviewState, now: datetime) -> bool:
    return now >= state.next_review_date


def days_until_due(state: ReviewState, now: datetime) -> int:
    """Whole days elapsed from ``now`` to the due date, truncated toward zero.

    Negative when overdue; a card due later today, or less than a day ago, gives 0.
    """
    return int((state.next_review_date - now) / timedelta(days=1))
