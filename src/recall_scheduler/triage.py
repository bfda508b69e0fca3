"""Difficulty labels and study-session sizing."""
from recall_scheduler.models import Difficulty, ReviewState


def classify_difficulty(state: ReviewState) -> Difficulty:
    ef = state.ease_factor
    if 1.3 <= ef < 1.8:
        return Difficulty.HARD
    elif 1.8 <= ef < 2.3:
        return Difficulty.MEDIUM
    elif ef >= 2.3:
        return Difficulty.EASY
    return Difficulty.MEDIUM


def recommend_session_size(total_due_count: int) -> int:
    """How many of the due cards to study in one sitting."""
    total_due_count = max(0, total_due_count)
    if total_due_count <= 10:
        return total_due_count
    elif total_due_count <= 30:
        return 15
    elif total_due_count <= 50:
        return 20
    return 25
