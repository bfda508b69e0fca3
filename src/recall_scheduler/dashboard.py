"""Progress summary and retention statistics."""
from datetime import datetime

from recall_scheduler.db import get_connection
from recall_scheduler.models import PASSING_GRADE, Difficulty
from recall_scheduler.store import count_due, list_cards
from recall_scheduler.triage import classify_difficulty, recommend_session_size


def get_retention_label(score: float) -> str:
    if score >= 80:
        return "STRONG"
    elif score >= 65:
        return "STEADY"
    elif score >= 50:
        return "NEEDS WORK"
    return "WEAK"


def get_retention_color(score: float) -> str:
    if score >= 80:
        return "green"
    elif score >= 65:
        return "yellow"
    elif score >= 50:
        return "dark_orange"
    return "red"


def calc_retention(db_path: str) -> float:
    """Percentage of logged reviews that were passing grades."""
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT COUNT(*) as t, SUM(CASE WHEN grade >= ? THEN 1 ELSE 0 END) as c FROM review_log",
        (PASSING_GRADE,),
    ).fetchone()
    conn.close()
    if not row["t"]:
        return 0.0
    return round((row["c"] / row["t"]) * 100, 1)


def get_difficulty_breakdown(db_path: str) -> dict[str, int]:
    counts = {level.value: 0 for level in Difficulty}
    for card in list_cards(db_path):
        counts[classify_difficulty(card["state"]).value] += 1
    return counts


def get_summary(db_path: str, now: datetime) -> dict:
    conn = get_connection(db_path)
    total = conn.execute("SELECT COUNT(*) FROM review_states").fetchone()[0]
    reviews = conn.execute("SELECT COUNT(*) FROM review_log").fetchone()[0]
    conn.close()
    due = count_due(db_path, now)
    return {
        "total_cards": total,
        "due_now": due,
        "recommended_session_size": recommend_session_size(due),
        "difficulty": get_difficulty_breakdown(db_path),
        "reviews_logged": reviews,
        "retention": calc_retention(db_path),
    }
