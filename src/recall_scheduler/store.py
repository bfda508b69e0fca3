"""SQLite-backed review-state store with SM-2 scheduling."""
import logging
import sqlite3
from datetime import datetime, timezone

from recall_scheduler.db import get_connection
from recall_scheduler.models import QualityGrade, ReviewState
from recall_scheduler.sm2 import advance

logger = logging.getLogger(__name__)


class CardNotFoundError(KeyError):
    """Raised when a card id has no stored review state."""


def _to_db(value: datetime | None) -> str | None:
    # Aware timestamps are normalized to UTC so stored strings sort chronologically.
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="microseconds")


def _from_db(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _row_to_state(row: sqlite3.Row) -> ReviewState:
    return ReviewState(
        repetitions=row["repetitions"],
        ease_factor=row["ease_factor"],
        interval=row["interval"],
        next_review_date=_from_db(row["next_review_date"]),
        last_review_date=_from_db(row["last_review_date"]),
    )


def _fetch(conn: sqlite3.Connection, card_id: str) -> ReviewState:
    row = conn.execute("SELECT * FROM review_states WHERE card_id = ?", (card_id,)).fetchone()
    if row is None:
        raise CardNotFoundError(card_id)
    return _row_to_state(row)


def _upsert(conn: sqlite3.Connection, card_id: str, state: ReviewState) -> None:
    conn.execute(
        """INSERT INTO review_states
            (card_id, repetitions, ease_factor, interval, next_review_date, last_review_date)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(card_id) DO UPDATE SET
            repetitions=excluded.repetitions,
            ease_factor=excluded.ease_factor,
            interval=excluded.interval,
            next_review_date=excluded.next_review_date,
            last_review_date=excluded.last_review_date""",
        (
            card_id, state.repetitions, state.ease_factor, state.interval,
            _to_db(state.next_review_date), _to_db(state.last_review_date),
        ),
    )


def add_card(db_path: str, card_id: str, label: str = "", now: datetime | None = None) -> ReviewState:
    """Register a card with the initial state. Existing cards are left as they are."""
    now = now or datetime.now(timezone.utc)
    state = ReviewState.initial(now)
    conn = get_connection(db_path)
    try:
        cursor = conn.execute(
            """INSERT OR IGNORE INTO review_states
                (card_id, label, repetitions, ease_factor, interval, next_review_date)
            VALUES (?, ?, ?, ?, ?, ?)""",
            (card_id, label, state.repetitions, state.ease_factor, state.interval,
             _to_db(state.next_review_date)),
        )
        if cursor.rowcount:
            logger.info("Registered card %s", card_id)
            return state
        return _fetch(conn, card_id)
    finally:
        conn.close()


def load(db_path: str, card_id: str) -> ReviewState:
    conn = get_connection(db_path)
    try:
        return _fetch(conn, card_id)
    finally:
        conn.close()


def save(db_path: str, card_id: str, state: ReviewState) -> None:
    conn = get_connection(db_path)
    try:
        _upsert(conn, card_id, state)
    finally:
        conn.close()


def delete_card(db_path: str, card_id: str) -> bool:
    """Remove a card's state and review history. Returns False if it was unknown."""
    conn = get_connection(db_path)
    try:
        deleted = conn.execute("DELETE FROM review_states WHERE card_id = ?", (card_id,)).rowcount
    finally:
        conn.close()
    if deleted:
        logger.info("Deleted card %s", card_id)
    return bool(deleted)


def get_label(db_path: str, card_id: str) -> str:
    conn = get_connection(db_path)
    row = conn.execute("SELECT label FROM review_states WHERE card_id = ?", (card_id,)).fetchone()
    conn.close()
    if row is None:
        raise CardNotFoundError(card_id)
    return row["label"] or ""


def list_cards(db_path: str) -> list[dict]:
    """All cards with their label and state, soonest due first."""
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM review_states ORDER BY next_review_date, card_id").fetchall()
    conn.close()
    return [
        {"card_id": r["card_id"], "label": r["label"] or "", "state": _row_to_state(r)}
        for r in rows
    ]


def get_due_card_ids(db_path: str, now: datetime, limit: int | None = None) -> list[str]:
    """Card ids due at ``now``, most overdue first."""
    query = """SELECT card_id FROM review_states
        WHERE next_review_date <= ?
        ORDER BY next_review_date ASC, card_id ASC"""
    params: tuple = (_to_db(now),)
    if limit is not None:
        query += " LIMIT ?"
        params += (limit,)
    conn = get_connection(db_path)
    rows = conn.execute(query, params).fetchall()
    conn.close()
    return [r["card_id"] for r in rows]


def count_due(db_path: str, now: datetime) -> int:
    conn = get_connection(db_path)
    count = conn.execute(
        "SELECT COUNT(*) FROM review_states WHERE next_review_date <= ?", (_to_db(now),)
    ).fetchone()[0]
    conn.close()
    return count


def record_review(db_path: str, card_id: str, grade: QualityGrade, now: datetime) -> ReviewState:
    """Grade a card: load, advance, save and log in one write transaction.

    BEGIN IMMEDIATE takes the write lock before reading, so concurrent
    reviews of the same card are applied one after the other.
    """
    conn = get_connection(db_path)
    try:
        conn.execute("BEGIN IMMEDIATE")
        try:
            current = _fetch(conn, card_id)
            updated = advance(current, grade, now)
            _upsert(conn, card_id, updated)
            conn.execute(
                """INSERT INTO review_log (card_id, grade, reviewed_at, interval, ease_factor)
                VALUES (?, ?, ?, ?, ?)""",
                (card_id, int(grade), _to_db(now), updated.interval, updated.ease_factor),
            )
        except Exception:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
    finally:
        conn.close()
    logger.debug(
        "Card %s graded %d: interval=%d ease=%.2f", card_id, grade, updated.interval, updated.ease_factor
    )
    return updated
