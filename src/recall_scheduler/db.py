"""Database initialization and connection management."""
import sqlite3
from pathlib import Path

from recall_scheduler.config import DEFAULT_DB_PATH

SCHEMA = """
CREATE TABLE IF NOT EXISTS review_states (
    card_id TEXT PRIMARY KEY,
    label TEXT DEFAULT '',
    repetitions INTEGER NOT NULL DEFAULT 0,
    ease_factor REAL NOT NULL DEFAULT 2.5,
    interval INTEGER NOT NULL DEFAULT 0,
    next_review_date TEXT NOT NULL,
    last_review_date TEXT
);

CREATE INDEX IF NOT EXISTS idx_review_states_next_review
    ON review_states (next_review_date);

CREATE TABLE IF NOT EXISTS review_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    card_id TEXT NOT NULL REFERENCES review_states(card_id) ON DELETE CASCADE,
    grade INTEGER NOT NULL,
    reviewed_at TEXT NOT NULL,
    interval INTEGER NOT NULL,
    ease_factor REAL NOT NULL
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled.

    The connection runs in autocommit mode; callers open transactions
    explicitly when they need a read-modify-write to be atomic.
    """
    conn = sqlite3.connect(db_path, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.close()
