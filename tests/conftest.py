from datetime import datetime, timezone

import pytest

from recall_scheduler.db import init_db


@pytest.fixture
def tmp_db(tmp_path):
    """Provide an initialized temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_reviews.db")
    init_db(db_path)
    return db_path


@pytest.fixture
def now():
    return datetime(2026, 3, 10, 9, 30, tzinfo=timezone.utc)
