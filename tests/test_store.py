# tests/test_store.py
import threading
from datetime import datetime, timedelta, timezone

import pytest

from recall_scheduler.db import get_connection
from recall_scheduler.models import QualityGrade, ReviewState
from recall_scheduler.store import (
    CardNotFoundError, add_card, count_due, delete_card, get_due_card_ids, get_label,
    list_cards, load, record_review, save,
)


def test_add_card_creates_initial_state(tmp_db, now):
    state = add_card(tmp_db, "card-1", label="Mitochondria", now=now)
    assert state == ReviewState.initial(now)
    assert load(tmp_db, "card-1") == state
    assert get_label(tmp_db, "card-1") == "Mitochondria"


def test_add_card_twice_keeps_existing_state(tmp_db, now):
    add_card(tmp_db, "card-1", now=now)
    record_review(tmp_db, "card-1", QualityGrade.PERFECT, now)
    again = add_card(tmp_db, "card-1", now=now + timedelta(days=3))
    assert again.repetitions == 1
    assert again.interval == 1


def test_load_unknown_card_raises(tmp_db):
    with pytest.raises(CardNotFoundError):
        load(tmp_db, "missing")


def test_get_label_unknown_card_raises(tmp_db):
    with pytest.raises(CardNotFoundError):
        get_label(tmp_db, "missing")


def test_save_and_load_preserve_state(tmp_db, now):
    state = ReviewState(
        repetitions=3, ease_factor=2.36, interval=15,
        next_review_date=now + timedelta(days=15), last_review_date=now,
    )
    save(tmp_db, "card-9", state)
    assert load(tmp_db, "card-9") == state


def test_save_overwrites(tmp_db, now):
    add_card(tmp_db, "card-1", now=now)
    state = ReviewState(repetitions=1, ease_factor=2.6, interval=1,
                        next_review_date=now + timedelta(days=1), last_review_date=now)
    save(tmp_db, "card-1", state)
    assert load(tmp_db, "card-1") == state


def test_timestamps_in_other_timezones_round_trip_to_same_instant(tmp_db):
    berlin = timezone(timedelta(hours=1))
    when = datetime(2026, 3, 10, 10, 0, tzinfo=berlin)
    add_card(tmp_db, "card-1", now=when)
    loaded = load(tmp_db, "card-1")
    assert loaded.next_review_date == when
    assert loaded.next_review_date.tzinfo == timezone.utc


def test_record_review_advances_and_logs(tmp_db, now):
    add_card(tmp_db, "card-1", now=now)
    updated = record_review(tmp_db, "card-1", QualityGrade.EASY_CORRECT, now)
    assert updated.repetitions == 1
    assert updated.interval == 1
    assert updated.next_review_date == now + timedelta(days=1)
    assert load(tmp_db, "card-1") == updated
    conn = get_connection(tmp_db)
    rows = conn.execute("SELECT * FROM review_log WHERE card_id = ?", ("card-1",)).fetchall()
    conn.close()
    assert len(rows) == 1
    assert rows[0]["grade"] == 4
    assert rows[0]["interval"] == 1


def test_record_review_sequence(tmp_db, now):
    add_card(tmp_db, "card-1", now=now)
    record_review(tmp_db, "card-1", QualityGrade.PERFECT, now)
    record_review(tmp_db, "card-1", QualityGrade.PERFECT, now + timedelta(days=1))
    third = record_review(tmp_db, "card-1", QualityGrade.EASY_CORRECT, now + timedelta(days=7))
    assert third.interval == 16
    assert third.next_review_date == now + timedelta(days=7 + 16)


def test_record_review_unknown_card_raises_and_logs_nothing(tmp_db, now):
    with pytest.raises(CardNotFoundError):
        record_review(tmp_db, "ghost", QualityGrade.PERFECT, now)
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM review_log").fetchone()[0] == 0
    conn.close()


def test_concurrent_reviews_are_serialized(tmp_db, now):
    add_card(tmp_db, "card-1", now=now)
    errors = []

    def review():
        try:
            record_review(tmp_db, "card-1", QualityGrade.PERFECT, now)
        except Exception as e:  # surfaced by the assertion below
            errors.append(e)

    threads = [threading.Thread(target=review) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert load(tmp_db, "card-1").repetitions == 4


def test_delete_card_removes_state_and_log(tmp_db, now):
    add_card(tmp_db, "card-1", now=now)
    record_review(tmp_db, "card-1", QualityGrade.PERFECT, now)
    assert delete_card(tmp_db, "card-1") is True
    with pytest.raises(CardNotFoundError):
        load(tmp_db, "card-1")
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM review_log").fetchone()[0] == 0
    conn.close()


def test_delete_unknown_card_returns_false(tmp_db):
    assert delete_card(tmp_db, "missing") is False


# --- Due queries ---


def test_new_cards_are_due_immediately(tmp_db, now):
    add_card(tmp_db, "a", now=now)
    assert get_due_card_ids(tmp_db, now) == ["a"]
    assert get_due_card_ids(tmp_db, now - timedelta(seconds=1)) == []


def test_due_cards_most_overdue_first(tmp_db, now):
    add_card(tmp_db, "recent", now=now - timedelta(days=1))
    add_card(tmp_db, "oldest", now=now - timedelta(days=5))
    add_card(tmp_db, "future", now=now + timedelta(days=2))
    assert get_due_card_ids(tmp_db, now) == ["oldest", "recent"]
    assert count_due(tmp_db, now) == 2


def test_due_cards_respects_limit(tmp_db, now):
    for i in range(5):
        add_card(tmp_db, f"c{i}", now=now - timedelta(hours=i))
    assert get_due_card_ids(tmp_db, now, limit=3) == ["c4", "c3", "c2"]


def test_reviewed_card_leaves_due_queue(tmp_db, now):
    add_card(tmp_db, "a", now=now)
    record_review(tmp_db, "a", QualityGrade.PERFECT, now)
    assert get_due_card_ids(tmp_db, now) == []
    assert get_due_card_ids(tmp_db, now + timedelta(days=1)) == ["a"]


def test_due_empty_db(tmp_db, now):
    assert get_due_card_ids(tmp_db, now) == []
    assert count_due(tmp_db, now) == 0


def test_list_cards_soonest_first(tmp_db, now):
    add_card(tmp_db, "b", label="Beta", now=now + timedelta(days=1))
    add_card(tmp_db, "a", label="Alpha", now=now)
    cards = list_cards(tmp_db)
    assert [c["card_id"] for c in cards] == ["a", "b"]
    assert cards[0]["label"] == "Alpha"
    assert isinstance(cards[0]["state"], ReviewState)
