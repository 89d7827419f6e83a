"""Tests for SQLite session storage."""

import pytest

from cloudy_calc import config
from cloudy_calc.storage import (
    create_session_db,
    delete_session_db,
    get_db,
    init_db,
    load_session,
    save_session,
)


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DATABASE", str(tmp_path / "sessions.db"))
    init_db()


def test_create_and_load():
    session_id = create_session_db({"variables": {"@": 1.0}})
    assert session_id
    assert load_session(session_id) == {"variables": {"@": 1.0}}


def test_save_replaces_state():
    session_id = create_session_db()
    assert load_session(session_id) == {}
    assert save_session(session_id, {"history": ["2+2"]})
    assert load_session(session_id) == {"history": ["2+2"]}


def test_missing_session():
    assert load_session("no-such-session") is None


def test_delete():
    session_id = create_session_db()
    assert delete_session_db(session_id)
    assert not delete_session_db(session_id)
    assert load_session(session_id) is None


def test_corrupted_state_loads_empty():
    db = get_db()
    db.execute("INSERT INTO sessions (session_id, state) VALUES (?, ?)", ("bad", "{not json"))
    db.commit()
    db.close()
    assert load_session("bad") == {}


def test_init_db_is_repeatable():
    init_db()
    assert create_session_db() is not None
