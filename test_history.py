#!/usr/bin/env python3
"""
Tests for the activity history store, the database helper and the activity tracker
"""

from contextlib import contextmanager
from datetime import datetime

import psycopg2
import pytest
from psycopg2.extras import Json

from activity_tracker import ActivityTracker, extract_topic, generate_title, get_word_count
from db import Database, DatabaseNotConfiguredError
from history_service import HistoryService, InvalidActivityError, row_to_activity


class FakeCursor:
    def __init__(self, ids=None, fail_on=None):
        self.executed = []
        self.ids = list(ids or [])
        self.fail_on = fail_on
        self.closed = False
        self.description = None
        self.rowcount = 0

    def execute(self, sql, params=None):
        if self.fail_on and self.fail_on in sql:
            raise psycopg2.OperationalError("connection lost")
        self.executed.append((sql, params))

    def fetchone(self):
        return {"id": self.ids.pop(0)}

    def close(self):
        self.closed = True


class FakeDatabase:
    def __init__(self, ids=(7, 42, 99), rows=None, configured=True):
        self.cursor = FakeCursor(ids)
        self.rows = rows or []
        self.queries = []
        self.configured = configured

    def is_configured(self):
        return self.configured

    @contextmanager
    def transaction(self):
        yield self.cursor

    def query(self, sql, params=None):
        self.queries.append((sql, params))
        return self.rows


# History service

def test_create_activity_writes_user_activity_and_summary():
    db = FakeDatabase()
    result = {"summary": "Plants make food.", "keyPoints": ["light"], "wordCount": 3, "originalWordCount": 40}

    activity_id = HistoryService(db).create_activity(
        "student@example.com", "summary", "Plants", input_text="Plants...", result=result,
        duration=4, metadata={"topic": "plants"},
    )

    assert activity_id == 42
    statements = db.cursor.executed
    assert len(statements) == 3
    assert "INSERT INTO users" in statements[0][0]
    assert statements[0][1] == ("student@example.com",)

    activity_params = statements[1][1]
    assert activity_params[:4] == (7, "summary", "Plants", "Plants...")
    assert isinstance(activity_params[4], Json) and activity_params[4].adapted == result
    assert activity_params[5:7] == ("completed", 4)

    assert "INSERT INTO summaries" in statements[2][0]
    assert statements[2][1][0] == 42
    assert statements[2][1][1] == "Plants make food."


def test_create_activity_without_type_row():
    db = FakeDatabase()
    HistoryService(db).create_activity("a@b.c", "chat", "Chat Session", result={"response": "hi"})
    assert len(db.cursor.executed) == 2


def test_create_activity_wraps_non_dict_result():
    db = FakeDatabase()
    HistoryService(db).create_activity("a@b.c", "flashcard", "Cards", result=[{"front": "x"}])
    assert db.cursor.executed[1][1][4].adapted == {"value": [{"front": "x"}]}


@pytest.mark.parametrize("activity_type,status", [("podcast", "completed"), ("quiz", "done")])
def test_create_activity_rejects_unknown_values(activity_type, status):
    db = FakeDatabase()
    with pytest.raises(InvalidActivityError):
        HistoryService(db).create_activity("a@b.c", activity_type, "Title", status=status)
    assert db.cursor.executed == []


def test_get_activities_by_user_builds_filters():
    row = {
        "id": 1, "type": "quiz", "title": "cells Quiz", "input_text": "text",
        "result": {"questions": []}, "status": "completed", "duration": 3,
        "metadata": {"topic": "cells"}, "created_at": datetime(2024, 5, 1, 12, 30),
        "type_specific_data": {"questions": [{"id": 1}], "difficulty": "easy", "score": None},
    }
    db = FakeDatabase(rows=[row])

    activities = HistoryService(db).get_activities_by_user("a@b.c", activity_type="quiz", search="cell")

    sql, params = db.queries[0]
    assert "AND a.type = %s" in sql
    assert "ILIKE" in sql
    assert sql.rstrip().endswith("ORDER BY a.created_at DESC")
    assert params == ["a@b.c", "quiz", "%cell%", "%cell%"]
    assert activities[0]["result"] == {"questions": [{"id": 1}], "difficulty": "easy"}
    assert activities[0]["timestamp"] == "2024-05-01T12:30:00"
    assert activities[0]["inputText"] == "text"


def test_row_to_activity_without_type_data():
    activity = row_to_activity({
        "id": 5, "type": "chat", "title": "Chat Session", "result": None,
        "status": "failed", "created_at": None, "type_specific_data": None,
    })
    assert activity["result"] == {}
    assert activity["timestamp"] is None


def test_activity_stats_totals():
    db = FakeDatabase(rows=[
        {"type": "quiz", "count": 3, "completed": 2, "failed": 1},
        {"type": "summary", "count": 1, "completed": 1, "failed": 0},
    ])

    stats = HistoryService(db).get_activity_stats("a@b.c")

    assert stats["total"] == 4
    assert stats["completed"] == 3
    assert stats["failed"] == 1
    assert stats["stats"][0] == {"type": "quiz", "count": 3, "completed": 2, "failed": 1}
    assert "WHERE u.email = %s" in db.queries[0][0]
    assert db.queries[0][1] == ["a@b.c"]


def test_activity_stats_for_everyone():
    db = FakeDatabase(rows=[])
    assert HistoryService(db).get_activity_stats() == {"stats": [], "total": 0, "completed": 0, "failed": 0}
    assert "WHERE" not in db.queries[0][0]


# Database helper

class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = False
        self.rolled_back = False

    def cursor(self, cursor_factory=None):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True


class FakePool:
    def __init__(self, conn):
        self.conn = conn
        self.returned = []

    def getconn(self):
        return self.conn

    def putconn(self, conn):
        self.returned.append(conn)

    def closeall(self):
        pass


def make_database(cursor):
    database = Database(dsn="postgresql://localhost/study", ssl=False)
    conn = FakeConnection(cursor)
    database._pool = FakePool(conn)
    return database, conn


def test_transaction_commits():
    cursor = FakeCursor()
    database, conn = make_database(cursor)

    with database.transaction() as cur:
        cur.execute("SELECT 1")

    assert conn.committed and not conn.rolled_back
    assert cursor.closed
    assert database._pool.returned == [conn]


def test_transaction_rolls_back_on_database_error():
    cursor = FakeCursor(fail_on="INSERT")
    database, conn = make_database(cursor)

    with pytest.raises(psycopg2.OperationalError):
        with database.transaction() as cur:
            cur.execute("INSERT INTO users (email) VALUES (%s)", ("x",))

    assert conn.rolled_back and not conn.committed
    assert database._pool.returned == [conn]


def test_unconfigured_database_raises():
    database = Database(dsn="")
    assert not database.is_configured()
    with pytest.raises(DatabaseNotConfiguredError):
        database.pool


# Activity tracker

class FakeHistory:
    def __init__(self, available=True, error=None):
        self.available = available
        self.error = error
        self.calls = []

    def is_available(self):
        return self.available

    def create_activity(self, **kwargs):
        if self.error:
            raise self.error
        self.calls.append(kwargs)
        return 11


def test_generate_title():
    assert generate_title("quiz", "text", "cells") == "cells Quiz"
    assert generate_title("quiz") == "Generated Quiz"
    assert generate_title("flashcard", topic="atoms") == "atoms Study Cards"
    assert generate_title("mindmap") == "Mind Map"
    assert generate_title("summary", "x" * 60) == "x" * 47 + "..."
    assert generate_title("exam", topic="biology") == "biology Exam Paper"
    assert generate_title("chat") == "Chat Session"
    assert generate_title("unknown") == "Activity"


def test_extract_topic_and_word_count():
    assert extract_topic("The cell membrane protects the cell. The cell divides.") == "cell"
    assert extract_topic("") is None
    assert get_word_count("one two  three") == 3
    assert get_word_count(None) == 0


def test_record_completed_adds_topic_and_word_count():
    history = FakeHistory()
    tracker = ActivityTracker(history)

    activity_id = tracker.record_completed(
        "a@b.c", "quiz", "Atoms have electrons. Atoms have protons.", result={"questions": []}, duration=2,
    )

    assert activity_id == 11
    call = history.calls[0]
    assert call["title"] == "atoms Quiz"
    assert call["status"] == "completed"
    assert call["metadata"] == {"wordCount": 6, "topic": "atoms"}


def test_record_failed_keeps_error():
    history = FakeHistory()
    ActivityTracker(history).record_failed("a@b.c", "video", "Make a video", error="boom")
    assert history.calls[0]["status"] == "failed"
    assert history.calls[0]["metadata"] == {"error": "boom"}
    assert history.calls[0]["title"] == "Make a video"


def test_tracker_skips_without_email_or_database():
    history = FakeHistory(available=False)
    assert ActivityTracker(history).record_completed("a@b.c", "quiz", "text") is None
    assert ActivityTracker(FakeHistory()).record_completed(None, "quiz", "text") is None
    assert history.calls == []


@pytest.mark.parametrize("error", [
    psycopg2.OperationalError("down"),
    DatabaseNotConfiguredError("missing"),
    InvalidActivityError("bad type"),
])
def test_tracker_never_raises(error):
    tracker = ActivityTracker(FakeHistory(error=error))
    assert tracker.record_processing("a@b.c", "video", "text") is None
