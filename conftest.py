"""Shared pytest setup.

Points the database at a throwaway SQLite file before any project module is
imported, and empties the events table around every test.
"""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="wedding-planner-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'events.db')}"
os.environ["TIMEZONE"] = "UTC"
os.environ["ALLOW_PAST_EVENT_DATES"] = "false"

import pytest  # noqa: E402

import database  # noqa: E402


@pytest.fixture(autouse=True)
def clean_events():
    """Start every test with an empty events table."""
    db = database.SessionLocal()
    try:
        db.query(database.WeddingEvent).delete()
        db.commit()
    finally:
        db.close()
    yield


@pytest.fixture
def db():
    """Database session for direct CRUD tests."""
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()
