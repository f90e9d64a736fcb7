"""SQLite database layer for the activity and goal collections."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Sequence

from .models import Activity, Goal, QuantifiedGoal


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
        timeout=10.0,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run the enclosed statements atomically; roll back on any error."""
    conn.execute("BEGIN IMMEDIATE;")
    try:
        yield conn
    except BaseException:
        if conn.in_transaction:
            conn.execute("ROLLBACK;")
        raise
    else:
        conn.execute("COMMIT;")


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS activities (
            position INTEGER PRIMARY KEY,
            id TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            category TEXT NOT NULL,
            duration INTEGER NOT NULL CHECK (duration > 0),
            timestamp INTEGER NOT NULL
        );

        CREATE TABLE IF NOT EXISTS goals (
            position INTEGER PRIMARY KEY,
            id TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL,
            description TEXT,
            target_type TEXT NOT NULL,
            target_category TEXT,
            target_minutes INTEGER,
            ai_advice TEXT
        );
        """
    )


def fetch_activities(conn: sqlite3.Connection) -> list[sqlite3.Row]:
    """Return every stored activity row in saved order."""
    return list(
        conn.execute(
            """
            SELECT id, name, category, duration, timestamp
            FROM activities
            ORDER BY position;
            """
        )
    )


def fetch_goals(conn: sqlite3.Connection) -> list[sqlite3.Row]:
    """Return every stored goal row in saved order."""
    return list(
        conn.execute(
            """
            SELECT
                id,
                title,
                description,
                target_type,
                target_category,
                target_minutes,
                ai_advice
            FROM goals
            ORDER BY position;
            """
        )
    )


def replace_activities(conn: sqlite3.Connection, activities: Sequence[Activity]) -> None:
    """Replace the stored activities with ``activities`` in one transaction."""
    with transaction(conn):
        conn.execute("DELETE FROM activities;")
        conn.executemany(
            """
            INSERT INTO activities (
                position,
                id,
                name,
                category,
                duration,
                timestamp
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    position,
                    activity.id,
                    activity.name,
                    activity.category.value,
                    activity.duration,
                    activity.timestamp,
                )
                for position, activity in enumerate(activities)
            ],
        )


def replace_goals(conn: sqlite3.Connection, goals: Sequence[Goal]) -> None:
    """Replace the stored goals with ``goals`` in one transaction."""
    with transaction(conn):
        conn.execute("DELETE FROM goals;")
        conn.executemany(
            """
            INSERT INTO goals (
                position,
                id,
                title,
                description,
                target_type,
                target_category,
                target_minutes,
                ai_advice
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    position,
                    goal.id,
                    goal.title,
                    goal.description,
                    goal.target_type.value,
                    goal.target_category.value if goal.target_category else None,
                    goal.target_minutes if isinstance(goal, QuantifiedGoal) else None,
                    goal.ai_advice,
                )
                for position, goal in enumerate(goals)
            ],
        )
