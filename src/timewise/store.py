"""Durable storage for the activity and goal collections.

Loads never fail: an unreadable database or a malformed legacy blob yields an
empty collection and a log record. Saves replace the whole collection inside
one transaction and report success as a boolean instead of raising.

Callers must not save a collection before its first load has resolved;
otherwise an empty in-memory value could overwrite persisted data.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, TypeVar

from .db import (
    database_connection,
    fetch_activities,
    fetch_goals,
    replace_activities,
    replace_goals,
)
from .legacy import LEGACY_ACTIVITIES_KEY, LEGACY_GOALS_KEY, LegacyKeyValueStore
from .models import Activity, Goal, goal_from_dict

logger = logging.getLogger(__name__)

T = TypeVar("T")


def activity_from_row(row: sqlite3.Row) -> Activity:
    return Activity.from_dict(dict(row))


def goal_from_row(row: sqlite3.Row) -> Goal:
    return goal_from_dict(
        {
            "id": row["id"],
            "title": row["title"],
            "description": row["description"],
            "targetType": row["target_type"],
            "targetCategory": row["target_category"],
            "targetMinutes": row["target_minutes"],
            "aiAdvice": row["ai_advice"],
        }
    )


def decode_records(
    records: Sequence[Any], decode: Callable[[Any], T], source: str
) -> list[T]:
    """Decode records, skipping (and logging) malformed ones and repeated ids.

    The first record with a given id wins.
    """
    decoded: list[T] = []
    seen: set[str] = set()
    for index, record in enumerate(records):
        try:
            item = decode(record)
        except ValueError as exc:
            logger.warning("Skipping malformed record %d from %s: %s", index, source, exc)
            continue
        if item.id in seen:
            logger.warning("Skipping record %d from %s: duplicate id %r", index, source, item.id)
            continue
        seen.add(item.id)
        decoded.append(item)
    return decoded


class DurableStore:
    """Async load/save access to the persisted collections."""

    def __init__(self, db_path: Path, legacy_path: Optional[Path] = None) -> None:
        self.db_path = Path(db_path)
        self.legacy = LegacyKeyValueStore(legacy_path) if legacy_path else None

    async def load_activities(self) -> list[Activity]:
        return await asyncio.to_thread(
            self._load,
            "activities",
            fetch_activities,
            activity_from_row,
            LEGACY_ACTIVITIES_KEY,
            Activity.from_dict,
            replace_activities,
        )

    async def save_activities(self, activities: Sequence[Activity]) -> bool:
        return await asyncio.to_thread(
            self._save, "activities", replace_activities, list(activities)
        )

    async def load_goals(self) -> list[Goal]:
        return await asyncio.to_thread(
            self._load,
            "goals",
            fetch_goals,
            goal_from_row,
            LEGACY_GOALS_KEY,
            goal_from_dict,
            replace_goals,
        )

    async def save_goals(self, goals: Sequence[Goal]) -> bool:
        return await asyncio.to_thread(self._save, "goals", replace_goals, list(goals))

    def _load(
        self,
        name: str,
        fetch: Callable[[sqlite3.Connection], list[sqlite3.Row]],
        from_row: Callable[[sqlite3.Row], T],
        legacy_key: str,
        from_legacy: Callable[[Any], T],
        replace: Callable[[sqlite3.Connection, Sequence[T]], None],
    ) -> list[T]:
        try:
            with database_connection(self.db_path) as conn:
                rows = fetch(conn)
        except (sqlite3.Error, OSError):
            logger.exception("Failed to load %s from %s", name, self.db_path)
            return []

        if rows:
            return decode_records(rows, from_row, f"{name} table")

        legacy_records = self._read_legacy(name, legacy_key)
        if legacy_records is None:
            return []

        records = decode_records(legacy_records, from_legacy, f"legacy {name}")
        logger.info("Migrating %d %s from legacy storage.", len(records), name)
        if not self._save(name, replace, records):
            logger.warning("Legacy %s were loaded but could not be migrated.", name)
        return records

    def _read_legacy(self, name: str, key: str) -> Optional[list[Any]]:
        if self.legacy is None:
            return None
        try:
            raw = self.legacy.get(key)
        except OSError:
            logger.exception("Failed to read legacy %s from %s", name, self.legacy.path)
            return None
        if raw is None:
            return None
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed legacy %s under %r.", name, key)
            return None
        if not isinstance(parsed, list):
            logger.warning("Ignoring legacy %s under %r: expected a JSON array.", name, key)
            return None
        return parsed

    def _save(
        self,
        name: str,
        replace: Callable[[sqlite3.Connection, Sequence[T]], None],
        items: Sequence[T],
    ) -> bool:
        try:
            with database_connection(self.db_path) as conn:
                replace(conn, items)
        except (sqlite3.Error, OSError, OverflowError):
            logger.exception("Failed to save %d %s to %s", len(items), name, self.db_path)
            return False
        logger.debug("Saved %d %s.", len(items), name)
        return True
