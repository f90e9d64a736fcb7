import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import pytest

from timewise.models import Activity, Category, GeneralGoal, QuantifiedGoal, TargetType
from timewise.store import DurableStore


def ts(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> int:
    """Epoch milliseconds for a local wall-clock time."""
    return int(datetime(year, month, day, hour, minute).timestamp() * 1000)


def make_activity(
    activity_id: str,
    category: Category = Category.STUDY,
    duration: int = 30,
    timestamp: Optional[int] = None,
    name: Optional[str] = None,
) -> Activity:
    return Activity(
        id=activity_id,
        name=name or f"activity {activity_id}",
        category=category,
        duration=duration,
        timestamp=timestamp if timestamp is not None else ts(2026, 10, 19),
    )


def make_goal(goal_id: str, minutes: Optional[int] = 60, **kwargs) -> GeneralGoal | QuantifiedGoal:
    target_type = kwargs.pop("target_type", TargetType.MORE)
    if minutes is None:
        return GeneralGoal(id=goal_id, title=f"goal {goal_id}", target_type=target_type, **kwargs)
    category = kwargs.pop("target_category", Category.STUDY)
    return QuantifiedGoal(
        id=goal_id,
        title=f"goal {goal_id}",
        target_type=target_type,
        target_category=category,
        target_minutes=minutes,
        **kwargs,
    )


def write_legacy(path: Path, entries: dict[str, object]) -> None:
    """Write a legacy key-value file; list values are serialized like the old app did."""
    serialized = {
        key: value if isinstance(value, str) else json.dumps(value)
        for key, value in entries.items()
    }
    path.write_text(json.dumps(serialized), encoding="utf-8")


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "timewise.sqlite3"


@pytest.fixture()
def legacy_path(tmp_path: Path) -> Path:
    return tmp_path / "legacy_storage.json"


@pytest.fixture()
def store(db_path: Path, legacy_path: Path) -> DurableStore:
    return DurableStore(db_path, legacy_path=legacy_path)
