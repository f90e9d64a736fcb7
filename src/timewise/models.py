"""Domain models for logged activities and goals."""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union


MAX_MINUTES = 2**31 - 1
# 3000-01-01T00:00:00Z
MAX_TIMESTAMP_MS = 32_503_680_000_000


def _is_number(value: Any) -> bool:
    """True for finite ints and floats, excluding bools."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


class Category(str, Enum):
    STUDY = "Study"
    WORK = "Work"
    SOCIAL_MEDIA = "Social Media"
    ENTERTAINMENT = "Entertainment"
    FAMILY = "Family Time"
    SLEEP = "Sleep"
    EXERCISE = "Exercise"
    CHORES = "Chores"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Union[str, "Category"]) -> Optional["Category"]:
        """Return the matching category, or None for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


CATEGORY_COLORS: dict[Category, str] = {
    Category.STUDY: "#3b82f6",
    Category.WORK: "#0ea5e9",
    Category.SOCIAL_MEDIA: "#ef4444",
    Category.ENTERTAINMENT: "#f59e0b",
    Category.FAMILY: "#ec4899",
    Category.SLEEP: "#8b5cf6",
    Category.EXERCISE: "#22c55e",
    Category.CHORES: "#64748b",
    Category.OTHER: "#94a3b8",
}


class TargetType(str, Enum):
    MORE = "MORE"
    LESS = "LESS"


@dataclass(slots=True, frozen=True)
class Activity:
    """A single logged block of time in one category."""

    id: str
    name: str
    category: Category
    duration: int
    timestamp: int

    @property
    def started_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "duration": self.duration,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Activity":
        try:
            record_id = data["id"]
            name = data["name"]
            duration = data["duration"]
            timestamp = data["timestamp"]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Activity record is missing {exc}") from exc
        category = Category.parse(data.get("category"))
        if category is None:
            raise ValueError(f"Unknown category {data.get('category')!r}")
        if not isinstance(record_id, str) or not record_id:
            raise ValueError("Activity id must be a non-empty string")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Activity name must not be empty")
        if not _is_number(duration) or int(duration) != duration or not 0 < duration <= MAX_MINUTES:
            raise ValueError(f"Invalid duration {duration!r}")
        if not _is_number(timestamp) or not 0 <= timestamp <= MAX_TIMESTAMP_MS:
            raise ValueError(f"Invalid timestamp {timestamp!r}")
        return cls(
            id=record_id,
            name=name,
            category=category,
            duration=int(duration),
            timestamp=int(timestamp),
        )


@dataclass(slots=True, frozen=True)
class GeneralGoal:
    """A goal without a daily minute target.

    It may still name a category, which narrows the activity history used when
    asking for advice, but it never reports progress.
    """

    id: str
    title: str
    target_type: TargetType
    description: Optional[str] = None
    target_category: Optional[Category] = None
    ai_advice: Optional[str] = None


@dataclass(slots=True, frozen=True)
class QuantifiedGoal:
    """A goal with a daily minute target for one category."""

    id: str
    title: str
    target_type: TargetType
    target_category: Category
    target_minutes: int
    description: Optional[str] = None
    ai_advice: Optional[str] = None


Goal = Union[GeneralGoal, QuantifiedGoal]


def with_advice(goal: Goal, advice: Optional[str]) -> Goal:
    return replace(goal, ai_advice=advice)


def goal_to_dict(goal: Goal) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": goal.id,
        "title": goal.title,
        "description": goal.description,
        "targetType": goal.target_type.value,
        "targetCategory": goal.target_category.value if goal.target_category else None,
        "targetMinutes": None,
        "aiAdvice": goal.ai_advice,
    }
    if isinstance(goal, QuantifiedGoal):
        data["targetMinutes"] = goal.target_minutes
    return data


def goal_from_dict(data: dict[str, Any]) -> Goal:
    try:
        record_id = data["id"]
        title = data["title"]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Goal record is missing {exc}") from exc
    if not isinstance(record_id, str) or not record_id:
        raise ValueError("Goal id must be a non-empty string")
    if not isinstance(title, str) or not title.strip():
        raise ValueError("Goal title must not be empty")
    try:
        target_type = TargetType(data.get("targetType"))
    except ValueError as exc:
        raise ValueError(f"Unknown target type {data.get('targetType')!r}") from exc

    category: Optional[Category] = None
    raw_category = data.get("targetCategory")
    if raw_category:
        category = Category.parse(raw_category)
        if category is None:
            raise ValueError(f"Unknown category {raw_category!r}")

    minutes = data.get("targetMinutes")
    if not _is_number(minutes):
        minutes = None
    elif isinstance(minutes, float):
        minutes = to_minutes(minutes)
    if minutes is not None and minutes > MAX_MINUTES:
        raise ValueError(f"Invalid target minutes {minutes!r}")

    description = data.get("description") or None
    advice = data.get("aiAdvice") or None
    if category is not None and minutes is not None and minutes > 0:
        return QuantifiedGoal(
            id=record_id,
            title=title,
            target_type=target_type,
            target_category=category,
            target_minutes=minutes,
            description=description,
            ai_advice=advice,
        )
    return GeneralGoal(
        id=record_id,
        title=title,
        target_type=target_type,
        description=description,
        target_category=category,
        ai_advice=advice,
    )


def to_minutes(value: float, unit: str = "minutes") -> int:
    """Convert a user-entered amount to whole minutes, rounding half up."""
    if unit == "hours":
        value = value * 60
    elif unit != "minutes":
        raise ValueError(f"Unknown unit {unit!r}")
    return int(math.floor(value + 0.5))


def new_activity(
    name: str,
    category: Union[str, Category],
    amount: float,
    *,
    unit: str = "minutes",
    now: Optional[datetime] = None,
) -> Optional[Activity]:
    """Build a freshly logged activity, or return None if the input is refused."""
    cleaned = (name or "").strip()
    parsed_category = Category.parse(category)
    if not cleaned or parsed_category is None or unit not in ("minutes", "hours"):
        return None
    if not _is_number(amount) or not 0 < amount <= MAX_MINUTES:
        return None
    duration = to_minutes(amount, unit)
    if not 0 < duration <= MAX_MINUTES:
        return None
    created = now or datetime.now()
    return Activity(
        id=str(uuid.uuid4()),
        name=cleaned,
        category=parsed_category,
        duration=duration,
        timestamp=int(created.timestamp() * 1000),
    )


def new_goal(
    title: str,
    target_type: Union[str, TargetType] = TargetType.MORE,
    *,
    description: Optional[str] = None,
    target_category: Union[str, Category, None] = None,
    target_amount: Optional[float] = None,
    unit: str = "minutes",
) -> Optional[Goal]:
    """Build a new goal, or return None if the input is refused.

    The goal is quantified only when both a category and a positive target are
    supplied; otherwise it is a general goal.
    """
    cleaned = (title or "").strip()
    if not cleaned:
        return None
    try:
        parsed_type = TargetType(target_type)
    except ValueError:
        return None
    category: Optional[Category] = None
    if target_category:
        category = Category.parse(target_category)
        if category is None:
            return None
    description = (description or "").strip() or None

    minutes = 0
    if category is not None and target_amount:
        if not _is_number(target_amount) or target_amount > MAX_MINUTES:
            return None
        try:
            minutes = to_minutes(target_amount, unit)
        except ValueError:
            return None
        if minutes > MAX_MINUTES:
            return None

    goal_id = str(uuid.uuid4())
    if category is not None and minutes > 0:
        return QuantifiedGoal(
            id=goal_id,
            title=cleaned,
            target_type=parsed_type,
            target_category=category,
            target_minutes=minutes,
            description=description,
        )
    return GeneralGoal(
        id=goal_id,
        title=cleaned,
        target_type=parsed_type,
        description=description,
        target_category=category,
    )
