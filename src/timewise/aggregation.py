"""Day and week aggregation over logged activities.

Everything here is a pure function of its arguments. Timestamps are read in
local time, and every function that depends on "today" accepts an explicit
reference so callers (and tests) control the clock.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Sequence

from .models import Activity, Category, Goal, QuantifiedGoal, TargetType

NO_RECENT_DATA = "No data from the last 3 days."
RECENT_WINDOW_DAYS = 3
TOP_CATEGORIES_PER_DAY = 3


@dataclass(slots=True, frozen=True)
class CategoryTotal:
    category: Category
    minutes: int
    percentage: float


@dataclass(slots=True, frozen=True)
class DailyStats:
    day: date
    total_minutes: int
    breakdown: list[CategoryTotal]


@dataclass(slots=True)
class WeekBucket:
    """Activities falling into one Monday-to-Sunday week."""

    week_start: datetime
    week_end: datetime
    activities: list[Activity] = field(default_factory=list)

    @property
    def total_minutes(self) -> int:
        return total_minutes(self.activities)

    @property
    def breakdown(self) -> list[CategoryTotal]:
        return category_breakdown(self.activities)

    @property
    def daily_trend(self) -> list[tuple[date, int]]:
        """Minutes per calendar day, always seven entries from Monday to Sunday."""
        totals: defaultdict[date, int] = defaultdict(int)
        for activity in self.activities:
            totals[local_date(activity.timestamp)] += activity.duration
        first = self.week_start.date()
        days = [first + timedelta(days=offset) for offset in range(7)]
        return [(day, totals.get(day, 0)) for day in days]


@dataclass(slots=True, frozen=True)
class GoalProgress:
    current_minutes: int
    target_minutes: int
    percentage: int
    raw_percentage: int

    @property
    def overage(self) -> int:
        """Minutes above the target, zero when at or under it."""
        return max(0, self.current_minutes - self.target_minutes)


def local_datetime(timestamp: int) -> datetime:
    return datetime.fromtimestamp(timestamp / 1000)


def local_date(timestamp: int) -> date:
    return local_datetime(timestamp).date()


def start_of_day(value: datetime | date) -> datetime:
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.min)


def end_of_day(value: datetime | date) -> datetime:
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.max)


def total_minutes(activities: Iterable[Activity]) -> int:
    return sum(activity.duration for activity in activities)


def newest_first(activities: Sequence[Activity]) -> list[Activity]:
    return list(reversed(activities))


def activities_for_day(
    activities: Iterable[Activity], day: datetime | date | None = None
) -> list[Activity]:
    """Select activities logged on the same calendar day as ``day``."""
    if day is None:
        day = datetime.now()
    target = day.date() if isinstance(day, datetime) else day
    return [a for a in activities if local_date(a.timestamp) == target]


def category_breakdown(activities: Iterable[Activity]) -> list[CategoryTotal]:
    """Sum minutes per category, largest first.

    Categories with equal totals keep the order in which they were first seen.
    """
    totals: dict[Category, int] = {}
    for activity in activities:
        totals[activity.category] = totals.get(activity.category, 0) + activity.duration
    overall = sum(totals.values())
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        CategoryTotal(
            category=category,
            minutes=minutes,
            percentage=round(minutes / overall * 100, 1) if overall else 0.0,
        )
        for category, minutes in ordered
    ]


def daily_stats(
    activities: Iterable[Activity], day: datetime | date | None = None
) -> DailyStats:
    if day is None:
        day = datetime.now()
    selected = activities_for_day(activities, day)
    return DailyStats(
        day=day.date() if isinstance(day, datetime) else day,
        total_minutes=total_minutes(selected),
        breakdown=category_breakdown(selected),
    )


def week_start(timestamp: int) -> datetime:
    """Return midnight of the Monday on or before the timestamp's local date."""
    day = local_date(timestamp)
    # weekday(): Monday=0 .. Sunday=6, so this is also the distance back to Monday.
    return start_of_day(day - timedelta(days=day.weekday()))


def group_by_week(activities: Iterable[Activity]) -> list[WeekBucket]:
    """Bucket activities into Monday-start weeks, most recent week first."""
    buckets: dict[datetime, WeekBucket] = {}
    for activity in activities:
        start = week_start(activity.timestamp)
        bucket = buckets.get(start)
        if bucket is None:
            bucket = WeekBucket(
                week_start=start,
                week_end=end_of_day(start + timedelta(days=6)),
            )
            buckets[start] = bucket
        bucket.activities.append(activity)
    return sorted(buckets.values(), key=lambda b: b.week_start, reverse=True)


def find_week(activities: Iterable[Activity], start: date) -> Optional[WeekBucket]:
    for bucket in group_by_week(activities):
        if bucket.week_start.date() == start:
            return bucket
    return None


def format_day_label(day: date) -> str:
    return f"{day:%b} {day.day}"


def recent_context(
    activities: Iterable[Activity], today: datetime | date | None = None
) -> str:
    """Summarize the three calendar days before ``today`` for the coach.

    Each line lists the top categories of one day, e.g.
    ``"Oct 16: Study: 120m, Work: 60m, Sleep: 30m"``.
    """
    if today is None:
        today = datetime.now()
    window_start = start_of_day(today) - timedelta(days=RECENT_WINDOW_DAYS)
    window_end = end_of_day(start_of_day(today) - timedelta(days=1))

    by_day: dict[str, dict[Category, int]] = {}
    for activity in activities:
        moment = local_datetime(activity.timestamp)
        if not window_start <= moment <= window_end:
            continue
        label = format_day_label(moment.date())
        per_category = by_day.setdefault(label, {})
        per_category[activity.category] = (
            per_category.get(activity.category, 0) + activity.duration
        )

    if not by_day:
        return NO_RECENT_DATA

    lines = []
    for label, per_category in by_day.items():
        ranked = sorted(per_category.items(), key=lambda item: item[1], reverse=True)
        top = ", ".join(
            f"{category.value}: {minutes}m"
            for category, minutes in ranked[:TOP_CATEGORIES_PER_DAY]
        )
        lines.append(f"{label}: {top}")
    return "\n".join(lines)


def goal_progress(
    goal: Goal,
    activities: Iterable[Activity],
    today: datetime | date | None = None,
) -> Optional[GoalProgress]:
    """Progress towards a quantified goal's daily target.

    General goals have no progress and return None.
    """
    if not isinstance(goal, QuantifiedGoal):
        return None
    current = sum(
        activity.duration
        for activity in activities_for_day(activities, today)
        if activity.category == goal.target_category
    )
    raw = math.floor(current / goal.target_minutes * 100 + 0.5)
    return GoalProgress(
        current_minutes=current,
        target_minutes=goal.target_minutes,
        percentage=min(100, max(0, raw)),
        raw_percentage=raw,
    )


def is_over_limit(goal: Goal, progress: Optional[GoalProgress]) -> bool:
    """True when a LESS goal's daily limit has been exceeded."""
    return (
        progress is not None
        and goal.target_type is TargetType.LESS
        and progress.overage > 0
    )


def format_duration(minutes: int) -> str:
    hours, mins = divmod(int(minutes), 60)
    if hours and mins:
        return f"{hours}h {mins}m"
    if hours:
        return f"{hours}h"
    return f"{mins}m"
