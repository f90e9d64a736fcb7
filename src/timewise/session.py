"""In-memory owner of the activity and goal collections."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Awaitable, Optional, TypeVar

from . import aggregation
from .config import StoreSettings
from .models import Activity, Goal, with_advice
from .store import DurableStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TrackerNotReady(RuntimeError):
    """Raised when a collection is mutated before it has been loaded."""


class Tracker:
    """Holds both collections and writes a snapshot back after every change.

    Collections are immutable tuples; every command swaps in a new tuple and
    bumps that collection's version. A collection only becomes writable once
    its initial load has resolved, so an empty value can never overwrite
    persisted data.
    """

    def __init__(self, store: DurableStore, settings: Optional[StoreSettings] = None) -> None:
        self.store = store
        self.settings = settings or StoreSettings()
        self.activities: tuple[Activity, ...] = ()
        self.goals: tuple[Goal, ...] = ()
        self.activities_version = 0
        self.goals_version = 0
        self._loaded = False
        self._writable = {"activities": False, "goals": False}

    @property
    def loaded(self) -> bool:
        return self._loaded

    def is_writable(self, collection: str) -> bool:
        return self._writable[collection]

    async def start(self) -> None:
        """Load both collections in parallel; safe to call more than once."""
        if self._loaded:
            return
        (activities, activities_ok), (goals, goals_ok) = await asyncio.gather(
            self._bounded_load("activities", self.store.load_activities()),
            self._bounded_load("goals", self.store.load_goals()),
        )
        self.activities = tuple(activities)
        self.goals = tuple(goals)
        self._writable = {"activities": activities_ok, "goals": goals_ok}
        self._loaded = True
        logger.info(
            "Loaded %d activities and %d goals.", len(self.activities), len(self.goals)
        )

    async def _bounded_load(
        self, name: str, pending: Awaitable[list[T]]
    ) -> tuple[list[T], bool]:
        timeout = self.settings.load_timeout.total_seconds()
        try:
            return await asyncio.wait_for(pending, timeout=timeout), True
        except asyncio.TimeoutError:
            logger.warning(
                "Loading %s took longer than %.1fs; continuing without saving them.",
                name,
                timeout,
            )
            return [], False

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise TrackerNotReady("Collections must be loaded before they are changed.")

    async def _save_activities(self) -> bool:
        if not self._writable["activities"]:
            logger.warning("Activities have not been loaded; skipping save.")
            return False
        return await self.store.save_activities(self.activities)

    async def _save_goals(self) -> bool:
        if not self._writable["goals"]:
            logger.warning("Goals have not been loaded; skipping save.")
            return False
        return await self.store.save_goals(self.goals)

    def _set_activities(self, activities: tuple[Activity, ...]) -> None:
        self.activities = activities
        self.activities_version += 1

    def _set_goals(self, goals: tuple[Goal, ...]) -> None:
        self.goals = goals
        self.goals_version += 1

    async def add_activity(self, activity: Activity) -> bool:
        self._require_loaded()
        self._set_activities(self.activities + (activity,))
        return await self._save_activities()

    async def delete_activity(self, activity_id: str) -> bool:
        """Remove the activity with ``activity_id``; unknown ids change nothing."""
        self._require_loaded()
        remaining = tuple(a for a in self.activities if a.id != activity_id)
        if len(remaining) == len(self.activities):
            return False
        self._set_activities(remaining)
        return await self._save_activities()

    async def add_goal(self, goal: Goal) -> bool:
        self._require_loaded()
        self._set_goals((goal,) + self.goals)
        return await self._save_goals()

    async def set_goal_advice(self, goal_id: str, advice: Optional[str]) -> bool:
        self._require_loaded()
        if not any(g.id == goal_id for g in self.goals):
            return False
        self._set_goals(
            tuple(with_advice(g, advice) if g.id == goal_id else g for g in self.goals)
        )
        return await self._save_goals()

    async def delete_goal(self, goal_id: str) -> bool:
        self._require_loaded()
        remaining = tuple(g for g in self.goals if g.id != goal_id)
        if len(remaining) == len(self.goals):
            return False
        self._set_goals(remaining)
        return await self._save_goals()

    def find_goal(self, goal_id: str) -> Optional[Goal]:
        return next((g for g in self.goals if g.id == goal_id), None)

    def today_activities(self, today: Optional[datetime | date] = None) -> list[Activity]:
        return aggregation.activities_for_day(self.activities, today)

    def today_stats(self, today: Optional[datetime | date] = None) -> aggregation.DailyStats:
        return aggregation.daily_stats(self.activities, today)

    def weeks(self) -> list[aggregation.WeekBucket]:
        return aggregation.group_by_week(self.activities)

    def recent_context(self, today: Optional[datetime | date] = None) -> str:
        return aggregation.recent_context(self.activities, today)

    def goal_progress(
        self, goal: Goal, today: Optional[datetime | date] = None
    ) -> Optional[aggregation.GoalProgress]:
        return aggregation.goal_progress(goal, self.activities, today)
