"""FastAPI application that exposes a local JSON API for TimeWise."""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .aggregation import (
    CategoryTotal,
    WeekBucket,
    find_week,
    format_duration,
    is_over_limit,
    newest_first,
)
from .coaching import CoachingError, GeminiCoach
from .config import CoachSettings, StoreSettings
from .models import CATEGORY_COLORS, Activity, Goal, goal_to_dict, new_activity, new_goal
from .paths import LEGACY_FILENAME, get_db_path
from .session import Tracker
from .store import DurableStore

logger = logging.getLogger(__name__)


class ActivityPayload(BaseModel):
    name: str
    category: str
    duration: float
    unit: Literal["minutes", "hours"] = "minutes"

    model_config = ConfigDict(extra="forbid")


class GoalPayload(BaseModel):
    title: str
    description: Optional[str] = None
    target_type: Literal["MORE", "LESS"] = "MORE"
    target_category: Optional[str] = None
    target_amount: Optional[float] = None
    unit: Literal["minutes", "hours"] = "minutes"

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    db_path: Optional[Path] = None,
    legacy_path: Optional[Path] = None,
    settings: Optional[StoreSettings] = None,
    coach: Optional[GeminiCoach] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_db_path = Path(db_path or get_db_path())
    resolved_legacy_path = legacy_path or resolved_db_path.parent / LEGACY_FILENAME
    store = DurableStore(resolved_db_path, legacy_path=resolved_legacy_path)
    tracker = Tracker(store, settings or StoreSettings())
    resolved_coach = coach or GeminiCoach(CoachSettings.from_env())

    app = FastAPI(title="TimeWise", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.db_path = resolved_db_path
    app.state.tracker = tracker
    app.state.coach = resolved_coach

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        await tracker.start()

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        current: Tracker = request.app.state.tracker
        return {
            "loaded": current.loaded,
            "database_path": str(request.app.state.db_path),
            "activities": len(current.activities),
            "goals": len(current.goals),
            "writable": {
                "activities": current.is_writable("activities"),
                "goals": current.is_writable("goals"),
            },
        }

    @app.get("/api/activities")
    def list_activities(
        request: Request,
        date_value: Optional[str] = Query(
            default=None,
            alias="date",
            description="Target date in YYYY-MM-DD format.",
        ),
    ) -> Dict[str, Any]:
        current = _ready_tracker(request)
        target_day = _parse_date(date_value)
        selected = current.today_activities(target_day)
        return {
            "date": target_day.strftime("%Y-%m-%d"),
            "activities": [_activity_payload(a) for a in newest_first(selected)],
        }

    @app.post("/api/activities", status_code=201)
    async def create_activity(payload: ActivityPayload, request: Request) -> Dict[str, Any]:
        current = _ready_tracker(request)
        activity = new_activity(
            payload.name, payload.category, payload.duration, unit=payload.unit
        )
        if activity is None:
            raise HTTPException(
                status_code=400,
                detail="name must not be empty, duration must be positive and category must be known",
            )
        saved = await current.add_activity(activity)
        return {"activity": _activity_payload(activity), "saved": saved}

    @app.delete("/api/activities/{activity_id}")
    async def delete_activity(activity_id: str, request: Request) -> Dict[str, Any]:
        current = _ready_tracker(request)
        existed = any(a.id == activity_id for a in current.activities)
        saved = await current.delete_activity(activity_id)
        return {"deleted": existed, "saved": saved}

    @app.get("/api/summary")
    def summary(
        request: Request,
        date_value: Optional[str] = Query(
            default=None,
            alias="date",
            description="Target date in YYYY-MM-DD format.",
        ),
    ) -> Dict[str, Any]:
        current = _ready_tracker(request)
        target_day = _parse_date(date_value)
        stats = current.today_stats(target_day)
        return {
            "date": stats.day.strftime("%Y-%m-%d"),
            "total_minutes": stats.total_minutes,
            "total_label": format_duration(stats.total_minutes),
            "breakdown": [_category_payload(entry) for entry in stats.breakdown],
        }

    @app.get("/api/weeks")
    def weeks(request: Request) -> Dict[str, Any]:
        current = _ready_tracker(request)
        return {"weeks": [_week_payload(week) for week in current.weeks()]}

    @app.get("/api/recent-context")
    def recent_context(request: Request) -> Dict[str, Any]:
        current = _ready_tracker(request)
        return {"context": current.recent_context()}

    @app.get("/api/goals")
    def list_goals(request: Request) -> Dict[str, Any]:
        current = _ready_tracker(request)
        return {"goals": [_goal_payload(current, goal) for goal in current.goals]}

    @app.post("/api/goals", status_code=201)
    async def create_goal(
        payload: GoalPayload, request: Request, background_tasks: BackgroundTasks
    ) -> Dict[str, Any]:
        current = _ready_tracker(request)
        goal = new_goal(
            payload.title,
            payload.target_type,
            description=payload.description,
            target_category=payload.target_category,
            target_amount=payload.target_amount,
            unit=payload.unit,
        )
        if goal is None:
            raise HTTPException(
                status_code=400, detail="title is required and category must be known"
            )
        saved = await current.add_goal(goal)
        background_tasks.add_task(
            _refresh_advice, current, request.app.state.coach, goal.id
        )
        return {"goal": _goal_payload(current, goal), "saved": saved}

    @app.post("/api/goals/{goal_id}/advice")
    async def refresh_goal_advice(goal_id: str, request: Request) -> Dict[str, Any]:
        current = _ready_tracker(request)
        if current.find_goal(goal_id) is None:
            raise HTTPException(status_code=404, detail="Goal not found")
        await _refresh_advice(current, request.app.state.coach, goal_id)
        goal = current.find_goal(goal_id)
        if goal is None:
            raise HTTPException(status_code=404, detail="Goal not found")
        return {"goal": _goal_payload(current, goal)}

    @app.delete("/api/goals/{goal_id}")
    async def delete_goal(goal_id: str, request: Request) -> Dict[str, Any]:
        current = _ready_tracker(request)
        existed = current.find_goal(goal_id) is not None
        saved = await current.delete_goal(goal_id)
        return {"deleted": existed, "saved": saved}

    @app.post("/api/coaching/daily")
    async def daily_coaching(request: Request) -> Dict[str, Any]:
        current = _ready_tracker(request)
        stats = current.today_stats()
        try:
            text = await request.app.state.coach.daily_coaching(
                current.today_activities(),
                stats.total_minutes,
                current.goals,
                current.recent_context(),
            )
        except CoachingError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return {"content": text}

    @app.post("/api/coaching/weekly/{week_start}")
    async def weekly_coaching(week_start: str, request: Request) -> Dict[str, Any]:
        current = _ready_tracker(request)
        week = find_week(current.activities, _parse_date(week_start))
        if week is None:
            raise HTTPException(status_code=404, detail="No activities in that week")
        try:
            analysis = await request.app.state.coach.weekly_analysis(
                week.activities, week.total_minutes
            )
        except CoachingError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return {"week_start": week_start, "reduce": analysis.reduce, "increase": analysis.increase}

    return app


async def _refresh_advice(tracker: Tracker, coach: GeminiCoach, goal_id: str) -> None:
    goal = tracker.find_goal(goal_id)
    if goal is None:
        return
    advice = await coach.goal_advice(goal, tracker.activities)
    await tracker.set_goal_advice(goal_id, advice)


def _ready_tracker(request: Request) -> Tracker:
    tracker: Tracker = request.app.state.tracker
    if not tracker.loaded:
        raise HTTPException(status_code=503, detail="Data is still loading")
    return tracker


def _parse_date(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format") from exc


def _activity_payload(activity: Activity) -> Dict[str, Any]:
    payload = activity.to_dict()
    payload["logged_at"] = activity.started_at.isoformat()
    payload["duration_label"] = format_duration(activity.duration)
    return payload


def _category_payload(entry: CategoryTotal) -> Dict[str, Any]:
    return {
        "category": entry.category.value,
        "minutes": entry.minutes,
        "percentage": entry.percentage,
        "color": CATEGORY_COLORS[entry.category],
    }


def _week_payload(week: WeekBucket) -> Dict[str, Any]:
    return {
        "week_start": week.week_start.strftime("%Y-%m-%d"),
        "week_end": week.week_end.strftime("%Y-%m-%d"),
        "total_minutes": week.total_minutes,
        "breakdown": [_category_payload(entry) for entry in week.breakdown],
        "daily_trend": [
            {"date": day.strftime("%Y-%m-%d"), "label": day.strftime("%a"), "minutes": minutes}
            for day, minutes in week.daily_trend
        ],
        "activity_count": len(week.activities),
    }


def _goal_payload(tracker: Tracker, goal: Goal) -> Dict[str, Any]:
    payload = goal_to_dict(goal)
    progress = tracker.goal_progress(goal)
    if progress is None:
        payload["progress"] = None
    else:
        payload["progress"] = {
            "current_minutes": progress.current_minutes,
            "target_minutes": progress.target_minutes,
            "percentage": progress.percentage,
            "overage_minutes": progress.overage,
            "over_limit": is_over_limit(goal, progress),
        }
    return payload
