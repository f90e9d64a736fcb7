"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from .aggregation import (
    CategoryTotal,
    WeekBucket,
    activities_for_day,
    daily_stats,
    format_duration,
    goal_progress,
    is_over_limit,
    local_datetime,
    newest_first,
)
from .models import Activity, Goal


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, activities: Sequence[Activity], goals: Sequence[Goal] = ()) -> None:
        self.activities = activities
        self.goals = goals

    def print_daily_summary(self, day: datetime | date) -> None:
        stats = daily_stats(self.activities, day)
        if not stats.breakdown:
            print("No activity recorded for the selected day.")
            return

        print(f"Summary for {stats.day:%Y-%m-%d}")
        print("-" * 40)
        print(f"Tracked time: {format_duration(stats.total_minutes)}")
        print()
        print("By category:")
        print_breakdown(stats.breakdown)
        print()
        print("Activities (newest first):")
        for activity in newest_first(activities_for_day(self.activities, day)):
            logged_at = local_datetime(activity.timestamp)
            print(
                f"  {logged_at:%H:%M}  {activity.name[:30]:<30} "
                f"{activity.category.value:<14} {format_duration(activity.duration)}"
            )

    def print_weekly_history(self, weeks: Sequence[WeekBucket]) -> None:
        if not weeks:
            print("No history yet.")
            return
        for index, week in enumerate(weeks):
            if index:
                print()
            print(
                f"{week.week_start:%b} {week.week_start.day} - "
                f"{week.week_end:%b} {week.week_end.day}, {week.week_end:%Y}"
                f"  ({format_duration(week.total_minutes)})"
            )
            print("-" * 40)
            print_breakdown(week.breakdown)
            trend = "  ".join(
                f"{day:%a} {format_duration(minutes)}" for day, minutes in week.daily_trend
            )
            print(f"  {trend}")

    def print_goals(self, today: Optional[datetime | date] = None) -> None:
        if not self.goals:
            print("No goals set yet.")
            return
        for goal in self.goals:
            print(f"{goal.title}  [{goal.target_type.value}]  ({goal.id})")
            if goal.description:
                print(f"  {goal.description}")
            progress = goal_progress(goal, self.activities, today)
            if progress is not None:
                line = (
                    f"  {format_duration(progress.current_minutes)} / "
                    f"{format_duration(progress.target_minutes)} "
                    f"{goal.target_category.value} today ({progress.percentage}%)"
                )
                if is_over_limit(goal, progress):
                    line += f", {format_duration(progress.overage)} over the limit"
                print(line)
            if goal.ai_advice:
                print(f"  Advice: {goal.ai_advice}")


def print_breakdown(breakdown: Sequence[CategoryTotal]) -> None:
    for entry in breakdown:
        print(
            f"  {entry.category.value:<14} {format_duration(entry.minutes):>8} "
            f"{entry.percentage:5.1f}%"
        )
