"""Command-line interface for TimeWise."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import typer

from .config import CoachSettings, StoreSettings
from .models import Category, TargetType, new_activity, new_goal
from .paths import LEGACY_FILENAME, get_db_path, get_legacy_path
from .session import Tracker
from .store import DurableStore

app = typer.Typer(help="Personal activity tracker and habit coach.")

_CATEGORY_HELP = "One of: " + ", ".join(c.value for c in Category)


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _db_option():
    return typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of the TimeWise SQLite database.",
    )


def _open_tracker(db_path: Optional[Path]) -> Tracker:
    if db_path is None:
        store = DurableStore(get_db_path(), legacy_path=get_legacy_path())
    else:
        store = DurableStore(db_path, legacy_path=db_path.parent / LEGACY_FILENAME)
    tracker = Tracker(store, StoreSettings())
    asyncio.run(tracker.start())
    return tracker


def _parse_day(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise typer.BadParameter("Expected a date in YYYY-MM-DD format.") from exc


def _report_save(saved: bool) -> None:
    if not saved:
        typer.secho("Warning: the change could not be saved.", fg=typer.colors.YELLOW, err=True)


@app.command()
def log(
    name: str = typer.Argument(..., help="What you did."),
    duration: float = typer.Argument(..., help="How long it took."),
    category: str = typer.Option(Category.STUDY.value, "--category", "-c", help=_CATEGORY_HELP),
    hours: bool = typer.Option(False, "--hours", help="Read the duration as hours."),
    db_path: Optional[Path] = _db_option(),
) -> None:
    """Log an activity that just finished."""
    activity = new_activity(name, category, duration, unit="hours" if hours else "minutes")
    if activity is None:
        typer.secho(
            "Refused: the name must not be empty, the duration must be positive "
            "and the category must be known.",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)
    tracker = _open_tracker(db_path)
    _report_save(asyncio.run(tracker.add_activity(activity)))
    typer.echo(f"Logged {activity.name} ({activity.category.value}, {activity.duration}m) as {activity.id}")


@app.command()
def delete(
    activity_id: str = typer.Argument(..., help="Id of the activity to remove."),
    db_path: Optional[Path] = _db_option(),
) -> None:
    """Delete a logged activity."""
    tracker = _open_tracker(db_path)
    if not any(a.id == activity_id for a in tracker.activities):
        typer.echo(f"No activity with id {activity_id}.")
        return
    _report_save(asyncio.run(tracker.delete_activity(activity_id)))
    typer.echo(f"Deleted {activity_id}.")


@app.command()
def today(
    day: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) to summarize. Defaults to today.",
    ),
    db_path: Optional[Path] = _db_option(),
) -> None:
    """Print the category breakdown for a single day."""
    from .reporting import SummaryPrinter

    tracker = _open_tracker(db_path)
    SummaryPrinter(tracker.activities, tracker.goals).print_daily_summary(_parse_day(day))


@app.command()
def weeks(db_path: Optional[Path] = _db_option()) -> None:
    """Print the weekly history, most recent week first."""
    from .reporting import SummaryPrinter

    tracker = _open_tracker(db_path)
    SummaryPrinter(tracker.activities).print_weekly_history(tracker.weeks())


@app.command()
def context(db_path: Optional[Path] = _db_option()) -> None:
    """Print the last three days as summarized for the coach."""
    tracker = _open_tracker(db_path)
    typer.echo(tracker.recent_context())


@app.command()
def goals(db_path: Optional[Path] = _db_option()) -> None:
    """List goals with today's progress."""
    from .reporting import SummaryPrinter

    tracker = _open_tracker(db_path)
    SummaryPrinter(tracker.activities, tracker.goals).print_goals()


@app.command("goal-add")
def goal_add(
    title: str = typer.Argument(..., help="Short goal title."),
    less: bool = typer.Option(False, "--less", help="Aim to spend less time instead of more."),
    category: Optional[str] = typer.Option(None, "--category", "-c", help=_CATEGORY_HELP),
    target: Optional[float] = typer.Option(None, "--target", help="Daily target for the category."),
    hours: bool = typer.Option(False, "--hours", help="Read the target as hours."),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
    advice: bool = typer.Option(
        False, "--advice/--no-advice", help="Ask the coach for advice on the new goal."
    ),
    db_path: Optional[Path] = _db_option(),
) -> None:
    """Create a goal, optionally with a daily minute target."""
    goal = new_goal(
        title,
        TargetType.LESS if less else TargetType.MORE,
        description=description,
        target_category=category,
        target_amount=target,
        unit="hours" if hours else "minutes",
    )
    if goal is None:
        typer.secho("Refused: a title is required and the category must be known.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    tracker = _open_tracker(db_path)
    _report_save(asyncio.run(tracker.add_goal(goal)))
    typer.echo(f"Added goal {goal.title} as {goal.id}")

    if advice:
        from .coaching import GeminiCoach

        coach = GeminiCoach(CoachSettings.from_env())
        text = asyncio.run(coach.goal_advice(goal, tracker.activities))
        _report_save(asyncio.run(tracker.set_goal_advice(goal.id, text)))
        typer.echo(text)


@app.command("goal-delete")
def goal_delete(
    goal_id: str = typer.Argument(..., help="Id of the goal to remove."),
    db_path: Optional[Path] = _db_option(),
) -> None:
    """Delete a goal."""
    tracker = _open_tracker(db_path)
    if tracker.find_goal(goal_id) is None:
        typer.echo(f"No goal with id {goal_id}.")
        return
    _report_save(asyncio.run(tracker.delete_goal(goal_id)))
    typer.echo(f"Deleted goal {goal_id}.")


@app.command()
def coach(db_path: Optional[Path] = _db_option()) -> None:
    """Ask the coach to review today against goals and recent days."""
    from .coaching import CoachingError, GeminiCoach

    tracker = _open_tracker(db_path)
    stats = tracker.today_stats()
    client = GeminiCoach(CoachSettings.from_env())
    try:
        text = asyncio.run(
            client.daily_coaching(
                tracker.today_activities(),
                stats.total_minutes,
                tracker.goals,
                tracker.recent_context(),
            )
        )
    except CoachingError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(text)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API server."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the API server."
    ),
    db_path: Optional[Path] = _db_option(),
    load_timeout: float = typer.Option(
        5.0,
        "--load-timeout",
        min=0.1,
        help="Seconds to wait for stored data before starting without it.",
    ),
    open_browser: bool = typer.Option(
        True,
        "--open-browser/--no-open-browser",
        help="Open the interactive API docs in your default browser.",
    ),
) -> None:
    """Start the local web API."""
    from .server_runner import run_server

    run_server(
        host=host,
        port=port,
        db_path=db_path or get_db_path(),
        settings=StoreSettings.from_seconds(load_timeout),
        open_browser=open_browser,
    )
