import asyncio
from datetime import date, datetime, timedelta

from typer.testing import CliRunner

from conftest import make_activity, make_goal, ts, write_legacy

from timewise.cli import app
from timewise.legacy import LEGACY_ACTIVITIES_KEY
from timewise.models import Category, TargetType
from timewise.reporting import SummaryPrinter
from timewise.store import DurableStore

runner = CliRunner()


def invoke(db_path, *args):
    return runner.invoke(app, [*args, "--db", str(db_path)])


def test_log_then_today_summary(db_path):
    result = invoke(db_path, "log", "Linear algebra", "1.5", "--hours", "--category", "Study")
    assert result.exit_code == 0, result.output
    assert "Linear algebra (Study, 90m)" in result.output

    invoke(db_path, "log", "Dishes", "15", "-c", "Chores")
    summary = invoke(db_path, "today")
    assert summary.exit_code == 0
    assert "Tracked time: 1h 45m" in summary.output
    lines = summary.output.splitlines()
    study = next(i for i, line in enumerate(lines) if line.strip().startswith("Study"))
    chores = next(i for i, line in enumerate(lines) if line.strip().startswith("Chores"))
    assert study < chores


def test_log_refuses_invalid_input(db_path):
    result = invoke(db_path, "log", "Something", "10", "--category", "Nope")
    assert result.exit_code == 1
    assert asyncio.run(DurableStore(db_path).load_activities()) == []


def test_log_refuses_non_finite_or_huge_durations(db_path):
    for amount in ("nan", "inf", "1e300"):
        result = invoke(db_path, "log", "Something", amount)
        assert result.exit_code == 1, result.output
    assert asyncio.run(DurableStore(db_path).load_activities()) == []


def test_delete_activity(db_path):
    store = DurableStore(db_path)
    asyncio.run(store.save_activities([make_activity("a"), make_activity("b")]))
    assert "Deleted a." in invoke(db_path, "delete", "a").output
    assert "No activity with id zzz." in invoke(db_path, "delete", "zzz").output
    assert [a.id for a in asyncio.run(store.load_activities())] == ["b"]


def test_today_for_empty_day(db_path):
    result = invoke(db_path, "today", "--date", "2026-01-01")
    assert "No activity recorded for the selected day." in result.output


def test_weeks_prints_each_week(db_path):
    asyncio.run(
        DurableStore(db_path).save_activities(
            [
                make_activity("1", Category.WORK, 60, ts(2026, 10, 14, 9)),
                make_activity("2", Category.SLEEP, 480, ts(2026, 10, 6, 1)),
            ]
        )
    )
    output = invoke(db_path, "weeks").output
    assert "Oct 12 - Oct 18, 2026  (1h)" in output
    assert "Oct 5 - Oct 11, 2026  (8h)" in output
    assert output.index("Oct 12") < output.index("Oct 5")
    assert "Mon 0m  Tue 0m  Wed 1h" in output


def test_goal_add_list_and_delete(db_path):
    added = invoke(db_path, "goal-add", "Less gaming", "--less", "-c", "Entertainment", "--target", "45")
    assert added.exit_code == 0, added.output
    added_line = next(line for line in added.output.splitlines() if line.startswith("Added goal"))
    goal_id = added_line.rsplit(" ", 1)[-1]

    listed = invoke(db_path, "goals").output
    assert "Less gaming  [LESS]" in listed
    assert "0m / 45m Entertainment today (0%)" in listed

    assert f"Deleted goal {goal_id}." in invoke(db_path, "goal-delete", goal_id).output
    assert "No goals set yet." in invoke(db_path, "goals").output


def test_goals_show_overage_for_limits(capsys):
    goal = make_goal("g", minutes=30, target_type=TargetType.LESS, target_category=Category.SOCIAL_MEDIA)
    activities = [make_activity("1", Category.SOCIAL_MEDIA, 50, ts(2026, 10, 19, 9))]
    SummaryPrinter(activities, [goal]).print_goals(date(2026, 10, 19))
    assert "50m / 30m Social Media today (100%), 20m over the limit" in capsys.readouterr().out


def test_context_reads_migrated_legacy_data(tmp_path, db_path):
    two_days_ago = datetime.now() - timedelta(days=2)
    record = make_activity("a", Category.EXERCISE, 35, int(two_days_ago.timestamp() * 1000)).to_dict()
    write_legacy(tmp_path / "legacy_storage.json", {LEGACY_ACTIVITIES_KEY: [record]})
    result = invoke(db_path, "context")
    assert result.exit_code == 0
    assert f"{two_days_ago:%b} {two_days_ago.day}: Exercise: 35m" in result.output


def test_context_without_recent_data(db_path):
    assert "No data from the last 3 days." in invoke(db_path, "context").output


def test_coach_without_api_key_fails(db_path, monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    invoke(db_path, "log", "Reading", "20")
    result = invoke(db_path, "coach")
    assert result.exit_code == 1


def test_web_starts_the_api_server(db_path, monkeypatch):
    import timewise.server_runner as server_runner

    calls = []
    monkeypatch.setattr(server_runner, "run_server", lambda **kwargs: calls.append(kwargs))
    result = runner.invoke(
        app, ["web", "--db", str(db_path), "--port", "9000", "--load-timeout", "2", "--no-open-browser"]
    )
    assert result.exit_code == 0, result.output
    [kwargs] = calls
    assert kwargs["port"] == 9000
    assert kwargs["db_path"] == db_path
    assert kwargs["open_browser"] is False
    assert kwargs["settings"].load_timeout == timedelta(seconds=2)
