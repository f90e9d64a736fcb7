from datetime import datetime

import pytest

from timewise.models import (
    Activity,
    Category,
    GeneralGoal,
    QuantifiedGoal,
    TargetType,
    goal_from_dict,
    goal_to_dict,
    new_activity,
    new_goal,
    to_minutes,
    with_advice,
)


def test_new_activity_trims_name_and_stamps_now():
    now = datetime(2026, 10, 19, 8, 30)
    activity = new_activity("  Math homework ", "Study", 45, now=now)
    assert activity is not None
    assert activity.name == "Math homework"
    assert activity.category is Category.STUDY
    assert activity.duration == 45
    assert activity.timestamp == int(now.timestamp() * 1000)
    assert activity.id


def test_new_activity_converts_hours_half_up():
    activity = new_activity("Reading", Category.STUDY, 1.5, unit="hours")
    assert activity is not None and activity.duration == 90
    assert to_minutes(2.5) == 3
    assert to_minutes(0.0125, "hours") == 1


@pytest.mark.parametrize(
    "name, category, amount",
    [
        ("   ", "Study", 30),
        ("Gaming", "Videogames", 30),
        ("Gaming", "Entertainment", 0),
        ("Gaming", "Entertainment", -5),
        ("Gaming", "Entertainment", 0.2),
        ("Gaming", "Entertainment", float("nan")),
        ("Gaming", "Entertainment", float("inf")),
        ("Gaming", "Entertainment", 1e300),
        ("Gaming", "Entertainment", 2**63),
    ],
)
def test_new_activity_refuses_invalid_input(name, category, amount):
    assert new_activity(name, category, amount) is None


def test_new_activity_ids_are_unique():
    first = new_activity("a", "Work", 10)
    second = new_activity("a", "Work", 10)
    assert first.id != second.id


def test_new_goal_is_quantified_only_with_category_and_target():
    quantified = new_goal("Study more", "MORE", target_category="Study", target_amount=2, unit="hours")
    assert isinstance(quantified, QuantifiedGoal)
    assert quantified.target_minutes == 120

    named_only = new_goal("Less scrolling", TargetType.LESS, target_category="Social Media")
    assert isinstance(named_only, GeneralGoal)
    assert named_only.target_category is Category.SOCIAL_MEDIA

    general = new_goal("Be present", description="  ")
    assert isinstance(general, GeneralGoal)
    assert general.description is None


def test_new_goal_refuses_empty_title_and_unknown_category():
    assert new_goal("  ") is None
    assert new_goal("Goal", target_category="Nope", target_amount=10) is None
    assert new_goal("Goal", target_type="SOMETIMES") is None


@pytest.mark.parametrize("amount", [float("nan"), float("inf"), 1e300])
def test_new_goal_refuses_non_finite_or_huge_targets(amount):
    assert new_goal("Goal", target_category="Study", target_amount=amount) is None
    assert new_goal("Goal", target_category="Study", target_amount=amount, unit="hours") is None


def test_activity_from_dict_rejects_malformed_records():
    good = {"id": "a", "name": "Run", "category": "Exercise", "duration": 30, "timestamp": 1}
    assert Activity.from_dict(good).category is Category.EXERCISE
    for broken in (
        {**good, "category": "Flying"},
        {**good, "duration": 0},
        {**good, "duration": "30"},
        {**good, "name": " "},
        {**good, "duration": float("nan")},
        {**good, "duration": float("inf")},
        {**good, "duration": 2**63},
        {**good, "timestamp": 1e20},
        {**good, "timestamp": float("inf")},
        {**good, "timestamp": -1},
        {k: v for k, v in good.items() if k != "timestamp"},
    ):
        with pytest.raises(ValueError):
            Activity.from_dict(broken)


def test_goal_dict_shape_matches_legacy_format():
    goal = QuantifiedGoal(
        id="g1",
        title="Sleep more",
        target_type=TargetType.MORE,
        target_category=Category.SLEEP,
        target_minutes=480,
        ai_advice="Go to bed at 22:30.",
    )
    data = goal_to_dict(goal)
    assert data == {
        "id": "g1",
        "title": "Sleep more",
        "description": None,
        "targetType": "MORE",
        "targetCategory": "Sleep",
        "targetMinutes": 480,
        "aiAdvice": "Go to bed at 22:30.",
    }
    assert goal_from_dict(data) == goal


def test_goal_from_dict_without_minutes_is_general():
    goal = goal_from_dict(
        {"id": "g2", "title": "Family", "targetType": "MORE", "targetCategory": "Family Time", "targetMinutes": 0}
    )
    assert isinstance(goal, GeneralGoal)
    assert goal.target_category is Category.FAMILY


def test_with_advice_replaces_only_advice():
    goal = GeneralGoal(id="g", title="t", target_type=TargetType.LESS)
    updated = with_advice(goal, "Do less.")
    assert updated.ai_advice == "Do less."
    assert updated.id == goal.id and updated.title == goal.title
    assert goal.ai_advice is None


@pytest.mark.parametrize("minutes, expected", [(0.4, None), (0.5, 1), (44.6, 45), ("45", None)])
def test_goal_from_dict_rounds_target_before_quantifying(minutes, expected):
    goal = goal_from_dict(
        {"id": "g", "title": "t", "targetType": "LESS", "targetCategory": "Entertainment", "targetMinutes": minutes}
    )
    if expected is None:
        assert isinstance(goal, GeneralGoal)
    else:
        assert isinstance(goal, QuantifiedGoal)
        assert goal.target_minutes == expected


def test_goal_from_dict_rejects_out_of_range_target():
    with pytest.raises(ValueError):
        goal_from_dict(
            {"id": "g", "title": "t", "targetType": "MORE", "targetCategory": "Study", "targetMinutes": 2**63}
        )
