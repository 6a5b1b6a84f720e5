from datetime import date, datetime, timedelta

import pytest

from gym_crm.models import MemberVisitStats
from gym_crm.streaks import build_streak_leaderboard, calculate_streak_score

TODAY = date(2024, 6, 15)


def days_ago(days: int) -> str:
    return (TODAY - timedelta(days=days)).isoformat()


@pytest.mark.parametrize("days", [0, 1])
def test_recent_visit_keeps_full_score(days):
    assert calculate_streak_score(20, days_ago(days), TODAY) == 20


def test_skipped_days_are_penalised():
    # 4 days ago -> 3 skipped days -> 15 point penalty
    assert calculate_streak_score(20, days_ago(4), TODAY) == 5


def test_score_never_goes_below_zero():
    assert calculate_streak_score(20, days_ago(30), TODAY) == 0


def test_no_last_visit_floors_at_zero():
    assert calculate_streak_score(3, None, TODAY) == 0


def test_unparseable_last_visit_is_treated_as_no_visit():
    assert calculate_streak_score(3, "yesterday-ish", TODAY) == 0


def test_missing_total_counts_as_zero():
    assert calculate_streak_score(None, days_ago(0), TODAY) == 0


def test_future_last_visit_keeps_total():
    assert calculate_streak_score(7, (TODAY + timedelta(days=2)).isoformat(), TODAY) == 7


def test_timestamps_are_compared_by_calendar_day():
    score = calculate_streak_score(10, "2024-06-14T23:30:00", datetime(2024, 6, 15, 0, 5))
    assert score == 10


def test_leaderboard_ranks_top_five_and_drops_zero_scores():
    stats = [
        MemberVisitStats(member_id=1, full_name="Ann", total_visits=12, last_visit=days_ago(0)),
        MemberVisitStats(member_id=2, full_name="Ben", total_visits=30, last_visit=days_ago(1)),
        MemberVisitStats(member_id=3, full_name="Cal", total_visits=3, last_visit=None),
        MemberVisitStats(member_id=4, full_name=None, total_visits=25, last_visit=days_ago(2)),
        MemberVisitStats(member_id=5, full_name="Dee", total_visits=8, last_visit=days_ago(0)),
        MemberVisitStats(member_id=6, full_name="Eve", total_visits=9, last_visit=days_ago(1)),
        MemberVisitStats(member_id=7, full_name="Fay", total_visits=2, last_visit=days_ago(0)),
    ]
    leaderboard = build_streak_leaderboard(stats, TODAY)

    assert [entry.member_id for entry in leaderboard] == [2, 4, 1, 6, 5]
    assert [entry.streak_score for entry in leaderboard] == [30, 20, 12, 9, 8]
    assert leaderboard[1].full_name == "Unknown"
    assert all(entry.streak_score > 0 for entry in leaderboard)


def test_leaderboard_ties_keep_input_order():
    stats = [
        MemberVisitStats(member_id="x", full_name="X", total_visits=5, last_visit=days_ago(0)),
        MemberVisitStats(member_id="y", full_name="Y", total_visits=5, last_visit=days_ago(1)),
    ]
    assert [entry.member_id for entry in build_streak_leaderboard(stats, TODAY)] == ["x", "y"]


def test_empty_leaderboard():
    assert build_streak_leaderboard([], TODAY) == []
