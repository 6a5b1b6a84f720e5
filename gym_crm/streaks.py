from datetime import date, datetime
from typing import Iterable, List, Optional, Union

from .config import LEADERBOARD_SIZE, NO_VISIT_DAYS, STREAK_PENALTY_MULTIPLIER
from .date_utils import DateLike, days_between, parse_date, start_of_day
from .models import LeaderboardEntry, MemberVisitStats


def calculate_streak_score(
    total_visits: Optional[int],
    last_visit: DateLike,
    today: Union[date, datetime],
    penalty_multiplier: int = STREAK_PENALTY_MULTIPLIER,
) -> int:
    """Engagement score: total visits, minus a penalty per skipped day.

    A visit today or yesterday keeps the full total. Every day skipped beyond
    that costs ``penalty_multiplier`` points, floored at zero. Members who
    never visited are treated as having skipped NO_VISIT_DAYS days.
    """
    total = total_visits if isinstance(total_visits, int) else 0
    last_visit_day = parse_date(last_visit)

    days_since_last_visit = NO_VISIT_DAYS
    if last_visit_day is not None:
        days_since_last_visit = days_between(start_of_day(today), last_visit_day)

    if days_since_last_visit in (0, 1):
        return total
    if days_since_last_visit > 1:
        penalty = (days_since_last_visit - 1) * penalty_multiplier
        return max(0, total - penalty)
    # Last visit recorded in the future
    return total


def build_streak_leaderboard(
    stats: Iterable[MemberVisitStats],
    today: Union[date, datetime],
    limit: int = LEADERBOARD_SIZE,
) -> List[LeaderboardEntry]:
    """Top ``limit`` members by streak score; zero scores are left off."""
    entries = [
        LeaderboardEntry(
            member_id=member.member_id,
            full_name=member.full_name or "Unknown",
            streak_score=calculate_streak_score(member.total_visits, member.last_visit, today),
            total_visits=member.total_visits or 0,
        )
        for member in stats
    ]
    ranked = sorted(
        (entry for entry in entries if entry.streak_score > 0),
        key=lambda entry: entry.streak_score,
        reverse=True,
    )
    return ranked[:limit]
