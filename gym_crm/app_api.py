import sqlite3
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from . import analytics
from .categorization import categorize_members
from .config import DB_FILE
from .database import create_database
from .database_manager import DatabaseManager
from .date_utils import parse_date
from .models import CategorizationResult, LeaderboardEntry
from .reports import generate_categorization_excel
from .streaks import build_streak_leaderboard


class AppAPI:
    """
    API layer for the gym CRM dashboard.
    Acts as a bridge between the UI/HTTP layers and the categorization and analytics logic.
    This is the only place that reads the system clock: every ``today=None``
    argument becomes ``date.today()`` before it is handed down.
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        self.db_manager = db_manager

    @classmethod
    def from_db_file(cls, db_file: str = DB_FILE) -> "AppAPI":
        conn = create_database(db_file)
        if conn is None:
            raise sqlite3.OperationalError(f"Could not open database '{db_file}'.")
        return cls(DatabaseManager(connection=conn))

    @staticmethod
    def _today(today: Optional[date]) -> date:
        return today or date.today()

    # Member categories
    def categorize_members(self, today: Optional[date] = None, dedupe: bool = False) -> CategorizationResult:
        result = categorize_members(self.db_manager.get_members_with_transactions(), self._today(today))
        return result.deduplicated() if dedupe else result

    def get_dashboard_summary(self, today: Optional[date] = None) -> Dict[str, Any]:
        today = self._today(today)
        members = self.db_manager.get_all_members()
        transactions = self.db_manager.get_all_transactions()
        result = categorize_members(self.db_manager.get_members_with_transactions(), today)
        current_month = analytics.revenue_by_month(transactions, today, months=1)[0]
        return {
            "date": today.isoformat(),
            "total_members": len(members),
            "categories": result.counts(dedupe=True),
            "revenue_this_month": current_month["revenue"],
            "total_revenue": analytics.total_revenue(transactions),
            "visits_this_month": self._visits_in_month(today),
        }

    def _visits_in_month(self, today: date) -> int:
        visit_days = (parse_date(c.check_in_time) for c in self.db_manager.get_all_check_ins())
        return sum(1 for day in visit_days if day and (day.year, day.month) == (today.year, today.month))

    # Engagement
    def get_streak_leaderboard(self, today: Optional[date] = None) -> List[LeaderboardEntry]:
        return build_streak_leaderboard(self.db_manager.get_member_visit_stats(), self._today(today))

    def get_gym_usage(self) -> Dict[str, Any]:
        return analytics.gym_usage_summary(self.db_manager.get_all_check_ins())

    # Revenue and growth
    def get_revenue_trend(self, today: Optional[date] = None) -> List[Dict[str, Any]]:
        return analytics.revenue_by_month(self.db_manager.get_all_transactions(), self._today(today))

    def get_member_growth(self, today: Optional[date] = None) -> List[Dict[str, Any]]:
        return analytics.member_growth(self.db_manager.get_all_members(), self._today(today))

    def get_acquisition(self, year: Optional[int] = None) -> List[Dict[str, Any]]:
        return analytics.acquisition_by_month(self.db_manager.get_all_members(), year or date.today().year)

    def get_status_breakdown(self) -> Dict[str, Dict[str, int]]:
        return {
            "members": analytics.member_status_breakdown(self.db_manager.get_all_members()),
            "payments": analytics.payment_status_breakdown(self.db_manager.get_all_transactions()),
        }

    # Renewals and daily transactions
    def get_upcoming_renewals(self, today: Optional[date] = None) -> List[Dict[str, Any]]:
        today = self._today(today)
        result = self.categorize_members(today, dedupe=True)
        return analytics.renewal_rows(result.due_soon, today)

    def get_daily_transactions(self, day: date) -> Dict[str, Any]:
        return analytics.daily_transactions(self.db_manager.get_transactions_for_day(day), day)

    # Report generation
    def export_categorization_report(self, save_path: str, today: Optional[date] = None) -> Tuple[bool, str]:
        today = self._today(today)
        return generate_categorization_excel(self.categorize_members(today), today, save_path)
