"""
Dashboard figures derived from member, transaction and check-in snapshots.

Every function is pure: the reference date is passed in and the result is a
plain list/dict ready for a chart, a table or a JSON response.
"""

import calendar
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Union

import pandas as pd

from .config import (
    DUE_SOON_WINDOW_DAYS,
    RENEWAL_HIGH_URGENCY_DAYS,
    RENEWAL_MEDIUM_URGENCY_DAYS,
)
from .date_utils import add_days, days_between, month_start, parse_date, parse_datetime, shift_months, start_of_day
from .models import (
    CheckIn,
    Member,
    MemberStatus,
    MemberWithTransactions,
    Transaction,
    TransactionStatus,
)

DayLike = Union[date, datetime]


def _transactions_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    frame = pd.DataFrame(
        [
            {
                "id": t.id,
                "member_id": t.member_id,
                "amount": t.amount,
                "start": parse_date(t.start_date),
                "status": t.payment_status.value,
            }
            for t in transactions
        ],
        columns=["id", "member_id", "amount", "start", "status"],
    )
    frame["amount"] = pd.to_numeric(frame["amount"], errors="coerce").fillna(0.0)
    frame["start"] = pd.to_datetime(frame["start"], errors="coerce")
    return frame


def _join_dates(members: Iterable[Member]) -> pd.Series:
    dates = pd.Series([parse_date(m.join_date) for m in members], dtype=object)
    return pd.to_datetime(dates, errors="coerce").dropna()


def total_revenue(transactions: Iterable[Transaction]) -> float:
    """Sum of every transaction that is not marked incomplete."""
    frame = _transactions_frame(transactions)
    return float(frame.loc[frame["status"] != TransactionStatus.INCOMPLETE.value, "amount"].sum())


def revenue_by_month(transactions: Iterable[Transaction], today: DayLike, months: int = 12) -> List[Dict[str, Any]]:
    """Revenue and transaction count for the last ``months`` calendar months.

    A transaction counts towards the month its start date falls in; incomplete
    transactions are excluded.
    """
    frame = _transactions_frame(transactions)
    counted = frame[(frame["status"] != TransactionStatus.INCOMPLETE.value) & frame["start"].notna()]
    counted = counted.assign(month=counted["start"].dt.strftime("%Y-%m"))
    grouped = counted.groupby("month")["amount"].agg(["sum", "count"])

    first_month = shift_months(month_start(start_of_day(today)), -(months - 1))
    rows = []
    for offset in range(months):
        month = shift_months(first_month, offset)
        key = month.strftime("%Y-%m")
        revenue, count = 0.0, 0
        if key in grouped.index:
            revenue = float(grouped.at[key, "sum"])
            count = int(grouped.at[key, "count"])
        rows.append({"month": month.strftime("%b %Y"), "revenue": revenue, "transactions": count})
    return rows


def member_growth(members: Iterable[Member], today: DayLike, months: int = 12) -> List[Dict[str, Any]]:
    """Cumulative and new member counts per month, by join date."""
    joins = _join_dates(members)
    first_month = shift_months(month_start(start_of_day(today)), -(months - 1))
    rows = []
    for offset in range(months):
        month = shift_months(first_month, offset)
        next_month = pd.Timestamp(shift_months(month, 1))
        rows.append(
            {
                "month": month.strftime("%b %Y"),
                "total": int((joins < next_month).sum()),
                "new": int(((joins >= pd.Timestamp(month)) & (joins < next_month)).sum()),
            }
        )
    return rows


def acquisition_by_month(members: Iterable[Member], year: int) -> List[Dict[str, Any]]:
    """New members per calendar month of ``year``."""
    joins = _join_dates(members)
    in_year = joins[joins.dt.year == year]
    per_month = in_year.dt.month.value_counts().reindex(range(1, 13), fill_value=0)
    return [
        {"month": calendar.month_abbr[month], "members": int(per_month[month])}
        for month in range(1, 13)
    ]


def _session_minutes(check_in: CheckIn):
    if check_in.duration_minutes is not None:
        minutes = pd.to_numeric(check_in.duration_minutes, errors="coerce")
        return None if pd.isna(minutes) else float(minutes)
    started = parse_datetime(check_in.check_in_time)
    ended = parse_datetime(check_in.check_out_time)
    if started is None or ended is None or (started.tzinfo is None) != (ended.tzinfo is None):
        return None
    minutes = (ended - started).total_seconds() / 60
    return minutes if minutes >= 0 else None


def _hourly_counts(timestamps: List[Any]) -> pd.Series:
    hours = [parsed.hour for parsed in (parse_datetime(value) for value in timestamps) if parsed]
    return pd.Series(hours, dtype="int64").value_counts().reindex(range(24), fill_value=0)


def gym_usage_summary(check_ins: Iterable[CheckIn]) -> Dict[str, Any]:
    """Average session length, hourly check-in/out distribution and peaks."""
    sessions = [c for c in check_ins if c.check_in_time]
    durations = [m for m in (_session_minutes(c) for c in sessions) if m is not None]

    check_in_hours = _hourly_counts([c.check_in_time for c in sessions])
    check_out_hours = _hourly_counts([c.check_out_time for c in sessions if c.check_out_time])

    return {
        "total_sessions": len(sessions),
        "avg_duration_minutes": round(sum(durations) / len(durations)) if durations else 0,
        "hourly_check_ins": [{"hour": f"{hour}:00", "check_ins": int(check_in_hours[hour])} for hour in range(24)],
        "hourly_check_outs": [{"hour": f"{hour}:00", "check_outs": int(check_out_hours[hour])} for hour in range(24)],
        "peak_check_in_hour": int(check_in_hours.idxmax()) if check_in_hours.sum() else None,
        "peak_check_out_hour": int(check_out_hours.idxmax()) if check_out_hours.sum() else None,
    }


def renewal_urgency(days_left: int) -> str:
    """Badge level for a renewal. "low" only occurs when ``due_soon_days`` is wider than 7."""
    if days_left <= RENEWAL_HIGH_URGENCY_DAYS:
        return "high"
    if days_left <= RENEWAL_MEDIUM_URGENCY_DAYS:
        return "medium"
    return "low"


def renewal_rows(
    due_soon: Iterable[MemberWithTransactions],
    today: DayLike,
    due_soon_days: int = DUE_SOON_WINDOW_DAYS,
) -> List[Dict[str, Any]]:
    """Upcoming renewals table: one row per due-soon member and transaction."""
    today = start_of_day(today)
    window_end = add_days(today, due_soon_days)
    rows = []
    seen = set()
    for entry in due_soon:
        for transaction in entry.transactions:
            key = (entry.id, transaction.id, transaction.ending_date)
            if key in seen:
                continue
            if not transaction.subscription_period.has_renewal_window or transaction.payment_status.is_unpaid:
                continue
            ending = parse_date(transaction.ending_date)
            if ending is None or not today <= ending < window_end:
                continue
            seen.add(key)
            days_left = days_between(ending, today)
            rows.append(
                {
                    "member_id": entry.id,
                    "name": entry.name,
                    "membership_type": entry.member.membership_type or transaction.subscription_period.value.title(),
                    "end_date": ending.isoformat(),
                    "days_left": days_left,
                    "urgency": renewal_urgency(days_left),
                }
            )
    if not rows:
        return []
    frame = pd.DataFrame(rows).sort_values(["days_left", "name"], kind="stable")
    return frame.to_dict(orient="records")


def member_status_breakdown(members: Iterable[Member]) -> Dict[str, int]:
    counts = pd.Series([m.member_status.value for m in members], dtype=object).value_counts()
    return {status.value: int(counts.get(status.value, 0)) for status in MemberStatus}


def payment_status_breakdown(transactions: Iterable[Transaction]) -> Dict[str, int]:
    counts = pd.Series([t.payment_status.value for t in transactions], dtype=object).value_counts()
    return {status.value: int(counts.get(status.value, 0)) for status in TransactionStatus}


def daily_transactions(transactions: Iterable[Transaction], day: DayLike) -> Dict[str, Any]:
    """Transactions that started on ``day`` with their total amount."""
    day = start_of_day(day)
    matching = [t for t in transactions if parse_date(t.start_date) == day]
    total = pd.to_numeric(pd.Series([t.amount for t in matching], dtype=object), errors="coerce").fillna(0.0).sum()
    return {
        "date": day.isoformat(),
        "transactions": matching,
        "count": len(matching),
        "total_amount": float(total),
    }
