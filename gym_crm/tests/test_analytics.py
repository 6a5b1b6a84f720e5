from datetime import date

from gym_crm import analytics
from gym_crm.models import CheckIn, Member, MemberWithTransactions, Transaction

TODAY = date(2024, 6, 15)


def txn(id, amount, start, status="complete", member_id=1, period="monthly", ending=None):
    return Transaction(id=id, member_id=member_id, amount=amount, period=period, start_date=start, ending_date=ending, status=status)


def test_revenue_by_month_covers_last_twelve_months_and_skips_incomplete():
    transactions = [
        txn(1, 1000, "2024-06-01"),
        txn(2, 500, "2024-06-14T09:00:00", status="pending"),
        txn(3, 700, "2024-06-10", status="incomplete"),
        txn(4, 300, "2024-01-20"),
        txn(5, 999, "2023-06-30"),  # outside the window
        txn(6, 50, None),
    ]
    rows = analytics.revenue_by_month(transactions, TODAY)

    assert len(rows) == 12
    assert rows[0]["month"] == "Jul 2023"
    assert rows[-1] == {"month": "Jun 2024", "revenue": 1500.0, "transactions": 2}
    january = next(row for row in rows if row["month"] == "Jan 2024")
    assert january["revenue"] == 300.0
    assert sum(row["transactions"] for row in rows) == 3


def test_revenue_with_no_transactions():
    rows = analytics.revenue_by_month([], TODAY, months=3)
    assert [row["revenue"] for row in rows] == [0.0, 0.0, 0.0]
    assert analytics.total_revenue([]) == 0.0


def test_total_revenue_excludes_incomplete():
    transactions = [txn(1, 100, "2024-06-01"), txn(2, 40, "2024-06-02", status="incomplete"), txn(3, "60", "2024-06-03")]
    assert analytics.total_revenue(transactions) == 160.0


def test_member_growth_counts_cumulative_and_new():
    members = [
        Member(id=1, name="A", join_date="2023-01-10"),
        Member(id=2, name="B", join_date="2024-05-02"),
        Member(id=3, name="C", join_date="2024-06-01T12:00:00"),
        Member(id=4, name="D", join_date="2024-06-14"),
        Member(id=5, name="E", join_date=None),
    ]
    rows = analytics.member_growth(members, TODAY, months=2)
    assert rows == [
        {"month": "May 2024", "total": 2, "new": 1},
        {"month": "Jun 2024", "total": 4, "new": 2},
    ]


def test_acquisition_by_month_only_counts_the_requested_year():
    members = [
        Member(id=1, name="A", join_date="2024-01-05"),
        Member(id=2, name="B", join_date="2024-01-25"),
        Member(id=3, name="C", join_date="2024-03-01"),
        Member(id=4, name="D", join_date="2023-03-01"),
        Member(id=5, name="E", join_date="garbage"),
    ]
    rows = analytics.acquisition_by_month(members, 2024)
    assert len(rows) == 12
    assert rows[0] == {"month": "Jan", "members": 2}
    assert rows[2] == {"month": "Mar", "members": 1}
    assert sum(row["members"] for row in rows) == 3


def test_gym_usage_summary():
    check_ins = [
        CheckIn(id=1, member_id=1, check_in_time="2024-06-15T07:10:00", check_out_time="2024-06-15T08:10:00"),
        CheckIn(id=2, member_id=2, check_in_time="2024-06-15T07:40:00", check_out_time=None, duration_minutes=30),
        CheckIn(id=3, member_id=3, check_in_time="2024-06-15T18:00:00", check_out_time="2024-06-15T19:30:00"),
        CheckIn(id=4, member_id=4, check_in_time=None),
    ]
    usage = analytics.gym_usage_summary(check_ins)

    assert usage["total_sessions"] == 3
    assert usage["avg_duration_minutes"] == 60
    assert usage["hourly_check_ins"][7] == {"hour": "7:00", "check_ins": 2}
    assert usage["peak_check_in_hour"] == 7
    assert usage["peak_check_out_hour"] in (8, 19)
    assert len(usage["hourly_check_outs"]) == 24


def test_gym_usage_summary_without_data():
    usage = analytics.gym_usage_summary([])
    assert usage["total_sessions"] == 0
    assert usage["avg_duration_minutes"] == 0
    assert usage["peak_check_in_hour"] is None


def test_renewal_rows_sorted_with_urgency():
    soon = MemberWithTransactions(
        member=Member(id=1, name="Zed", membership_type="Premium"),
        transactions=[txn(1, 100, "2024-05-17", ending="2024-06-17")],
    )
    later = MemberWithTransactions(
        member=Member(id=2, name="Amy"),
        transactions=[
            txn(2, 100, "2024-05-20", ending="2024-06-20", member_id=2, period="weekly"),
            txn(3, 100, "2024-05-20", ending="2024-06-18", member_id=2, status="failed"),
            txn(4, 100, "2024-05-20", ending="2024-06-16", member_id=2, period="daily"),
        ],
    )
    rows = analytics.renewal_rows([later, soon, soon], TODAY)

    assert [(row["name"], row["days_left"], row["urgency"]) for row in rows] == [
        ("Zed", 2, "high"),
        ("Amy", 5, "medium"),
    ]
    assert rows[0]["membership_type"] == "Premium"
    assert rows[1]["membership_type"] == "Weekly"
    assert rows[1]["end_date"] == "2024-06-20"


def test_renewal_rows_low_urgency_needs_a_wider_window():
    entry = MemberWithTransactions(
        member=Member(id=1, name="Zed"),
        transactions=[txn(1, 100, "2024-05-25", ending="2024-06-25")],
    )
    assert analytics.renewal_rows([entry], TODAY) == []

    rows = analytics.renewal_rows([entry], TODAY, due_soon_days=14)
    assert [(row["days_left"], row["urgency"]) for row in rows] == [(10, "low")]


def test_renewal_urgency_thresholds():
    assert analytics.renewal_urgency(3) == "high"
    assert analytics.renewal_urgency(7) == "medium"
    assert analytics.renewal_urgency(10) == "low"


def test_status_breakdowns():
    members = [Member(id=1, name="A", status="active"), Member(id=2, name="B", status="Suspended"), Member(id=3, name="C", status=None)]
    assert analytics.member_status_breakdown(members) == {
        "active": 2, "inactive": 0, "suspended": 1, "pending": 0, "expired": 0, "unknown": 0,
    }
    payments = analytics.payment_status_breakdown([txn(1, 1, "2024-06-01", status="paid"), txn(2, 1, "2024-06-01", status="failed")])
    assert payments["complete"] == 1
    assert payments["failed"] == 1
    assert payments["pending"] == 0


def test_daily_transactions():
    transactions = [
        txn(1, 1200, "2024-06-15T09:00:00"),
        txn(2, 800, "2024-06-15"),
        txn(3, 500, "2024-06-14"),
    ]
    report = analytics.daily_transactions(transactions, TODAY)
    assert report["date"] == "2024-06-15"
    assert report["count"] == 2
    assert report["total_amount"] == 2000.0
    assert [t.id for t in report["transactions"]] == [1, 2]
