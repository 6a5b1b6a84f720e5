import io  # For Excel download
from dataclasses import asdict
from datetime import date

import pandas as pd
import streamlit as st

from gym_crm.app_api import AppAPI
from gym_crm.config import DB_FILE
from gym_crm.database import create_database
from gym_crm.database_manager import DatabaseManager

st.set_page_config(page_title="Gym CRM Dashboard", layout="wide")

conn = create_database(DB_FILE)
db_manager = DatabaseManager(connection=conn)
api = AppAPI(db_manager=db_manager)

if "dashboard_date" not in st.session_state:
    st.session_state.dashboard_date = date.today()


def members_frame(entries) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Name": entry.name,
                "Status": entry.member.status,
                "Membership Type": entry.member.membership_type,
                "Join Date": entry.member.join_date,
            }
            for entry in entries
        ],
        columns=["Name", "Status", "Membership Type", "Join Date"],
    )


def render_summary(today: date):
    summary = api.get_dashboard_summary(today)
    counts = summary["categories"]
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Members", summary["total_members"])
    col2.metric("Active Members", counts["active"])
    col3.metric("Revenue (Month)", f"Ksh {summary['revenue_this_month']:,.0f}")
    col4.metric("Visits (Month)", summary["visits_this_month"])

    col5, col6, col7 = st.columns(3)
    col5.metric("Due Soon", counts["due_soon"])
    col6.metric("Overdue", counts["overdue"])
    col7.metric("Inactive", counts["inactive"])


def render_categories_tab(today: date):
    result = api.categorize_members(today, dedupe=True)
    st.subheader("Member Categories")
    sub_active, sub_due, sub_overdue, sub_inactive = st.tabs(["Active", "Due Soon", "Overdue", "Inactive"])
    with sub_active:
        st.dataframe(members_frame(result.active), hide_index=True, use_container_width=True)
    with sub_due:
        st.dataframe(members_frame(result.due_soon), hide_index=True, use_container_width=True)
    with sub_overdue:
        if not result.overdue:
            st.info("No members with overdue renewals")
        st.dataframe(members_frame(result.overdue), hide_index=True, use_container_width=True)
    with sub_inactive:
        inactive_df = pd.DataFrame([asdict(entry) for entry in result.inactive], columns=["member_id", "name", "reason"])
        st.dataframe(inactive_df, hide_index=True, use_container_width=True)

    excel_buffer = io.BytesIO()
    success, message = api.export_categorization_report(excel_buffer, today)
    if success:
        st.download_button(
            label="Download Categories (Excel)",
            data=excel_buffer.getvalue(),
            file_name=f"member_categories_{today.isoformat()}.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
    else:
        st.error(message)


def render_renewals_tab(today: date):
    st.subheader("Upcoming Renewals")
    rows = api.get_upcoming_renewals(today)
    if not rows:
        st.info("No upcoming renewals")
        return
    st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)


def render_engagement_tab(today: date):
    st.subheader("Streak Leadership Board")
    leaderboard = api.get_streak_leaderboard(today)
    if leaderboard:
        st.dataframe(pd.DataFrame([asdict(entry) for entry in leaderboard]), hide_index=True, use_container_width=True)
    else:
        st.info("No active streaks yet.")

    st.subheader("Gym Usage")
    usage = api.get_gym_usage()
    col1, col2, col3 = st.columns(3)
    col1.metric("Total Check Ins", usage["total_sessions"])
    col2.metric("Avg. Duration", f"{usage['avg_duration_minutes']} min")
    peak = usage["peak_check_in_hour"]
    col3.metric("Peak Check-in", f"{peak}:00" if peak is not None else "-")
    st.bar_chart(pd.DataFrame(usage["hourly_check_ins"]).set_index("hour"))


def render_trends_tab(today: date):
    st.subheader("Revenue Trends")
    st.line_chart(pd.DataFrame(api.get_revenue_trend(today)).set_index("month")["revenue"])
    st.subheader("Member Growth")
    st.line_chart(pd.DataFrame(api.get_member_growth(today)).set_index("month")[["total", "new"]])
    st.subheader("Transactions on Selected Day")
    daily = api.get_daily_transactions(today)
    st.write(f"{daily['count']} transactions, Ksh {daily['total_amount']:,.0f}")
    if daily["transactions"]:
        st.dataframe(pd.DataFrame([asdict(t) for t in daily["transactions"]]), hide_index=True)


st.title("Dashboard Overview")
selected_date = st.date_input("Reference date", key="dashboard_date")
render_summary(selected_date)

tab_categories, tab_renewals, tab_engagement, tab_trends = st.tabs(
    ["Member Categories", "Renewals", "Engagement", "Trends"]
)
with tab_categories:
    render_categories_tab(selected_date)
with tab_renewals:
    render_renewals_tab(selected_date)
with tab_engagement:
    render_engagement_tab(selected_date)
with tab_trends:
    render_trends_tab(selected_date)
