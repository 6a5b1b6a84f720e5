import sqlite3
from dataclasses import asdict
from datetime import date, datetime
from typing import Optional

from flask import Flask, jsonify, request

from .app_api import AppAPI
from .config import config
from .models import CategorizationResult, MemberWithTransactions

app = Flask(__name__)
app.config.from_object(config["default"])

# Created on first request so importing this module never touches the database.
app_api: Optional[AppAPI] = None


def get_app_api() -> Optional[AppAPI]:
    global app_api
    if app_api is None:
        try:
            app_api = AppAPI.from_db_file(app.config["DB_FILE"])
        except sqlite3.Error as e:
            app.logger.critical(f"Failed to initialize AppAPI: {e}")
            return None
    return app_api


def _requested_date(param: str = "today"):
    """(date, error response) for an optional YYYY-MM-DD query parameter."""
    raw = request.args.get(param)
    if raw is None:
        return None, None
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date(), None
    except ValueError:
        return None, (jsonify({"error": f"Invalid '{param}' parameter. Expected YYYY-MM-DD."}), 400)


def _member_payload(entry: MemberWithTransactions) -> dict:
    return {
        "member_id": entry.id,
        "name": entry.name,
        "status": entry.member.status,
        "membership_type": entry.member.membership_type,
        "join_date": entry.member.join_date,
    }


def categories_payload(result: CategorizationResult) -> dict:
    return {
        "active": [_member_payload(entry) for entry in result.active],
        "due_soon": [_member_payload(entry) for entry in result.due_soon],
        "overdue": [_member_payload(entry) for entry in result.overdue],
        "inactive": [asdict(entry) for entry in result.inactive],
        "counts": result.counts(dedupe=True),
    }


@app.route("/api/members/categories", methods=["GET"])
def get_member_categories():
    api = get_app_api()
    if not api:
        return jsonify({"error": "Database service not available"}), 503
    today, error = _requested_date()
    if error:
        return error
    dedupe = request.args.get("dedupe", "0").lower() in ("1", "true", "yes")
    try:
        return jsonify(categories_payload(api.categorize_members(today, dedupe=dedupe)))
    except Exception as e:
        app.logger.error(f"Error categorizing members: {e}")
        return jsonify({"error": f"Unexpected error: {str(e)}"}), 500


@app.route("/api/dashboard/summary", methods=["GET"])
def get_dashboard_summary():
    api = get_app_api()
    if not api:
        return jsonify({"error": "Database service not available"}), 503
    today, error = _requested_date()
    if error:
        return error
    try:
        return jsonify(api.get_dashboard_summary(today))
    except Exception as e:
        app.logger.error(f"Error building dashboard summary: {e}")
        return jsonify({"error": f"Unexpected error: {str(e)}"}), 500


@app.route("/api/leaderboard", methods=["GET"])
def get_leaderboard():
    api = get_app_api()
    if not api:
        return jsonify({"error": "Database service not available"}), 503
    today, error = _requested_date()
    if error:
        return error
    try:
        return jsonify([asdict(entry) for entry in api.get_streak_leaderboard(today)])
    except Exception as e:
        app.logger.error(f"Error building streak leaderboard: {e}")
        return jsonify({"error": f"Unexpected error: {str(e)}"}), 500


@app.route("/api/reports/revenue", methods=["GET"])
def get_revenue_report():
    api = get_app_api()
    if not api:
        return jsonify({"error": "Database service not available"}), 503
    today, error = _requested_date()
    if error:
        return error
    try:
        return jsonify(api.get_revenue_trend(today))
    except Exception as e:
        app.logger.error(f"Error generating revenue report: {e}")
        return jsonify({"error": f"Unexpected error: {str(e)}"}), 500


@app.route("/api/renewals", methods=["GET"])
def get_renewals():
    api = get_app_api()
    if not api:
        return jsonify({"error": "Database service not available"}), 503
    today, error = _requested_date()
    if error:
        return error
    try:
        return jsonify(api.get_upcoming_renewals(today))
    except Exception as e:
        app.logger.error(f"Error generating renewals: {e}")
        return jsonify({"error": f"Unexpected error: {str(e)}"}), 500


@app.route("/api/transactions/daily", methods=["GET"])
def get_daily_transactions():
    api = get_app_api()
    if not api:
        return jsonify({"error": "Database service not available"}), 503
    day, error = _requested_date("date")
    if error:
        return error
    try:
        report = api.get_daily_transactions(day or date.today())
        report["transactions"] = [asdict(t) for t in report["transactions"]]
        return jsonify(report)
    except Exception as e:
        app.logger.error(f"Error fetching daily transactions: {e}")
        return jsonify({"error": f"Unexpected error: {str(e)}"}), 500


if __name__ == "__main__":
    app.run(debug=app.config.get("DEBUG", False))
