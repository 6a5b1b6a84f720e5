import csv
import logging
import os
import sqlite3
import sys
from typing import Callable, Dict, Optional

if __name__ == "__main__" and __package__ is None:
    script_dir = os.path.dirname(os.path.abspath(__file__))
    parent_dir = os.path.dirname(script_dir)
    if parent_dir not in sys.path:
        sys.path.insert(0, parent_dir)
    __package__ = "gym_crm"

from gym_crm.config import DB_FILE
from gym_crm.database import create_database
from gym_crm.database_manager import DatabaseManager
from gym_crm.date_utils import parse_datetime
from gym_crm.models import CheckIn, Member, Transaction

CURRENCY_MARKERS = ("Ksh", "KES", "₹", "$")


def _field(row: Dict[str, str], *names: str) -> str:
    """First non-empty value among the column spellings used by backend exports."""
    for name in names:
        value = row.get(name)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def normalize_date(date_str: str) -> Optional[str]:
    """ISO form of a date or timestamp, or None if it cannot be read."""
    if not date_str:
        return None
    parsed = parse_datetime(date_str)
    if parsed is None:
        logging.warning(f"Could not parse date '{date_str}' with known formats.")
        return None
    if parsed.hour or parsed.minute or parsed.second or parsed.tzinfo or "T" in date_str or ":" in date_str:
        return parsed.isoformat()
    return parsed.date().isoformat()


def parse_amount(amount_str) -> Optional[float]:
    try:
        cleaned_str = str(amount_str)
        for marker in CURRENCY_MARKERS:
            cleaned_str = cleaned_str.replace(marker, "")
        cleaned_str = cleaned_str.replace(",", "").strip()
        if cleaned_str in ("-", ""):
            return 0.0
        return float(cleaned_str)
    except (ValueError, AttributeError) as e:
        logging.warning(f"Could not parse amount '{amount_str}': {e}")
        return None


def _parse_id(value: str) -> Optional[int]:
    return int(value) if value and value.isdigit() else None


def _already_imported(db_manager: DatabaseManager, table: str, record_id: Optional[int]) -> bool:
    if record_id is not None and db_manager.record_exists(table, record_id):
        logging.info(f"Skipping {table} row {record_id}: already imported.")
        return True
    return False


def _import_csv(csv_path: str, process_row: Callable[[Dict[str, str]], bool], label: str) -> int:
    if not os.path.exists(csv_path):
        logging.error(f"{label} data file not found at '{csv_path}'")
        return 0
    imported = 0
    with open(csv_path, mode="r", encoding="utf-8-sig", newline="") as infile:
        for row in csv.DictReader(infile):
            try:
                if process_row(row):
                    imported += 1
            except ValueError as e:
                logging.warning(f"Skipping {label} row {row}: {e}")
    logging.info(f"Imported {imported} {label} rows from '{csv_path}'.")
    return imported


def import_members_csv(db_manager: DatabaseManager, csv_path: str) -> int:
    """Imports a members export (id, name, email, phone, join_date, status)."""

    def process_row(row: Dict[str, str]) -> bool:
        name = _field(row, "name", "full_name", "Name")
        if not name:
            logging.warning(f"Skipping member row due to missing name: {row}")
            return False
        member_id = _parse_id(_field(row, "id", "member_id"))
        if _already_imported(db_manager, "members", member_id):
            return False
        join_date_raw = _field(row, "join_date", "created_at", "inserted_at")
        member = Member(
            id=member_id,
            name=name,
            email=_field(row, "email") or None,
            phone=_field(row, "phone") or None,
            join_date=normalize_date(join_date_raw) if join_date_raw else None,
            status=_field(row, "status") or None,
            membership_type=_field(row, "membership_type") or None,
        )
        return db_manager.add_member(member) is not None

    return _import_csv(csv_path, process_row, "member")


def import_transactions_csv(db_manager: DatabaseManager, csv_path: str) -> int:
    """Imports a transaction export; accepts the backend's "start date"/"ending date" headers."""

    def process_row(row: Dict[str, str]) -> bool:
        transaction_id = _parse_id(_field(row, "id", "transaction_id"))
        if _already_imported(db_manager, "transactions", transaction_id):
            return False
        member_id = _parse_id(_field(row, "member_id"))
        start_date = normalize_date(_field(row, "start_date", "start date"))
        if member_id is None or not start_date:
            logging.warning(f"Skipping transaction row due to missing member or start date: {row}")
            return False
        amount = parse_amount(_field(row, "amount"))
        if amount is None:
            logging.warning(f"Skipping transaction row due to unparseable amount: {row}")
            return False
        ending_raw = _field(row, "ending_date", "ending date", "end_date")
        transaction = Transaction(
            id=transaction_id,
            member_id=member_id,
            amount=amount,
            period=_field(row, "period", "subscription_period") or None,
            start_date=start_date,
            ending_date=normalize_date(ending_raw) if ending_raw else None,
            status=_field(row, "status") or None,
        )
        return db_manager.add_transaction(transaction) is not None

    return _import_csv(csv_path, process_row, "transaction")


def import_check_ins_csv(db_manager: DatabaseManager, csv_path: str) -> int:
    """Imports a check-in export (member_id, check_in_time, check_out_time, duration_minutes)."""

    def process_row(row: Dict[str, str]) -> bool:
        check_in_id = _parse_id(_field(row, "id", "check_in_id"))
        if _already_imported(db_manager, "check_ins", check_in_id):
            return False
        member_id = _parse_id(_field(row, "member_id"))
        check_in_time = normalize_date(_field(row, "check_in_time"))
        if member_id is None or not check_in_time:
            logging.warning(f"Skipping check-in row due to missing member or check-in time: {row}")
            return False
        check_out_raw = _field(row, "check_out_time", "checkout time")
        duration_raw = _field(row, "duration_minutes")
        check_in = CheckIn(
            id=check_in_id,
            member_id=member_id,
            check_in_time=check_in_time,
            check_out_time=normalize_date(check_out_raw) if check_out_raw else None,
            duration_minutes=float(duration_raw) if duration_raw else None,
        )
        return db_manager.add_check_in(check_in) is not None

    return _import_csv(csv_path, process_row, "check-in")


def import_backend_export(export_dir: str, db_file: str = DB_FILE) -> Dict[str, int]:
    """Loads members.csv, transactions.csv and check_ins.csv from ``export_dir``."""
    conn = create_database(db_file)
    if conn is None:
        logging.error(f"Could not open database '{db_file}' for import.")
        return {"members": 0, "transactions": 0, "check_ins": 0}
    db_manager = DatabaseManager(conn)
    try:
        return {
            "members": import_members_csv(db_manager, os.path.join(export_dir, "members.csv")),
            "transactions": import_transactions_csv(db_manager, os.path.join(export_dir, "transactions.csv")),
            "check_ins": import_check_ins_csv(db_manager, os.path.join(export_dir, "check_ins.csv")),
        }
    except sqlite3.Error as e:
        logging.error(f"Database error during import from '{export_dir}': {e}", exc_info=True)
        return {"members": 0, "transactions": 0, "check_ins": 0}
    finally:
        conn.close()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python -m gym_crm.import_data <export_dir> [db_file]")
        sys.exit(1)
    counts = import_backend_export(sys.argv[1], *(sys.argv[2:3]))
    print(f"Imported: {counts}")
