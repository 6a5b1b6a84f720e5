import sqlite3
from datetime import date

import pytest

from gym_crm.database import create_database
from gym_crm.database_manager import DatabaseManager
from gym_crm.models import CheckIn, Member, Transaction

EXPECTED_TABLES = ["members", "transactions", "check_ins"]


@pytest.fixture(scope="function")
def db_manager():
    conn = create_database(":memory:")
    manager = DatabaseManager(conn)
    yield manager
    conn.close()


def add_member(db_manager, name="Test Member", phone="0700000001", **kwargs):
    return db_manager.add_member(Member(id=None, name=name, phone=phone, **kwargs))


def test_create_database_tables():
    conn = create_database(":memory:")
    try:
        assert conn is not None
        cursor = conn.cursor()
        cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
        tables = [row[0] for row in cursor.fetchall()]
        for table_name in EXPECTED_TABLES:
            assert table_name in tables, f"Table '{table_name}' not found in database."
    finally:
        conn.close()


def test_create_database_is_idempotent(tmp_path):
    db_path = str(tmp_path / "gym.db")
    first = create_database(db_path)
    first.close()
    second = create_database(db_path)
    assert second is not None
    second.close()


def test_add_member_defaults(db_manager: DatabaseManager):
    member = db_manager.add_member(Member(id=None, name="Ann", phone="0711", status=None, join_date=None))
    assert member.id is not None
    assert member.status == "active"
    assert member.join_date == date.today().isoformat()

    stored = db_manager.get_member_by_id(member.id)
    assert stored.name == "Ann"
    assert stored.status == "active"


def test_add_member_keeps_imported_id(db_manager: DatabaseManager):
    member = db_manager.add_member(Member(id=42, name="Imported", phone="0799", join_date="2024-01-01"))
    assert member.id == 42
    assert db_manager.get_member_by_id(42).join_date == "2024-01-01"


def test_add_member_duplicate_phone_raises(db_manager: DatabaseManager):
    add_member(db_manager, phone="0700")
    with pytest.raises(ValueError, match="already exists"):
        add_member(db_manager, name="Other", phone="0700")


def test_add_member_empty_name_raises(db_manager: DatabaseManager):
    with pytest.raises(ValueError):
        add_member(db_manager, name="  ")


def test_members_without_phone_are_allowed(db_manager: DatabaseManager):
    add_member(db_manager, name="No Phone 1", phone=None)
    add_member(db_manager, name="No Phone 2", phone=None)
    assert len(db_manager.get_all_members()) == 2


def test_update_member(db_manager: DatabaseManager):
    member = add_member(db_manager)
    member.status = "suspended"
    member.membership_type = "Premium"
    assert db_manager.update_member(member) is True
    stored = db_manager.get_member_by_id(member.id)
    assert stored.status == "suspended"
    assert stored.membership_type == "Premium"


def test_update_member_phone_conflict(db_manager: DatabaseManager):
    add_member(db_manager, name="A", phone="0701")
    second = add_member(db_manager, name="B", phone="0702")
    second.phone = "0701"
    with pytest.raises(ValueError):
        db_manager.update_member(second)


def test_update_missing_member_returns_false(db_manager: DatabaseManager):
    assert db_manager.update_member(Member(id=999, name="Ghost")) is False


def test_delete_member_removes_related_records(db_manager: DatabaseManager):
    member = add_member(db_manager)
    db_manager.add_transaction(Transaction(id=None, member_id=member.id, amount=100, period="monthly", start_date="2024-06-01"))
    db_manager.add_check_in(CheckIn(id=None, member_id=member.id, check_in_time="2024-06-01T07:00:00"))

    assert db_manager.delete_member(member.id) is True
    assert db_manager.get_all_members() == []
    assert db_manager.get_all_transactions() == []
    assert db_manager.get_all_check_ins() == []
    assert db_manager.delete_member(member.id) is False


def test_add_transaction_for_unknown_member_raises(db_manager: DatabaseManager):
    with pytest.raises(ValueError):
        db_manager.add_transaction(Transaction(id=None, member_id=12345, amount=10, period="weekly", start_date="2024-06-01"))


def test_add_transaction_without_start_date_raises(db_manager: DatabaseManager):
    member = add_member(db_manager)
    with pytest.raises(ValueError):
        db_manager.add_transaction(Transaction(id=None, member_id=member.id, amount=10, period="weekly", start_date=""))


def test_transactions_by_member_and_day(db_manager: DatabaseManager):
    ann = add_member(db_manager, name="Ann", phone="01")
    ben = add_member(db_manager, name="Ben", phone="02")
    db_manager.add_transaction(Transaction(id=None, member_id=ann.id, amount=100, period="monthly", start_date="2024-06-15T08:00:00"))
    db_manager.add_transaction(Transaction(id=None, member_id=ann.id, amount=50, period="daily", start_date="2024-05-01"))
    db_manager.add_transaction(Transaction(id=None, member_id=ben.id, amount=70, period="weekly", start_date="2024-06-15", ending_date="2024-06-22", status="complete"))

    ann_transactions = db_manager.get_transactions_for_member(ann.id)
    assert [t.start_date for t in ann_transactions] == ["2024-05-01", "2024-06-15T08:00:00"]

    day = db_manager.get_transactions_for_day(date(2024, 6, 15))
    assert sorted(t.amount for t in day) == [70.0, 100.0]

    assert db_manager.delete_transaction(day[0].id) is True
    assert db_manager.delete_transaction(day[0].id) is False


def test_get_members_with_transactions(db_manager: DatabaseManager):
    ann = add_member(db_manager, name="Ann", phone="01")
    add_member(db_manager, name="Ben", phone="02")
    db_manager.add_transaction(Transaction(id=None, member_id=ann.id, amount=100, period="monthly", start_date="2024-06-01", ending_date="2024-07-01", status="complete"))

    joined = {entry.name: entry for entry in db_manager.get_members_with_transactions()}
    assert len(joined["Ann"].transactions) == 1
    assert joined["Ann"].transactions[0].ending_date == "2024-07-01"
    assert joined["Ben"].transactions == []


def test_member_visit_stats(db_manager: DatabaseManager):
    ann = add_member(db_manager, name="Ann", phone="01")
    ben = add_member(db_manager, name="Ben", phone="02")
    for timestamp in ("2024-06-01T07:00:00", "2024-06-14T18:00:00", "2024-06-10T06:30:00"):
        db_manager.add_check_in(CheckIn(id=None, member_id=ann.id, check_in_time=timestamp))

    stats = {entry.member_id: entry for entry in db_manager.get_member_visit_stats()}
    assert stats[ann.id].total_visits == 3
    assert stats[ann.id].last_visit == "2024-06-14T18:00:00"
    assert stats[ann.id].full_name == "Ann"
    assert stats[ben.id].total_visits == 0
    assert stats[ben.id].last_visit is None


def test_database_errors_are_swallowed_into_empty_results():
    conn = sqlite3.connect(":memory:")  # no schema
    manager = DatabaseManager(conn)
    assert manager.get_all_members() == []
    assert manager.get_all_transactions() == []
    assert manager.get_member_visit_stats() == []
    assert manager.get_member_by_id(1) is None
    conn.close()


def test_exported_ids_are_kept_and_detected(db_manager: DatabaseManager):
    member = add_member(db_manager)
    transaction = db_manager.add_transaction(
        Transaction(id=31, member_id=member.id, amount=100, period="monthly", start_date="2024-06-01")
    )
    check_in = db_manager.add_check_in(CheckIn(id=55, member_id=member.id, check_in_time="2024-06-01T07:00:00"))

    assert (transaction.id, check_in.id) == (31, 55)
    assert db_manager.record_exists("transactions", 31)
    assert db_manager.record_exists("check_ins", 55)
    assert db_manager.record_exists("members", member.id)
    assert not db_manager.record_exists("transactions", 32)
    with pytest.raises(ValueError):
        db_manager.record_exists("plans", 1)
