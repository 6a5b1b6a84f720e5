import logging
import sqlite3
from datetime import date
from typing import Dict, List, Optional

from .categorization import join_members_with_transactions
from .config import LOG_LEVEL
from .date_utils import parse_date
from .models import CheckIn, Member, MemberVisitStats, MemberWithTransactions, Transaction

# Basic logging configuration (can be overridden by application's config)
logging.basicConfig(
    level=LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(message)s"
)

MEMBER_COLUMNS = "id, name, email, phone, join_date, status, membership_type"
TRANSACTION_COLUMNS = "id, member_id, amount, period, start_date, ending_date, status"
CHECK_IN_COLUMNS = "id, member_id, check_in_time, check_out_time, duration_minutes"


class DatabaseManager:
    def __init__(self, connection: sqlite3.Connection):
        self.conn = connection
        self.conn.row_factory = sqlite3.Row

    # Members

    def add_member(self, member: Member) -> Optional[Member]:
        """Adds a new member to the database.
        Sets join_date to the current date and status to 'active' if not provided.
        Raises ValueError if the name is empty or the phone number already exists.
        Returns the member object with id, or None if a database error occurs.
        """
        if not member.name or not member.name.strip():
            raise ValueError("Member name cannot be empty.")
        cursor = self.conn.cursor()
        try:
            if member.phone:
                cursor.execute("SELECT id FROM members WHERE phone = ?", (member.phone,))
                if cursor.fetchone():
                    logging.warning(f"Attempt to add member with existing phone number: {member.phone}")
                    raise ValueError(f"Phone number {member.phone} already exists.")

            member.join_date = member.join_date or date.today().isoformat()
            member.status = member.status or "active"
            if member.id is None:
                cursor.execute(
                    "INSERT INTO members (name, email, phone, join_date, status, membership_type) VALUES (?, ?, ?, ?, ?, ?)",
                    (member.name, member.email, member.phone, member.join_date, member.status, member.membership_type),
                )
            else:
                # Records imported from the backend keep their identifiers.
                cursor.execute(
                    f"INSERT INTO members ({MEMBER_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (member.id, member.name, member.email, member.phone, member.join_date, member.status, member.membership_type),
                )
            self.conn.commit()
            member.id = cursor.lastrowid if member.id is None else member.id
            logging.info(f"Member '{member.name}' added with ID {member.id}.")
            return member
        except sqlite3.Error as e:
            self.conn.rollback()
            logging.error(f"Database error in add_member for '{member.name}': {e}", exc_info=True)
            return None

    def update_member(self, member: Member) -> bool:
        """Updates an existing member's details. Returns True on success."""
        cursor = self.conn.cursor()
        try:
            cursor.execute("SELECT id FROM members WHERE id = ?", (member.id,))
            if not cursor.fetchone():
                logging.warning(f"Member with ID {member.id} not found for update.")
                return False
            if member.phone:
                cursor.execute(
                    "SELECT id FROM members WHERE phone = ? AND id != ?",
                    (member.phone, member.id),
                )
                if cursor.fetchone():
                    logging.warning(f"Attempt to update member {member.id} with existing phone number: {member.phone}")
                    raise ValueError(f"Phone number {member.phone} already exists for another member.")

            cursor.execute(
                "UPDATE members SET name = ?, email = ?, phone = ?, join_date = ?, status = ?, membership_type = ? WHERE id = ?",
                (member.name, member.email, member.phone, member.join_date, member.status, member.membership_type, member.id),
            )
            self.conn.commit()
            logging.info(f"Member ID {member.id} updated successfully.")
            return True
        except sqlite3.Error as e:
            self.conn.rollback()
            logging.error(f"Database error in update_member for ID {member.id}: {e}", exc_info=True)
            return False

    def delete_member(self, member_id: int) -> bool:
        """Deletes a member together with their transactions and check-ins."""
        cursor = self.conn.cursor()
        try:
            cursor.execute("DELETE FROM transactions WHERE member_id = ?", (member_id,))
            cursor.execute("DELETE FROM check_ins WHERE member_id = ?", (member_id,))
            cursor.execute("DELETE FROM members WHERE id = ?", (member_id,))
            if cursor.rowcount == 0:
                self.conn.rollback()
                logging.warning(f"No member found with ID {member_id} to delete.")
                return False
            self.conn.commit()
            logging.info(f"Member ID {member_id} deleted successfully.")
            return True
        except sqlite3.Error as e:
            self.conn.rollback()
            logging.error(f"Database error in delete_member for ID {member_id}: {e}", exc_info=True)
            return False

    def get_member_by_id(self, member_id: int) -> Optional[Member]:
        try:
            cursor = self.conn.cursor()
            cursor.execute(f"SELECT {MEMBER_COLUMNS} FROM members WHERE id = ?", (member_id,))
            row = cursor.fetchone()
            return Member(**row) if row else None
        except sqlite3.Error as e:
            logging.error(f"Database error in get_member_by_id for ID {member_id}: {e}", exc_info=True)
            return None

    def record_exists(self, table: str, record_id: int) -> bool:
        """True if ``table`` (members, transactions or check_ins) already holds ``record_id``."""
        if table not in ("members", "transactions", "check_ins"):
            raise ValueError(f"Unknown table '{table}'.")
        try:
            cursor = self.conn.cursor()
            cursor.execute(f"SELECT 1 FROM {table} WHERE id = ?", (record_id,))
            return cursor.fetchone() is not None
        except sqlite3.Error as e:
            logging.error(f"Database error in record_exists for {table} ID {record_id}: {e}", exc_info=True)
            return False

    def get_all_members(self) -> List[Member]:
        """Retrieves all members, ordered by name."""
        try:
            cursor = self.conn.cursor()
            cursor.execute(f"SELECT {MEMBER_COLUMNS} FROM members ORDER BY name ASC")
            return [Member(**row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            logging.error(f"Database error in get_all_members: {e}", exc_info=True)
            return []

    # Transactions

    def add_transaction(self, transaction: Transaction) -> Optional[Transaction]:
        """Records a subscription/payment period for an existing member.
        Raises ValueError for an unknown member or a missing start date.
        """
        if not transaction.start_date:
            raise ValueError("Transaction start date cannot be empty.")
        cursor = self.conn.cursor()
        try:
            cursor.execute("SELECT id FROM members WHERE id = ?", (transaction.member_id,))
            if not cursor.fetchone():
                raise ValueError(f"Member {transaction.member_id} does not exist.")
            cursor.execute(
                f"INSERT INTO transactions ({TRANSACTION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    transaction.id,
                    transaction.member_id,
                    transaction.amount,
                    transaction.period,
                    transaction.start_date,
                    transaction.ending_date,
                    transaction.status,
                ),
            )
            self.conn.commit()
            transaction.id = cursor.lastrowid if transaction.id is None else transaction.id
            logging.info(f"Transaction {transaction.id} added for member {transaction.member_id}.")
            return transaction
        except sqlite3.Error as e:
            self.conn.rollback()
            logging.error(
                f"Database error in add_transaction for member {transaction.member_id}: {e}",
                exc_info=True,
            )
            return None

    def get_all_transactions(self) -> List[Transaction]:
        try:
            cursor = self.conn.cursor()
            cursor.execute(f"SELECT {TRANSACTION_COLUMNS} FROM transactions ORDER BY start_date ASC, id ASC")
            return [Transaction(**row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            logging.error(f"Database error in get_all_transactions: {e}", exc_info=True)
            return []

    def get_transactions_for_member(self, member_id: int) -> List[Transaction]:
        try:
            cursor = self.conn.cursor()
            cursor.execute(
                f"SELECT {TRANSACTION_COLUMNS} FROM transactions WHERE member_id = ? ORDER BY start_date ASC, id ASC",
                (member_id,),
            )
            return [Transaction(**row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            logging.error(
                f"Database error in get_transactions_for_member for member_id {member_id}: {e}",
                exc_info=True,
            )
            return []

    def get_transactions_for_day(self, day: date) -> List[Transaction]:
        """Transactions whose start date (or timestamp) falls on ``day``."""
        try:
            cursor = self.conn.cursor()
            cursor.execute(
                f"SELECT {TRANSACTION_COLUMNS} FROM transactions WHERE substr(start_date, 1, 10) = ? ORDER BY start_date ASC, id ASC",
                (day.isoformat(),),
            )
            return [Transaction(**row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            logging.error(f"Database error in get_transactions_for_day for {day}: {e}", exc_info=True)
            return []

    def delete_transaction(self, transaction_id: int) -> bool:
        cursor = self.conn.cursor()
        try:
            cursor.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
            self.conn.commit()
            if cursor.rowcount == 0:
                logging.warning(f"No transaction found with ID {transaction_id} to delete.")
                return False
            logging.info(f"Transaction ID {transaction_id} deleted successfully.")
            return True
        except sqlite3.Error as e:
            self.conn.rollback()
            logging.error(f"Database error in delete_transaction for ID {transaction_id}: {e}", exc_info=True)
            return False

    def get_members_with_transactions(self) -> List[MemberWithTransactions]:
        """Joins every member with their transactions for categorization."""
        return join_members_with_transactions(self.get_all_members(), self.get_all_transactions())

    # Check-ins

    def add_check_in(self, check_in: CheckIn) -> Optional[CheckIn]:
        cursor = self.conn.cursor()
        try:
            cursor.execute(
                f"INSERT INTO check_ins ({CHECK_IN_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                (check_in.id, check_in.member_id, check_in.check_in_time, check_in.check_out_time, check_in.duration_minutes),
            )
            self.conn.commit()
            check_in.id = cursor.lastrowid if check_in.id is None else check_in.id
            return check_in
        except sqlite3.Error as e:
            self.conn.rollback()
            logging.error(f"Database error in add_check_in for member {check_in.member_id}: {e}", exc_info=True)
            return None

    def get_all_check_ins(self) -> List[CheckIn]:
        try:
            cursor = self.conn.cursor()
            cursor.execute(
                f"SELECT {CHECK_IN_COLUMNS} FROM check_ins WHERE check_in_time IS NOT NULL ORDER BY check_in_time ASC"
            )
            return [CheckIn(**row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            logging.error(f"Database error in get_all_check_ins: {e}", exc_info=True)
            return []

    def get_member_visit_stats(self) -> List[MemberVisitStats]:
        """Total visits and most recent check-in for every member."""
        try:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                SELECT m.id AS member_id, m.name AS full_name, c.check_in_time
                FROM members m
                LEFT JOIN check_ins c ON c.member_id = m.id AND c.check_in_time IS NOT NULL
                ORDER BY m.id ASC
                """
            )
            rows = cursor.fetchall()
        except sqlite3.Error as e:
            logging.error(f"Database error in get_member_visit_stats: {e}", exc_info=True)
            return []

        stats: Dict[int, MemberVisitStats] = {}
        for row in rows:
            entry = stats.setdefault(
                row["member_id"],
                MemberVisitStats(member_id=row["member_id"], full_name=row["full_name"], total_visits=0, last_visit=None),
            )
            if row["check_in_time"] is None:
                continue
            entry.total_visits += 1
            # Timestamps are compared by calendar day; unparseable ones still count as visits.
            if parse_date(row["check_in_time"]) and (
                entry.last_visit is None or parse_date(row["check_in_time"]) > parse_date(entry.last_visit)
            ):
                entry.last_visit = row["check_in_time"]
        return list(stats.values())
