import logging
import os
import sqlite3
from typing import Optional

from .config import DB_FILE

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS members (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT,
        phone TEXT UNIQUE,
        join_date TEXT,
        status TEXT DEFAULT 'active',
        membership_type TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS transactions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        member_id INTEGER NOT NULL,
        amount REAL NOT NULL,
        period TEXT,          -- daily / weekly / monthly
        start_date TEXT NOT NULL,
        ending_date TEXT,     -- NULL means no defined expiry
        status TEXT,          -- complete / incomplete / pending / failed
        FOREIGN KEY (member_id) REFERENCES members(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS check_ins (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        member_id INTEGER NOT NULL,
        check_in_time TEXT,
        check_out_time TEXT,
        duration_minutes REAL,
        FOREIGN KEY (member_id) REFERENCES members(id) ON DELETE CASCADE
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_transactions_member ON transactions(member_id);",
    "CREATE INDEX IF NOT EXISTS idx_check_ins_member ON check_ins(member_id);",
)


def create_database(db_name: str) -> Optional[sqlite3.Connection]:
    """
    Connects to an SQLite database and creates the necessary tables if they don't exist.
    Args:
        db_name (str): The database file (e.g., 'gym_crm.db' or ':memory:').
    Returns the open connection, or None if the schema could not be created.
    """
    conn = None
    try:
        conn = sqlite3.connect(db_name, check_same_thread=False)
        conn.execute("PRAGMA foreign_keys = ON;")
        cursor = conn.cursor()
        for statement in SCHEMA_STATEMENTS:
            cursor.execute(statement)
        conn.commit()
    except sqlite3.Error as e:
        logging.error(f"Could not create database schema in '{db_name}': {e}", exc_info=True)
        if conn:
            conn.close()
        return None
    return conn


def initialize_database(db_file: str = DB_FILE) -> None:
    """Creates the data directory and schema for the application database."""
    data_dir = os.path.dirname(db_file)
    if data_dir and not os.path.exists(data_dir):
        os.makedirs(data_dir)
        logging.info(f"Created data directory: {data_dir}")
    conn = create_database(db_file)
    if conn:
        conn.close()
        logging.info(f"Database initialized at: {db_file}")
