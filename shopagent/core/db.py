"""
SQLite storage for the action history.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator

from .config import HISTORY_DB_PATH, ensure_db_directory


@contextmanager
def get_db(db_path: str = None) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection."""
    conn = sqlite3.connect(db_path or HISTORY_DB_PATH)
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: str = None):
    """Initialize the database with required tables."""
    ensure_db_directory(db_path)
    with get_db(db_path) as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS action_history (
                id TEXT PRIMARY KEY,
                timestamp TEXT NOT NULL,
                prompt TEXT NOT NULL,
                actions TEXT NOT NULL,
                before_snapshot TEXT,
                after_snapshot TEXT,
                summary TEXT,
                status TEXT NOT NULL DEFAULT 'executed',
                store_domain TEXT
            )
        ''')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_action_history_ts ON action_history(timestamp DESC)')

        conn.commit()


def health_check(db_path: str = None):
    """Check database health."""
    try:
        with get_db(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [table[0] for table in cursor.fetchall()]
            return 'action_history' in table_names
    except sqlite3.Error:
        return False
