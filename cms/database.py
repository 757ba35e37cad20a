"""Per-repository SQLite cache database schema and connection management."""

import re
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from cms.config import CACHE_DIR, CACHE_STORE_NAME, META_STORE_NAME


def get_database_path(database_name: str) -> Path:
    """
    Get the database file of a repository. Characters unsafe in file names are
    replaced, so `github:owner/repo` becomes `github_owner_repo.db`.
    """
    safe_name = re.sub(r"[^A-Za-z0-9._-]", "_", database_name)
    return Path(CACHE_DIR) / f"{safe_name}.db"


def init_database(database_name: str) -> None:
    """
    Initialize a repository database and create its stores if they don't exist.
    """
    db_path = get_database_path(database_name)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection(database_name) as conn:
        cursor = conn.cursor()

        cursor.execute(f"""
            CREATE TABLE IF NOT EXISTS {CACHE_STORE_NAME} (
                path TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)

        cursor.execute(f"""
            CREATE TABLE IF NOT EXISTS {META_STORE_NAME} (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)

        conn.commit()


@contextmanager
def get_db_connection(database_name: str) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for repository database connections.
    """
    conn = sqlite3.connect(get_database_path(database_name))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()
