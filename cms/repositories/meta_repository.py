"""Repository metadata store (last commit hash, fetch flags)."""

import json
from typing import Any, Optional

from cms.config import META_STORE_NAME
from cms.database import get_db_connection, init_database


class MetaRepository:
    def __init__(self, database_name: str):
        self.database_name = database_name
        init_database(database_name)

    def get(self, key: str) -> Optional[Any]:
        with get_db_connection(self.database_name) as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT value FROM {META_STORE_NAME} WHERE key = ?", (key,))
            row = cursor.fetchone()
            return json.loads(row["value"]) if row is not None else None

    def set(self, key: str, value: Any) -> None:
        with get_db_connection(self.database_name) as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO {META_STORE_NAME} (key, value) VALUES (?, ?)",
                (key, json.dumps(value))
            )
            conn.commit()
