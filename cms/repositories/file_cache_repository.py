"""File cache repository: last known hash, size, text and commit info per path."""

import json
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from common.logging_config import get_logger
from common.types import FileMeta
from cms.config import CACHE_STORE_NAME
from cms.database import get_db_connection, init_database

logger = get_logger(__name__)


@dataclass
class CacheRow:
    sha: Optional[str]
    size: int
    text: Optional[str]
    meta: FileMeta = field(default_factory=FileMeta)

    def to_json(self) -> str:
        return json.dumps({
            "sha": self.sha,
            "size": self.size,
            "text": self.text,
            "meta": self.meta.to_dict(),
        })

    @classmethod
    def from_json(cls, value: str) -> "CacheRow":
        data = json.loads(value)
        return cls(
            sha=data.get("sha"),
            size=data.get("size", 0),
            text=data.get("text"),
            meta=FileMeta.from_dict(data.get("meta")),
        )


class FileCacheRepository:
    """
    Key-value store of CacheRows keyed by repository-relative path, one database per
    repository.
    """

    def __init__(self, database_name: str):
        self.database_name = database_name
        init_database(database_name)

    def get(self, path: str) -> Optional[CacheRow]:
        with get_db_connection(self.database_name) as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT value FROM {CACHE_STORE_NAME} WHERE path = ?", (path,))
            row = cursor.fetchone()

            if row is None:
                return None

            return CacheRow.from_json(row["value"])

    def get_all(self) -> Dict[str, CacheRow]:
        with get_db_connection(self.database_name) as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT path, value FROM {CACHE_STORE_NAME} ORDER BY path")
            return {row["path"]: CacheRow.from_json(row["value"]) for row in cursor.fetchall()}

    def set(self, path: str, cache_row: CacheRow, conn=None) -> None:
        if conn is None:
            with get_db_connection(self.database_name) as conn:
                self.set(path, cache_row, conn=conn)
                conn.commit()
            return

        cursor = conn.cursor()
        cursor.execute(
            f"INSERT OR REPLACE INTO {CACHE_STORE_NAME} (path, value) VALUES (?, ?)",
            (path, cache_row.to_json())
        )

    def set_all(self, rows: Dict[str, CacheRow]) -> None:
        with get_db_connection(self.database_name) as conn:
            for path, cache_row in rows.items():
                self.set(path, cache_row, conn=conn)
            conn.commit()

        logger.debug(f"Cached files [database={self.database_name}, count={len(rows)}]")

    def delete(self, path: str, conn=None) -> None:
        if conn is None:
            with get_db_connection(self.database_name) as conn:
                self.delete(path, conn=conn)
                conn.commit()
            return

        cursor = conn.cursor()
        cursor.execute(f"DELETE FROM {CACHE_STORE_NAME} WHERE path = ?", (path,))

    def delete_many(self, paths: Iterable[str]) -> None:
        paths = list(paths)

        with get_db_connection(self.database_name) as conn:
            for path in paths:
                self.delete(path, conn=conn)
            conn.commit()

        logger.debug(f"Removed cached files [database={self.database_name}, count={len(paths)}]")

    def paths(self) -> List[str]:
        with get_db_connection(self.database_name) as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT path FROM {CACHE_STORE_NAME} ORDER BY path")
            return [row["path"] for row in cursor.fetchall()]

    def clear(self) -> None:
        with get_db_connection(self.database_name) as conn:
            conn.execute(f"DELETE FROM {CACHE_STORE_NAME}")
            conn.commit()
