"""Repository layer for the per-repository cache database."""

from cms.repositories.file_cache_repository import CacheRow, FileCacheRepository
from cms.repositories.meta_repository import MetaRepository

__all__ = [
    "CacheRow",
    "FileCacheRepository",
    "MetaRepository",
]
