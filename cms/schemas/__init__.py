"""Pydantic schemas for the site configuration and for commits."""

from cms.schemas.changes import (
    CommitOptions,
    CommitResults,
    CommittedFile,
    FileChange,
)
from cms.schemas.config import (
    BackendConfig,
    CollectionConfig,
    CollectionFileConfig,
    I18nConfig,
    IndexFileConfig,
    SiteConfig,
)

__all__ = [
    "CommitOptions",
    "CommitResults",
    "CommittedFile",
    "FileChange",
    "BackendConfig",
    "CollectionConfig",
    "CollectionFileConfig",
    "I18nConfig",
    "IndexFileConfig",
    "SiteConfig",
]
