"""Service layer for loading and saving repository content."""

from cms.services.load_service import LoadService
from cms.services.save_service import ChangeResults, SaveService, User, get_commit_author

__all__ = [
    "LoadService",
    "ChangeResults",
    "SaveService",
    "User",
    "get_commit_author",
]
