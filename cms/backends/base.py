"""Interfaces of the backend services changes are committed to."""

from dataclasses import dataclass
from typing import Dict, List, NamedTuple, Optional, Protocol

from common.types import FileDescriptor
from cms.repositories import CacheRow
from cms.schemas.changes import CommitOptions, CommitResults, FileChange
from cms.state import RepositoryState


@dataclass
class RepositoryInfo:
    """
    Repository a backend is connected to. `database_name` namespaces its cache database.
    """
    service: str
    database_name: str
    label: str = ""
    owner: str = ""
    repo: str = ""
    branch: Optional[str] = None


class BackendService(Protocol):
    name: str
    repository: RepositoryInfo

    async def commit_changes(self, changes: List[FileChange], options: CommitOptions) -> CommitResults:
        ...

    async def fetch_files(self, state: RepositoryState) -> None:
        ...


class LastCommit(NamedTuple):
    hash: str
    message: str


class RemoteFileSource(Protocol):
    """
    File listing and download API of a hosted Git repository.
    """

    async def fetch_last_commit(self) -> LastCommit:
        ...

    async def fetch_file_list(self, last_hash: str) -> List[FileDescriptor]:
        """List every file of the repository with its blob SHA."""
        ...

    async def fetch_file_contents(self, files: List[FileDescriptor]) -> Dict[str, CacheRow]:
        """Download the files' size, text (for text files) and last commit info."""
        ...
