"""Shared data type definitions (FileDescriptor, folder infos, Entry, Asset, etc.)."""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional, Pattern, Union


@dataclass(frozen=True)
class CommitAuthor:
    """
    Author of a commit, as reported by the backend or the signed-in user.
    """
    name: str
    email: str
    id: Optional[str] = None
    login: Optional[str] = None


@dataclass
class FileMeta:
    """
    Commit metadata remembered for a file.
    """
    commit_author: Optional[CommitAuthor] = None
    commit_date: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        author = None
        if self.commit_author is not None:
            author = {k: v for k, v in vars(self.commit_author).items() if v is not None}
        return {
            "commitAuthor": author,
            "commitDate": self.commit_date.isoformat() if self.commit_date else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FileMeta":
        data = data or {}
        author = data.get("commitAuthor")
        date = data.get("commitDate")
        return cls(
            commit_author=CommitAuthor(**author) if author else None,
            commit_date=datetime.fromisoformat(date) if date else None,
        )


@dataclass
class FileDescriptor:
    """
    A repository file known to the system. `sha` doubles as an optimistic-concurrency
    token; `handle` is backend specific.
    """
    path: str
    name: str
    sha: str = ""
    size: int = 0
    text: Optional[str] = None
    handle: Any = None
    meta: Optional[FileMeta] = None


@dataclass(frozen=True)
class FileHandleItem:
    """
    A file found by a directory scan, not yet opened.
    """
    handle: Any
    path: str


@dataclass(frozen=True)
class EntryFolderInfo:
    """
    Where the entries of a folder collection, or one collection file, live.

    `folder_path_map` is set for folder collections, `file_path_map` for collection files.
    Both map a locale (or `_default`) to a repository-relative path.
    """
    collection_name: str
    file_name: Optional[str] = None
    folder_path: Optional[str] = None
    folder_path_map: Optional[Dict[str, str]] = None
    file_path_map: Optional[Dict[str, str]] = None
    full_path_regex: Optional[Pattern] = None

    def accepts(self, path: str) -> bool:
        if self.file_path_map is not None:
            return path in self.file_path_map.values()
        if self.full_path_regex is not None:
            return self.full_path_regex.search(path) is not None
        return False


@dataclass(frozen=True)
class AssetFolderInfo:
    """
    A media folder scoped globally, to a collection, or to a collection file.
    """
    collection_name: Optional[str] = None
    file_name: Optional[str] = None
    internal_path: Optional[str] = None
    public_path: Optional[str] = None
    entry_relative: bool = False
    has_template_tags: bool = False


FolderInfo = Union[EntryFolderInfo, AssetFolderInfo]


@dataclass
class FileListItem(FileDescriptor):
    """
    A classified file: `type` is one of 'entry', 'asset' or 'config'.
    """
    type: str = "entry"
    folder: Optional[FolderInfo] = None

    @classmethod
    def from_descriptor(
        cls,
        file: FileDescriptor,
        type: str,
        folder: Optional[FolderInfo] = None
    ) -> "FileListItem":
        values = {f.name: getattr(file, f.name) for f in fields(FileDescriptor)}
        return cls(type=type, folder=folder, **values)


@dataclass(frozen=True)
class FileList:
    """
    Classifier output. `all_files` is always entries, then assets, then config files.
    """
    entry_files: List[FileListItem]
    asset_files: List[FileListItem]
    config_files: List[FileListItem]

    @property
    def all_files(self) -> List[FileListItem]:
        return [*self.entry_files, *self.asset_files, *self.config_files]

    @property
    def count(self) -> int:
        return len(self.entry_files) + len(self.asset_files) + len(self.config_files)


@dataclass
class LocalizedEntry:
    """
    One locale's file of an entry.
    """
    path: str
    slug: str = ""
    content: Dict[str, Any] = field(default_factory=dict)
    sha: Optional[str] = None


@dataclass
class Entry:
    """
    One content item, backed by one or more per-locale files.
    """
    id: str
    slug: str
    locales: Dict[str, LocalizedEntry]
    sub_path: str = ""
    collection_name: Optional[str] = None
    file_name: Optional[str] = None
    commit_author: Optional[CommitAuthor] = None
    commit_date: Optional[datetime] = None


@dataclass
class Asset:
    """
    A media or document file scoped to a collection, an entry, or the whole site.
    """
    path: str
    name: str
    sha: str = ""
    size: int = 0
    kind: str = "other"
    text: Optional[str] = None
    collection_name: Optional[str] = None
    folder: Optional[AssetFolderInfo] = None
    blob_url: Optional[str] = None
    file: Any = None
    commit_author: Optional[CommitAuthor] = None
    commit_date: Optional[datetime] = None
