"""Backend services changes are committed to."""

from cms.backends.base import BackendService, LastCommit, RemoteFileSource, RepositoryInfo
from cms.backends.local import LocalBackendService

__all__ = [
    "BackendService",
    "LastCommit",
    "RemoteFileSource",
    "RepositoryInfo",
    "LocalBackendService",
]
