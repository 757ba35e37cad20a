"""Backend service reading and writing a Git working tree on the local disk."""

from pathlib import Path
from typing import List, Optional

from common.logging_config import get_logger, setup_logging
from cms.backends.base import RepositoryInfo
from cms.exceptions import NotARepositoryError
from cms.parser import ContentParser
from cms.registry import CollectionRegistry
from cms.schemas.changes import CommitOptions, CommitResults, FileChange
from cms.state import RepositoryState
from localfs.files import load_files, save_changes
from localfs.handles import DirectoryHandle

logger = get_logger(__name__)

LOGGED_PACKAGES = ("cms", "localfs")


class LocalBackendService:
    """
    Local repository backend. There is no real sign-in: signing in selects the root
    directory, which must be a Git repository root.

    Without a root directory, loads only mark data as loaded and saves keep their
    results in memory.
    """

    name = "local"
    label = "Local Repository"
    is_git = False

    def __init__(
        self,
        registry: CollectionRegistry,
        parser: ContentParser,
        repository: Optional[RepositoryInfo] = None
    ):
        self.registry = registry
        self.parser = parser
        self.repository = repository or RepositoryInfo(service=self.name, database_name="local", label=self.label)
        self.root: Optional[DirectoryHandle] = None

    def sign_in(self, root_dir: Path) -> None:
        """
        Select the repository root directory and tag the package loggers with the
        repository.

        Raises:
            NotARepositoryError: If the directory has no `.git` directory or worktree file
        """
        root_dir = Path(root_dir)

        if not (root_dir / ".git").exists():
            raise NotARepositoryError(f"{root_dir} is not the root of a Git repository")

        for component in LOGGED_PACKAGES:
            setup_logging(component, repository=self.repository.database_name)

        self.root = DirectoryHandle(root_dir)
        logger.info(f"Signed in to local repository [root={root_dir}]")

    def sign_out(self) -> None:
        self.root = None

    async def fetch_files(self, state: RepositoryState) -> None:
        if self.root is None:
            logger.warning("No local root directory selected, nothing to load")
            state.replace_snapshot([], [], [])
            return

        await load_files(self.root, self.registry, self.parser, state)

    async def commit_changes(
        self,
        changes: List[FileChange],
        options: Optional[CommitOptions] = None
    ) -> CommitResults:
        return await save_changes(self.root, changes)
