"""File and directory handles over a user-granted local directory tree."""

import mimetypes
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Tuple, Union

from common.blobs import Blob
from common.logging_config import get_logger
from cms.exceptions import HandleTypeMismatchError

logger = get_logger(__name__)


class FileHandle:
    """
    Handle to a file. Moving or renaming keeps the same handle object pointing at the
    file's new location.
    """

    kind = "file"

    def __init__(self, path: Path):
        self._path = Path(path)

    def __repr__(self) -> str:
        return f"FileHandle({str(self._path)!r})"

    @property
    def name(self) -> str:
        return self._path.name

    @property
    def fs_path(self) -> Path:
        return self._path

    def get_size(self) -> int:
        return self._path.stat().st_size

    def read_bytes(self) -> bytes:
        return self._path.read_bytes()

    def read_text(self) -> str:
        return self._path.read_text(encoding="utf-8")

    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]:
        """Read the file in pieces of at most `chunk_size` bytes."""
        with open(self._path, "rb") as stream:
            while True:
                chunk = stream.read(chunk_size)
                if not chunk:
                    return
                yield chunk

    def get_file(self) -> Blob:
        """Read the whole file into a Blob typed from its name."""
        media_type = mimetypes.guess_type(self.name)[0] or "application/octet-stream"
        return Blob(self.read_bytes(), media_type, self.name)

    @contextmanager
    def writable(self) -> Iterator[BinaryIO]:
        """
        Open the file for writing, truncating it. The stream is closed on every exit path.
        """
        stream = open(self._path, "wb")
        try:
            yield stream
        finally:
            stream.close()

    def move(self, destination: Union["DirectoryHandle", str], new_name: Optional[str] = None) -> None:
        """
        Move the file into another directory, or rename it in place.

        Args:
            destination: Target directory handle, or the new name when renaming
            new_name: New file name when moving into `destination`
        """
        if isinstance(destination, DirectoryHandle):
            target = destination.fs_path / (new_name or self.name)
        else:
            target = self._path.with_name(destination)

        if target == self._path:
            return

        shutil.move(str(self._path), str(target))
        logger.debug(f"Moved file [from={self._path}, to={target}]")
        self._path = target


class DirectoryHandle:
    """
    Handle to a directory.
    """

    kind = "directory"

    def __init__(self, path: Path):
        self._path = Path(path)

    def __repr__(self) -> str:
        return f"DirectoryHandle({str(self._path)!r})"

    @property
    def name(self) -> str:
        return self._path.name

    @property
    def fs_path(self) -> Path:
        return self._path

    def entries(self) -> List[Tuple[str, Union[FileHandle, "DirectoryHandle"]]]:
        """
        List the directory's children, sorted by name. Anything other than regular files
        and directories is skipped.
        """
        children = []

        for child in sorted(self._path.iterdir(), key=lambda p: p.name):
            if child.is_dir():
                children.append((child.name, DirectoryHandle(child)))
            elif child.is_file():
                children.append((child.name, FileHandle(child)))

        return children

    def keys(self) -> List[str]:
        return [name for name, _ in self.entries()]

    def get_file_handle(self, name: str, create: bool = False) -> FileHandle:
        """
        Get a child file, creating it empty when `create` is set.

        Raises:
            FileNotFoundError: If the file does not exist and `create` is not set
            HandleTypeMismatchError: If the name is taken by a directory
        """
        child = self._path / name

        if child.is_dir():
            raise HandleTypeMismatchError(f"{child} is a directory")

        if not child.exists():
            if not create:
                raise FileNotFoundError(f"No such file: {child}")
            child.touch()

        return FileHandle(child)

    def get_directory_handle(self, name: str, create: bool = False) -> "DirectoryHandle":
        """
        Get a child directory, creating it when `create` is set.

        Raises:
            FileNotFoundError: If the directory does not exist and `create` is not set
            HandleTypeMismatchError: If the name is taken by a file
        """
        child = self._path / name

        if child.exists() and not child.is_dir():
            raise HandleTypeMismatchError(f"{child} is not a directory")

        if not child.exists():
            if not create:
                raise FileNotFoundError(f"No such directory: {child}")
            child.mkdir()

        return DirectoryHandle(child)

    def remove_entry(self, name: str) -> None:
        """
        Remove a child file or empty directory.

        Raises:
            FileNotFoundError: If the child does not exist
            OSError: If the child is a non-empty directory
        """
        child = self._path / name

        if child.is_dir():
            child.rmdir()
        else:
            child.unlink()
