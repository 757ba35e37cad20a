"""Scan, load and save repository files in a local directory tree."""

import asyncio
import re
import unicodedata
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import List, Optional, Pattern, Tuple, Union

from common.blobs import Blob, get_asset_kind, get_blob
from common.checksum import IncrementalGitHasher, compute_git_hash, to_bytes
from common.constants import ASSET_READ_CHUNK_SIZE, GIT_CONFIG_FILE_REGEX
from common.logging_config import get_logger
from common.types import Asset, FileDescriptor, FileHandleItem, FileListItem
from cms.classifier import classify
from cms.exceptions import PathRequiredError
from cms.file_config import escape_regex, strip_slashes
from cms.parser import ContentParser
from cms.registry import CollectionRegistry
from cms.schemas.changes import CommitResults, CommittedFile, FileChange
from cms.state import RepositoryState
from localfs.handles import DirectoryHandle, FileHandle

logger = get_logger(__name__)

TEMPLATE_TAG_REGEX = re.compile(r"\{\{.+?\}\}")


def _split_path(path: str) -> Tuple[str, str]:
    """Split a relative path into its directory ('' at the root) and file name."""
    pure = PurePosixPath(strip_slashes(path))
    dirname = str(pure.parent)
    return ("" if dirname == "." else dirname), pure.name


def get_handle_by_path(
    root: DirectoryHandle,
    path: Optional[str],
    kind: str = "file"
) -> Union[FileHandle, DirectoryHandle]:
    """
    Get a file or directory handle, creating missing directories (and the file) along
    the way.

    Args:
        root: Root directory handle
        path: Path relative to the root
        kind: 'file' or 'directory'

    Returns:
        Handle at the path; the root itself for an empty directory path

    Raises:
        PathRequiredError: If the path is empty and a file handle is requested
    """
    normalized = strip_slashes(path or "")
    handle: Union[FileHandle, DirectoryHandle] = root

    if not normalized:
        if kind == "directory":
            return handle
        raise PathRequiredError("Path is required for file handle retrieval")

    parts = normalized.split("/")
    last_index = len(parts) - 1

    for index, name in enumerate(parts):
        if index == last_index and kind == "file":
            handle = handle.get_file_handle(name, create=True)
        else:
            handle = handle.get_directory_handle(name, create=True)

    return handle


def get_file_handle(root: DirectoryHandle, path: str) -> FileHandle:
    return get_handle_by_path(root, path, "file")


def get_directory_handle(root: DirectoryHandle, path: str) -> DirectoryHandle:
    return get_handle_by_path(root, path, "directory")


def _segment_pattern(segment: str) -> str:
    literals = TEMPLATE_TAG_REGEX.split(segment)
    return ".+?".join(escape_regex(literal) for literal in literals)


def get_path_regex(path: str) -> Pattern:
    """
    Create a pattern matching a path and anything below it. Template tags such as
    `{{slug}}` match any run of characters. An empty path matches everything.
    """
    normalized = strip_slashes(path)

    if not normalized:
        return re.compile(r"^.+")

    segments = [_segment_pattern(segment) for segment in normalized.split("/")]
    return re.compile("^" + "\\/".join(segments) + "(?=/|$)")


def could_contain(dir_path: str, scanning_path: str) -> bool:
    """
    Check whether a directory is an ancestor of (or the same as) a scanning path,
    comparing segment by segment so templated segments match any directory name.
    """
    if not scanning_path:
        return True

    dir_segments = dir_path.split("/")
    scanning_segments = scanning_path.split("/")

    if len(dir_segments) > len(scanning_segments):
        return False

    return all(
        re.fullmatch(_segment_pattern(pattern), name) is not None
        for name, pattern in zip(dir_segments, scanning_segments)
    )


@dataclass
class ScanContext:
    scanning_paths: List[str]
    scanning_path_regexes: List[Pattern]
    file_handles: List[FileHandleItem] = field(default_factory=list)


def scan_dir(dir_handle: DirectoryHandle, context: ScanContext, current_path: str = "") -> None:
    """
    Walk a directory tree, collecting files under the scanning paths.

    Hidden entries are skipped except Git config files, which are always collected at
    the root. A sub-directory is entered only when it lies under a scanning path or may
    contain one. Files are collected as unopened handles.
    """
    for name, handle in dir_handle.entries():
        is_git_config = GIT_CONFIG_FILE_REGEX.search(name) is not None

        if name.startswith(".") and not is_git_config:
            continue

        path = f"{current_path}/{name}" if current_path else name
        has_matching_path = any(regex.search(path) for regex in context.scanning_path_regexes)

        if handle.kind == "file" and (has_matching_path or (is_git_config and not current_path)):
            context.file_handles.append(FileHandleItem(handle=handle, path=path))

        if handle.kind == "directory":
            if has_matching_path or any(could_contain(path, p) for p in context.scanning_paths):
                scan_dir(handle, context, path)


def get_all_files(root: DirectoryHandle, registry: CollectionRegistry) -> List[FileDescriptor]:
    """
    Scan the root directory for files the site configuration manages. Size and SHA are
    filled in later, when the files are read.
    """
    scanning_paths = registry.collect_scanning_paths()
    context = ScanContext(
        scanning_paths=scanning_paths,
        scanning_path_regexes=[get_path_regex(p) for p in scanning_paths],
    )

    scan_dir(root, context)

    logger.info(f"Scanned local repository [files={len(context.file_handles)}, scanning_paths={len(scanning_paths)}]")

    return [
        FileDescriptor(
            path=unicodedata.normalize("NFC", item.path),
            name=unicodedata.normalize("NFC", item.handle.name),
            size=0,
            sha="",
            handle=item.handle,
        )
        for item in context.file_handles
    ]


def parse_text_file_info(file_info: FileListItem) -> FileListItem:
    """
    Read an entry or config file's text. Size and SHA are not needed for these files.
    A read failure is logged and leaves the text empty.
    """
    if file_info.name == ".gitkeep":
        return file_info

    try:
        text = file_info.handle.read_text()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to read text file [path={file_info.path}]: {e}", exc_info=True)
        return replace(file_info, text="")

    return replace(file_info, text=text)


def parse_asset_file_info(file_info: FileListItem) -> Asset:
    """
    Read an asset's size and git blob SHA. A read failure is logged and leaves both
    unpopulated.
    """
    asset = Asset(
        path=file_info.path,
        name=file_info.name,
        kind=get_asset_kind(file_info.name),
        collection_name=getattr(file_info.folder, "collection_name", None),
        folder=file_info.folder,
    )

    try:
        size = file_info.handle.get_size()
        hasher = IncrementalGitHasher(size)
        for chunk in file_info.handle.iter_chunks(ASSET_READ_CHUNK_SIZE):
            hasher.update(chunk)
        sha = hasher.finalize()
    except (OSError, ValueError) as e:
        # ValueError: the file changed size while it was being read
        logger.error(f"Failed to read asset file [path={file_info.path}]: {e}", exc_info=True)
        return asset

    asset.size = size
    asset.sha = sha

    return asset


async def load_files(
    root: DirectoryHandle,
    registry: CollectionRegistry,
    parser: ContentParser,
    state: RepositoryState
) -> None:
    """
    Load every managed file and replace the repository snapshot.

    Files are read one at a time to bound the number of open handles on large trees.
    """
    file_list = classify(get_all_files(root, registry), registry, parser.is_index_file)

    entry_files = [parse_text_file_info(f) for f in file_list.entry_files]
    config_files = [parse_text_file_info(f) for f in file_list.config_files]

    prepared = await parser.prepare_entries(entry_files)

    assets = [parse_asset_file_info(f) for f in file_list.asset_files]

    state.replace_snapshot(prepared.entries, assets, config_files, prepared.errors)


def move_file(root: DirectoryHandle, previous_path: str, path: str) -> FileHandle:
    """
    Move a file to another directory, or rename it within its directory. The returned
    handle points at the new location.
    """
    dirname, basename = _split_path(path)
    previous_dirname, _ = _split_path(previous_path)
    file_handle = get_file_handle(root, previous_path)

    if dirname != previous_dirname:
        file_handle.move(get_directory_handle(root, dirname), basename)
    else:
        file_handle.move(basename)

    return file_handle


def write_file(
    root: DirectoryHandle,
    path: str,
    data: Union[str, bytes, Blob],
    file_handle: Optional[FileHandle] = None
) -> Blob:
    """
    Write data to a file, creating it when needed.

    Args:
        root: Root directory handle
        path: Path relative to the root
        data: Text, bytes or Blob to write
        file_handle: Handle to write through, set when the file was just moved

    Returns:
        Written file content
    """
    if file_handle is None:
        file_handle = get_file_handle(root, path)

    with file_handle.writable() as stream:
        stream.write(to_bytes(data))

    return file_handle.get_file()


def is_content_unchanged(file_handle: FileHandle, data: Union[str, bytes, Blob]) -> bool:
    return file_handle.read_bytes() == to_bytes(data)


def delete_empty_parent_dirs(root: DirectoryHandle, path_segments: List[str]) -> None:
    """
    Remove now-empty directories from the deepest up, stopping at the first non-empty one.
    """
    for depth in range(len(path_segments), 0, -1):
        dir_handle = get_directory_handle(root, "/".join(path_segments[:depth]))

        if dir_handle.keys():
            break

        parent_handle = get_directory_handle(root, "/".join(path_segments[:depth - 1]))
        parent_handle.remove_entry(path_segments[depth - 1])
        logger.debug(f"Removed empty directory [path={'/'.join(path_segments[:depth])}]")


def delete_file(root: DirectoryHandle, path: str) -> None:
    dirname, basename = _split_path(path)
    dir_handle = get_directory_handle(root, dirname)

    dir_handle.remove_entry(basename)

    if dirname:
        delete_empty_parent_dirs(root, dirname.split("/"))


def save_change(root: DirectoryHandle, change: FileChange) -> Optional[Blob]:
    """
    Apply one change to the file system.

    Returns:
        The created, updated or moved file's content; None for deletes and changes
        without data
    """
    file_handle = None

    if change.action == "move" and change.previous_path:
        file_handle = move_file(root, change.previous_path, change.path)

        # A pure rename: nothing to write
        if change.data is not None and is_content_unchanged(file_handle, change.data):
            return file_handle.get_file()

    if change.action in ("create", "update", "move") and change.data is not None:
        return write_file(root, change.path, change.data, file_handle=file_handle)

    if change.action == "delete":
        delete_file(root, change.path)

    return None


async def _save_change_isolated(
    root: Optional[DirectoryHandle],
    change: FileChange
) -> Optional[Tuple[str, CommittedFile]]:
    file: Optional[Blob] = None

    if root is not None:
        try:
            file = save_change(root, change)
        except Exception as e:
            logger.error(f"Failed to save file [action={change.action}, path={change.path}]: {e}", exc_info=True)

    if file is None:
        if change.data is None:
            return None
        file = get_blob(change.data, PurePosixPath(change.path).name)

    return change.path, CommittedFile(sha=compute_git_hash(file), file=file)


async def save_changes(root: Optional[DirectoryHandle], changes: List[FileChange]) -> CommitResults:
    """
    Save changes to the local file system.

    Changes are applied concurrently; one failing change is logged and falls back to
    an in-memory blob of its data without affecting the others. Without a root handle
    nothing is written and every change with data falls back to a blob.

    Args:
        root: Root directory handle, or None when access was not granted
        changes: Changes to apply

    Returns:
        CommitResults with a pseudo commit SHA (hash of the commit time) and the saved
        files with their git blob SHAs
    """
    results = await asyncio.gather(*(_save_change_isolated(root, change) for change in changes))
    now = datetime.now(timezone.utc)

    logger.info(f"Saved changes to local repository [changes={len(changes)}]")

    return CommitResults(
        sha=compute_git_hash(now.isoformat()),
        date=now,
        files=dict(item for item in results if item is not None),
    )
