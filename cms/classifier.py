"""Partition a flat repository file list into entry, asset and config files."""

from typing import Callable, Iterable, List, Optional

from common.constants import GIT_CONFIG_FILE_REGEX, INDEX_FILE_REGEX
from common.logging_config import get_logger
from common.types import (
    AssetFolderInfo,
    EntryFolderInfo,
    FileDescriptor,
    FileList,
    FileListItem,
    FolderInfo,
)
from cms.registry import CollectionRegistry

logger = get_logger(__name__)

IndexFilePredicate = Callable[[str], bool]


def is_index_file(path: str) -> bool:
    """Check whether a path is a Hugo branch bundle index file such as `_index.md`."""
    return INDEX_FILE_REGEX.search(path) is not None


def is_git_config_file(name: str) -> bool:
    return GIT_CONFIG_FILE_REGEX.search(name) is not None


def is_hidden_file(path: str) -> bool:
    return path.rsplit("/", 1)[-1].startswith(".")


def file_type_of(folder: FolderInfo) -> str:
    """Map a folder info to the file type it assigns."""
    if isinstance(folder, EntryFolderInfo):
        return "entry"
    if isinstance(folder, AssetFolderInfo):
        return "asset"
    raise TypeError(f"Unknown folder info type: {type(folder).__name__}")


def classify(
    files: Iterable[FileDescriptor],
    registry: CollectionRegistry,
    index_file_predicate: Optional[IndexFilePredicate] = None
) -> FileList:
    """
    Classify repository files.

    Dot-files are kept only when they are Git config files (`.gitattributes`,
    `.gitignore`, `.gitkeep`). A file accepted by an entry folder is an entry and never
    an asset; index files are never assets either. Files matching no folder are left
    out.

    Args:
        files: Repository files, in any order
        registry: Collection registry providing the entry and asset folders
        index_file_predicate: Content parser's index file test; defaults to the Hugo one

    Returns:
        FileList with entries, then assets, then config files
    """
    predicate = index_file_predicate or is_index_file
    entry_files: List[FileListItem] = []
    asset_files: List[FileListItem] = []
    config_files: List[FileListItem] = []
    entry_paths = set()

    for file in files:
        path = file.path

        if is_hidden_file(path):
            if is_git_config_file(path):
                config_files.append(FileListItem.from_descriptor(file, "config"))
            continue

        entry_folder = next(iter(registry.get_entry_folders_by_path(path)), None)
        asset_folder = next(iter(registry.get_asset_folders_by_path(path, match_sub_folders=True)), None)

        if entry_folder is not None:
            entry_files.append(FileListItem.from_descriptor(file, file_type_of(entry_folder), entry_folder))
            entry_paths.add(path)

        if asset_folder is not None and path not in entry_paths and not predicate(path):
            asset_files.append(FileListItem.from_descriptor(file, file_type_of(asset_folder), asset_folder))

    file_list = FileList(entry_files=entry_files, asset_files=asset_files, config_files=config_files)

    logger.debug(
        f"Classified files [entries={len(entry_files)}, assets={len(asset_files)}, configs={len(config_files)}]"
    )

    return file_list
