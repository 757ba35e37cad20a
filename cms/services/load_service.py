"""Cache-aware loading of repository files from a hosted Git backend."""

import logging
from dataclasses import replace
from typing import Dict, List

from common.blobs import get_asset_kind
from common.types import Asset, FileDescriptor, FileList, FileListItem, FileMeta
from cms.backends.base import RemoteFileSource, RepositoryInfo
from cms.classifier import classify
from cms.config import SKIP_CI_PREFIX
from cms.parser import ContentParser
from cms.registry import CollectionRegistry
from cms.repositories import CacheRow, FileCacheRepository, MetaRepository
from cms.state import RepositoryState

logger = logging.getLogger(__name__)

LAST_COMMIT_HASH_KEY = "last_commit_hash"
GIT_CONFIG_FETCHED_KEY = "git_config_fetched"


def restore_cached_file_data(all_files: List[FileListItem], cached_files: Dict[str, CacheRow]) -> List[FileListItem]:
    """
    Fill in size, text and commit info from the cache for files whose SHA is unchanged.
    """
    restored = []

    for file in all_files:
        cached = cached_files.get(file.path)
        if cached is not None and cached.sha == file.sha:
            file = replace(file, size=cached.size, text=cached.text, meta=cached.meta)
        restored.append(file)

    return restored


def apply_fetched_file_data(file: FileListItem, fetched: Dict[str, CacheRow]) -> FileListItem:
    """Fill in what the file list did not carry from freshly downloaded data."""
    row = fetched.get(file.path)

    if row is None:
        return file

    return replace(
        file,
        size=file.size or row.size,
        text=file.text if file.text is not None else row.text,
        meta=file.meta or row.meta,
    )


def parse_asset_files(asset_files: List[FileListItem]) -> List[Asset]:
    assets = []

    for file in asset_files:
        meta = file.meta or FileMeta()
        assets.append(Asset(
            path=file.path,
            name=file.name,
            sha=file.sha,
            size=file.size,
            kind=get_asset_kind(file.name),
            text=file.text,
            collection_name=getattr(file.folder, "collection_name", None),
            folder=file.folder,
            commit_author=meta.commit_author,
            commit_date=meta.commit_date,
        ))

    return assets


class LoadService:
    """
    Loads a hosted repository: lists its files, restores unchanged ones from the cache,
    downloads the rest, parses entries and replaces the repository snapshot.
    """

    def __init__(
        self,
        source: RemoteFileSource,
        repository: RepositoryInfo,
        registry: CollectionRegistry,
        parser: ContentParser
    ):
        self.source = source
        self.repository = repository
        self.registry = registry
        self.parser = parser
        self.cache = FileCacheRepository(repository.database_name)
        self.meta = MetaRepository(repository.database_name)
        self.last_commit_published = True

    async def get_file_list(self, last_hash: str, cached_files: Dict[str, CacheRow]) -> FileList:
        """
        Classify the repository's files, reusing the cached listing when the last commit
        is unchanged (and the cache is not empty).
        """
        cached_hash = self.meta.get(LAST_COMMIT_HASH_KEY)
        git_config_fetched = self.meta.get(GIT_CONFIG_FETCHED_KEY)

        if cached_hash and cached_hash == last_hash and git_config_fetched and cached_files:
            logger.info(f"Reusing cached file list [commit={last_hash}, files={len(cached_files)}]")
            files = [
                FileDescriptor(
                    path=path,
                    name=path.rsplit("/", 1)[-1],
                    sha=row.sha or "",
                    size=row.size,
                    text=row.text,
                    meta=row.meta,
                )
                for path, row in cached_files.items()
            ]
            return classify(files, self.registry, self.parser.is_index_file)

        file_list = classify(await self.source.fetch_file_list(last_hash), self.registry, self.parser.is_index_file)

        self.meta.set(LAST_COMMIT_HASH_KEY, last_hash)
        self.meta.set(GIT_CONFIG_FETCHED_KEY, True)

        return file_list

    async def fetch_and_parse_files(self, state: RepositoryState) -> None:
        cached_files = self.cache.get_all()
        last_commit = await self.source.fetch_last_commit()
        file_list = await self.get_file_list(last_commit.hash, cached_files)

        self.last_commit_published = not last_commit.message.startswith(SKIP_CI_PREFIX)

        if not file_list.count:
            state.replace_snapshot([], [], [])
            return

        all_files = restore_cached_file_data(file_list.all_files, cached_files)
        restored = {file.path: file for file in all_files}
        fetching_files = [file for file in all_files if file.meta is None]
        fetched = await self.source.fetch_file_contents(fetching_files) if fetching_files else {}

        logger.info(
            f"Fetched repository files [commit={last_commit.hash}, cached={len(all_files) - len(fetching_files)}, "
            f"fetched={len(fetching_files)}]"
        )

        def complete(files: List[FileListItem]) -> List[FileListItem]:
            return [apply_fetched_file_data(restored[f.path], fetched) for f in files]

        prepared = await self.parser.prepare_entries(complete(file_list.entry_files))

        state.replace_snapshot(
            prepared.entries,
            parse_asset_files(complete(file_list.asset_files)),
            complete(file_list.config_files),
            prepared.errors,
        )

        self.update_cache(all_files, cached_files, fetched)

    def update_cache(
        self,
        all_files: List[FileListItem],
        cached_files: Dict[str, CacheRow],
        fetched: Dict[str, CacheRow]
    ) -> None:
        """Save newly downloaded files and drop rows for paths no longer listed."""
        used_paths = {file.path for file in all_files}
        unused_paths = [path for path in cached_files if path not in used_paths]

        if fetched:
            self.cache.set_all(fetched)

        if unused_paths:
            self.cache.delete_many(unused_paths)
