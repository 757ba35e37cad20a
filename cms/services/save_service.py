"""Save orchestration: commit change-sets, then reconcile the cache and the snapshot."""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Set

from common.blobs import BlobStore
from common.checksum import to_bytes
from common.types import Asset, CommitAuthor, Entry, FileMeta
from cms.backends.base import BackendService
from cms.config import DEV_MODE_ENABLED
from cms.exceptions import BackendNotConfiguredError
from cms.repositories import CacheRow, FileCacheRepository
from cms.schemas.changes import CommitOptions, CommitResults, FileChange
from cms.state import RepositoryState

logger = logging.getLogger(__name__)


@dataclass
class User:
    """Signed-in user, as reported by the backend's sign-in flow."""
    name: Optional[str] = None
    email: Optional[str] = None
    id: Optional[str] = None
    login: Optional[str] = None


@dataclass
class ChangeResults:
    commit: CommitResults
    saved_entries: List[Entry]
    saved_assets: List[Asset]


def get_commit_author(user: Optional[User]) -> Optional[CommitAuthor]:
    """
    Get the commit author from the signed-in user. Both name and email are required;
    local backends have neither.
    """
    if user is None or not user.name or not user.email:
        return None

    return CommitAuthor(name=user.name, email=user.email, id=user.id, login=user.login)


def build_delete_changes(
    entries: Iterable[Entry],
    assets: Iterable[Asset] = (),
    cache: Optional[FileCacheRepository] = None
) -> List[FileChange]:
    """
    Build the delete change-set for entries and their assets.

    Locale paths shared by several locales (single file i18n) produce one change. Each
    change carries the best known SHA as `previous_sha`: the cached one, else the one
    the entry or asset holds.
    """
    changes: List[FileChange] = []
    seen_paths: Set[str] = set()

    for entry in entries:
        for localized in entry.locales.values():
            if localized.path in seen_paths:
                continue
            seen_paths.add(localized.path)

            cached = cache.get(localized.path) if cache is not None else None
            previous_sha = cached.sha if cached is not None and cached.sha else localized.sha

            changes.append(FileChange(
                action="delete",
                path=localized.path,
                slug=entry.slug,
                previous_sha=previous_sha,
            ))

    for asset in assets:
        if asset.path in seen_paths:
            continue
        seen_paths.add(asset.path)
        changes.append(FileChange(action="delete", path=asset.path, previous_sha=asset.sha or None))

    return changes


class SaveService:
    """
    Commits change-sets through the selected backend service.

    The cache and the in-memory snapshot are only touched once the backend has
    acknowledged a commit; a failing commit propagates and leaves both as they were.
    """

    def __init__(
        self,
        backend: Optional[BackendService],
        state: RepositoryState,
        user: Optional[User] = None,
        blob_store: Optional[BlobStore] = None
    ):
        self.backend = backend
        self.state = state
        self.user = user
        self.blob_store = blob_store if blob_store is not None else BlobStore()
        self._cache: Optional[FileCacheRepository] = None

    @property
    def cache(self) -> Optional[FileCacheRepository]:
        if self.backend is None or not self.backend.repository.database_name:
            return None

        if self._cache is None or self._cache.database_name != self.backend.repository.database_name:
            self._cache = FileCacheRepository(self.backend.repository.database_name)

        return self._cache

    def _require_backend(self) -> BackendService:
        if self.backend is None:
            raise BackendNotConfiguredError("No backend service selected")
        return self.backend

    async def save_changes(
        self,
        changes: List[FileChange],
        options: Optional[CommitOptions] = None,
        saving_entries: Optional[List[Entry]] = None,
        saving_assets: Optional[List[Asset]] = None
    ) -> ChangeResults:
        """
        Commit changes, then update the cache and the entry/asset snapshot.

        Args:
            changes: File changes to commit
            options: Commit options (commit type, collection)
            saving_entries: Entries being saved by these changes
            saving_assets: Assets being saved by these changes

        Returns:
            ChangeResults with the commit and the saved entries/assets stamped with the
            commit author and date

        Raises:
            BackendNotConfiguredError: If no backend is selected
            Exception: Whatever the backend raises when the commit fails
        """
        backend = self._require_backend()
        options = options or CommitOptions()
        saving_entries = saving_entries or []
        saving_assets = saving_assets or []

        commit = await backend.commit_changes(changes, options)
        commit = commit.model_copy(update={"author": commit.author or get_commit_author(self.user)})

        if DEV_MODE_ENABLED:
            logger.debug(f"Commit changes: {[c.model_dump(exclude={'data'}, by_alias=True) for c in changes]}")
            logger.debug(f"Commit results: {commit.model_dump(exclude={'files'}, by_alias=True)}")

        saved_entries = [
            replace(entry, commit_author=commit.author, commit_date=commit.date)
            for entry in saving_entries
        ]

        saved_assets = []
        for asset in saving_assets:
            committed = commit.files.get(asset.path)
            blob_url = None
            if committed is not None and committed.file is not None:
                blob_url = self.blob_store.create_object_url(committed.file)
            saved_assets.append(replace(
                asset,
                sha=committed.sha if committed is not None else asset.sha,
                file=committed.file if committed is not None else asset.file,
                blob_url=blob_url,
                commit_author=commit.author,
                commit_date=commit.date,
            ))

        self.update_cache(changes, commit)
        self.update_stores(changes, saved_entries, saved_assets)

        logger.info(
            f"Committed changes [commit={commit.sha}, changes={len(changes)}, "
            f"entries={len(saved_entries)}, assets={len(saved_assets)}]"
        )

        return ChangeResults(commit=commit, saved_entries=saved_entries, saved_assets=saved_assets)

    def update_cache(self, changes: List[FileChange], commit: CommitResults) -> None:
        """
        Reconcile cached entry files with a commit. Only entry changes (those with a
        slug) are cached: a delete removes the row, a move removes the previous path's
        row even without data, and text data is stored at the (new) path with the
        committed SHA.
        """
        cache = self.cache

        if cache is None:
            return

        meta = FileMeta(commit_author=commit.author, commit_date=commit.date)
        upserts: Dict[str, CacheRow] = {}
        removals: List[str] = []

        for change in changes:
            if not change.slug:
                continue

            if change.action == "delete":
                removals.append(change.path)
                continue

            if change.action == "move" and change.previous_path:
                removals.append(change.previous_path)

            if not change.is_text_change:
                continue

            committed = commit.files.get(change.path)
            upserts[change.path] = CacheRow(
                sha=committed.sha if committed is not None else None,
                size=len(to_bytes(change.data)),
                text=change.data,
                meta=meta,
            )

        # A path removed and rewritten in the same batch keeps its new row
        removals = [path for path in removals if path not in upserts]

        if removals:
            cache.delete_many(removals)
        if upserts:
            cache.set_all(upserts)

    def update_stores(
        self,
        changes: List[FileChange],
        saved_entries: List[Entry],
        saved_assets: List[Asset]
    ) -> None:
        """
        Replace saved entries and assets in the snapshot. Saved items move to the end;
        others keep their order. Entries with a file deleted by the batch are dropped, as
        are assets whose path was saved, moved away from or deleted. Object URLs of
        dropped assets are revoked.
        """
        saved_entry_ids = {entry.id for entry in saved_entries}
        deleted_paths = {c.path for c in changes if c.action == "delete"}
        moved_from_paths = {c.previous_path for c in changes if c.action == "move" and c.previous_path}

        self.state.entries = [
            *[
                entry for entry in self.state.entries
                if entry.id not in saved_entry_ids
                and not any(loc.path in deleted_paths for loc in entry.locales.values())
            ],
            *saved_entries,
        ]

        excluding_paths = {asset.path for asset in saved_assets} | moved_from_paths | deleted_paths
        kept_assets = []

        for asset in self.state.assets:
            if asset.path in excluding_paths:
                self._revoke_blob_url(asset)
            else:
                kept_assets.append(asset)

        self.state.assets = [*kept_assets, *saved_assets]

    def _revoke_blob_url(self, asset: Asset) -> None:
        if asset.blob_url:
            self.blob_store.revoke_object_url(asset.blob_url)

    async def delete_entries(
        self,
        entries: List[Entry],
        assets: Optional[List[Asset]] = None,
        collection: Optional[str] = None
    ) -> CommitResults:
        """
        Delete entries and their associated assets in one commit.

        Args:
            entries: Entries to delete
            assets: Assets to delete along with them
            collection: Name of the collection the entries belong to

        Returns:
            CommitResults from the backend
        """
        backend = self._require_backend()
        assets = assets or []
        changes = build_delete_changes(entries, assets, self.cache)

        commit = await backend.commit_changes(
            changes,
            CommitOptions(commit_type="delete", collection=collection),
        )

        self.update_cache(changes, commit)

        deleted_ids = {entry.id for entry in entries}
        deleted_asset_paths = {asset.path for asset in assets}

        self.state.entries = [e for e in self.state.entries if e.id not in deleted_ids]

        if deleted_asset_paths:
            for asset in self.state.assets:
                if asset.path in deleted_asset_paths:
                    self._revoke_blob_url(asset)
            self.state.assets = [a for a in self.state.assets if a.path not in deleted_asset_paths]

        logger.info(f"Deleted entries [commit={commit.sha}, entries={len(entries)}, assets={len(assets)}]")

        return commit
