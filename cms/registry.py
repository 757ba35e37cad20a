"""Collection registry: entry and asset folders derived from the site configuration."""

import re
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Tuple

from common.constants import DEFAULT_LOCALE_KEY
from common.logging_config import get_logger
from common.types import AssetFolderInfo, EntryFolderInfo
from cms.file_config import FileConfig, get_file_config, strip_slashes
from cms.i18n import I18nOptions, get_locale_path, normalize_i18n_config
from cms.schemas.config import CollectionConfig, CollectionFileConfig, SiteConfig

logger = get_logger(__name__)

SINGLETONS_COLLECTION_NAME = "_singletons"

TEMPLATE_TAG_REGEX = re.compile(r"\{\{.+?\}\}")


def _has_global_tags(folder: str) -> bool:
    return "{{media_folder}}" in folder or "{{public_folder}}" in folder


def _replace_global_tags(folder: str, global_media_folder: str, global_public_folder: str) -> str:
    # The result gets a leading slash so it is never treated as entry-relative
    return (
        folder.strip()
        .replace("{{media_folder}}", f"/{global_media_folder}", 1)
        .replace("{{public_folder}}", f"/{global_public_folder}", 1)
        .replace("//", "/", 1)
    )


def normalize_asset_folder(
    collection_name: Optional[str],
    media_folder: str,
    public_folder: Optional[str],
    base_folder: Optional[str],
    global_folders: Optional[Tuple[str, str]],
    file_name: Optional[str] = None
) -> Optional[AssetFolderInfo]:
    """
    Normalize a collection or collection file media folder.

    A media folder without a leading slash is entry-relative: its internal path is the
    collection's base folder. `{{media_folder}}`/`{{public_folder}}` tags are resolved
    from the global folders and make the folder absolute.

    Returns:
        AssetFolderInfo, or None when tags are used without global folders configured
    """
    if _has_global_tags(media_folder):
        if global_folders is None:
            return None
        media_folder = _replace_global_tags(media_folder, *global_folders)

    if public_folder is None:
        public_folder = media_folder
    elif _has_global_tags(public_folder):
        if global_folders is None:
            return None
        public_folder = _replace_global_tags(public_folder, *global_folders)

    entry_relative = not media_folder.startswith("/")

    if public_folder == "" or public_folder[:1] in (".", "@"):
        public_path = public_folder
    else:
        public_path = f"/{strip_slashes(public_folder)}"

    return AssetFolderInfo(
        collection_name=collection_name,
        file_name=file_name,
        internal_path=strip_slashes((base_folder or "") if entry_relative else media_folder),
        public_path=public_path,
        entry_relative=entry_relative,
        has_template_tags=TEMPLATE_TAG_REGEX.search(media_folder) is not None,
    )


class CollectionRegistry:
    """
    Resolves which collection a repository path belongs to.

    Entry folders are kept in a fixed order: folder collections sorted by folder path,
    then collection files sorted by path, then singletons. Asset folders start with the
    catch-all folder, then the global media folder, then collection folders sorted by
    internal path.
    """

    def __init__(
        self,
        site_config: SiteConfig,
        entry_folders: List[EntryFolderInfo],
        asset_folders: List[AssetFolderInfo],
        file_configs: Dict[Tuple[str, Optional[str]], FileConfig],
        i18n_options: Dict[Tuple[str, Optional[str]], I18nOptions]
    ):
        self.site_config = site_config
        self.entry_folders = entry_folders
        self.asset_folders = asset_folders
        self._file_configs = file_configs
        self._i18n_options = i18n_options

    @classmethod
    def from_config(cls, site_config: SiteConfig) -> "CollectionRegistry":
        file_configs: Dict[Tuple[str, Optional[str]], FileConfig] = {}
        i18n_options: Dict[Tuple[str, Optional[str]], I18nOptions] = {}
        folder_collections: List[EntryFolderInfo] = []
        collection_files: List[EntryFolderInfo] = []
        singleton_files: List[EntryFolderInfo] = []

        for collection in site_config.collections:
            if collection.is_entry_collection:
                i18n = normalize_i18n_config(site_config, collection)
                file_config = get_file_config(collection, i18n)
                file_configs[(collection.name, None)] = file_config
                i18n_options[(collection.name, None)] = i18n
                folder_collections.append(cls._build_folder_collection_info(collection, i18n, file_config))
            else:
                for file in collection.files:
                    collection_files.append(
                        cls._register_collection_file(site_config, collection, file, file_configs, i18n_options)
                    )

        if site_config.singletons:
            singletons = CollectionConfig(
                name=SINGLETONS_COLLECTION_NAME,
                files=site_config.singletons,
                i18n=True,
            )
            for file in singletons.files:
                singleton_files.append(
                    cls._register_collection_file(site_config, singletons, file, file_configs, i18n_options)
                )

        folder_collections.sort(key=lambda f: f.folder_path or "")
        collection_files.sort(key=cls._first_file_path)
        singleton_files.sort(key=cls._first_file_path)

        entry_folders = [*folder_collections, *collection_files, *singleton_files]
        asset_folders = cls._build_asset_folders(site_config)

        logger.info(
            f"Built collection registry [entry_folders={len(entry_folders)}, asset_folders={len(asset_folders)}]"
        )

        return cls(site_config, entry_folders, asset_folders, file_configs, i18n_options)

    @staticmethod
    def _first_file_path(folder: EntryFolderInfo) -> str:
        return next(iter((folder.file_path_map or {}).values()), "")

    @staticmethod
    def _build_folder_collection_info(
        collection: CollectionConfig,
        i18n: I18nOptions,
        file_config: FileConfig
    ) -> EntryFolderInfo:
        folder_path = strip_slashes(collection.folder)
        return EntryFolderInfo(
            collection_name=collection.name,
            folder_path=folder_path,
            folder_path_map={
                locale: f"{locale}/{folder_path}" if i18n.root_multi_folder else folder_path
                for locale in i18n.all_locales
            },
            full_path_regex=file_config.full_path_regex,
        )

    @staticmethod
    def _register_collection_file(
        site_config: SiteConfig,
        collection: CollectionConfig,
        file: CollectionFileConfig,
        file_configs: Dict[Tuple[str, Optional[str]], FileConfig],
        i18n_options: Dict[Tuple[str, Optional[str]], I18nOptions]
    ) -> EntryFolderInfo:
        i18n = normalize_i18n_config(site_config, collection, file)
        file_configs[(collection.name, file.name)] = get_file_config(collection, i18n, file)
        i18n_options[(collection.name, file.name)] = i18n

        path = strip_slashes(file.file)

        if "{{locale}}" not in path:
            file_path_map = {DEFAULT_LOCALE_KEY: path}
        else:
            file_path_map = {locale: get_locale_path(i18n, locale, path) for locale in i18n.all_locales}

        return EntryFolderInfo(
            collection_name=collection.name,
            file_name=file.name,
            file_path_map=file_path_map,
        )

    @staticmethod
    def _build_asset_folders(site_config: SiteConfig) -> List[AssetFolderInfo]:
        raw_media_folder = site_config.media_folder
        global_configured = bool(raw_media_folder)
        global_folders: Optional[Tuple[str, str]] = None
        global_asset_folder: Optional[AssetFolderInfo] = None

        if global_configured:
            global_media_folder = strip_slashes(raw_media_folder)
            if global_media_folder == ".":
                global_media_folder = ""
            if site_config.public_folder:
                global_public_folder = f"/{strip_slashes(site_config.public_folder)}"
                if global_public_folder.startswith("/@"):
                    global_public_folder = global_public_folder[1:]
            else:
                global_public_folder = f"/{global_media_folder}"
            global_folders = (global_media_folder, global_public_folder)
            global_asset_folder = AssetFolderInfo(
                internal_path=global_media_folder,
                public_path=global_public_folder,
            )

        collection_folders: List[AssetFolderInfo] = []

        def add_folder_if_needed(
            collection_name: str,
            media_folder: Optional[str],
            public_folder: Optional[str],
            base_folder: Optional[str],
            file_name: Optional[str] = None
        ) -> None:
            if media_folder is None:
                return
            folder = normalize_asset_folder(
                collection_name, media_folder, public_folder, base_folder, global_folders, file_name
            )
            if folder is None:
                return
            if (
                global_folders is not None
                and not folder.entry_relative
                and folder.internal_path == global_folders[0]
                and folder.public_path == global_folders[1]
            ):
                return
            collection_folders.append(folder)

        def add_file_folders(collection_name: str, files: List[CollectionFileConfig]) -> None:
            for file in files:
                parent = str(PurePosixPath(strip_slashes(file.file)).parent)
                add_folder_if_needed(
                    collection_name,
                    file.media_folder,
                    file.public_folder,
                    "" if parent == "." else parent,
                    file_name=file.name,
                )

        for collection in site_config.collections:
            media_folder = collection.media_folder
            # An entry collection with a `path` keeps its media next to the entries by default
            if media_folder is None and collection.path is not None:
                media_folder = ""
            add_folder_if_needed(collection.name, media_folder, collection.public_folder, collection.folder)
            if collection.files:
                add_file_folders(collection.name, collection.files)

        if site_config.singletons:
            add_file_folders(SINGLETONS_COLLECTION_NAME, site_config.singletons)

        collection_folders.sort(key=lambda f: f.internal_path or "")

        all_folders: List[AssetFolderInfo] = []
        if global_asset_folder is not None:
            all_folders.append(global_asset_folder)
        all_folders.extend(collection_folders)
        if all_folders:
            # Catch-all folder listing every asset
            all_folders.insert(0, AssetFolderInfo())

        return all_folders

    def get_file_config(self, collection_name: str, file_name: Optional[str] = None) -> Optional[FileConfig]:
        return self._file_configs.get((collection_name, file_name))

    def get_i18n_options(self, collection_name: str, file_name: Optional[str] = None) -> I18nOptions:
        return self._i18n_options.get((collection_name, file_name), I18nOptions())

    def get_entry_folders_by_path(self, path: str) -> List[EntryFolderInfo]:
        """
        Get the entry folders accepting a path, deepest folder path first. Callers use the
        first one; ties keep their configured order.
        """
        matches = [folder for folder in self.entry_folders if folder.accepts(path)]
        return sorted(matches, key=lambda f: f.folder_path or "", reverse=True)

    def get_asset_folders_by_path(self, path: str, match_sub_folders: bool = True) -> List[AssetFolderInfo]:
        """
        Get the asset folders a path belongs to, deepest internal path first.

        Args:
            path: Repository-relative file path
            match_sub_folders: Whether files in sub-folders of a global or collection media
                folder also match. Entry-relative folders always match by prefix

        Returns:
            Matching asset folders
        """
        file_path = PurePosixPath(path)

        # Svelte page/layout files
        if file_path.name.startswith("+"):
            return []

        dirname = str(file_path.parent)
        if dirname == ".":
            dirname = ""

        matches = []

        for folder in self.asset_folders:
            internal_path = folder.internal_path

            if internal_path is None:
                continue

            if folder.entry_relative:
                if path.startswith(f"{internal_path}/"):
                    matches.append(folder)
                continue

            normalized = TEMPLATE_TAG_REGEX.sub(".+?", internal_path)
            anchor = r"\b" if internal_path and match_sub_folders else "$"

            if re.search(f"^{normalized}{anchor}", dirname):
                matches.append(folder)

        return sorted(matches, key=lambda f: f.internal_path or "", reverse=True)

    def collect_scanning_paths(self) -> List[str]:
        """
        Get the unique, slash-stripped folder and file paths a directory scan has to cover.
        """
        paths: List[str] = []

        for folder in self.entry_folders:
            if folder.file_path_map is not None:
                paths.extend(folder.file_path_map.values())
            else:
                paths.extend((folder.folder_path_map or {}).values())

        paths.extend(f.internal_path for f in self.asset_folders if f.internal_path is not None)

        return list(dict.fromkeys(strip_slashes(path) for path in paths))
