"""Normalized i18n options and locale-specific path resolution."""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from common.constants import DEFAULT_LOCALE_KEY
from cms.schemas.config import CollectionConfig, CollectionFileConfig, I18nConfig, SiteConfig

SINGLE_FILE = "single_file"
MULTIPLE_FILES = "multiple_files"
MULTIPLE_FOLDERS = "multiple_folders"
MULTIPLE_FOLDERS_I18N_ROOT = "multiple_folders_i18n_root"

# Newer name of the root-folder structure
STRUCTURE_ALIASES = {"multiple_root_folders": MULTIPLE_FOLDERS_I18N_ROOT}

LOCALE_SUFFIX_REGEX = re.compile(r"\.\{\{locale\}\}\.(\w+)$")


@dataclass(frozen=True)
class I18nOptions:
    """
    I18n options resolved for one collection or collection file.
    """
    enabled: bool = False
    all_locales: List[str] = field(default_factory=lambda: [DEFAULT_LOCALE_KEY])
    default_locale: str = DEFAULT_LOCALE_KEY
    structure: str = SINGLE_FILE
    omit_default_locale_from_file_path: bool = False

    @property
    def single_file(self) -> bool:
        return self.enabled and self.structure == SINGLE_FILE

    @property
    def multi_file(self) -> bool:
        return self.enabled and self.structure == MULTIPLE_FILES

    @property
    def multi_folder(self) -> bool:
        return self.enabled and self.structure == MULTIPLE_FOLDERS

    @property
    def root_multi_folder(self) -> bool:
        return self.enabled and self.structure == MULTIPLE_FOLDERS_I18N_ROOT


DEFAULT_I18N_OPTIONS = I18nOptions()


def _merge(base: I18nConfig, override: I18nConfig) -> I18nConfig:
    return base.model_copy(update=override.model_dump(exclude_none=True))


def _merge_i18n_configs(
    site_config: SiteConfig,
    collection: CollectionConfig,
    file: Optional[CollectionFileConfig] = None
) -> Optional[I18nConfig]:
    if site_config.i18n is None or not collection.i18n:
        return None

    config = site_config.i18n

    if isinstance(collection.i18n, I18nConfig):
        config = _merge(config, collection.i18n)

    if file is not None:
        if not file.i18n:
            return None
        if isinstance(file.i18n, I18nConfig):
            config = _merge(config, file.i18n)

    return config


def normalize_i18n_config(
    site_config: SiteConfig,
    collection: CollectionConfig,
    file: Optional[CollectionFileConfig] = None
) -> I18nOptions:
    """
    Resolve the i18n options of a collection or collection file.

    Site-level options apply only when the collection (and the file, if any) opts in
    with `i18n: true` or an override mapping. A collection file's structure follows
    its path: `multiple_files` when it contains `{{locale}}`, else `single_file`.

    Args:
        site_config: Validated site configuration
        collection: Collection the options are resolved for
        file: Optional collection file

    Returns:
        Normalized I18nOptions
    """
    config = _merge_i18n_configs(site_config, collection, file)

    if config is None or not config.locales:
        return DEFAULT_I18N_OPTIONS

    all_locales = list(config.locales)
    default_locale = config.default_locale if config.default_locale in all_locales else all_locales[0]

    if file is not None:
        structure = MULTIPLE_FILES if "{{locale}}" in file.file else SINGLE_FILE
    else:
        structure = config.structure or SINGLE_FILE
        structure = STRUCTURE_ALIASES.get(structure, structure)

    omit_default = bool(config.omit_default_locale_from_file_path)

    if omit_default:
        if file is not None:
            omit_default = LOCALE_SUFFIX_REGEX.search(file.file) is not None
        else:
            omit_default = structure in (MULTIPLE_FILES, MULTIPLE_FOLDERS, MULTIPLE_FOLDERS_I18N_ROOT)

    return I18nOptions(
        enabled=True,
        all_locales=all_locales,
        default_locale=default_locale,
        structure=structure,
        omit_default_locale_from_file_path=omit_default,
    )


def get_locale_path(i18n: I18nOptions, locale: str, path: str) -> str:
    """
    Replace every `{{locale}}` placeholder in a path. When the default locale is omitted
    from file paths, its `.{{locale}}.ext` suffix collapses to `.ext` first.
    """
    if i18n.omit_default_locale_from_file_path and locale == i18n.default_locale:
        path = LOCALE_SUFFIX_REGEX.sub(r".\1", path)

    return path.replace("{{locale}}", locale)
