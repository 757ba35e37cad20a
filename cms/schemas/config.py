"""Pydantic schemas for the site configuration (collections, media folders, i18n)."""

import json
from pathlib import Path
from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator

from common.constants import DEFAULT_INDEX_FILE_NAME
from cms.exceptions import InvalidSiteConfigError


class I18nConfig(BaseModel):
    """Internationalization options, set globally and overridable per collection/file."""
    model_config = ConfigDict(extra="ignore")

    structure: Optional[str] = None
    locales: Optional[List[str]] = None
    default_locale: Optional[str] = None
    omit_default_locale_from_file_path: Optional[bool] = Field(
        default=None,
        validation_alias=AliasChoices(
            "omit_default_locale_from_file_path",
            "omit_default_locale_from_filename",
        ),
    )


class IndexFileConfig(BaseModel):
    """Hugo-style index file inclusion for a folder collection."""
    name: str = DEFAULT_INDEX_FILE_NAME


class BackendConfig(BaseModel):
    """Backend selection."""
    model_config = ConfigDict(extra="allow")

    name: str = "local"
    repo: Optional[str] = None
    branch: Optional[str] = None


class CollectionFileConfig(BaseModel):
    """One file of a file collection."""
    model_config = ConfigDict(extra="allow")

    name: str
    file: str
    label: Optional[str] = None
    format: Optional[str] = None
    frontmatter_delimiter: Optional[Union[str, List[str]]] = None
    media_folder: Optional[str] = None
    public_folder: Optional[str] = None
    i18n: Optional[Union[bool, I18nConfig]] = None


class CollectionConfig(BaseModel):
    """A folder collection (`folder`) or a file collection (`files`)."""
    model_config = ConfigDict(extra="allow")

    name: str
    label: Optional[str] = None
    folder: Optional[str] = None
    files: Optional[List[CollectionFileConfig]] = None
    path: Optional[str] = None
    extension: Optional[str] = None
    format: Optional[str] = None
    frontmatter_delimiter: Optional[Union[str, List[str]]] = None
    media_folder: Optional[str] = None
    public_folder: Optional[str] = None
    i18n: Optional[Union[bool, I18nConfig]] = None
    index_file: Optional[Union[bool, IndexFileConfig]] = None
    hide: bool = False

    @model_validator(mode="after")
    def check_folder_or_files(self) -> "CollectionConfig":
        if (self.folder is None) == (self.files is None):
            raise ValueError(f"Collection '{self.name}' must define exactly one of 'folder' or 'files'")
        return self

    @property
    def is_entry_collection(self) -> bool:
        return self.folder is not None

    @property
    def index_file_name(self) -> Optional[str]:
        if self.index_file is True:
            return IndexFileConfig().name
        if isinstance(self.index_file, IndexFileConfig):
            return self.index_file.name
        return None


class SiteConfig(BaseModel):
    """Top-level site configuration."""
    model_config = ConfigDict(extra="allow")

    backend: BackendConfig = Field(default_factory=BackendConfig)
    media_folder: Optional[str] = None
    public_folder: Optional[str] = None
    collections: List[CollectionConfig] = Field(default_factory=list)
    singletons: Optional[List[CollectionFileConfig]] = None
    i18n: Optional[I18nConfig] = None

    @classmethod
    def from_file(cls, config_path: Path) -> "SiteConfig":
        """
        Load and validate a JSON site configuration file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Validated SiteConfig

        Raises:
            InvalidSiteConfigError: If the file cannot be read or fails validation
        """
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidSiteConfigError(f"Cannot read site configuration {config_path}: {e}") from e

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise InvalidSiteConfigError(f"Invalid site configuration {config_path}: {e}") from e
