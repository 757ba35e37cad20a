"""Compile collection path templates and i18n options into entry path patterns."""

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Pattern, Tuple, Union

from common.constants import DEFAULT_FILE_EXTENSION, MARKDOWN_EXTENSIONS
from common.logging_config import get_logger
from cms.i18n import I18nOptions, get_locale_path
from cms.schemas.config import CollectionConfig, CollectionFileConfig

logger = get_logger(__name__)

REGEX_SPECIAL_CHARS = re.compile(r"[.*+?^${}()|[\]\\/]")
TEMPLATE_TAG_REGEX = re.compile(r"\{\{.+?\}\}")
PATH_SEGMENT_WILDCARD = "[^/]+?"


@dataclass(frozen=True)
class CustomFileFormat:
    """
    A developer-registered file format and the extension it is saved with.
    """
    extension: str


custom_file_format_registry: Dict[str, CustomFileFormat] = {}


@dataclass(frozen=True)
class FileConfig:
    """
    Compiled description of where one collection's (or collection file's) content lives.
    """
    extension: str
    format: str
    base_path: Optional[str] = None
    sub_path: Optional[str] = None
    full_path_regex: Optional[Pattern] = None
    full_path: Optional[str] = None
    fm_delimiters: Optional[Tuple[str, str]] = None


def strip_slashes(path: str) -> str:
    return path.strip("/")


def escape_regex(text: str) -> str:
    """Escape regex-special characters, `/` included."""
    return REGEX_SPECIAL_CHARS.sub(lambda m: "\\" + m.group(0), text)


def detect_file_extension(extension: Optional[str] = None, format: Optional[str] = None) -> str:
    """
    Determine the file extension from the configured extension and format.

    Args:
        extension: Configured file extension
        format: Configured file format

    Returns:
        Extension without a leading dot
    """
    custom_format = custom_file_format_registry.get(format) if format else None

    if custom_format is not None and custom_format.extension:
        return custom_format.extension

    if extension:
        return extension

    if format in ("yaml", "yml"):
        return "yml"

    if format in ("toml", "json"):
        return format

    return DEFAULT_FILE_EXTENSION


def detect_file_format(extension: str, format: Optional[str] = None) -> str:
    """
    Determine the file format from the configured format and the extension.

    Args:
        extension: File extension
        format: Configured file format; wins when set

    Returns:
        Format name
    """
    if format:
        return format

    if extension in ("yaml", "yml"):
        return "yaml"

    if extension in ("toml", "json"):
        return extension

    if extension in MARKDOWN_EXTENSIONS:
        return "frontmatter"

    return "yaml-frontmatter"


def _compile_template(template: str) -> str:
    literals = TEMPLATE_TAG_REGEX.split(template)
    return PATH_SEGMENT_WILDCARD.join(escape_regex(literal) for literal in literals)


def get_entry_path_regex(
    extension: str,
    format: str,
    base_path: str,
    i18n: I18nOptions,
    sub_path: Optional[str] = None,
    index_file_name: Optional[str] = None
) -> Pattern:
    """
    Build an anchored pattern matching the entry files of a folder collection.

    The pattern always has a `subPath` group. A `locale` group is added when the i18n
    structure puts the locale in the file name or in a folder. With the default locale
    omitted from file paths, the locale part becomes optional and only lists the other
    locales.

    Args:
        extension: File extension (format only matters through custom formats)
        format: File format
        base_path: Collection folder without surrounding slashes; may be empty
        i18n: Resolved i18n options
        sub_path: Optional `path` template such as `{{year}}/{{slug}}`
        index_file_name: Optional index file name (e.g. `_index`) matched as an alternative

    Returns:
        Compiled regular expression
    """
    if sub_path:
        sub_path_matcher = _compile_template(sub_path)
        if index_file_name:
            sub_path_matcher += f"|{escape_regex(index_file_name)}"
    else:
        sub_path_matcher = PATH_SEGMENT_WILDCARD

    omit_default = i18n.omit_default_locale_from_file_path
    other_locales = [locale for locale in i18n.all_locales if locale != i18n.default_locale]
    locale_matcher = f"(?P<locale>{'|'.join(i18n.all_locales)})"
    optional_locale_matcher = f"(?P<locale>{'|'.join(other_locales)})"

    def folder_locale() -> str:
        if omit_default:
            return f"(?:{optional_locale_matcher}\\/)?" if other_locales else ""
        return f"{locale_matcher}\\/"

    parts = ["^"]

    if i18n.root_multi_folder:
        parts.append(folder_locale())

    if base_path:
        parts.append(f"{escape_regex(base_path)}\\/")

    if i18n.multi_folder:
        parts.append(folder_locale())

    parts.append(f"(?P<subPath>{sub_path_matcher})")

    if i18n.multi_file:
        if omit_default:
            if other_locales:
                parts.append(f"(?:\\.{optional_locale_matcher})?")
        else:
            parts.append(f"\\.{locale_matcher}")

    parts.append(f"\\.{escape_regex(detect_file_extension(extension, format))}$")

    return re.compile("".join(parts))


def get_frontmatter_delimiters(
    format: str,
    delimiter: Optional[Union[str, List[str]]] = None
) -> Optional[Tuple[str, str]]:
    """
    Determine the front matter delimiters. `None` lets the parser auto-detect them.
    """
    if isinstance(delimiter, str) and delimiter.strip():
        return (delimiter, delimiter)

    if isinstance(delimiter, (list, tuple)) and len(delimiter) == 2:
        return (delimiter[0], delimiter[1])

    if format == "json-frontmatter":
        return ("{", "}")

    if format == "toml-frontmatter":
        return ("+++", "+++")

    if format == "yaml-frontmatter":
        return ("---", "---")

    return None


def get_file_config(
    collection: CollectionConfig,
    i18n: I18nOptions,
    file: Optional[CollectionFileConfig] = None
) -> FileConfig:
    """
    Get the compiled file configuration of a collection or collection file.

    Args:
        collection: Folder or file collection
        i18n: Resolved i18n options for the collection (or file)
        file: Collection file, for file collections

    Returns:
        FileConfig; folder collections get `base_path` and `full_path_regex`, collection
        files get `full_path` resolved for the default locale
    """
    file_path = strip_slashes(file.file) if file is not None and file.file else None
    raw_extension = PurePosixPath(file_path).suffix.lstrip(".") if file_path else collection.extension
    raw_format = file.format if file is not None and file.format else collection.format
    extension = detect_file_extension(raw_extension, raw_format)
    format = detect_file_format(extension, raw_format)
    delimiter = (
        file.frontmatter_delimiter
        if file is not None and file.frontmatter_delimiter is not None
        else collection.frontmatter_delimiter
    )

    base_path = None
    sub_path = None
    full_path_regex = None

    if collection.is_entry_collection:
        base_path = strip_slashes(collection.folder)
        sub_path = collection.path
        full_path_regex = get_entry_path_regex(
            extension,
            format,
            base_path,
            i18n,
            sub_path=sub_path,
            index_file_name=collection.index_file_name,
        )
        logger.debug(f"Compiled entry path pattern [collection={collection.name}, pattern={full_path_regex.pattern}]")

    return FileConfig(
        extension=extension,
        format=format,
        base_path=base_path,
        sub_path=sub_path,
        full_path_regex=full_path_regex,
        full_path=get_locale_path(i18n, i18n.default_locale, file_path) if file_path else None,
        fm_delimiters=get_frontmatter_delimiters(format, delimiter),
    )
