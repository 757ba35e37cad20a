"""Interface of the content parser that turns entry files into entries."""

from typing import List, NamedTuple, Protocol

from common.types import Entry, FileListItem


class PreparedEntries(NamedTuple):
    entries: List[Entry]
    errors: List[Exception]


class ContentParser(Protocol):
    """
    Parses YAML/TOML/JSON/front matter entry files into structured entries.
    """

    async def prepare_entries(self, entry_files: List[FileListItem]) -> PreparedEntries:
        ...

    def is_index_file(self, path: str) -> bool:
        ...
