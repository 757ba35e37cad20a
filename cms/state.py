"""In-memory repository snapshot shared by the loaders and the save orchestrator."""

from typing import Any, Callable, List

from common.logging_config import get_logger
from common.types import Asset, Entry, FileListItem
from cms.git_config import get_lfs_file_extensions

logger = get_logger(__name__)

Listener = Callable[[str, Any], None]


class RepositoryState:
    """
    Entries, assets and Git config files of the current repository.

    Collections are replaced wholesale through the setters; every replacement is
    announced to subscribers as `(topic, value)` with topic 'entries', 'assets',
    'config_files', 'entry_parse_errors' or 'loaded'.
    """

    def __init__(self):
        self._entries: List[Entry] = []
        self._assets: List[Asset] = []
        self._config_files: List[FileListItem] = []
        self._entry_parse_errors: List[Exception] = []
        self._data_loaded = False
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener; returns a function that unsubscribes it.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, topic: str, value: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(topic, value)
            except Exception as e:
                logger.error(f"State listener failed [topic={topic}]: {e}", exc_info=True)

    @property
    def entries(self) -> List[Entry]:
        return list(self._entries)

    @entries.setter
    def entries(self, entries: List[Entry]) -> None:
        self._entries = list(entries)
        self._emit("entries", self.entries)

    @property
    def assets(self) -> List[Asset]:
        return list(self._assets)

    @assets.setter
    def assets(self, assets: List[Asset]) -> None:
        self._assets = list(assets)
        self._emit("assets", self.assets)

    @property
    def config_files(self) -> List[FileListItem]:
        return list(self._config_files)

    @config_files.setter
    def config_files(self, config_files: List[FileListItem]) -> None:
        self._config_files = list(config_files)
        self._emit("config_files", self.config_files)

    @property
    def entry_parse_errors(self) -> List[Exception]:
        return list(self._entry_parse_errors)

    @entry_parse_errors.setter
    def entry_parse_errors(self, errors: List[Exception]) -> None:
        self._entry_parse_errors = list(errors)
        self._emit("entry_parse_errors", self.entry_parse_errors)

    @property
    def data_loaded(self) -> bool:
        return self._data_loaded

    @data_loaded.setter
    def data_loaded(self, loaded: bool) -> None:
        self._data_loaded = loaded
        self._emit("loaded", loaded)

    @property
    def lfs_file_extensions(self) -> List[str]:
        return get_lfs_file_extensions(self._config_files)

    def replace_snapshot(
        self,
        entries: List[Entry],
        assets: List[Asset],
        config_files: List[FileListItem],
        errors: List[Exception] = None
    ) -> None:
        """
        Replace the whole snapshot after a load and mark data as loaded.
        """
        self.entries = entries
        self.assets = assets
        self.config_files = config_files
        self.entry_parse_errors = errors or []
        self.data_loaded = True
        logger.info(
            f"Repository snapshot replaced [entries={len(entries)}, assets={len(assets)}, configs={len(config_files)}]"
        )
