"""Shared pytest fixtures for all tests."""

import logging
from pathlib import Path
from typing import List

import pytest

from common.types import Entry, FileListItem, LocalizedEntry
from cms.classifier import is_index_file
from cms.parser import PreparedEntries
from cms.registry import CollectionRegistry
from cms.schemas.config import SiteConfig
from cms.state import RepositoryState


class FakeContentParser:
    """
    Content parser stand-in: one entry per file, keyed by path, with the raw text as
    its body. Files whose text is 'INVALID' are reported as parse errors.
    """

    async def prepare_entries(self, entry_files: List[FileListItem]) -> PreparedEntries:
        entries = []
        errors = []

        for file in entry_files:
            if file.text == "INVALID":
                errors.append(ValueError(f"Cannot parse {file.path}"))
                continue
            slug = Path(file.path).stem
            entries.append(Entry(
                id=file.path,
                slug=slug,
                locales={"_default": LocalizedEntry(path=file.path, slug=slug, content={"body": file.text})},
                collection_name=file.folder.collection_name if file.folder else None,
            ))

        return PreparedEntries(entries=entries, errors=errors)

    def is_index_file(self, path: str) -> bool:
        return is_index_file(path)


@pytest.fixture(autouse=True)
def package_loggers():
    """
    Restore the package loggers after each test, since signing in to a local
    repository installs handlers on them.
    """
    loggers = [logging.getLogger(name) for name in ("cms", "localfs")]
    saved = [(logger.handlers[:], logger.level, logger.propagate) for logger in loggers]

    yield

    for logger, (handlers, level, propagate) in zip(loggers, saved):
        logger.handlers = handlers
        logger.setLevel(level)
        logger.propagate = propagate


@pytest.fixture
def cache_dir(tmp_path, monkeypatch):
    """
    Point the cache databases at a temporary directory.

    Args:
        tmp_path: pytest tmp_path fixture
        monkeypatch: pytest monkeypatch fixture

    Returns:
        Path to the temporary cache directory
    """
    directory = tmp_path / 'cache'
    monkeypatch.setattr("cms.database.CACHE_DIR", str(directory))
    monkeypatch.setattr("cms.config.CACHE_DIR", str(directory))
    return directory


@pytest.fixture
def site_config():
    """
    Site configuration with a folder collection, a file collection and a global media
    folder.

    Returns:
        Validated SiteConfig
    """
    return SiteConfig.model_validate({
        "backend": {"name": "local"},
        "media_folder": "static/images",
        "public_folder": "/images",
        "collections": [
            {"name": "posts", "folder": "content/posts", "extension": "md"},
            {
                "name": "pages",
                "files": [
                    {"name": "about", "file": "content/pages/about.md"},
                    {"name": "settings", "file": "data/settings.json"},
                ],
            },
        ],
    })


@pytest.fixture
def registry(site_config):
    """
    Collection registry built from the site_config fixture.
    """
    return CollectionRegistry.from_config(site_config)


@pytest.fixture
def repo_root(tmp_path):
    """
    Create a local Git working tree matching the site_config fixture.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to the repository root
    """
    root = tmp_path / 'repo'
    (root / '.git').mkdir(parents=True)
    (root / '.gitattributes').write_text('*.pdf filter=lfs diff=lfs merge=lfs -text\n')
    (root / '.env').write_text('SECRET=1\n')
    (root / 'content' / 'posts').mkdir(parents=True)
    (root / 'content' / 'posts' / 'hello.md').write_text('Hello world')
    (root / 'content' / 'posts' / 'second.md').write_text('Second post')
    (root / 'content' / 'pages').mkdir(parents=True)
    (root / 'content' / 'pages' / 'about.md').write_text('About us')
    (root / 'content' / 'pages' / 'contact.md').write_text('Not managed')
    (root / 'data').mkdir()
    (root / 'data' / 'settings.json').write_text('{"title": "Site"}')
    (root / 'static' / 'images').mkdir(parents=True)
    (root / 'static' / 'images' / 'logo.png').write_bytes(b'\x89PNG\r\n')
    (root / 'node_modules' / 'pkg').mkdir(parents=True)
    (root / 'node_modules' / 'pkg' / 'index.md').write_text('skip me')
    return root


@pytest.fixture
def content_parser():
    """
    Fake content parser.
    """
    return FakeContentParser()


@pytest.fixture
def state():
    """
    Empty repository state.
    """
    return RepositoryState()
