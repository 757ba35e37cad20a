"""Tests for Pydantic schema validation."""

import json

import pytest
from pydantic import ValidationError

from common.blobs import Blob
from common.types import CommitAuthor
from cms.exceptions import InvalidFileChangeError, InvalidSiteConfigError
from cms.schemas import CollectionConfig, CommitOptions, CommitResults, FileChange, SiteConfig


class TestFileChange:
    """Test FileChange validation."""

    def test_create(self):
        change = FileChange(action="create", path="content/posts/a.md", slug="a", data="A")

        assert change.is_text_change is True
        assert change.previous_path is None

    def test_binary_data(self):
        change = FileChange(action="create", path="static/a.png", data=b"\x89PNG")

        assert change.data == b"\x89PNG"
        assert change.is_text_change is False

    def test_blob_data(self):
        change = FileChange(action="update", path="static/a.gif", data=Blob(b"GIF", "image/gif"))

        assert change.data == Blob(b"GIF", "image/gif")
        assert change.is_text_change is False

    def test_move_requires_previous_path(self):
        with pytest.raises(ValidationError):
            FileChange(action="move", path="b.md")

    def test_delete_must_not_carry_data(self):
        with pytest.raises(ValidationError):
            FileChange(action="delete", path="a.md", data="A")

    def test_empty_path_rejected(self):
        with pytest.raises(ValidationError):
            FileChange(action="create", path="", data="A")

    def test_unknown_action_rejected(self):
        with pytest.raises(ValidationError):
            FileChange(action="copy", path="a.md")

    def test_build_raises_domain_error(self):
        with pytest.raises(InvalidFileChangeError):
            FileChange.build(action="move", path="b.md")

    def test_camel_case_aliases(self):
        change = FileChange.model_validate({
            "action": "move",
            "path": "b.md",
            "previousPath": "a.md",
            "previousSha": "abc",
        })

        assert change.previous_path == "a.md"
        assert change.model_dump(by_alias=True, exclude={"data"})["previousSha"] == "abc"


class TestCommitSchemas:
    """Test commit options and results."""

    def test_commit_options_defaults(self):
        options = CommitOptions()

        assert options.commit_type == "update"
        assert options.collection is None
        assert options.skip_ci is None

    def test_commit_results(self):
        results = CommitResults.model_validate({
            "sha": "abc",
            "author": CommitAuthor(name="Alice", email="alice@example.com"),
            "files": {"a.md": {"sha": "def"}},
        })

        assert results.files["a.md"].sha == "def"
        assert results.files["a.md"].file is None
        assert results.author.name == "Alice"


class TestSiteConfig:
    """Test site configuration validation and loading."""

    def test_collection_needs_folder_or_files(self):
        with pytest.raises(ValidationError):
            CollectionConfig(name="broken")

        with pytest.raises(ValidationError):
            CollectionConfig(name="broken", folder="content", files=[])

    def test_index_file_name(self):
        assert CollectionConfig(name="a", folder="a", index_file=True).index_file_name == "_index"
        assert CollectionConfig(name="a", folder="a", index_file={"name": "index"}).index_file_name == "index"
        assert CollectionConfig(name="a", folder="a").index_file_name is None

    def test_from_file(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({
            "backend": {"name": "github", "repo": "owner/site"},
            "media_folder": "static/images",
            "collections": [{"name": "posts", "folder": "content/posts"}],
        }))

        site_config = SiteConfig.from_file(config_path)

        assert site_config.backend.repo == "owner/site"
        assert site_config.collections[0].is_entry_collection is True

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(InvalidSiteConfigError):
            SiteConfig.from_file(tmp_path / "missing.json")

    def test_from_file_invalid_json(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text("{not json")

        with pytest.raises(InvalidSiteConfigError):
            SiteConfig.from_file(config_path)

    def test_from_file_invalid_collection(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"collections": [{"name": "posts"}]}))

        with pytest.raises(InvalidSiteConfigError):
            SiteConfig.from_file(config_path)
