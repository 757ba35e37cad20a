"""Tests for local file system handles, scanning, loading and saving."""

import pytest

from common.blobs import Blob
from common.checksum import compute_git_hash
from common.types import FileListItem
from cms.exceptions import HandleTypeMismatchError, PathRequiredError
from cms.schemas.changes import FileChange
from localfs.files import (
    could_contain,
    delete_file,
    get_all_files,
    get_directory_handle,
    get_file_handle,
    get_path_regex,
    load_files,
    parse_asset_file_info,
    move_file,
    save_change,
    save_changes,
    write_file,
)
from localfs.handles import DirectoryHandle, FileHandle


@pytest.fixture
def root(repo_root):
    """
    Directory handle for the repo_root fixture.
    """
    return DirectoryHandle(repo_root)


class TestHandles:
    """Test file and directory handles."""

    def test_entries_sorted_and_typed(self, root):
        entries = dict(root.entries())

        assert root.keys() == sorted(root.keys())
        assert entries["content"].kind == "directory"
        assert entries[".gitattributes"].kind == "file"

    def test_get_file_handle_missing(self, root):
        with pytest.raises(FileNotFoundError):
            root.get_file_handle("missing.txt")

    def test_get_file_handle_creates(self, root, repo_root):
        handle = root.get_file_handle("new.txt", create=True)

        assert isinstance(handle, FileHandle)
        assert (repo_root / "new.txt").exists()
        assert handle.get_size() == 0

    def test_iter_chunks(self, repo_root):
        (repo_root / "chunks.bin").write_bytes(b"abcdefghij")

        chunks = list(FileHandle(repo_root / "chunks.bin").iter_chunks(4))

        assert chunks == [b"abcd", b"efgh", b"ij"]

    def test_type_mismatch(self, root):
        with pytest.raises(HandleTypeMismatchError):
            root.get_file_handle("content")

        with pytest.raises(HandleTypeMismatchError):
            root.get_directory_handle(".gitattributes")

    def test_get_file_returns_typed_blob(self, root):
        blob = root.get_directory_handle("static").get_directory_handle("images").get_file_handle("logo.png").get_file()

        assert blob.type == "image/png"
        assert blob.name == "logo.png"
        assert blob.data == b"\x89PNG\r\n"

    def test_move_keeps_handle(self, root, repo_root):
        handle = get_file_handle(root, "content/posts/hello.md")

        handle.move("renamed.md")

        assert handle.name == "renamed.md"
        assert handle.read_text() == "Hello world"
        assert not (repo_root / "content" / "posts" / "hello.md").exists()

    def test_remove_non_empty_directory_fails(self, root):
        with pytest.raises(OSError):
            root.remove_entry("content")


class TestGetHandleByPath:
    """Test path-based handle retrieval."""

    def test_creates_intermediate_directories(self, root, repo_root):
        handle = get_file_handle(root, "/content/new/deep/file.md")

        assert handle.fs_path == repo_root / "content" / "new" / "deep" / "file.md"
        assert handle.fs_path.exists()

    def test_empty_directory_path_is_root(self, root):
        assert get_directory_handle(root, "") is root
        assert get_directory_handle(root, "/") is root

    def test_empty_file_path_fails(self, root):
        with pytest.raises(PathRequiredError):
            get_file_handle(root, "")

    def test_file_in_the_way_of_directory(self, root):
        with pytest.raises(HandleTypeMismatchError):
            get_file_handle(root, "data/settings.json/nested.md")


class TestScanning:
    """Test scanning path patterns and directory scans."""

    def test_path_regex(self):
        regex = get_path_regex("content/posts")

        assert regex.search("content/posts")
        assert regex.search("content/posts/hello.md")
        assert regex.search("content/posts-archive/hello.md") is None

    def test_path_regex_with_template_tags(self):
        regex = get_path_regex("static/{{slug}}/images")

        assert regex.search("static/hello/images/a.png")
        assert regex.search("static/images/a.png") is None

    def test_empty_path_regex_matches_everything(self):
        assert get_path_regex("").search("anything/at/all.md")

    def test_could_contain(self):
        assert could_contain("content", "content/posts")
        assert could_contain("content/posts", "content/posts")
        assert could_contain("static/hello", "static/{{slug}}/images")
        assert not could_contain("node_modules", "content/posts")
        assert not could_contain("content/posts/deep", "content/posts")
        assert could_contain("anything", "")

    def test_get_all_files(self, root, registry):
        files = get_all_files(root, registry)

        assert [f.path for f in files] == [
            ".gitattributes",
            "content/pages/about.md",
            "content/posts/hello.md",
            "content/posts/second.md",
            "data/settings.json",
            "static/images/logo.png",
        ]
        assert all(f.handle is not None for f in files)
        assert all(f.sha == "" and f.size == 0 for f in files)

    def test_scan_skips_unrelated_directories(self, root, registry, repo_root, monkeypatch):
        visited = []
        original_entries = DirectoryHandle.entries

        def tracking_entries(self):
            visited.append(self.fs_path)
            return original_entries(self)

        monkeypatch.setattr(DirectoryHandle, "entries", tracking_entries)

        get_all_files(root, registry)

        assert repo_root / "node_modules" not in visited
        assert repo_root / ".git" not in visited

    def test_paths_are_nfc_normalized(self, root, registry, repo_root):
        decomposed = "cafe\u0301.md"
        (repo_root / "content" / "posts" / decomposed).write_text("Coffee")

        paths = [f.path for f in get_all_files(root, registry)]

        assert "content/posts/caf\u00e9.md" in paths


class TestLoadFiles:
    """Test loading a local repository into the snapshot."""

    @pytest.mark.asyncio
    async def test_load_files(self, root, registry, content_parser, state):
        await load_files(root, registry, content_parser, state)

        entries = {entry.id: entry for entry in state.entries}

        assert state.data_loaded is True
        assert sorted(entries) == [
            "content/pages/about.md",
            "content/posts/hello.md",
            "content/posts/second.md",
            "data/settings.json",
        ]
        assert entries["content/posts/hello.md"].locales["_default"].content == {"body": "Hello world"}
        assert entries["content/posts/hello.md"].collection_name == "posts"
        assert [asset.path for asset in state.assets] == ["static/images/logo.png"]
        assert [f.path for f in state.config_files] == [".gitattributes"]
        assert state.lfs_file_extensions == ["pdf"]

    @pytest.mark.asyncio
    async def test_assets_carry_size_sha_and_kind(self, root, registry, content_parser, state):
        await load_files(root, registry, content_parser, state)

        asset = state.assets[0]

        assert asset.size == 6
        assert asset.sha == compute_git_hash(b"\x89PNG\r\n")
        assert asset.kind == "image"
        assert asset.collection_name is None

    @pytest.mark.asyncio
    async def test_parse_errors_are_kept(self, root, registry, content_parser, state, repo_root):
        (repo_root / "content" / "posts" / "broken.md").write_text("INVALID")

        await load_files(root, registry, content_parser, state)

        assert len(state.entry_parse_errors) == 1
        assert "content/posts/broken.md" not in [entry.id for entry in state.entries]

    @pytest.mark.asyncio
    async def test_unreadable_text_becomes_empty(self, root, registry, content_parser, state, repo_root):
        (repo_root / "content" / "posts" / "binary.md").write_bytes(b"\xff\xfe\x00")

        await load_files(root, registry, content_parser, state)

        entries = {entry.id: entry for entry in state.entries}
        assert entries["content/posts/binary.md"].locales["_default"].content == {"body": ""}

    def test_asset_hashed_in_chunks(self, repo_root, monkeypatch):
        monkeypatch.setattr("localfs.files.ASSET_READ_CHUNK_SIZE", 4)
        data = bytes(range(256)) * 3
        path = repo_root / "static" / "images" / "big.bin"
        path.write_bytes(data)

        asset = parse_asset_file_info(FileListItem(
            path="static/images/big.bin",
            name="big.bin",
            handle=FileHandle(path),
            type="asset",
        ))

        assert asset.size == len(data)
        assert asset.sha == compute_git_hash(data)

    def test_missing_asset_left_unpopulated(self, repo_root):
        asset = parse_asset_file_info(FileListItem(
            path="static/images/gone.png",
            name="gone.png",
            handle=FileHandle(repo_root / "static" / "images" / "gone.png"),
            type="asset",
        ))

        assert asset.size == 0
        assert asset.sha == ""


class TestWriteAndDelete:
    """Test file writes, moves and deletes."""

    def test_write_file_creates_parents(self, root, repo_root):
        blob = write_file(root, "content/posts/2024/new.md", "New post")

        assert (repo_root / "content" / "posts" / "2024" / "new.md").read_text() == "New post"
        assert blob.data == b"New post"

    def test_write_file_accepts_blob(self, root, repo_root):
        write_file(root, "static/images/pixel.gif", Blob(b"GIF89a", "image/gif"))

        assert (repo_root / "static" / "images" / "pixel.gif").read_bytes() == b"GIF89a"

    def test_write_file_truncates(self, root, repo_root):
        write_file(root, "content/posts/hello.md", "Hi")

        assert (repo_root / "content" / "posts" / "hello.md").read_text() == "Hi"

    def test_move_to_another_directory(self, root, repo_root):
        handle = move_file(root, "content/posts/hello.md", "content/archive/2020/hello-world.md")

        assert handle.fs_path == repo_root / "content" / "archive" / "2020" / "hello-world.md"
        assert handle.read_text() == "Hello world"
        assert not (repo_root / "content" / "posts" / "hello.md").exists()

    def test_rename_in_place(self, root, repo_root):
        move_file(root, "content/posts/hello.md", "content/posts/hi.md")

        assert (repo_root / "content" / "posts" / "hi.md").read_text() == "Hello world"

    def test_delete_removes_empty_parents(self, root, repo_root):
        write_file(root, "content/posts/2024/05/only.md", "Only")

        delete_file(root, "content/posts/2024/05/only.md")

        assert not (repo_root / "content" / "posts" / "2024").exists()
        assert (repo_root / "content" / "posts").exists()

    def test_delete_keeps_non_empty_parents(self, root, repo_root):
        delete_file(root, "content/posts/hello.md")

        assert not (repo_root / "content" / "posts" / "hello.md").exists()
        assert (repo_root / "content" / "posts" / "second.md").exists()

    def test_delete_last_file_removes_folder_chain(self, root, repo_root):
        delete_file(root, "static/images/logo.png")

        assert not (repo_root / "static").exists()
        assert repo_root.exists()


class TestSaveChange:
    """Test applying single changes."""

    def test_create(self, root, repo_root):
        blob = save_change(root, FileChange(action="create", path="content/posts/new.md", data="New"))

        assert blob.data == b"New"
        assert (repo_root / "content" / "posts" / "new.md").read_text() == "New"

    def test_update_with_empty_text_writes(self, root, repo_root):
        save_change(root, FileChange(action="update", path="content/posts/hello.md", data=""))

        assert (repo_root / "content" / "posts" / "hello.md").read_text() == ""

    def test_move_with_unchanged_content_does_not_write(self, root, repo_root, monkeypatch):
        writes = []
        monkeypatch.setattr("localfs.files.write_file", lambda *args, **kwargs: writes.append(args))

        blob = save_change(root, FileChange(
            action="move",
            path="content/posts/hello-world.md",
            previous_path="content/posts/hello.md",
            data="Hello world",
        ))

        assert writes == []
        assert blob.data == b"Hello world"
        assert (repo_root / "content" / "posts" / "hello-world.md").exists()

    def test_move_with_new_content(self, root, repo_root):
        save_change(root, FileChange(
            action="move",
            path="content/posts/2024/hello.md",
            previous_path="content/posts/hello.md",
            data="Updated",
        ))

        assert (repo_root / "content" / "posts" / "2024" / "hello.md").read_text() == "Updated"
        assert not (repo_root / "content" / "posts" / "hello.md").exists()

    def test_delete(self, root, repo_root):
        assert save_change(root, FileChange(action="delete", path="content/posts/hello.md")) is None
        assert not (repo_root / "content" / "posts" / "hello.md").exists()


class TestSaveChanges:
    """Test saving change batches."""

    @pytest.mark.asyncio
    async def test_results(self, root, repo_root):
        results = await save_changes(root, [
            FileChange(action="create", path="content/posts/new.md", data="hello world\n"),
            FileChange(action="delete", path="content/posts/second.md"),
        ])

        assert results.files["content/posts/new.md"].sha == "3b18e512dba79e4c8300dd08aeb37f8e728b8dad"
        assert "content/posts/second.md" not in results.files
        assert results.date is not None
        assert len(results.sha) == 40
        assert not (repo_root / "content" / "posts" / "second.md").exists()

    @pytest.mark.asyncio
    async def test_without_root_falls_back_to_blobs(self):
        results = await save_changes(None, [
            FileChange(action="create", path="static/images/a.png", data=b"\x00\x01"),
            FileChange(action="create", path="content/posts/a.md", data=""),
            FileChange(action="delete", path="content/posts/b.md"),
        ])

        assert results.files["static/images/a.png"].file.data == b"\x00\x01"
        assert results.files["static/images/a.png"].file.type == "image/png"
        assert results.files["content/posts/a.md"].sha == "e69de29bb2d1d6434b8b29ae775ad8c2e48c5391"
        assert "content/posts/b.md" not in results.files

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_others(self, root, repo_root):
        results = await save_changes(root, [
            FileChange(action="create", path="data/settings.json/broken.md", data="Broken"),
            FileChange(action="create", path="content/posts/ok.md", data="OK"),
        ])

        assert (repo_root / "content" / "posts" / "ok.md").read_text() == "OK"
        assert results.files["content/posts/ok.md"].file.data == b"OK"
        assert results.files["data/settings.json/broken.md"].file.data == b"Broken"
