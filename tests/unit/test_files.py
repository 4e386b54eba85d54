"""
Unit tests for the file manager and the source fetcher.
"""

import os
from pathlib import Path

import pytest

from minimal42.errors import ApplyError, UnsupportedSource
from minimal42.resources import FileManager, SourceFetcher
from minimal42.transport import LocalTransport, NullTransport


@pytest.fixture
def files():
    return FileManager(LocalTransport())


@pytest.fixture
def source_tree(tmp_path):
    src = tmp_path / "src"
    (src / "conf.d").mkdir(parents=True)
    (src / "zones").write_text("fw firewall\n")
    (src / "conf.d" / "local").write_text("LOCAL=1\n")
    return src


class TestFileManager:

    def test_check_missing(self, files, tmp_path):
        state = files.check(str(tmp_path / "missing"))

        assert state["exists"] is False
        assert state["type"] is None

    def test_check_file(self, files, tmp_path):
        path = tmp_path / "shorewall.conf"
        path.write_text("STARTUP_ENABLED=Yes\n")
        os.chmod(path, 0o644)

        state = files.check(str(path))

        assert state["exists"] is True
        assert state["type"] == "file"
        assert state["content"] == "STARTUP_ENABLED=Yes\n"
        assert state["mode"] == 0o644

    def test_check_directory(self, files, tmp_path):
        state = files.check(str(tmp_path))

        assert state["type"] == "directory"
        assert state["content"] is None

    def test_write_creates_parents(self, files, tmp_path):
        path = tmp_path / "etc" / "shorewall" / "shorewall.conf"
        files.write(str(path), "fqdn: fw1\n")

        assert path.read_text() == "fqdn: fw1\n"

    def test_delete(self, files, tmp_path):
        target = tmp_path / "etc"
        (target / "shorewall").mkdir(parents=True)
        files.delete(str(target))

        assert not target.exists()

    def test_set_mode(self, files, tmp_path):
        path = tmp_path / "f"
        path.write_text("x")
        files.set_metadata(str(path), mode=0o600)

        assert os.stat(path).st_mode & 0o777 == 0o600

    def test_null_transport(self):
        with pytest.raises(RuntimeError, match="no transport configured"):
            FileManager().check("/etc/shorewall/shorewall.conf")


class TestMirror:

    def test_diff_new_directory(self, files, source_tree, tmp_path):
        diff = files.diff_tree(source_tree, str(tmp_path / "dest"), purge=True)

        assert diff == {"copy": ["conf.d/local", "zones"], "purge": []}

    def test_mirror_and_purge(self, files, source_tree, tmp_path):
        dest = tmp_path / "dest"
        (dest / "old.d").mkdir(parents=True)
        (dest / "old.d" / "rule").write_text("old\n")
        (dest / "zones").write_text("changed\n")

        files.mirror(source_tree, str(dest), purge=True)

        assert (dest / "zones").read_text() == "fw firewall\n"
        assert (dest / "conf.d" / "local").read_text() == "LOCAL=1\n"
        assert not (dest / "old.d").exists()
        assert files.diff_tree(source_tree, str(dest), purge=True) == {"copy": [], "purge": []}

    def test_purge_lists_directory_once(self, files, source_tree, tmp_path):
        dest = tmp_path / "dest"
        (dest / "old.d").mkdir(parents=True)
        (dest / "old.d" / "rule").write_text("old\n")

        diff = files.diff_tree(source_tree, str(dest), purge=True)

        assert diff["purge"] == ["old.d"]

    def test_keep_paths(self, files, source_tree, tmp_path):
        dest = tmp_path / "dest"
        dest.mkdir()
        managed = dest / "shorewall.conf"
        managed.write_text("managed elsewhere\n")

        files.mirror(source_tree, str(dest), purge=True, keep=[str(managed)])

        assert managed.read_text() == "managed elsewhere\n"

    def test_without_force(self, files, source_tree, tmp_path):
        dest = tmp_path / "dest"
        dest.mkdir()
        (dest / "conf.d").write_text("in the way\n")

        with pytest.raises(ApplyError):
            files.mirror(source_tree, str(dest))

    def test_with_force(self, files, source_tree, tmp_path):
        dest = tmp_path / "dest"
        dest.write_text("a file where the directory goes\n")

        files.mirror(source_tree, str(dest), force=True)

        assert (dest / "zones").exists()


class TestSourceFetcher:

    def test_plain_path(self, tmp_path):
        path = tmp_path / "shorewall.conf"
        path.write_text("x")

        assert SourceFetcher().resolve(str(path)) == path

    def test_file_uri(self, tmp_path):
        path = tmp_path / "shorewall.conf"
        path.write_text("x")

        assert SourceFetcher().resolve(path.as_uri()) == path

    def test_module_uri(self, tmp_path):
        (tmp_path / "shorewall" / "dir").mkdir(parents=True)
        (tmp_path / "shorewall" / "spec").write_text("x")

        fetcher = SourceFetcher(files_root=tmp_path)

        assert fetcher.resolve("module:///shorewall/spec") == tmp_path / "shorewall" / "spec"
        assert fetcher.resolve("module:///shorewall/dir") == tmp_path / "shorewall" / "dir"

    def test_module_uri_without_root(self):
        with pytest.raises(UnsupportedSource):
            SourceFetcher().resolve("module:///shorewall/spec")

    def test_unsupported_scheme(self):
        with pytest.raises(UnsupportedSource):
            SourceFetcher().resolve("puppet:///modules/shorewall/spec")

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SourceFetcher(tmp_path).resolve("module:///shorewall/nothing")

    def test_returns_path(self, tmp_path):
        assert isinstance(SourceFetcher().resolve(str(tmp_path)), Path)
