"""Tests for the ``worm container`` subcommands."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from worm.cli import app
from worm.container import ContainerStore

runner = CliRunner()


@pytest.fixture
def archive(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path / "test.worm"


@pytest.fixture
def sample_file(tmp_path: Path) -> Path:
    path = tmp_path / "hello.txt"
    path.write_text("Hello, container!")
    return path


def invoke(archive: Path, *args: str):
    return runner.invoke(app, ["container", "--container", str(archive), *args])


def stored(archive: Path) -> ContainerStore:
    return ContainerStore(archive, embedded=False)


class TestAdd:
    def test_add_file(self, archive: Path, sample_file: Path) -> None:
        result = invoke(archive, "add", str(sample_file))

        assert result.exit_code == 0, result.output
        assert "as hello.txt" in result.output
        assert stored(archive).read_text("hello.txt") == "Hello, container!"

    def test_add_file_with_target(self, archive: Path, sample_file: Path) -> None:
        result = invoke(archive, "add", str(sample_file), "docs/greeting.txt")

        assert result.exit_code == 0, result.output
        assert stored(archive).list() == ["docs/greeting.txt"]

    def test_add_directory_uses_name_as_prefix(self, archive: Path, tmp_path: Path) -> None:
        assets = tmp_path / "assets"
        (assets / "css").mkdir(parents=True)
        (assets / "index.html").write_text("<html/>")
        (assets / "css" / "site.css").write_text("body {}")

        result = invoke(archive, "add", str(assets))

        assert result.exit_code == 0, result.output
        assert "Added 2 files" in result.output
        assert sorted(stored(archive).list()) == ["assets/css/site.css", "assets/index.html"]

    def test_add_file_with_directory_target(self, archive: Path, sample_file: Path) -> None:
        result = invoke(archive, "add", str(sample_file), "docs/")

        assert result.exit_code == 1
        assert "path names a directory" in result.output
        assert not archive.exists()

    def test_add_missing_source(self, archive: Path, tmp_path: Path) -> None:
        result = invoke(archive, "add", str(tmp_path / "nope.txt"))

        assert result.exit_code == 1
        assert "File not found" in result.output
        assert not archive.exists()


class TestInspect:
    @pytest.fixture(autouse=True)
    def populated(self, archive: Path) -> None:
        store = ContainerStore(archive, embedded=False)
        store.write_text("readme.txt", "read me")
        store.write_text("config/app.json", '{"debug": true}')
        store.save()

    def test_list(self, archive: Path) -> None:
        result = invoke(archive, "list")

        assert result.exit_code == 0, result.output
        assert "readme.txt" in result.output
        assert "config/app.json" in result.output
        assert "2 files" in result.output

    def test_list_prefix(self, archive: Path) -> None:
        result = invoke(archive, "list", "config/")

        assert result.exit_code == 0, result.output
        assert "config/app.json" in result.output
        assert "readme.txt" not in result.output

    def test_cat(self, archive: Path) -> None:
        result = invoke(archive, "cat", "readme.txt")
        assert result.exit_code == 0
        assert result.output.strip() == "read me"

    def test_cat_missing(self, archive: Path) -> None:
        result = invoke(archive, "cat", "missing.txt")
        assert result.exit_code == 1
        assert "File not found in container: missing.txt" in result.output

    @pytest.mark.parametrize(("path", "expected"), [("readme.txt", "EXISTS"), ("other.txt", "NOT FOUND")])
    def test_exists(self, archive: Path, path: str, expected: str) -> None:
        result = invoke(archive, "exists", path)
        assert result.exit_code == 0
        assert f"File {path}: {expected}" in result.output

    def test_stats(self, archive: Path) -> None:
        result = invoke(archive, "stats")

        assert result.exit_code == 0
        assert "Files: 2" in result.output
        assert "Total Size: 22 Bytes" in result.output
        assert "Embedded: No" in result.output


class TestExtract:
    @pytest.fixture(autouse=True)
    def populated(self, archive: Path) -> None:
        store = ContainerStore(archive, embedded=False)
        store.write("data/blob.bin", b"\x00\x01\x02")
        store.write_text("notes.txt", "n")
        store.save()

    def test_extract_to_path(self, archive: Path, tmp_path: Path) -> None:
        target = tmp_path / "out" / "blob.bin"

        result = invoke(archive, "extract", "data/blob.bin", str(target))

        assert result.exit_code == 0, result.output
        assert target.read_bytes() == b"\x00\x01\x02"

    def test_extract_defaults_to_container_path(self, archive: Path, tmp_path: Path) -> None:
        result = invoke(archive, "extract", "notes.txt")

        assert result.exit_code == 0, result.output
        assert (tmp_path / "notes.txt").read_text() == "n"

    def test_extract_all(self, archive: Path, tmp_path: Path) -> None:
        result = invoke(archive, "extract-all", str(tmp_path / "dump"))

        assert result.exit_code == 0, result.output
        assert "Extracted 2 files" in result.output
        assert (tmp_path / "dump" / "data" / "blob.bin").exists()

    def test_extract_all_default_directory(self, archive: Path, tmp_path: Path) -> None:
        result = invoke(archive, "extract-all")

        assert result.exit_code == 0, result.output
        assert (tmp_path / "extracted" / "notes.txt").exists()


class TestMutations:
    @pytest.fixture(autouse=True)
    def populated(self, archive: Path) -> None:
        store = ContainerStore(archive, embedded=False)
        store.write_text("a.txt", "a")
        store.write_text("b.txt", "b")
        store.save()

    def test_remove(self, archive: Path) -> None:
        result = invoke(archive, "remove", "a.txt")

        assert result.exit_code == 0
        assert "Removed a.txt" in result.output
        assert stored(archive).list() == ["b.txt"]

    def test_remove_absent_is_not_an_error(self, archive: Path) -> None:
        result = invoke(archive, "remove", "zzz.txt")

        assert result.exit_code == 0
        assert "File not found in container: zzz.txt" in result.output
        assert sorted(stored(archive).list()) == ["a.txt", "b.txt"]

    def test_clear_with_yes(self, archive: Path) -> None:
        result = invoke(archive, "clear", "--yes")

        assert result.exit_code == 0
        assert "Container cleared" in result.output
        assert stored(archive).list() == []

    def test_clear_declined(self, archive: Path) -> None:
        result = runner.invoke(app, ["container", "--container", str(archive), "clear"], input="n\n")

        assert result.exit_code == 1
        assert sorted(stored(archive).list()) == ["a.txt", "b.txt"]
