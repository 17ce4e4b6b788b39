"""Tests for atomic JSON file I/O."""

import json
import os
import tempfile
from pathlib import Path
from unittest import mock

import pytest

from telraam_collector.file_store import CorruptFileError, JsonFileStore, StorageError


@pytest.fixture
def temp_dir():
    """Create temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store():
    return JsonFileStore()


def test_read_missing_file_returns_none(store, temp_dir):
    """Test absence is not an error."""
    assert store.read_json(temp_dir / "missing.json", "loading test") is None


def test_write_then_read(store, temp_dir):
    """Test written JSON is indented UTF-8 and readable."""
    path = temp_dir / "nested" / "dir" / "file.json"

    store.write_json(path, {"name": "Straße", "values": [1, 2]}, "saving test")

    text = path.read_text(encoding="utf-8")
    assert "Straße" in text
    assert '\n  "values"' in text
    assert store.read_json(path, "loading test") == {"name": "Straße", "values": [1, 2]}


def test_write_leaves_no_temp_files(store, temp_dir):
    """Test only the target file remains after a write."""
    path = temp_dir / "file.json"
    store.write_json(path, [1], "saving test")
    store.write_json(path, [2], "saving test")

    assert [p.name for p in temp_dir.iterdir()] == ["file.json"]


def test_malformed_json_raises_corrupt_error(store, temp_dir):
    """Test a corrupt file is reported, not treated as empty."""
    path = temp_dir / "bad.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(CorruptFileError) as exc_info:
        store.read_json(path, "loading test")

    assert exc_info.value.operation == "loading test"
    assert exc_info.value.path == path
    assert "loading test" in str(exc_info.value)


def test_failed_replace_keeps_previous_file(store, temp_dir):
    """Test a failure during the write leaves the old content and no temp file."""
    path = temp_dir / "file.json"
    store.write_json(path, {"version": 1}, "saving test")

    with mock.patch("telraam_collector.file_store.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(StorageError) as exc_info:
            store.write_json(path, {"version": 2}, "saving test")

    assert isinstance(exc_info.value.cause, OSError)
    assert json.loads(path.read_text(encoding="utf-8")) == {"version": 1}
    assert [p.name for p in temp_dir.iterdir()] == ["file.json"]


def test_directory_creation_failure(store, temp_dir):
    """Test a directory that cannot be created surfaces as StorageError."""
    blocker = temp_dir / "blocker"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(StorageError):
        store.write_json(blocker / "child" / "file.json", {}, "saving test")


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="permission checks do not apply to root",
)
def test_unreadable_file_raises_storage_error(store, temp_dir):
    """Test permission errors on read are not treated as absence."""
    path = temp_dir / "locked.json"
    path.write_text("{}", encoding="utf-8")
    path.chmod(0)
    try:
        with pytest.raises(StorageError) as exc_info:
            store.read_json(path, "loading test")
        assert not isinstance(exc_info.value, CorruptFileError)
    finally:
        path.chmod(0o644)


def test_unserialisable_data_raises_storage_error(store, temp_dir):
    """Test serialisation failures do not touch the target."""
    path = temp_dir / "file.json"

    with pytest.raises(StorageError):
        store.write_json(path, {"bad": object()}, "saving test")

    assert not path.exists()


def test_collect_json_files(store, temp_dir):
    """Test JSON files are found recursively and other files ignored."""
    (temp_dir / "a" / "daily").mkdir(parents=True)
    (temp_dir / "a" / "2024-06.json").write_text("{}")
    (temp_dir / "a" / "daily" / "2024-06.json").write_text("{}")
    (temp_dir / "notes.txt").write_text("")

    found = store.collect_json_files(temp_dir)

    assert [p.relative_to(temp_dir).as_posix() for p in found] == [
        "a/2024-06.json",
        "a/daily/2024-06.json",
    ]
    assert store.collect_json_files(temp_dir / "missing") == []
