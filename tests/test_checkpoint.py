"""
Tests for the checkpoint store and atomic JSON writes.
"""

import json
from pathlib import Path

import pytest

from tools import checkpoint
from tools.checkpoint import CheckpointError, CheckpointStore, checkpoint_path_for, write_json_atomic


def _record(url, honor=False):
    return {"url": url, "isEhrung": honor, "persons": []}


def test_checkpoint_path_is_derived_from_input():
    assert checkpoint_path_for(Path("data/veranstaltungen_2024.json")) == Path(
        "data/veranstaltungen_2024_extracted.json"
    )


class TestCheckpointStore:
    def test_load_missing_file_is_empty(self, tmp_path):
        store = CheckpointStore(tmp_path / "missing.json")

        assert store.load() == []
        assert len(store) == 0
        assert not store.contains_url("a")

    def test_persist_and_reload(self, tmp_path):
        path = tmp_path / "cp.json"
        store = CheckpointStore(path)
        store.merge([_record("a"), _record("b", honor=True)])
        store.persist()

        reloaded = CheckpointStore(path)
        reloaded.load()

        assert [r["url"] for r in reloaded.records] == ["a", "b"]
        assert reloaded.contains_url("b")

    def test_merge_keeps_urls_unique(self, tmp_path):
        store = CheckpointStore(tmp_path / "cp.json")

        added_first = store.merge([_record("a"), _record("b")])
        added_second = store.merge([_record("b"), _record("c"), _record("c")])

        assert added_first == 2
        assert added_second == 1
        assert [r["url"] for r in store.records] == ["a", "b", "c"]

    def test_load_dedupes_existing_file(self, tmp_path):
        path = tmp_path / "cp.json"
        path.write_text(json.dumps([_record("a"), _record("a"), "junk"]), encoding="utf-8")
        store = CheckpointStore(path)

        store.load()

        assert len(store) == 1
        log = [json.loads(line) for line in (tmp_path / "logs" / "pipeline.log").read_text(encoding="utf-8").splitlines()]
        assert log[-1]["event"] == "checkpoint.dropped"
        assert log[-1]["count"] == 2

    def test_corrupt_checkpoint_is_fatal(self, tmp_path):
        path = tmp_path / "cp.json"
        path.write_text("[{", encoding="utf-8")

        with pytest.raises(CheckpointError):
            CheckpointStore(path).load()

    def test_non_array_checkpoint_is_fatal(self, tmp_path):
        path = tmp_path / "cp.json"
        path.write_text("{}", encoding="utf-8")

        with pytest.raises(CheckpointError):
            CheckpointStore(path).load()


class TestAtomicWrite:
    def test_writes_json(self, tmp_path):
        path = write_json_atomic(tmp_path / "sub" / "out.json", [{"name": "Jörg"}])

        assert json.loads(path.read_text(encoding="utf-8")) == [{"name": "Jörg"}]
        assert "Jörg" in path.read_text(encoding="utf-8")

    def test_crash_before_rename_keeps_previous_snapshot(self, tmp_path, monkeypatch):
        path = tmp_path / "cp.json"
        store = CheckpointStore(path)
        store.merge([_record("a")])
        store.persist()
        before = path.read_bytes()

        def crash(src, dst):
            raise OSError("simulierter Absturz")

        monkeypatch.setattr(checkpoint.os, "replace", crash)
        store.merge([_record("b")])
        with pytest.raises(OSError):
            store.persist()

        assert path.read_bytes() == before
        assert json.loads(path.read_text(encoding="utf-8")) == [_record("a")]
        assert [p.name for p in tmp_path.iterdir()] == ["cp.json"]


def test_non_utf8_checkpoint_is_fatal(tmp_path):
    path = tmp_path / "cp.json"
    path.write_bytes(b'[{"url": "M\xfcller"}]')

    with pytest.raises(CheckpointError):
        CheckpointStore(path).load()
