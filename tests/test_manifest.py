import json
from pathlib import Path

import pytest

from simfeed.core.errors import DecodeError, FeedIOError
from simfeed.core.models import Manifest, Shard
from simfeed.storage.manifest import load_manifest, save_manifest_atomic, scan_manifest_from_disk


def test_load_defaults_missing_version(tmp_path: Path) -> None:
    path = tmp_path / "index.json"
    path.write_text(json.dumps({"shards": [{"seq": 1, "file": "events-000001.jsonl", "events": 2}]}))

    manifest = load_manifest(path)

    assert manifest.version == 1
    assert manifest.shards == [Shard(seq=1, file="events-000001.jsonl", events=2)]


def test_load_defaults_zero_version(tmp_path: Path) -> None:
    path = tmp_path / "index.json"
    path.write_text(json.dumps({"version": 0, "shards": []}))

    assert load_manifest(path).version == 1


def test_load_tolerates_null_shards(tmp_path: Path) -> None:
    path = tmp_path / "index.json"
    path.write_text(json.dumps({"version": 1, "shards": None}))

    assert load_manifest(path).shards == []


def test_load_missing_file_is_io_error(tmp_path: Path) -> None:
    with pytest.raises(FeedIOError):
        load_manifest(tmp_path / "nope.json")


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"shards": [{"seq": "x"}]}'])
def test_load_malformed_is_decode_error(tmp_path: Path, content: str) -> None:
    path = tmp_path / "index.json"
    path.write_text(content)

    with pytest.raises(DecodeError):
        load_manifest(path)


def test_save_normalizes_version_and_stamps_time(tmp_path: Path) -> None:
    path = tmp_path / "sub" / "index.json"
    manifest = Manifest(version=-3, max_events_per_shard=5)

    save_manifest_atomic(path, manifest)

    data = json.loads(path.read_text())
    assert data["version"] == 1
    assert data["generated_at"]
    assert manifest.generated_at == data["generated_at"]
    assert list(data) == ["version", "generated_at", "max_events_per_shard", "shards", "total_events"]
    assert not (tmp_path / "sub" / "index.json.tmp").exists()


def test_save_then_load_keeps_layout(tmp_path: Path) -> None:
    path = tmp_path / "index.json"
    manifest = Manifest(
        max_events_per_shard=3,
        shards=[Shard(1, "events-000001.jsonl", 3), Shard(2, "events-000002.jsonl", 1)],
        total_events=4,
    )
    save_manifest_atomic(path, manifest)

    loaded = load_manifest(path)
    assert loaded.shards == manifest.shards
    assert loaded.total_events == 4
    assert loaded.max_events_per_shard == 3


def test_failed_replace_leaves_previous_manifest(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "index.json"
    save_manifest_atomic(path, Manifest(max_events_per_shard=3, total_events=0))
    before = path.read_text()

    def boom(src: object, dst: object) -> None:
        raise OSError("killed before rename")

    monkeypatch.setattr("simfeed.storage.manifest.os.replace", boom)
    with pytest.raises(FeedIOError):
        save_manifest_atomic(path, Manifest(max_events_per_shard=99, total_events=42))

    assert path.read_text() == before
    assert load_manifest(path).max_events_per_shard == 3


def test_scan_manifest_from_disk(tmp_path: Path) -> None:
    (tmp_path / "events-000001.jsonl").write_text('{"a":1}\n{"a":2}\n')
    (tmp_path / "events-000002.jsonl").write_text('{"a":3}\n\n')
    (tmp_path / "notes.txt").write_text("ignored\n")

    manifest = scan_manifest_from_disk(tmp_path, 2)

    assert [(s.seq, s.file, s.events) for s in manifest.shards] == [
        (1, "events-000001.jsonl", 2),
        (2, "events-000002.jsonl", 1),
    ]
    assert manifest.total_events == 3
    assert manifest.max_events_per_shard == 2


def test_load_normalizes_negative_version(tmp_path: Path) -> None:
    path = tmp_path / "index.json"
    path.write_text(json.dumps({"version": -3, "shards": []}))

    assert load_manifest(path).version == 1
