from pathlib import Path

import pytest

from simfeed.core.errors import DecodeError
from simfeed.storage.shards import (
    FeedDir,
    count_lines,
    iter_shard_events,
    parse_shard_seq,
    shard_file_name,
    truncate_torn_tail,
)


def test_shard_file_name_is_fixed_width() -> None:
    assert shard_file_name(1) == "events-000001.jsonl"
    assert shard_file_name(123456) == "events-123456.jsonl"
    names = [shard_file_name(s) for s in (2, 10, 100)]
    assert sorted(names) == names


@pytest.mark.parametrize(
    "name, expected",
    [
        ("events-000007.jsonl", 7),
        ("events-000000.jsonl", None),
        ("events-abc.jsonl", None),
        ("events-000001.json", None),
        ("index.json", None),
    ],
)
def test_parse_shard_seq(name: str, expected: int | None) -> None:
    assert parse_shard_seq(name) == expected


def test_feed_dir_lists_shards_by_seq(tmp_path: Path) -> None:
    feed_dir = FeedDir(tmp_path / "feed")
    for seq in (3, 1, 2):
        feed_dir.shard_path(seq).write_text("{}\n")
    (feed_dir.directory / "events-x.jsonl").write_text("{}\n")

    assert [seq for seq, _ in feed_dir.list_shards()] == [1, 2, 3]
    assert feed_dir.max_seq() == 3
    assert feed_dir.manifest_path.name == "index.json"


def test_count_lines_skips_blank(tmp_path: Path) -> None:
    path = tmp_path / "s.jsonl"
    path.write_text('{"a":1}\n\n  \n{"a":2}\n')

    assert count_lines(path) == 2
    assert count_lines(tmp_path / "missing.jsonl") == 0


def test_truncate_torn_tail(tmp_path: Path) -> None:
    path = tmp_path / "s.jsonl"
    path.write_bytes(b'{"a":1}\n{"a":2}\n{"a":')

    removed = truncate_torn_tail(path)

    assert removed == len(b'{"a":')
    assert path.read_bytes() == b'{"a":1}\n{"a":2}\n'
    assert truncate_torn_tail(path) == 0


def test_truncate_torn_tail_without_any_newline(tmp_path: Path) -> None:
    path = tmp_path / "s.jsonl"
    path.write_bytes(b'{"a":1')

    truncate_torn_tail(path)

    assert path.read_bytes() == b""


def test_iter_shard_events_drops_incomplete_tail(tmp_path: Path) -> None:
    path = tmp_path / "s.jsonl"
    path.write_text('{"a":1}\n{"a":2}\n{"a":3')

    assert list(iter_shard_events(path)) == [{"a": 1}, {"a": 2}]


def test_iter_shard_events_drops_undecodable_last_line(tmp_path: Path) -> None:
    path = tmp_path / "s.jsonl"
    path.write_text('{"a":1}\n{"a":\n')

    assert list(iter_shard_events(path)) == [{"a": 1}]


def test_iter_shard_events_fails_on_corrupt_middle_line(tmp_path: Path) -> None:
    path = tmp_path / "s.jsonl"
    path.write_text('{"a":1}\nnot json\n{"a":3}\n')

    with pytest.raises(DecodeError):
        list(iter_shard_events(path))
