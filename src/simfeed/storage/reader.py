"""Consumer-side access to a sharded feed.

Readers follow the static front-end contract: fetch `index.json` first, then
shard files on demand, newest first. Sealed shards never change; only the
manifest and the active shard may differ between two fetches.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

from simfeed.core.errors import FeedError
from simfeed.core.models import Manifest, Shard
from simfeed.storage.manifest import load_manifest
from simfeed.storage.shards import FeedDir, count_lines, iter_shard_events, shard_file_name


class FeedReader:
    def __init__(self, directory: Path | str) -> None:
        self.feed_dir = FeedDir(directory, create=False)

    def manifest(self) -> Manifest:
        return load_manifest(self.feed_dir.manifest_path)

    def iter_shard(self, shard: Shard) -> Iterator[dict[str, Any]]:
        """Events of one shard in write order (torn trailing line dropped)."""
        return iter_shard_events(self.feed_dir.directory / shard.file)

    def page(self, shard_offset: int, manifest: Manifest | None = None) -> list[dict[str, Any]]:
        """Events of the shard `shard_offset` positions back from the newest.

        `page(0)` is the active shard. Returns [] past the oldest shard.
        """
        manifest = manifest or self.manifest()
        if shard_offset < 0 or shard_offset >= len(manifest.shards):
            return []
        shard = manifest.shards[len(manifest.shards) - 1 - shard_offset]
        return list(self.iter_shard(shard))

    def iter_newest_first(self, limit: int | None = None) -> Iterator[dict[str, Any]]:
        """Yield events newest first, loading one shard at a time."""
        manifest = self.manifest()
        emitted = 0
        for offset in range(len(manifest.shards)):
            for event in reversed(self.page(offset, manifest)):
                if limit is not None and emitted >= limit:
                    return
                yield event
                emitted += 1


def verify_feed(directory: Path | str) -> list[str]:
    """Check a feed directory against the manifest invariants.

    Returns a list of human-readable problems; empty means consistent.
    """
    reader = FeedReader(directory)
    try:
        manifest = reader.manifest()
    except FeedError as e:
        return [str(e)]

    problems: list[str] = []
    bound = manifest.max_events_per_shard
    if bound <= 0:
        problems.append(f"max_events_per_shard must be positive, got {bound}")

    for i, shard in enumerate(manifest.shards):
        expected_seq = i + 1
        if shard.seq != expected_seq:
            problems.append(f"shard #{i}: seq {shard.seq}, expected {expected_seq}")
        if shard.file != shard_file_name(shard.seq):
            problems.append(f"shard {shard.seq}: file {shard.file!r}, expected {shard_file_name(shard.seq)!r}")
        path = reader.feed_dir.directory / shard.file
        if not path.is_file():
            problems.append(f"shard {shard.seq}: missing file {shard.file}")
            continue
        actual = count_lines(path)
        if actual != shard.events:
            problems.append(f"shard {shard.seq}: manifest records {shard.events} events, file holds {actual}")

    total = sum(manifest.shard_counts())
    if manifest.total_events != total:
        problems.append(f"total_events {manifest.total_events} != sum of shard events {total}")
    return problems
