"""Offline rebuild: raw logs → canonical sharded feed.

This module provides two layers:

1) `rebuild_from_logs(...)` / `arebuild_from_logs(...)`:
   - Read every input line, sort globally by (sim_time, timestamp), and write
     the lines through a fresh `FeedWriter` into `out_dir`.
   - Output is indistinguishable from organic writer output: same file names,
     shards of exactly `max_events_per_shard` except the last one.
   - Deterministic: identical inputs and bound give byte-identical shards and
     a manifest that differs only in `generated_at`.

2) `rebuild_feed_dir(config)`:
   - Same rebuild, staged in a sibling directory and swapped into place.
   - Any previous feed directory is moved aside, never deleted.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from simfeed.core.config import RebuildConfig, WriterConfig
from simfeed.core.errors import ConfigError, FeedIOError
from simfeed.core.models import Manifest
from simfeed.rebuild.logs import LogEvent, gather_log_events, read_log_events, sort_events
from simfeed.storage.manifest import load_manifest
from simfeed.storage.shards import FeedDir
from simfeed.storage.writer import FeedWriter

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class RebuildStats:
    """Counters reported by a rebuild run."""

    files_read: int = 0
    skipped_files: int = 0
    lines_read: int = 0
    skipped_lines: int = 0
    events_written: int = 0
    shards_written: int = 0


@dataclass(kw_only=True)
class RebuildOutput:
    manifest: Manifest
    stats: RebuildStats
    feed_dir: Path
    backup_dir: Path | None = None


# ---------------------------------------------------------------------------
# Write phase
# ---------------------------------------------------------------------------


def _check_bound(max_events_per_shard: int) -> None:
    if max_events_per_shard <= 0:
        raise ConfigError(f"max_events_per_shard must be positive, got {max_events_per_shard}")


def _write_sorted(out_dir: Path, events: list[LogEvent], max_events_per_shard: int) -> Manifest:
    """Write already-sorted events into a fresh shard sequence."""
    previous_max_seq = FeedDir(out_dir).max_seq()

    with FeedWriter(WriterConfig(out_dir, max_events_per_shard, resume=False)) as writer:
        for ev in events:
            writer.append_line(ev.line)

    manifest = load_manifest(writer.feed_dir.manifest_path)
    if previous_max_seq > len(manifest.shards):
        logger.warning(
            "%s holds stale shard files %d..%d not referenced by the new manifest",
            out_dir,
            len(manifest.shards) + 1,
            previous_max_seq,
        )
    logger.info(
        "rebuilt %s: %d events in %d shards",
        out_dir,
        manifest.total_events,
        len(manifest.shards),
    )
    return manifest


# ---------------------------------------------------------------------------
# 1) Rebuild into a directory
# ---------------------------------------------------------------------------


def rebuild_from_logs(
    out_dir: Path | str,
    log_paths: Sequence[Path | str],
    max_events_per_shard: int,
    *,
    tolerant: bool = False,
) -> Manifest:
    """Merge raw logs into a canonical, globally ordered sharded feed.

    Raises:
        ConfigError: non-positive shard bound (nothing is touched)
        FeedIOError: an input cannot be read (fail-fast mode) or output fails
        DecodeError: an input line is malformed (fail-fast mode)
    """
    _check_bound(max_events_per_shard)
    result = read_log_events(log_paths, tolerant=tolerant)
    return _write_sorted(Path(out_dir), sort_events(result.events), max_events_per_shard)


async def arebuild_from_logs(
    out_dir: Path | str,
    log_paths: Sequence[Path | str],
    max_events_per_shard: int,
    *,
    tolerant: bool = False,
    concurrency: int = 8,
) -> Manifest:
    """`rebuild_from_logs` with the parse phase spread across files."""
    _check_bound(max_events_per_shard)
    result = await gather_log_events(log_paths, tolerant=tolerant, concurrency=concurrency)
    return await asyncio.to_thread(
        _write_sorted, Path(out_dir), sort_events(result.events), max_events_per_shard
    )


# ---------------------------------------------------------------------------
# 2) Staged rebuild with backup
# ---------------------------------------------------------------------------


def _rename(src: Path, dst: Path) -> None:
    try:
        os.replace(src, dst)
    except OSError as e:
        raise FeedIOError(f"cannot move {src} → {dst}: {e}") from e


async def rebuild_feed_dir(config: RebuildConfig) -> RebuildOutput:
    """Rebuild `config.out_dir` from `config.log_paths` without losing data.

    Layout while running:
        <parent>/<feed>.rebuild-<stamp>/   staging (new shards + index.json)
        <parent>/<feed>.bak-<stamp>/       previous feed, if any
        <parent>/<feed>/                   staging renamed into place
    """
    _check_bound(config.max_events_per_shard)
    target = Path(config.out_dir)
    stamp = time.strftime("%Y%m%d-%H%M%S", time.gmtime())
    staging = target.with_name(f"{target.name}.rebuild-{stamp}")

    result = await gather_log_events(
        config.log_paths, tolerant=config.tolerant, concurrency=config.concurrency
    )
    manifest = await asyncio.to_thread(
        _write_sorted, staging, sort_events(result.events), config.max_events_per_shard
    )

    backup: Path | None = None
    if target.is_dir():
        backup = target.with_name(f"{target.name}.bak-{stamp}")
        _rename(target, backup)
        logger.info("previous feed kept at %s", backup)
    _rename(staging, target)

    stats = RebuildStats(
        files_read=result.files_read,
        skipped_files=result.skipped_files,
        lines_read=result.lines_read,
        skipped_lines=result.skipped_lines,
        events_written=manifest.total_events,
        shards_written=len(manifest.shards),
    )
    return RebuildOutput(manifest=manifest, stats=stats, feed_dir=target, backup_dir=backup)
