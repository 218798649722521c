from __future__ import annotations

import glob
import json
import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from simfeed.core.constants import (
    MANIFEST_FILE_NAME,
    SHARD_PREFIX,
    SHARD_SEQ_WIDTH,
    SHARD_SUFFIX,
)
from simfeed.core.errors import DecodeError, FeedIOError

logger = logging.getLogger(__name__)


def shard_file_name(seq: int) -> str:
    """Fixed-width name so lexical and numeric shard order coincide."""
    return f"{SHARD_PREFIX}{seq:0{SHARD_SEQ_WIDTH}d}{SHARD_SUFFIX}"


def parse_shard_seq(name: str) -> int | None:
    """Inverse of `shard_file_name`; None for anything that is not a shard."""
    if not (name.startswith(SHARD_PREFIX) and name.endswith(SHARD_SUFFIX)):
        return None
    mid = name[len(SHARD_PREFIX) : -len(SHARD_SUFFIX)]
    if not mid.isdigit():
        return None
    seq = int(mid)
    return seq if seq > 0 else None


class FeedDir:
    """
    Directory holding one sharded feed.

    Layout: <directory>/
              index.json
              events-000001.jsonl
              events-000002.jsonl
              ...
    """

    def __init__(self, directory: Path | str, *, create: bool = True) -> None:
        self.directory = Path(directory)
        if create:
            try:
                self.directory.mkdir(exist_ok=True, parents=True)
            except OSError as e:
                raise FeedIOError(f"cannot create feed directory {self.directory}: {e}") from e

    @property
    def manifest_path(self) -> Path:
        return self.directory / MANIFEST_FILE_NAME

    def shards_files_pattern(self) -> str:
        return (self.directory / f"{SHARD_PREFIX}*{SHARD_SUFFIX}").as_posix()

    def list_shards(self) -> list[tuple[int, Path]]:
        """Shard files on disk as (seq, path), ordered by seq."""
        found: list[tuple[int, Path]] = []
        for name in glob.glob(self.shards_files_pattern()):
            path = Path(name)
            seq = parse_shard_seq(path.name)
            if seq is not None and path.is_file():
                found.append((seq, path))
        return sorted(found)

    def max_seq(self) -> int:
        shards = self.list_shards()
        return shards[-1][0] if shards else 0

    def shard_path(self, seq: int) -> Path:
        return self.directory / shard_file_name(seq)


# ---------------------------------------------------------------------------
# Shard file helpers
# ---------------------------------------------------------------------------


def count_lines(path: Path) -> int:
    """Count non-blank lines in a shard file (0 if the file does not exist)."""
    if not path.exists():
        return 0
    n = 0
    try:
        with open(path, "rb") as f:
            for raw in f:
                if raw.strip():
                    n += 1
    except OSError as e:
        raise FeedIOError(f"cannot read shard {path}: {e}") from e
    return n


def truncate_torn_tail(path: Path) -> int:
    """Drop bytes after the last newline (a write torn by a crash).

    Returns the number of bytes removed.
    """
    if not path.exists():
        return 0
    try:
        with open(path, "rb+") as f:
            f.seek(0, os.SEEK_END)
            size = f.tell()
            if size == 0:
                return 0
            f.seek(size - 1)
            if f.read(1) == b"\n":
                return 0
            # Scan backwards in blocks for the last newline.
            pos = size
            keep = 0
            while pos > 0:
                step = min(64 * 1024, pos)
                pos -= step
                f.seek(pos)
                block = f.read(step)
                idx = block.rfind(b"\n")
                if idx >= 0:
                    keep = pos + idx + 1
                    break
            f.truncate(keep)
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        raise FeedIOError(f"cannot repair shard {path}: {e}") from e
    removed = size - keep
    logger.warning("discarded torn tail of %s (%d bytes)", path, removed)
    return removed


def iter_shard_events(path: Path) -> Iterator[dict[str, Any]]:
    """Yield events of one shard file in file order.

    A trailing incomplete line (no terminator, or not decodable as the last
    line) is discarded instead of failing: it is the footprint of a crash
    mid-append on the active shard.
    """
    try:
        with open(path, encoding="utf-8") as f:
            lines = f.read().split("\n")
    except OSError as e:
        raise FeedIOError(f"cannot read shard {path}: {e}") from e

    # split() leaves "" after the final newline; anything else is torn.
    tail = lines.pop()
    last = len(lines) - 1
    if tail.strip():
        logger.warning("ignoring incomplete trailing line in %s", path)
        last = -1
    for i, line in enumerate(lines):
        if not line.strip():
            continue
        try:
            yield json.loads(line)
        except json.JSONDecodeError as e:
            if i == last:
                logger.warning("ignoring undecodable trailing line in %s", path)
                return
            raise DecodeError(f"{path}:{i + 1}: invalid JSON: {e}") from e
