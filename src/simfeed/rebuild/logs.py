"""Raw log reading for offline rebuilds.

Functions
---------
- discover_logs: list raw `logs*.jsonl` files of a simulation data directory.
- read_log_events: parse every line of every input file, in input order.
- gather_log_events: same result, with files parsed concurrently.
- sort_events: stable global order by (sim_time, timestamp).

Every non-blank line must be a JSON object carrying `sim_time` and `timestamp`.
By default the first bad line aborts the read (`DecodeError`); `tolerant=True`
skips and counts bad lines and unreadable files instead.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from simfeed.core.constants import DEFAULT_LOG_PATTERN
from simfeed.core.errors import ConfigError, DecodeError, FeedIOError
from simfeed.core.schemas import EventKeys

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class LogEvent:
    """One raw event line plus its parsed ordering keys."""

    sim_time: datetime
    timestamp: datetime
    line: str  # JSON text as read, surrounding whitespace trimmed
    sim_time_ns: int = 0  # below microsecond resolution
    timestamp_ns: int = 0

    def sort_key(self) -> tuple[datetime, int, datetime, int]:
        return (self.sim_time, self.sim_time_ns, self.timestamp, self.timestamp_ns)


@dataclass(kw_only=True)
class LogReadResult:
    """Events in encounter order plus tolerant-mode counters."""

    events: list[LogEvent] = field(default_factory=list)
    files_read: int = 0
    lines_read: int = 0
    skipped_files: int = 0
    skipped_lines: int = 0

    def merge(self, other: LogReadResult) -> None:
        self.events.extend(other.events)
        self.files_read += other.files_read
        self.lines_read += other.lines_read
        self.skipped_files += other.skipped_files
        self.skipped_lines += other.skipped_lines


def discover_logs(data_dir: Path | str, pattern: str = DEFAULT_LOG_PATTERN) -> list[Path]:
    """Raw log files directly under `data_dir`, sorted by name."""
    data_dir = Path(data_dir)
    if not data_dir.is_dir():
        return []
    return sorted(p for p in data_dir.glob(pattern) if p.is_file())


def _parse_line(raw: bytes, path: Path, lineno: int) -> LogEvent:
    try:
        text = raw.decode("utf-8").strip()
        keys = EventKeys.model_validate_json(text)
    except (UnicodeDecodeError, ValidationError) as e:
        raise DecodeError(f"{path}:{lineno}: bad event line: {e}") from e
    # shard lines are split on \r too
    if "\r" in text:
        raise DecodeError(f"{path}:{lineno}: bad event line: embedded carriage return")
    return LogEvent(
        sim_time=keys.sim_time,
        timestamp=keys.timestamp,
        line=text,
        sim_time_ns=keys.sim_time_ns,
        timestamp_ns=keys.timestamp_ns,
    )


def read_log_file(path: Path | str, *, tolerant: bool = False) -> LogReadResult:
    """Parse one raw log file."""
    path = Path(path)
    result = LogReadResult()
    try:
        with open(path, "rb") as f:
            for lineno, raw in enumerate(f, start=1):
                if not raw.strip():
                    continue
                result.lines_read += 1
                try:
                    result.events.append(_parse_line(raw, path, lineno))
                except DecodeError as e:
                    if not tolerant:
                        raise
                    result.skipped_lines += 1
                    logger.warning("skipping %s", e)
    except OSError as e:
        if not tolerant:
            raise FeedIOError(f"cannot read log {path}: {e}") from e
        logger.warning("skipping unreadable log %s: %s", path, e)
        return LogReadResult(skipped_files=1)
    result.files_read = 1
    return result


def read_log_events(paths: Sequence[Path | str], *, tolerant: bool = False) -> LogReadResult:
    """Parse all inputs sequentially; events keep input-file then line order."""
    total = LogReadResult()
    for path in paths:
        total.merge(read_log_file(path, tolerant=tolerant))
    return total


async def gather_log_events(
    paths: Sequence[Path | str],
    *,
    tolerant: bool = False,
    concurrency: int = 8,
) -> LogReadResult:
    """Parse inputs concurrently; the merged order equals `read_log_events`."""
    if concurrency <= 0:
        raise ConfigError(f"concurrency must be positive, got {concurrency}")
    sem = asyncio.Semaphore(concurrency)

    async def worker(path: Path | str) -> LogReadResult:
        async with sem:
            return await asyncio.to_thread(read_log_file, path, tolerant=tolerant)

    # gather() returns results in argument order, not completion order.
    parts = await asyncio.gather(*(worker(p) for p in paths))
    total = LogReadResult()
    for part in parts:
        total.merge(part)
    return total


def sort_events(events: list[LogEvent]) -> list[LogEvent]:
    """Global replay order: sim_time, then timestamp, then encounter order."""
    return sorted(events, key=LogEvent.sort_key)
