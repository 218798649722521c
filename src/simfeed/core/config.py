from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from simfeed.core.constants import DEFAULT_MAX_EVENTS_PER_SHARD


@dataclass(frozen=True)
class WriterConfig:
    """Configuration for a `FeedWriter` session."""

    directory: Path
    max_events_per_shard: int = DEFAULT_MAX_EVENTS_PER_SHARD
    resume: bool = False  # False: restart the shard sequence at 1


@dataclass(frozen=True)
class RebuildConfig:
    """Configuration for an offline rebuild (CLI and `rebuild_feed_dir`)."""

    out_dir: Path
    log_paths: list[Path] = field(default_factory=list)
    max_events_per_shard: int = DEFAULT_MAX_EVENTS_PER_SHARD
    tolerant: bool = False  # skip and count malformed lines instead of failing
    concurrency: int = 8  # parallel file parsers
