"""Offline rebuild of a canonical feed from raw simulation logs.

This package provides:
- Log readers (read_log_events, gather_log_events) with fail-fast and tolerant modes
- rebuild_from_logs / arebuild_from_logs: sort globally and re-shard into a directory
- rebuild_feed_dir: staged rebuild that keeps the previous feed as a backup
"""

from simfeed.rebuild.logs import (
    LogEvent,
    LogReadResult,
    discover_logs,
    gather_log_events,
    read_log_events,
    sort_events,
)
from simfeed.rebuild.rebuilder import (
    RebuildOutput,
    RebuildStats,
    arebuild_from_logs,
    rebuild_feed_dir,
    rebuild_from_logs,
)

__all__ = [
    "LogEvent",
    "LogReadResult",
    "discover_logs",
    "gather_log_events",
    "read_log_events",
    "sort_events",
    "RebuildOutput",
    "RebuildStats",
    "arebuild_from_logs",
    "rebuild_feed_dir",
    "rebuild_from_logs",
]
