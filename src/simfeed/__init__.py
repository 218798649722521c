from __future__ import annotations

from .core.config import RebuildConfig, WriterConfig
from .core.errors import ClosedError, ConfigError, DecodeError, EventLineError, FeedError, FeedIOError
from .core.models import Manifest, Shard
from .rebuild import rebuild_feed_dir, rebuild_from_logs
from .storage import (
    AsyncFeedWriter,
    FeedReader,
    FeedWriter,
    load_manifest,
    save_manifest_atomic,
    verify_feed,
)

__all__ = [
    "RebuildConfig",
    "WriterConfig",
    "ClosedError",
    "ConfigError",
    "DecodeError",
    "EventLineError",
    "FeedError",
    "FeedIOError",
    "Manifest",
    "Shard",
    "rebuild_feed_dir",
    "rebuild_from_logs",
    "AsyncFeedWriter",
    "FeedReader",
    "FeedWriter",
    "load_manifest",
    "save_manifest_atomic",
    "verify_feed",
]
