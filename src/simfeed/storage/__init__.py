"""Storage components for the sharded JSONL feed.

This package provides:
- Manifest persistence: load_manifest, save_manifest_atomic, scan_manifest_from_disk
- FeedWriter / AsyncFeedWriter: append-only shard writer with count-based rotation
- FeedReader / verify_feed: consumer-side access and invariant checks
"""

from simfeed.storage.manifest import load_manifest, save_manifest_atomic, scan_manifest_from_disk
from simfeed.storage.reader import FeedReader, verify_feed
from simfeed.storage.shards import FeedDir, parse_shard_seq, shard_file_name
from simfeed.storage.writer import AsyncFeedWriter, FeedWriter

__all__ = [
    "load_manifest",
    "save_manifest_atomic",
    "scan_manifest_from_disk",
    "FeedReader",
    "verify_feed",
    "FeedDir",
    "parse_shard_seq",
    "shard_file_name",
    "AsyncFeedWriter",
    "FeedWriter",
]
