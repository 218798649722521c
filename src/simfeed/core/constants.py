from __future__ import annotations

# Manifest / shard file layout
MANIFEST_FILE_NAME = "index.json"
MANIFEST_VERSION   = 1
SHARD_PREFIX       = "events-"
SHARD_SUFFIX       = ".jsonl"
SHARD_SEQ_WIDTH    = 6

DEFAULT_MAX_EVENTS_PER_SHARD = 200
DEFAULT_LOG_PATTERN          = "logs*.jsonl"
DEFAULT_FEED_NAME            = "feed"
