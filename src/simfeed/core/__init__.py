"""Core data models, configuration, errors and constants.

This package provides:
- Data models (Shard, Manifest) and pydantic wire schemas (ManifestDoc, EventKeys)
- Configuration classes (WriterConfig, RebuildConfig)
- The error taxonomy (FeedError and subclasses)
"""

from simfeed.core.config import RebuildConfig, WriterConfig
from simfeed.core.errors import (
    ClosedError,
    ConfigError,
    DecodeError,
    EventLineError,
    FeedError,
    FeedIOError,
)
from simfeed.core.models import Manifest, Shard
from simfeed.core.schemas import EventKeys, ManifestDoc

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
    "EventKeys",
    "ManifestDoc",
]
