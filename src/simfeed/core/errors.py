"""Error taxonomy for the feed store.

Every error raised on purpose by this package derives from `FeedError`, so
callers (and the CLI) can catch the whole family at once. The concrete classes
also inherit from the matching builtin, which keeps `except ValueError` /
`except OSError` call sites working.
"""

from __future__ import annotations


class FeedError(Exception):
    """Base class for feed store errors."""


class ConfigError(FeedError, ValueError):
    """Invalid construction parameters (e.g. non-positive shard bound)."""


class FeedIOError(FeedError, OSError):
    """Read, write or rename failure on the local filesystem."""


class DecodeError(FeedError, ValueError):
    """Malformed manifest content or input event line."""


class ClosedError(FeedError):
    """Operation attempted on a writer that was already closed."""


class EventLineError(FeedError, ValueError):
    """A serialized event spans more than one line."""
