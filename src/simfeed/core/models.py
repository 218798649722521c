"""Core data models for the sharded event feed.

This module defines:
- `Shard`: one append-only segment file of the feed (`seq`, `file`, `events`).
- `Manifest`: the durable description of the shard layout (`index.json`).

Design notes
------------
- Shards are ordered oldest -> newest; the last one is the only one that may
  still grow. Every other shard is sealed.
- `Manifest.to_json` is deterministic: fixed key order, two-space indent.
- Parsing of untrusted JSON lives in `simfeed.core.schemas`; these dataclasses
  are only built from already-validated data.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any

from simfeed.core.constants import MANIFEST_VERSION


@dataclass(slots=True)
class Shard:
    """A single shard entry as recorded in the manifest."""

    seq: int  # 1-based, strictly increasing
    file: str  # name relative to the feed directory, e.g. "events-000001.jsonl"
    events: int = 0  # JSONL lines held by the shard

    def is_full(self, max_events: int) -> bool:
        return self.events >= max_events


@dataclass(slots=True)
class Manifest:
    """Static-friendly manifest for a sharded JSONL event feed.

    Front-ends load `shards` from the end (newest first) so no single file grows
    unbounded and pagination works without a server API.
    """

    version: int = MANIFEST_VERSION
    generated_at: str | None = None
    max_events_per_shard: int = 0
    shards: list[Shard] = field(default_factory=list)
    total_events: int = 0

    @property
    def last_shard(self) -> Shard | None:
        return self.shards[-1] if self.shards else None

    def shard_counts(self) -> list[int]:
        return [s.events for s in self.shards]

    def recount_total(self) -> int:
        """Recompute `total_events` from the shard entries and return it."""
        self.total_events = sum(s.events for s in self.shards)
        return self.total_events

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "generated_at": self.generated_at,
            "max_events_per_shard": self.max_events_per_shard,
            "shards": [asdict(s) for s in self.shards],
            "total_events": self.total_events,
        }

    def to_json(self) -> str:
        """Serialize deterministically (key order is fixed by `to_dict`)."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
