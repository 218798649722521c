"""Pydantic schemas for JSON read from disk.

- `ManifestDoc` / `ShardDoc` validate `index.json` before it becomes a
  `simfeed.core.models.Manifest`.
- `EventKeys` extracts the two ordering fields every event must carry.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from simfeed.core.constants import MANIFEST_VERSION
from simfeed.core.models import Manifest, Shard

_FRACTION_RE = re.compile(r"(T\d{2}:\d{2}:\d{2}[.,]\d{6})(\d+)")


class ShardDoc(BaseModel):
    seq: int
    file: str
    events: int = 0


class ManifestDoc(BaseModel):
    version: int = 0
    generated_at: str | None = None
    max_events_per_shard: int = 0
    shards: Sequence[ShardDoc] | None = None
    total_events: int = 0

    def to_manifest(self) -> Manifest:
        return Manifest(
            version=self.version if self.version > 0 else MANIFEST_VERSION,
            generated_at=self.generated_at,
            max_events_per_shard=self.max_events_per_shard,
            shards=[Shard(seq=s.seq, file=s.file, events=s.events) for s in self.shards or []],
            total_events=self.total_events,
        )


def _split_nanos(value: Any) -> tuple[Any, int]:
    """Cut an RFC 3339 string to microseconds; return it with the nanoseconds cut off (0..999)."""
    if not isinstance(value, str):
        return value, 0
    m = _FRACTION_RE.search(value)
    if m is None:
        return value, 0
    nanos = int(m.group(2)[:3].ljust(3, "0"))
    return value[: m.end(1)] + value[m.end(2) :], nanos


class EventKeys(BaseModel):
    """Ordering keys of one event; every other field is opaque payload.

    `datetime` stops at microseconds while producers may write up to nine
    fractional digits, so the remaining nanoseconds are kept next to each key.
    """

    model_config = ConfigDict(extra="ignore")

    sim_time: datetime
    timestamp: datetime
    sim_time_ns: int = 0
    timestamp_ns: int = 0

    @model_validator(mode="before")
    @classmethod
    def _capture_nanos(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            for key in ("sim_time", "timestamp"):
                if key in data:
                    data[key], data[f"{key}_ns"] = _split_nanos(data[key])
        return data

    @field_validator("sim_time", "timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # naive and aware datetimes do not compare
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def sort_key(self) -> tuple[datetime, int, datetime, int]:
        return (self.sim_time, self.sim_time_ns, self.timestamp, self.timestamp_ns)
