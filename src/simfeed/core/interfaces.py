from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from simfeed.core.models import Manifest, Shard


# ---------------------------------------------------------------------------
# IEventSink
# ---------------------------------------------------------------------------

@runtime_checkable
class IEventSink(Protocol):
    """
    Append-only sink for serialized events.

    Domain expectations:
    - One call to `append_line` stores exactly one event.
    - The sink decides where the line lands (which shard, which file).
    - `close` finalizes the session and returns the persisted layout.
    """

    def append_line(self, line: str | bytes) -> Shard | None:
        """
        Append one already-serialized JSON event.

        Returns
        -------
        Shard | None
            The shard the line was written to, or None if the line was blank.
        """
        ...

    def append_event(self, event: Mapping[str, Any]) -> Shard | None:
        """Serialize a mapping and append it."""
        ...

    def close(self) -> Manifest:
        """
        Flush pending data and persist the manifest.

        Implementations:
        - FeedWriter (sharded JSONL directory)
        - In-memory sink for testing
        """
        ...
