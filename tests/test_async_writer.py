import asyncio
import json
import threading
import time
from collections.abc import Callable
from pathlib import Path

import pytest

from simfeed.core.config import WriterConfig
from simfeed.core.errors import ClosedError
from simfeed.storage.manifest import load_manifest
from simfeed.storage.writer import AsyncFeedWriter


@pytest.mark.asyncio
async def test_concurrent_tasks_share_one_writer(tmp_path: Path, event_line: Callable[..., str]) -> None:
    writer = AsyncFeedWriter.open(WriterConfig(directory=tmp_path, max_events_per_shard=4))

    await asyncio.gather(*(writer.append_line(event_line(i)) for i in range(10)))
    manifest = await writer.close()

    assert manifest.shard_counts() == [4, 4, 2]
    assert load_manifest(tmp_path / "index.json").total_events == 10

    ticks: list[int] = []
    for shard in manifest.shards:
        for line in (tmp_path / shard.file).read_text().splitlines():
            ticks.append(json.loads(line)["tick"])
    assert sorted(ticks) == list(range(10))


@pytest.mark.asyncio
async def test_append_after_close_fails(tmp_path: Path) -> None:
    writer = AsyncFeedWriter.open(WriterConfig(directory=tmp_path, max_events_per_shard=4))
    await writer.append_event({"sim_time": "2026-01-01T00:00:00Z", "timestamp": "2026-01-01T00:00:00Z"})
    await writer.close()

    with pytest.raises(ClosedError):
        await writer.append_event({"sim_time": "2026-01-01T00:00:01Z", "timestamp": "2026-01-01T00:00:01Z"})


@pytest.mark.asyncio
async def test_cancelled_append_finishes_before_next_write(
    tmp_path: Path, event_line: Callable[..., str], monkeypatch: pytest.MonkeyPatch
) -> None:
    writer = AsyncFeedWriter.open(WriterConfig(directory=tmp_path, max_events_per_shard=4))
    active = {"now": 0, "max": 0}
    guard = threading.Lock()
    append_line = writer.writer.append_line

    def slow_append(line):
        with guard:
            active["now"] += 1
            active["max"] = max(active["max"], active["now"])
        try:
            time.sleep(0.2)
            return append_line(line)
        finally:
            with guard:
                active["now"] -= 1

    monkeypatch.setattr(writer.writer, "append_line", slow_append)

    first = asyncio.create_task(writer.append_line(event_line(0)))
    await asyncio.sleep(0.05)
    first.cancel()
    with pytest.raises(asyncio.CancelledError):
        await first

    await writer.append_line(event_line(1))
    manifest = await writer.close()

    assert active["max"] == 1
    ticks = [json.loads(line)["tick"] for line in (tmp_path / "events-000001.jsonl").read_text().splitlines()]
    assert ticks == [0, 1]
    assert manifest.total_events == 2
