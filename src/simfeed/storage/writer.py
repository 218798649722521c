from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import IO, Any, TypeVar

from simfeed.core.config import WriterConfig
from simfeed.core.errors import ClosedError, ConfigError, EventLineError, FeedIOError
from simfeed.core.interfaces import IEventSink
from simfeed.core.models import Manifest, Shard
from simfeed.storage.manifest import load_manifest, save_manifest_atomic, scan_manifest_from_disk
from simfeed.storage.shards import FeedDir, count_lines, shard_file_name, truncate_torn_tail

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FeedWriter(IEventSink):
    """
    Append-only writer for a sharded JSONL feed.

    Behavior:
    - Lines go to the active (newest) shard and are flushed on every append.
    - The Nth append into a shard fills it; append N+1 seals it and opens
      shard `seq + 1`. Shards are created lazily, so N appends always yield
      ceil(N / max_events_per_shard) shards.
    - The manifest is persisted atomically on every rotation and on `close`.
      Between those points the active shard may hold more lines than the
      persisted manifest records; `resume=True` reconciles that drift.

    One instance owns the directory. It is not safe to call from several
    threads; use `AsyncFeedWriter` to share it among asyncio tasks.
    """

    def __init__(self, config: WriterConfig) -> None:
        if not str(config.directory or "").strip():
            raise ConfigError("feed directory is required")
        if config.max_events_per_shard <= 0:
            raise ConfigError(
                f"max_events_per_shard must be positive, got {config.max_events_per_shard}"
            )

        self.config = config
        self.max_events_per_shard = config.max_events_per_shard
        self.feed_dir = FeedDir(config.directory)

        self._fh: IO[bytes] | None = None
        self._closed = False

        if config.resume:
            self._manifest = self._init_from_existing()
        else:
            self._manifest = Manifest(max_events_per_shard=self.max_events_per_shard)
            save_manifest_atomic(self.feed_dir.manifest_path, self._manifest)

    @classmethod
    def open(cls, config: WriterConfig) -> FeedWriter:
        return cls(config)

    # ---------- init & helpers ----------

    def _init_from_existing(self) -> Manifest:
        """Load the manifest (or rebuild it from disk) and reconcile the active shard."""
        manifest_path = self.feed_dir.manifest_path
        if manifest_path.exists():
            manifest = load_manifest(manifest_path)
        elif self.feed_dir.max_seq() > 0:
            # Index missing but shards exist: rebuild it and resume on the newest shard.
            logger.warning("no manifest in %s, rebuilding it from shard files", self.feed_dir.directory)
            manifest = scan_manifest_from_disk(self.feed_dir.directory, self.max_events_per_shard)
            save_manifest_atomic(manifest_path, manifest)
        else:
            manifest = Manifest(max_events_per_shard=self.max_events_per_shard)

        if manifest.max_events_per_shard != self.max_events_per_shard:
            if manifest.max_events_per_shard:
                logger.info(
                    "shard bound changed %d → %d for %s",
                    manifest.max_events_per_shard,
                    self.max_events_per_shard,
                    self.feed_dir.directory,
                )
            manifest.max_events_per_shard = self.max_events_per_shard

        last = manifest.last_shard
        if last is not None:
            self._reconcile_active(manifest, last)
        return manifest

    def _reconcile_active(self, manifest: Manifest, active: Shard) -> None:
        """Trust the active shard file over the recorded count."""
        path = self.feed_dir.directory / active.file
        truncate_torn_tail(path)
        actual = count_lines(path)
        if actual != active.events:
            logger.warning(
                "shard %s: manifest records %d events, file holds %d; using file count",
                active.file,
                active.events,
                actual,
            )
            active.events = actual
        recorded_total = manifest.total_events
        if manifest.recount_total() != recorded_total:
            logger.warning(
                "total_events drift in %s: %d → %d",
                self.feed_dir.directory,
                recorded_total,
                manifest.total_events,
            )

    def _open_active(self, shard: Shard, *, truncate: bool) -> None:
        path = self.feed_dir.directory / shard.file
        try:
            self._fh = open(path, "wb" if truncate else "ab")
        except OSError as e:
            raise FeedIOError(f"cannot open shard {path}: {e}") from e

    def _release_active(self) -> None:
        if self._fh is None:
            return
        fh, self._fh = self._fh, None
        try:
            fh.flush()
        finally:
            fh.close()

    def _rotate(self) -> Shard:
        """Seal the active shard (if any) and register the next one."""
        self._release_active()
        last = self._manifest.last_shard
        if last is not None:
            logger.info("💾 sealed → %s  (events=%d)", last.file, last.events)
        seq = last.seq + 1 if last is not None else 1
        shard = Shard(seq=seq, file=shard_file_name(seq), events=0)
        # A file left behind by an earlier logical sequence is overwritten.
        self._open_active(shard, truncate=True)
        self._manifest.shards.append(shard)
        save_manifest_atomic(self.feed_dir.manifest_path, self._manifest)
        return shard

    def _ensure_writable(self) -> Shard:
        active = self._manifest.last_shard
        if active is None or active.is_full(self.max_events_per_shard):
            return self._rotate()
        if self._fh is None:
            self._open_active(active, truncate=False)
        return active

    def _check_open(self) -> None:
        if self._closed:
            raise ClosedError(f"writer for {self.feed_dir.directory} is closed")

    # ---------- core API ----------

    @property
    def directory(self) -> Path:
        return self.feed_dir.directory

    @property
    def manifest(self) -> Manifest:
        return self._manifest

    @property
    def active_shard(self) -> Shard | None:
        return self._manifest.last_shard

    @property
    def closed(self) -> bool:
        return self._closed

    def append_line(self, line: str | bytes) -> Shard | None:
        """Append one serialized event plus a line terminator.

        Blank input is ignored. Input spanning several lines raises
        `EventLineError`; no other validation is performed.
        """
        self._check_open()
        data = line.encode("utf-8") if isinstance(line, str) else bytes(line)
        data = data.strip()
        if not data:
            return None
        if b"\n" in data or b"\r" in data:
            raise EventLineError("serialized event must be a single line")

        shard = self._ensure_writable()
        assert self._fh is not None
        try:
            self._fh.write(data + b"\n")
            self._fh.flush()
        except OSError as e:
            raise FeedIOError(f"cannot append to shard {shard.file}: {e}") from e

        shard.events += 1
        self._manifest.total_events += 1
        return shard

    def append_event(self, event: Mapping[str, Any]) -> Shard | None:
        """Serialize `event` compactly and append it."""
        return self.append_line(json.dumps(event, ensure_ascii=False, separators=(",", ":")))

    def close(self) -> Manifest:
        """Flush the active shard and persist the manifest.

        May be called once; a second call raises `ClosedError`.
        """
        self._check_open()
        self._closed = True
        try:
            self._release_active()
        except OSError as e:
            raise FeedIOError(f"cannot flush active shard in {self.feed_dir.directory}: {e}") from e
        finally:
            save_manifest_atomic(self.feed_dir.manifest_path, self._manifest)
        return self._manifest

    def __enter__(self) -> FeedWriter:
        return self

    def __exit__(self, *exc: object) -> None:
        if not self._closed:
            self.close()


class AsyncFeedWriter:
    """Single-owner asyncio front for a `FeedWriter`.

    Many tasks may call `append_line` concurrently. A lock serializes them
    and the blocking file I/O runs on one dedicated worker thread, so a call
    whose task was cancelled still finishes before the next one starts.
    """

    def __init__(self, writer: FeedWriter) -> None:
        self.writer = writer
        self._lock = asyncio.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="simfeed-writer")

    @classmethod
    def open(cls, config: WriterConfig) -> AsyncFeedWriter:
        return cls(FeedWriter(config))

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        async with self._lock:
            # the worker thread is gone once close() ran
            self.writer._check_open()
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(self._executor, fn, *args)

    async def append_line(self, line: str | bytes) -> Shard | None:
        return await self._run(self.writer.append_line, line)

    async def append_event(self, event: Mapping[str, Any]) -> Shard | None:
        return await self._run(self.writer.append_event, event)

    async def close(self) -> Manifest:
        try:
            return await self._run(self.writer.close)
        finally:
            self._executor.shutdown(wait=False)
