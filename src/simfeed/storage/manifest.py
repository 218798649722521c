from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from simfeed.core.constants import MANIFEST_VERSION
from simfeed.core.errors import DecodeError, FeedIOError
from simfeed.core.models import Manifest, Shard
from simfeed.core.schemas import ManifestDoc
from simfeed.storage.shards import FeedDir, count_lines

logger = logging.getLogger(__name__)


def load_manifest(path: Path | str) -> Manifest:
    """Read and validate `index.json`.

    Raises:
        FeedIOError: the file cannot be read (including when it is missing)
        DecodeError: the content is not JSON or not a manifest
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FeedIOError(f"cannot read manifest {path}: {e}") from e
    try:
        doc = ManifestDoc.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise DecodeError(f"malformed manifest {path}: {e}") from e
    return doc.to_manifest()


def save_manifest_atomic(path: Path | str, manifest: Manifest) -> Path:
    """Persist the manifest so no reader ever sees a partial file.

    Normalizes the version, stamps `generated_at`, writes to a temporary file
    next to the destination and replaces the destination in one rename. A
    crash before the rename leaves the previous manifest untouched.
    """
    path = Path(path)
    if manifest.version <= 0:
        manifest.version = MANIFEST_VERSION
    manifest.generated_at = datetime.now(timezone.utc).isoformat()

    tmp = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(manifest.to_json())
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except OSError as e:
        raise FeedIOError(f"cannot write manifest {path}: {e}") from e
    return path


def scan_manifest_from_disk(directory: Path | str, max_events_per_shard: int) -> Manifest:
    """Build a manifest from the shard files present in `directory`.

    Used when a feed lost its `index.json` but kept its shards.
    """
    feed_dir = FeedDir(directory, create=False)
    shards = [
        Shard(seq=seq, file=p.name, events=count_lines(p))
        for seq, p in feed_dir.list_shards()
    ]
    manifest = Manifest(
        version=MANIFEST_VERSION,
        max_events_per_shard=max_events_per_shard,
        shards=shards,
    )
    manifest.recount_total()
    logger.info(
        "scanned %s → %d shards, %d events", feed_dir.directory, len(shards), manifest.total_events
    )
    return manifest
