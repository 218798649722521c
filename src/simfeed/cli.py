import asyncio
import logging
import sys
import time
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .core.config import RebuildConfig, WriterConfig
from .core.constants import DEFAULT_FEED_NAME, DEFAULT_LOG_PATTERN, DEFAULT_MAX_EVENTS_PER_SHARD
from .core.errors import FeedError

console = Console()


@click.group()
@click.option("-v", "--verbose", count=True, help="Repeat for debug logging")
def cli(verbose: int) -> None:
    """simfeed: sharded, append-only event feed for simulation replays."""
    level = logging.WARNING - 10 * min(verbose, 2)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@cli.command("append")
@click.argument("feed_dir", type=click.Path(file_okay=False, path_type=Path))
@click.option("--input", "input_file", type=click.File("rb"), default="-", show_default=True, help="JSONL source; '-' for stdin")
@click.option("--max-events", type=int, default=DEFAULT_MAX_EVENTS_PER_SHARD, show_default=True, help="Max events per shard file")
@click.option("--fresh", is_flag=True, default=False, help="Restart the shard sequence instead of resuming")
def append_cmd(feed_dir: Path, input_file, max_events: int, fresh: bool) -> None:
    """Append JSONL events from a file or stdin to FEED_DIR."""
    from .storage.writer import FeedWriter

    config = WriterConfig(directory=feed_dir, max_events_per_shard=max_events, resume=not fresh)
    try:
        with FeedWriter(config) as writer:
            appended = 0
            for line in input_file:
                if writer.append_line(line) is not None:
                    appended += 1
        manifest = writer.manifest
    except FeedError as e:
        raise click.ClickException(str(e)) from e

    console.print(
        f"[bold]appended[/]: {appended} events • "
        f"total={manifest.total_events} shards={len(manifest.shards)}"
    )


@cli.command("rebuild")
@click.option("--data", "data_dir", type=click.Path(exists=True, file_okay=False, path_type=Path), required=True, help="Simulation data directory")
@click.option("--feed", "feed_name", default=DEFAULT_FEED_NAME, show_default=True, help="Feed directory name, relative to --data")
@click.option("--max-events", type=int, default=DEFAULT_MAX_EVENTS_PER_SHARD, show_default=True, help="Max events per shard file")
@click.option("--log", "log_paths", multiple=True, type=click.Path(dir_okay=False, path_type=Path), help="Raw log file; repeat. Defaults to logs*.jsonl under --data")
@click.option("--tolerant/--strict", default=False, show_default=True, help="Skip malformed lines instead of aborting")
@click.option("--concurrency", type=int, default=8, show_default=True, help="Parallel file parsers")
def rebuild_cmd(
    data_dir: Path,
    feed_name: str,
    max_events: int,
    log_paths: tuple[Path, ...],
    tolerant: bool,
    concurrency: int,
) -> None:
    """Rebuild a canonical sharded feed from raw simulation logs."""
    from .rebuild import discover_logs, rebuild_feed_dir

    paths = list(log_paths) or discover_logs(data_dir, DEFAULT_LOG_PATTERN)
    if not paths:
        raise click.UsageError(f"No {DEFAULT_LOG_PATTERN} files in {data_dir}; pass --log")

    config = RebuildConfig(
        out_dir=data_dir / (feed_name.strip() or DEFAULT_FEED_NAME),
        log_paths=paths,
        max_events_per_shard=max_events,
        tolerant=tolerant,
        concurrency=concurrency,
    )

    t0 = time.time()
    try:
        with console.status(f"rebuilding from {len(paths)} log files"):
            output = asyncio.run(rebuild_feed_dir(config))
    except FeedError as e:
        raise click.ClickException(str(e)) from e

    stats = output.stats
    elapsed = time.time() - t0
    console.print(f"[bold]done[/]: {stats.events_written} events → {output.feed_dir} • {elapsed:.2f}s")
    console.print(
        f"[bold]summary[/]: "
        f"[green]files_read[/]={stats.files_read}  "
        f"[red]skipped_files[/]={stats.skipped_files}  "
        f"[red]skipped_lines[/]={stats.skipped_lines}  "
        f"(lines={stats.lines_read}, shards={stats.shards_written})"
    )
    if output.backup_dir is not None:
        console.print(f"[yellow]previous feed[/]: {output.backup_dir}")


@cli.command("reindex")
@click.argument("feed_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--max-events", type=int, default=DEFAULT_MAX_EVENTS_PER_SHARD, show_default=True, help="Bound recorded in the manifest")
def reindex_cmd(feed_dir: Path, max_events: int) -> None:
    """Regenerate index.json from the shard files in FEED_DIR."""
    from .storage.manifest import save_manifest_atomic, scan_manifest_from_disk
    from .storage.shards import FeedDir

    if max_events <= 0:
        raise click.BadParameter("must be positive", param_hint="--max-events")
    try:
        manifest = scan_manifest_from_disk(feed_dir, max_events)
        path = save_manifest_atomic(FeedDir(feed_dir).manifest_path, manifest)
    except FeedError as e:
        raise click.ClickException(str(e)) from e
    console.print(f"[bold]wrote[/] {path}: {len(manifest.shards)} shards, {manifest.total_events} events")


@cli.command("inspect")
@click.argument("feed_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
def inspect_cmd(feed_dir: Path) -> None:
    """Show the manifest of FEED_DIR."""
    from .storage.reader import FeedReader

    try:
        manifest = FeedReader(feed_dir).manifest()
    except FeedError as e:
        raise click.ClickException(str(e)) from e

    table = Table(title=f"{feed_dir} (v{manifest.version}, generated {manifest.generated_at})")
    table.add_column("seq", justify="right")
    table.add_column("file")
    table.add_column("events", justify="right")
    for shard in manifest.shards:
        table.add_row(str(shard.seq), shard.file, str(shard.events))
    console.print(table)
    console.print(
        f"[bold]total_events[/]={manifest.total_events}  "
        f"[bold]max_events_per_shard[/]={manifest.max_events_per_shard}"
    )


@cli.command("verify")
@click.argument("feed_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
def verify_cmd(feed_dir: Path) -> None:
    """Check FEED_DIR against its manifest; exit 1 on any problem."""
    from .storage.reader import verify_feed

    problems = verify_feed(feed_dir)
    if not problems:
        console.print(f"[green]ok[/]: {feed_dir}")
        return
    for problem in problems:
        console.print(f"[red]✗[/] {problem}")
    sys.exit(1)


if __name__ == "__main__":
    cli()
