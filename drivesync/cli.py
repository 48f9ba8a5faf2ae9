"""CLI interface for drivesync."""

import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click

from . import __version__
from .api import DriveClient
from .auth import establish_session, load_access_token
from .config import config
from .exceptions import (
    AuthError,
    ConfigError,
    RemoteAPIError,
    SyncCancelledError,
)
from .file_entries_manager import FileEntriesManager
from .output import OutputFormatter
from .sync import MappingResult, SyncEngine, SyncOrchestrator, load_mappings_from_json

logger = logging.getLogger(__name__)

EXIT_FATAL = 1
EXIT_MAPPING_FAILED = 2
EXIT_INTERRUPTED = 130


def _open_client(
    ctx: Any, out: OutputFormatter, credentials: Optional[str], retries: Optional[int]
) -> DriveClient:
    """Load credentials and verify the remote session, exiting on failure."""
    try:
        token = load_access_token(Path(credentials) if credentials else None)
        client = DriveClient(access_token=token, max_retries=retries)
        establish_session(client)
    except (AuthError, ConfigError) as e:
        out.error(str(e))
        ctx.exit(EXIT_FATAL)
    return client


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """drivesync - mirror local directories into remote folders."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("drivesync").setLevel(logging.DEBUG)
        # httpx logs every request at INFO; our own debug lines cover that
        logging.getLogger("httpx").setLevel(logging.WARNING)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--map-file",
    "-m",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSON mapping of local directory -> remote folder ID "
    "(default: $DRIVESYNC_MAP_FILE or dir_map.json)",
)
@click.option(
    "--credentials",
    "-c",
    type=click.Path(dir_okay=False),
    default=None,
    help="Service account key or access token file "
    "(default: $DRIVESYNC_CREDENTIALS_FILE or service-account.json)",
)
@click.option("--dry-run", is_flag=True, help="Show what would be done")
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum mappings synced at once (default: all)",
)
@click.option(
    "--retries",
    type=click.IntRange(min=0),
    default=None,
    help="Retry transient remote failures this many times "
    "(default: $DRIVESYNC_MAX_RETRIES or 0)",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Exit with status 2 if any mapping failed",
)
@click.pass_context
def sync(
    ctx: Any,
    map_file: Optional[str],
    credentials: Optional[str],
    dry_run: bool,
    workers: Optional[int],
    retries: Optional[int],
    strict: bool,
) -> None:
    """Mirror every configured local directory into its remote folder.

    Each mapping is reconciled independently and in parallel: new local
    files are uploaded, changed files are updated in place and remote files
    that no longer exist locally are deleted. Empty remote folders are left
    in place.

    Examples:
        drivesync sync                           # uses ./dir_map.json
        drivesync sync -m mappings.json --dry-run
        drivesync sync -c token.json --strict
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        mappings = load_mappings_from_json(Path(map_file) if map_file else config.map_file)
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(EXIT_FATAL)
        return  # Unreachable, but helps type checker

    client = _open_client(ctx, out, credentials, retries)

    with client:
        engine = SyncEngine(client, out)
        results = SyncOrchestrator(engine, max_workers=workers).run(
            mappings, dry_run=dry_run
        )

    _display_results(out, results, dry_run)

    if any(isinstance(r.error, SyncCancelledError) for r in results):
        ctx.exit(EXIT_INTERRUPTED)
    if strict and any(not r.success for r in results):
        ctx.exit(EXIT_MAPPING_FAILED)


def _display_results(
    out: OutputFormatter, results: list[MappingResult], dry_run: bool
) -> None:
    """Display the per-mapping summary."""
    if out.json_output:
        out.output_json({"dry_run": dry_run, "mappings": [r.to_dict() for r in results]})
        return

    out.print("")
    for result in results:
        stats = result.stats
        summary = (
            f"{stats['creates']} created, {stats['updates']} updated, "
            f"{stats['deletes']} deleted, {stats['skips']} unchanged"
        )
        if stats["conflicts"]:
            summary += f", {stats['conflicts']} conflict(s)"
        if stats["errors"]:
            summary += f", {stats['errors']} file error(s)"

        if result.success:
            out.success(f"{result.mapping.local}: {summary}")
        else:
            out.error(f"{result.mapping.local}: {result.error} ({summary})")

    failed = [r for r in results if not r.success]
    if not failed:
        out.success("Dry run complete!" if dry_run else "Sync completed successfully!")
    else:
        out.warning(f"{len(failed)} of {len(results)} mapping(s) failed")


@main.command(name="ls")
@click.argument("remote_root_id")
@click.option(
    "--credentials",
    "-c",
    type=click.Path(dir_okay=False),
    default=None,
    help="Service account key or access token file",
)
@click.pass_context
def ls(ctx: Any, remote_root_id: str, credentials: Optional[str]) -> None:
    """List the remote tree below REMOTE_ROOT_ID as sync sees it."""
    out: OutputFormatter = ctx.obj["out"]
    client = _open_client(ctx, out, credentials, None)

    with client:
        try:
            index = FileEntriesManager(client).scan(remote_root_id)
        except RemoteAPIError as e:
            out.error(f"Failed to list remote folder {remote_root_id}: {e}")
            ctx.exit(EXIT_FATAL)
            return

    entries = sorted(index.values(), key=lambda e: e.relative_path)
    if out.json_output:
        out.output_json(
            [
                {
                    "path": e.relative_path,
                    "id": e.id,
                    "md5": e.content_hash,
                    "folder": e.is_folder,
                }
                for e in entries
            ]
        )
        return

    if not entries:
        out.info("Remote folder is empty")
        return

    out.print_table(
        ["Path", "ID", "MD5"],
        [
            [
                f"{e.relative_path}/" if e.is_folder else e.relative_path,
                e.id,
                e.content_hash or "",
            ]
            for e in entries
        ],
    )


if __name__ == "__main__":
    sys.exit(main())
