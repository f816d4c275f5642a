"""CLI interface for pyvsync."""

import logging
from typing import Any, Optional

import click

from .checksums import CHECKSUM_PREFERENCE, Checksum
from .cli_progress import run_sync_with_progress
from .exceptions import VsyncError, VsyncUnsupportedChecksumError
from .output import OutputFormatter
from .permissions import to_posix_string
from .sync.engine import SyncEngine
from .sync.modes import SyncMode
from .sync.options import SyncOptions
from .utils import DEFAULT_TIMESTAMP_TOLERANCE_MS, format_millis, format_size
from .vfs.base import VirtualFileSystem, resolve_path
from .vfs.path import VirtualPath
from .vfs.volume import parse_volume

logger = logging.getLogger(__name__)

CHECKSUM_CHOICES = [kind.value for kind in Checksum]


def _list_entries(fs: VirtualFileSystem, path: VirtualPath) -> list[VirtualPath]:
    """Return the children of a directory, or the entry itself for a file."""
    entry = fs.stat(path)
    if entry.is_directory:
        return sorted(fs.ls(entry), key=lambda p: p.name)
    return [entry]


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option()
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """pyvsync - Sync directory trees between local and SFTP volumes.

    A volume is a local path or [user@]host[:port]:path.
    """
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pyvsync").setLevel(logging.DEBUG)
        # paramiko's transport log is too chatty even for verbose output
        logging.getLogger("paramiko").setLevel(logging.INFO)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.argument("source")
@click.argument("target")
@click.option(
    "--mode",
    "-m",
    type=click.Choice([mode.value for mode in SyncMode], case_sensitive=False),
    default=SyncMode.MERGE.value,
    show_default=True,
    help="merge: TARGET mirrors SOURCE; nest: SOURCE is placed inside TARGET",
)
@click.option("--delete", is_flag=True, help="Delete target entries missing in source")
@click.option("--parents", "-p", is_flag=True, help="Create missing target parents")
@click.option(
    "--force", "-f", is_flag=True, help="Replace entries whose type differs"
)
@click.option(
    "--ignore-times",
    "-I",
    is_flag=True,
    help="Verify same-size files by checksum even when times match",
)
@click.option("--no-perms", is_flag=True, help="Do not compare or sync permissions")
@click.option("--owner", is_flag=True, help="Compare and sync owner and group")
@click.option(
    "--exclude",
    "-e",
    multiple=True,
    help="Skip source paths matching RULE (can be repeated)",
)
@click.option(
    "--ignore",
    "-i",
    multiple=True,
    help="Never touch target paths matching RULE (can be repeated)",
)
@click.option(
    "--checksum",
    "-c",
    type=click.Choice(CHECKSUM_CHOICES, case_sensitive=False),
    default=None,
    help="Checksum kind for same-size files (default: best common kind)",
)
@click.option(
    "--tolerance",
    type=click.IntRange(min=0),
    default=DEFAULT_TIMESTAMP_TOLERANCE_MS,
    show_default=True,
    help="Modification time tolerance in milliseconds",
)
@click.pass_context
def sync(
    ctx: Any,
    source: str,
    target: str,
    mode: str,
    delete: bool,
    parents: bool,
    force: bool,
    ignore_times: bool,
    no_perms: bool,
    owner: bool,
    exclude: tuple[str, ...],
    ignore: tuple[str, ...],
    checksum: Optional[str],
    tolerance: int,
) -> None:
    """Sync SOURCE onto TARGET.

    Examples:
        pyvsync sync ./site backup@nas:/srv/site --delete
        pyvsync sync --mode nest photos nas:2222:/archive -e "*.tmp"
    """
    out: OutputFormatter = ctx.obj["out"]

    options = SyncOptions(
        delete=delete,
        parents=parents,
        force=force,
        ignore_times=ignore_times,
        excludes=list(exclude),
        ignores=list(ignore),
        permissions=not no_perms,
        ownership=owner,
        timestamp_tolerance_ms=tolerance,
        checksum=Checksum.from_string(checksum) if checksum else None,
    )

    try:
        source_volume = parse_volume(source)
        target_volume = parse_volume(target)
        sync_mode = SyncMode.from_string(mode)

        out.info(f"Syncing {source_volume} -> {target_volume} ({sync_mode.value})")
        engine = SyncEngine(options)
        result = run_sync_with_progress(
            engine, source_volume, target_volume, sync_mode, out
        )
    except KeyboardInterrupt:
        out.warning("\nSync cancelled by user")
        ctx.exit(130)  # Standard exit code for SIGINT
    except VsyncError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json(result.to_dict())
        return

    if not result.has_changes:
        out.success("Already in sync")
        return

    out.print_summary(
        "Sync complete",
        [
            ("Files created", result.files_created),
            ("Files updated", result.files_updated),
            ("Files deleted", result.files_deleted),
            ("Directories created", result.dirs_created),
            ("Directories deleted", result.dirs_deleted),
            ("Metadata updated", result.stats_only_updated),
            ("Checksums computed", result.checksums),
        ],
    )


@main.command()
@click.argument("volume")
@click.pass_context
def ls(ctx: Any, volume: str) -> None:
    """List the entries of VOLUME.

    Examples:
        pyvsync ls ./site
        pyvsync ls backup@nas:/srv/site
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        parsed = parse_volume(volume)
        with parsed.open_filesystem() as fs:
            entries = _list_entries(fs, resolve_path(fs, parsed.path))
    except KeyboardInterrupt:
        ctx.exit(130)
    except VsyncError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json(
            [
                {
                    "name": entry.name,
                    "path": str(entry),
                    "type": entry.stat.type.value,
                    "permissions": entry.stat.permissions,
                    "size": entry.stat.size,
                    "modified_time": entry.stat.modified_time,
                }
                for entry in entries
                if entry.stat is not None
            ]
        )
        return

    rows = []
    for entry in entries:
        if entry.stat is None:
            continue
        name = f"{entry.name}/" if entry.is_directory else entry.name
        size = "" if entry.is_directory else format_size(entry.stat.size)
        rows.append(
            [
                entry.stat.type.value,
                to_posix_string(entry.stat.permissions),
                size,
                format_millis(entry.stat.modified_time),
                name,
            ]
        )
    if not rows:
        out.info("No entries found")
        return
    out.print_table(["Type", "Mode", "Size", "Modified", "Name"], rows)


@main.command()
@click.argument("volume")
@click.option(
    "--kind",
    "-k",
    type=click.Choice(CHECKSUM_CHOICES, case_sensitive=False),
    default=None,
    help="Checksum kind (default: best kind the volume supports)",
)
@click.pass_context
def checksum(ctx: Any, volume: str, kind: Optional[str]) -> None:
    """Print checksums of the files in VOLUME.

    VOLUME may be a directory (its files are listed) or a single file.
    Remote volumes compute all digests with batched commands.
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        parsed = parse_volume(volume)
        with parsed.open_filesystem() as fs:
            if kind is not None:
                selected = Checksum.from_string(kind)
            else:
                supported = [
                    k for k in CHECKSUM_PREFERENCE if fs.is_checksum_supported(k)
                ]
                if not supported:
                    raise VsyncUnsupportedChecksumError(
                        f"No checksum kind is supported on {fs.name}"
                    )
                selected = supported[0]
            if not fs.is_checksum_supported(selected):
                raise VsyncUnsupportedChecksumError(
                    f"Checksum {selected.value} is not supported on {fs.name}",
                    selected,
                )

            entries = _list_entries(fs, resolve_path(fs, parsed.path))
            files = [e for e in entries if e.stat is not None and e.stat.is_file]
            fs.checksums(selected, files)
    except KeyboardInterrupt:
        ctx.exit(130)
    except VsyncError as e:
        out.error(str(e))
        ctx.exit(1)

    digests = [(f, f.stat.digest(selected)) for f in files if f.stat is not None]
    if out.json_output:
        out.output_json(
            {
                "kind": selected.value,
                "files": [{"path": str(f), "checksum": d} for f, d in digests],
            }
        )
        return

    if not digests:
        out.info("No files found")
        return
    out.print_table(
        [selected.value, "Name"], [[str(digest), f.name] for f, digest in digests]
    )


if __name__ == "__main__":
    main()
