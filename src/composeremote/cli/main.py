"""CLI commands for composeremote."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.table import Table

from composeremote.core.exceptions import ComposeRemoteError
from composeremote.core.formatting import format_size, parse_size


if TYPE_CHECKING:
    from composeremote.adapters.cache import ArtifactCache
    from composeremote.core.models import CacheEntry


app = typer.Typer(
    name="compose-remote",
    help="Resolve oci:// compose references into cached local files.",
    no_args_is_help=True,
)

CACHE_DIR_HELP = "Cache directory. Defaults to ~/.cache/docker-compose/oci."


def _fail(error: ComposeRemoteError) -> typer.Exit:
    """Print an error with its recovery hint and return the exit to raise."""
    typer.echo(f"Error: {error}", err=True)
    if error.recovery_hint:
        typer.echo(f"Hint: {error.recovery_hint}", err=True)
    return typer.Exit(1)


def _open_cache(cache_dir: str | None) -> ArtifactCache:
    """Open the artifact cache at cache_dir or the default location."""
    from composeremote.adapters.cache import ArtifactCache
    from composeremote.config import default_cache_dir

    directory = Path(cache_dir) if cache_dir else default_cache_dir()
    return ArtifactCache(directory)


def _entries(count: int) -> str:
    return "entry" if count == 1 else "entries"


def _find_entry(cache: ArtifactCache, digest: str) -> CacheEntry:
    """Find the entry matching a digest, hex digest, or unique hex prefix."""
    key = digest.split(":", 1)[1] if ":" in digest else digest
    matches = [e for e in cache.entries() if e.digest_hex.startswith(key)]
    if not matches:
        typer.echo(f"No cache entry matches '{digest}'.")
        raise typer.Exit(1)
    if len(matches) > 1:
        typer.echo(f"'{digest}' is ambiguous, it matches {len(matches)} entries.")
        raise typer.Exit(1)
    return matches[0]


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log cache and registry activity to stderr.",
    ),
) -> None:
    """Resolve oci:// compose references into cached local files."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def resolve(
    references: list[str] = typer.Argument(
        help="References to resolve (oci://... or local paths)."
    ),
    offline: bool = typer.Option(
        False,
        "--offline",
        help="Skip remote references instead of fetching them.",
    ),
    cache_dir: str | None = typer.Option(None, "--cache-dir", help=CACHE_DIR_HELP),
    insecure_registry: list[str] = typer.Option(
        [],
        "--insecure-registry",
        help="Registry host to reach over plain HTTP (repeatable).",
    ),
) -> None:
    """Print the local path of each reference, fetching remote ones."""
    from composeremote import LoaderRegistry, RichProgressReporter
    from composeremote.adapters.registry import HttpRegistryResolver

    resolver = HttpRegistryResolver(insecure_registries=insecure_registry)
    try:
        with RichProgressReporter() as progress:
            try:
                registry = LoaderRegistry.from_environment(
                    offline=offline,
                    cache_dir=cache_dir,
                    resolver=resolver,
                    progress=progress,
                )
            except ComposeRemoteError as e:
                raise _fail(e) from None

            for reference in references:
                if reference.startswith("oci://") and registry.find(reference) is None:
                    typer.echo(
                        f"Error: cannot resolve '{reference}', "
                        "the OCI remote loader is disabled.",
                        err=True,
                    )
                    typer.echo(
                        "Hint: set COMPOSE_EXPERIMENTAL_OCI_REMOTE=1", err=True
                    )
                    raise typer.Exit(1)
                try:
                    path = registry.resolve(reference)
                except ComposeRemoteError as e:
                    raise _fail(e) from None
                if path:
                    typer.echo(path)
                else:
                    typer.echo(f"Skipped {reference} (offline).", err=True)
    finally:
        resolver.close()


@app.command(name="list")
def list_entries(
    cache_dir: str | None = typer.Option(None, "--cache-dir", help=CACHE_DIR_HELP),
) -> None:
    """List cached artifacts, most recently used first."""
    cache = _open_cache(cache_dir)
    entries = cache.entries()
    if not entries:
        typer.echo("Cache is empty.")
        return

    table = Table()
    table.add_column("Digest")
    table.add_column("Size", justify="right")
    table.add_column("Last used")
    for entry in entries:
        table.add_row(
            entry.digest_hex[:12],
            format_size(entry.size),
            entry.last_used.strftime("%Y-%m-%d %H:%M:%S"),
        )

    # Force terminal output to ensure tables render correctly in all environments
    console = Console(force_terminal=True)
    console.print(table)


@app.command()
def info(
    digest: str = typer.Argument(help="Manifest digest, hex digest, or hex prefix."),
    cache_dir: str | None = typer.Option(None, "--cache-dir", help=CACHE_DIR_HELP),
) -> None:
    """Show details for one cached artifact."""
    cache = _open_cache(cache_dir)
    entry = _find_entry(cache, digest)
    typer.echo(f"Digest: {entry.digest_hex}")
    typer.echo(f"  Path: {entry.path}")
    typer.echo(f"  Size: {format_size(entry.size)}")
    typer.echo(f"  Last used: {entry.last_used.isoformat()}")


@app.command()
def prune(
    max_size: str = typer.Option(
        ...,
        "--max-size",
        "-s",
        help="Evict least recently used entries until the cache fits (e.g. 100MB).",
    ),
    cache_dir: str | None = typer.Option(None, "--cache-dir", help=CACHE_DIR_HELP),
) -> None:
    """Evict least recently used artifacts down to a size bound."""
    try:
        limit = parse_size(max_size)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--max-size") from None

    cache = _open_cache(cache_dir)
    evicted = cache.prune(limit)
    freed = sum(e.size for e in evicted)
    typer.echo(
        f"Evicted {len(evicted)} cache {_entries(len(evicted))}, "
        f"freed {format_size(freed)}."
    )


@app.command()
def clean(
    older_than: int = typer.Option(
        3600,
        "--older-than",
        help="Only remove staging directories older than this many seconds.",
    ),
    cache_dir: str | None = typer.Option(None, "--cache-dir", help=CACHE_DIR_HELP),
) -> None:
    """Remove staging directories left behind by interrupted fetches."""
    cache = _open_cache(cache_dir)
    count = cache.clean_staging(older_than=older_than)
    noun = "directory" if count == 1 else "directories"
    typer.echo(f"Cleaned {count} staging {noun}.")


@app.command()
def clear(
    cache_dir: str | None = typer.Option(None, "--cache-dir", help=CACHE_DIR_HELP),
) -> None:
    """Remove every cached artifact."""
    cache = _open_cache(cache_dir)
    count = cache.clear()
    typer.echo(f"Removed {count} cache {_entries(count)}.")


def main() -> None:
    """Entry point for the CLI."""
    app()
