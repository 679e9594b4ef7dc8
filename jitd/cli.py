"""jit CLI.

Provides commands to pre-build assets and to run the daemon.
"""

import asyncio
import sys

import click
import uvicorn

from jit_library.batch import build_glob
from jit_library.config.loader import load_config
from jit_library.freshness import ProtocolOptions


@click.group()
def cli():
    """jit - just-in-time asset compilation."""
    pass


@cli.command()
@click.argument("patterns", nargs=-1, required=True)
@click.option("--force", is_flag=True, help="Recompile even when artifacts are fresh")
@click.option("--immutable", is_flag=True, help="Only compile assets that have no artifact yet")
@click.option("--minify", is_flag=True, help="Minify compiled output")
@click.option("--drift", type=float, default=None, help="Maximum mtime drift in ms for a cache hit")
@click.option("--exclude", multiple=True, help="fnmatch pattern of files to leave out (repeatable)")
def build(
    patterns: tuple[str, ...],
    force: bool,
    immutable: bool,
    minify: bool,
    drift: float | None,
    exclude: tuple[str, ...],
):
    """Compile every asset matching PATTERNS next to its source."""
    settings = load_config()

    try:
        options = ProtocolOptions(
            force=force or settings.force,
            immutable=immutable or settings.immutable,
            minify=minify or settings.minify,
            hash_drift=settings.hash_drift if drift is None else drift,
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)

    report = asyncio.run(build_glob(list(patterns), options, exclude=exclude))

    for session in report.built:
        click.echo(f"Built {session.source_path} -> {session.dest_path}")
    for session in report.cached:
        click.echo(f"Fresh {session.dest_path}")
    for session in report.failed:
        click.echo(f"Failed {session.source_path or session.subject}: {session.error}", err=True)

    click.echo(
        f"{len(report.built)} built, {len(report.cached)} fresh, "
        f"{len(report.failed)} failed, {len(report.skipped)} skipped"
    )
    if not report.ok:
        sys.exit(1)


@cli.command()
@click.option("--host", default=None, help="Listen address (default: from config)")
@click.option("--port", type=int, default=None, help="Listen port (default: from config)")
def serve(host: str | None, port: int | None):
    """Run the jitd daemon in the foreground."""
    config = load_config()
    uvicorn.run(
        "jitd.main:create_app",
        factory=True,
        host=host or config.host,
        port=port or config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    cli()
