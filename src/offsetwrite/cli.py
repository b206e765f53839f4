"""
offsetwrite CLI

Verbs:
- plan: Preview the part manifest for a write (offline)
- write: Write a file (or stdin) into a key at an offset
- stat: Show object or directory metadata
- ls: List direct descendants of a path
- cat: Stream an object from an offset to stdout
- mv: Rename a key
- rm: Delete a key or everything under a path
- url: Print the download URL of a key
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from .cli_context import CLIContext
from .operations import run_and_exit
from .operations.printers import print_listing, print_manifest, print_stat
from .planner import plan_offset_write

app = typer.Typer(name="offsetwrite", help="Offset writes against compose-only object stores")


def _context(ctx: typer.Context, token: Optional[str] = None) -> CLIContext:
    """Injected context (tests) or one built from the environment."""
    if isinstance(ctx.obj, CLIContext):
        return ctx.obj
    ctx.obj = CLIContext.from_env(token)
    return ctx.obj


@app.command()
def plan(
    offset: int = typer.Option(..., "--offset", "-o", help="Write start position"),
    length: int = typer.Option(..., "--length", "-n", help="Bytes to write"),
    existing_size: Optional[int] = typer.Option(
        None, "--existing-size", "-s", help="Current object size (omit if the key is absent)"
    ),
    key: str = typer.Option("key", "--key", "-k", help="Key the copy parts reference"),
    json_output: bool = typer.Option(False, "--json", help="Print the wire 'parts' document"),
):
    """Show the part manifest a write would compose."""
    def _run():
        manifest = plan_offset_write(
            key,
            existing_size or 0,
            offset,
            length,
            exists=existing_size is not None,
        )
        print_manifest(manifest, existing_size or 0, json_output=json_output)

    run_and_exit(_run)


@app.command()
def write(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Target key"),
    file: str = typer.Argument(..., help="File to write, or '-' for stdin"),
    offset: int = typer.Option(0, "--offset", "-o", help="Write start position"),
    mime_type: Optional[str] = typer.Option(None, "--mime-type", help="Content type of the result"),
    token: Optional[str] = typer.Option(None, "--token", help="Pre-minted upload token"),
):
    """Write FILE into KEY starting at OFFSET."""
    def _run():
        driver = _context(ctx, token).driver
        if file == "-":
            written = driver.write_stream(key, offset, typer.get_binary_stream("stdin"),
                                         mime_type=mime_type)
        else:
            with open(Path(file), "rb") as f:
                written = driver.write_stream(key, offset, f, mime_type=mime_type)
        typer.echo(f"Wrote {written} bytes to {key} at offset {offset}")

    run_and_exit(_run)


@app.command()
def stat(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Key or directory path"),
):
    """Show metadata for PATH."""
    run_and_exit(lambda: print_stat(_context(ctx).driver.stat(path)))


@app.command("ls")
def list_path(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Directory path"),
):
    """List direct descendants of PATH."""
    run_and_exit(lambda: print_listing(_context(ctx).driver.list(path)))


@app.command()
def cat(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Key to read"),
    offset: int = typer.Option(0, "--offset", "-o", help="Start position"),
):
    """Stream KEY to stdout from OFFSET."""
    def _run():
        for chunk in _context(ctx).driver.read_stream(key, offset):
            typer.echo(chunk, nl=False)

    run_and_exit(_run)


@app.command("mv")
def move(
    ctx: typer.Context,
    src: str = typer.Argument(..., help="Source key"),
    dst: str = typer.Argument(..., help="Destination key"),
):
    """Rename SRC to DST, replacing DST if it exists."""
    def _run():
        _context(ctx).driver.move(src, dst)
        typer.echo(f"Moved {src} -> {dst}")

    run_and_exit(_run)


@app.command("rm")
def remove(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Key or directory path"),
):
    """Delete PATH and everything under it."""
    def _run():
        _context(ctx).driver.delete(path)
        typer.echo(f"Deleted {path}")

    run_and_exit(_run)


@app.command()
def url(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Key"),
):
    """Print the download URL of KEY."""
    run_and_exit(lambda: typer.echo(_context(ctx).driver.url_for(key)))


if __name__ == "__main__":
    app()
