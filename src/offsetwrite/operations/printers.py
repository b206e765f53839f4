"""
Human-readable output formatting.

Centralizes all CLI output formatting so commands stay thin.
"""
from __future__ import annotations

from typing import Iterable, List

import typer

from ..manifest import CopyPart, PartManifest
from ..storage.base import ObjectStat
from ..storage.encoder import ComposeArg, CopyPartArg, DirectPartArg


def print_stat(stat: ObjectStat) -> None:
    """Print object or directory metadata."""
    typer.echo(f"Key: {stat.key}")
    if stat.is_dir:
        typer.echo("Type: directory")
        return
    typer.echo("Type: object")
    typer.echo(f"Size: {_format_bytes(stat.size)} ({stat.size} bytes)")
    if stat.modified is not None:
        typer.echo(f"Modified: {stat.modified.isoformat()}")
    if stat.hash:
        typer.echo(f"Hash: {stat.hash}")
    if stat.mime_type:
        typer.echo(f"Content-Type: {stat.mime_type}")


def print_listing(entries: List[str]) -> None:
    for entry in entries:
        typer.echo(entry)


def print_manifest(manifest: PartManifest, existing_size: int, json_output: bool = False) -> None:
    """
    Print a planned manifest.

    JSON mode prints the "parts" document as it would be sent, with zero
    checksums standing in for the ones computed at upload time.
    """
    if json_output:
        parts = []
        for part in manifest.parts:
            if isinstance(part, CopyPart):
                parts.append(CopyPartArg(storage_file=part.source_key, range=part.range_string))
            else:
                parts.append(DirectPartArg(crc32=part.crc32 or 0))
        typer.echo(ComposeArg(mime_type=manifest.mime_type, parts=parts).to_json())
        return

    for part in manifest.parts:
        if isinstance(part, CopyPart):
            typer.echo(f"[{part.index}] copy   {part.source_key} range {part.range_string} "
                       f"({part.resolved_length(existing_size)} bytes)")
        elif part.zero_fill:
            typer.echo(f"[{part.index}] direct zero-fill {part.length} bytes")
        else:
            typer.echo(f"[{part.index}] direct {part.length} bytes")
    typer.echo(f"Result size: {manifest.resolved_size(existing_size)} bytes")
    typer.echo(f"Compose: {'yes' if manifest.requires_compose else 'no (whole-object PUT)'}")


def print_failed_keys(failed: Iterable[str]) -> None:
    failed = list(failed)
    typer.echo(f"Failed to delete {len(failed)} key(s):", err=True)
    for key in failed:
        typer.echo(f"  {key}", err=True)


def _format_bytes(size_bytes: int) -> str:
    """Format byte count as human-readable string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
