"""Arenas subcommand: validate, match-types."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from pydantic import ValidationError

from arenaengine.lifecycle.validation import validate_arena
from arenaengine.match_types import MATCH_TYPES
from arenaengine.models import Arena
from arenaengine.oracle.catalog import FeedCatalog

app = typer.Typer(help="Arena configuration tools")


@app.command("validate")
def validate(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Arena config JSON file"),
) -> None:
    """Check an arena configuration against the creation rules."""
    settings = ctx.obj["settings"]
    try:
        arena = Arena.model_validate(json.loads(path.read_text()))
    except (json.JSONDecodeError, ValidationError) as e:
        typer.echo(f"Invalid arena file: {e}", err=True)
        raise typer.Exit(1)
    result = validate_arena(arena, FeedCatalog.from_config(settings.feed_catalog))
    for w in result.warnings:
        typer.echo(f"warning: {w}")
    for err in result.errors:
        typer.echo(f"error: {err}", err=True)
    if not result.is_valid:
        raise typer.Exit(1)
    typer.echo(f"OK: {arena.name or arena.id} ({arena.match_type}, {len(arena.predictions.option_names())} options)")


@app.command("match-types")
def match_types() -> None:
    """List competition formats and their player bounds."""
    for m in MATCH_TYPES.values():
        maximum = m.max_players if m.max_players is not None else "-"
        typer.echo(f"{m.id:14} {m.label:22} players {m.min_players}-{maximum:<6} payout={m.payout_mode}")
