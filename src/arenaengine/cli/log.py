"""Log subcommand: export, stats."""

from __future__ import annotations

import typer

from arenaengine.storage.db import get_connection, init_schema
from arenaengine.storage.export import export_stakes_to_parquet
from arenaengine.storage.stakes import stake_stats

app = typer.Typer(help="Stake log export and statistics")


@app.command("export")
def export(
    ctx: typer.Context,
    arena: str | None = typer.Option(None, "--arena", "-a", help="Filter by arena ID"),
    output: str = typer.Option("stakes.parquet", "--output", "-o", help="Output path"),
) -> None:
    """Export the stake log to Parquet."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        count = export_stakes_to_parquet(conn, output, arena_id=arena)
        typer.echo(f"Exported {count} stakes to {output}")
    finally:
        conn.close()


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Show stake log statistics (counts, time range, by arena)."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        s = stake_stats(conn)
        typer.echo(f"Total stakes: {s['total_stakes']}")
        typer.echo(f"Min ts: {s.get('min_ts')}")
        typer.echo(f"Max ts: {s.get('max_ts')}")
        if s.get("by_arena"):
            typer.echo("By arena (top 20):")
            for row in s["by_arena"]:
                typer.echo(f"  {row['arena_id']}  {row['count']}")
    finally:
        conn.close()
