"""Ledger subcommand: replay."""

import typer

from arenaengine.replay.engine import replay_stake_book
from arenaengine.storage.db import get_connection, init_schema

app = typer.Typer(help="Deterministic replay of the stake log")


def _parse_ts(s: str | None) -> int | None:
    if s is None:
        return None
    try:
        return int(s)
    except ValueError:
        raise typer.BadParameter(f"expected ms epoch, got {s!r}") from None


@app.command("replay")
def replay(
    ctx: typer.Context,
    arena: str = typer.Option(..., "--arena", "-a", help="Arena ID"),
    start: str | None = typer.Option(None, "--start", help="Start time (ms epoch)"),
    end: str | None = typer.Option(None, "--end", help="End time (ms epoch)"),
) -> None:
    """Rebuild per-option totals for an arena from the persisted stake log."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        book = replay_stake_book(conn, arena, start_ts=_parse_ts(start), end_ts=_parse_ts(end))
        typer.echo(f"Replayed {len(book)} stakes -> pool {book.pool()}")
        for option, totals in sorted(book.totals().items()):
            typer.echo(f"  {option:16} {totals.total_staked}  ({totals.participant_count} backers)")
    finally:
        conn.close()
