"""Oracle subcommand: feeds, fetch."""

from __future__ import annotations

import asyncio

import typer

from arenaengine.errors import ArenaEngineError
from arenaengine.models import MarketOracle
from arenaengine.oracle.catalog import FeedCatalog
from arenaengine.oracle.router import build_router

app = typer.Typer(help="Oracle feed catalog and one-off fetches")


@app.command("feeds")
def feeds(ctx: typer.Context) -> None:
    """List the configured feed catalog."""
    catalog = FeedCatalog.from_config(ctx.obj["settings"].feed_catalog)
    by_provider = catalog.by_provider()
    if not by_provider:
        typer.echo("No feeds configured. Add [[oracle.feeds]] entries to the config.")
        return
    for provider, entries in by_provider.items():
        typer.echo(f"{provider}:")
        for f in entries:
            typer.echo(f"  {f.id}  {f.name}  every {f.update_frequency}s  conf {f.confidence}")


@app.command("fetch")
def fetch(
    ctx: typer.Context,
    provider: str = typer.Option(..., "--provider", help="pyth, chainlink or switchboard"),
    feed: str = typer.Option(..., "--feed", "-f", help="Feed ID"),
) -> None:
    """Fetch one sample from a provider and print it."""
    settings = ctx.obj["settings"]
    router = build_router(settings)
    oracle = MarketOracle(provider=provider, feed_id=feed, update_frequency=60, minimum_confidence=0)

    async def _fetch():
        try:
            return await router.fetch_sample(oracle)
        finally:
            await router.aclose()

    try:
        sample = asyncio.run(_fetch())
    except ArenaEngineError as e:
        typer.echo(f"{e.code}: {e.message}", err=True)
        raise typer.Exit(1)
    typer.echo(f"{sample.provider} {sample.feed_id} value={sample.value} confidence={sample.confidence:.4f} ts={sample.timestamp}")
