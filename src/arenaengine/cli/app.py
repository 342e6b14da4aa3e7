"""`arena` command line: global options, then one sub-app per area."""

from pathlib import Path

import typer

from arenaengine.config import configure_logging, get_settings

app = typer.Typer(
    name="arena",
    help="Arena Engine - oracle-resolved prediction arenas: staking, odds, resolution and settlement.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", envvar="ARENA_CONFIG_DIR", help="Directory holding default.toml and profiles"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", envvar="ARENA_PROFILE", help="Profile overlaid on default.toml (e.g. dev)"
    ),
) -> None:
    """Load settings once; every subcommand reads them from ctx.obj["settings"]."""
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    ctx.obj = {"settings": settings}


from arenaengine.cli import arenas, ledger, log, oracle, serve  # noqa: E402

for sub in (serve, arenas, oracle, log, ledger):
    app.add_typer(sub.app, name=sub.__name__.rsplit(".", 1)[-1])
