"""API server command."""

import typer

from arenaengine.api.main import run_api

app = typer.Typer(help="Start the arena API server")


@app.callback(invoke_without_command=True)
def serve(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host", help="Bind host"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    with_scheduler: bool = typer.Option(
        False, "--with-scheduler", help="Run oracle polling, odds refresh and lifecycle ticks in the same process",
    ),
) -> None:
    if ctx.invoked_subcommand is not None:
        return
    run_api(
        host=host,
        port=port,
        with_scheduler=with_scheduler,
        settings=ctx.obj["settings"],
    )


if __name__ == "__main__":
    app()
