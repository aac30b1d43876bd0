#!/usr/bin/env python3
"""
Main CLI Application for gpucrate

This module contains the main Typer app and entry point for the gpucrate CLI.
"""

import sys

import typer
from rich.traceback import install

try:
    from typing import Annotated  # Python 3.9+
except ImportError:
    from typing_extensions import Annotated  # Python 3.8

from gpucrate import __version__

from .commands import build, exec_command, run, setup_cdi, start, status, stop, validate
from .constants import ExitCode
from .utils import console

# Uncaught errors outside a command render through rich
install(show_locals=False)

app = typer.Typer(
    name="gpucrate",
    help="🚀 gpucrate - Run the GPU workload container with Podman or Docker",
    rich_markup_mode="rich",
    add_completion=False,
    no_args_is_help=True,
)

# Lifecycle commands, in the order the help lists them
app.command()(build)
app.command()(run)
app.command()(start)
app.command(
    "exec",
    context_settings={"allow_interspersed_args": False, "ignore_unknown_options": True},
)(exec_command)
app.command()(stop)
app.command("setup-cdi")(setup_cdi)
app.command()(status)
app.command()(validate)


@app.command("help")
def help_command(ctx: typer.Context) -> None:
    """
    ❓ Show this help message.
    """
    console.print(ctx.parent.get_help())


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool, typer.Option("--version", help="Show version and exit")
    ] = False,
) -> None:
    """
    🚀 gpucrate

    Builds, runs and manages the GPU-accelerated workload container.
    GPU access is configured automatically: CDI when the engine advertises
    NVIDIA devices, legacy label-disable mode otherwise, CPU-only without a GPU.

    Environment variables: DATASET_DIR, EXPERIMENTS_DIR (default ./dataset, ./experiments).
    """
    if version:
        console.print(
            f"🚀 [bold cyan]gpucrate[/bold cyan] version [green]{__version__}[/green]"
        )
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        ctx.exit()


def cli_main() -> None:
    """Console-script entry point.

    Ctrl-C while waiting on the lock or a build leaves the container as the
    engine last saw it; only the interruption is reported.
    """
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n🛑 [yellow]Interrupted; container state left unchanged[/yellow]")
        sys.exit(ExitCode.FAILURE)
    except Exception as e:
        console.print(f"💥 [bold red]gpucrate crashed: {e}[/bold red]")
        console.print_exception()
        sys.exit(ExitCode.FAILURE)


if __name__ == "__main__":
    cli_main()
