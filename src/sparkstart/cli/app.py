#!/usr/bin/env python3
"""
Main CLI Application for spark-start

This module contains the main Typer app and entry point for the spark-start CLI.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import sys
from typing import Annotated

import typer
from rich.traceback import install

from sparkstart import __version__

from .commands import plan, start, stop
from .constants import ExitCode
from .utils import console

# Install rich traceback handler for better error displays
install(show_locals=False)

# Initialize the main Typer app
app = typer.Typer(
    name="spark-start",
    help="⚡ spark-start - Bootstrap a Spark standalone cluster inside a Slurm job",
    rich_markup_mode="rich",
    add_completion=False,
    no_args_is_help=True,
)

# Register commands
app.command()(start)
app.command()(plan)
app.command()(stop)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool, typer.Option("--version", help="Show version and exit")
    ] = False,
) -> None:
    """
    ⚡ spark-start

    Turns the nodes of a Slurm allocation into a temporary Spark standalone cluster.
    """
    if version:
        console.print(
            f"⚡ [bold cyan]spark-start[/bold cyan] version [green]{__version__}[/green]"
        )
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        ctx.exit()


def cli_main() -> None:
    """Entry point for the CLI application."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n🛑 [yellow]Operation cancelled by user[/yellow]")
        sys.exit(ExitCode.FAILURE)
    except Exception as e:
        console.print(f"💥 [bold red]Unexpected error: {e}[/bold red]")
        console.print_exception()
        sys.exit(ExitCode.FAILURE)


if __name__ == "__main__":
    cli_main()
