#!/usr/bin/env python3
"""
Start command for the spark-start CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from typing import Annotated, Optional

import typer
from rich.panel import Panel

from sparkstart.core.console import Console as ShellConsole
from sparkstart.core.errors import SparkStartError
from sparkstart.orchestration import ClusterBootstrap

from ..constants import ExitCode
from ..utils import build_overrides, console, fail, load_configuration, setup_logging


def start(
    spark_home: Annotated[
        Optional[str],
        typer.Option("--spark-home", help="Spark installation (defaults to $SPARK_HOME)"),
    ] = None,
    config_file: Annotated[
        Optional[str],
        typer.Option("--config-file", "-f", help="JSON or YAML configuration file"),
    ] = None,
    config: Annotated[
        str,
        typer.Option("--config", "-c", help="Configuration overrides as JSON string"),
    ] = "{}",
    master_port: Annotated[
        Optional[int],
        typer.Option("--master-port", help="Spark master RPC port"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Generate configuration only; start nothing"),
    ] = False,
    wait: Annotated[
        bool,
        typer.Option("--wait", help="Block until the worker srun step exits"),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
    ] = False,
) -> None:
    """
    🚀 Bootstrap a Spark standalone cluster on the current Slurm allocation.

    Provisions scratch directories, generates the Spark configuration with a
    fresh authentication secret, distributes it to every node, starts the
    master here and one worker per node via srun.
    """
    setup_logging(verbose)

    overrides = build_overrides(spark__home=spark_home, spark__master_port=master_port)
    cluster_config = load_configuration(config_file, config, overrides)

    console.print(
        Panel(
            "🚀 [bold cyan]Starting Spark standalone cluster[/bold cyan]\n"
            f"Dry run: [yellow]{dry_run}[/yellow]",
            title="spark-start",
            border_style="blue",
        )
    )

    bootstrap = ClusterBootstrap(
        cluster_config,
        console=console,
        shell=ShellConsole(shellVerbose=verbose),
        dry_run=dry_run,
    )
    try:
        result = bootstrap.execute()
    except SparkStartError as e:
        fail(e)

    console.print(f"✅ [bold green]{result.message}[/bold green]")
    if result.discovery_file:
        console.print(f"💾 Host discovery file: [cyan]{result.discovery_file}[/cyan]")

    if wait and bootstrap.worker_process is not None:
        console.print("⏳ Waiting for workers to exit...")
        returncode = bootstrap.worker_process.wait()
        if returncode != 0:
            console.print(f"❌ [red]Worker step exited with code {returncode}[/red]")
            raise typer.Exit(ExitCode.LAUNCH_FAILURE)
        console.print("✅ [green]Worker step finished[/green]")
