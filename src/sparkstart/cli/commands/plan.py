#!/usr/bin/env python3
"""
Plan command for the spark-start CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import json
from typing import Annotated, Optional

import typer

from sparkstart.core.console import Console as ShellConsole
from sparkstart.core.errors import SparkStartError
from sparkstart.orchestration.bootstrap import build_plan_table
from sparkstart.slurm import discover_allocation
from sparkstart.spark import plan_resources

from ..utils import console, fail, load_configuration, setup_logging


def plan(
    config_file: Annotated[
        Optional[str],
        typer.Option("--config-file", "-f", help="JSON or YAML configuration file"),
    ] = None,
    config: Annotated[
        str,
        typer.Option("--config", "-c", help="Configuration overrides as JSON string"),
    ] = "{}",
    as_json: Annotated[
        bool, typer.Option("--json", help="Print the plan as JSON")
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
    ] = False,
) -> None:
    """
    📋 Show how the current allocation would be split into Spark workers.

    Nothing is written and no daemon is started.
    """
    setup_logging(verbose)
    cluster_config = load_configuration(config_file, config)

    try:
        allocation = discover_allocation(ShellConsole(shellVerbose=verbose))
        resource_plan = plan_resources(allocation, cluster_config)
    except SparkStartError as e:
        fail(e)

    if as_json:
        payload = {"job_id": allocation.job_id, "hostnames": allocation.hostnames}
        payload.update(resource_plan.to_dict())
        typer.echo(json.dumps(payload, indent=2))
    else:
        console.print(build_plan_table(allocation, resource_plan))
