#!/usr/bin/env python3
"""
Stop command for the spark-start CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import os
from typing import Annotated, Optional

import typer

from sparkstart.core.console import Console as ShellConsole
from sparkstart.core.errors import SparkStartError, ValidationError
from sparkstart.orchestration import stop_cluster
from sparkstart.spark import ClusterLayout

from ..constants import DEFAULT_SHARED_ROOT
from ..utils import console, fail, setup_logging


def stop(
    job_id: Annotated[
        Optional[str],
        typer.Option("--job-id", "-j", help="Slurm job id (defaults to $SLURM_JOB_ID)"),
    ] = None,
    shared_root: Annotated[
        str,
        typer.Option("--shared-root", help="Root of the shared job directories"),
    ] = DEFAULT_SHARED_ROOT,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
    ] = False,
) -> None:
    """
    🛑 Stop the workers and master started by spark-start for a job.

    Safe to call more than once, e.g. from an EXIT trap in the batch script.
    """
    setup_logging(verbose)

    job_id = job_id or os.environ.get("SLURM_JOB_ID")
    if not job_id:
        fail(ValidationError(
            "no job id given and SLURM_JOB_ID is unset",
            suggestions=["Pass --job-id"],
        ))

    # scratch root only matters for starting; teardown reads the shared dir
    layout = ClusterLayout.for_job(shared_root, "/tmp", "", job_id)
    try:
        result = stop_cluster(layout, shell=ShellConsole(shellVerbose=verbose))
    except SparkStartError as e:
        fail(e)

    if result.workers_stopped:
        console.print(f"🛑 Stopped worker launcher (pid {result.worker_pid})")
    if result.master_stopped:
        console.print("🛑 Stopped Spark master")
    if not (result.workers_stopped or result.master_stopped):
        console.print(f"[dim]Nothing to stop for job {job_id}[/dim]")
