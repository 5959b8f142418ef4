#!/usr/bin/env python3
"""
Slurm allocation discovery.

Reads the batch-job environment that Slurm exports into the job script and
expands the compressed node list with scontrol.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import getpass
import logging
import os
import shutil
import socket
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from sparkstart.core.console import Console
from sparkstart.core.errors import ConfigurationError, ValidationError


logger = logging.getLogger(__name__)


@dataclass
class SlurmAllocation:
    """Resources granted to the current batch job."""

    job_id: str
    nodelist: str
    hostnames: List[str]
    cpus_per_node: int
    memory_per_node_mb: int
    user: str
    batch_host: str
    environ: Dict[str, str] = field(default_factory=dict, repr=False)

    @property
    def node_count(self) -> int:
        """Number of allocated nodes."""
        return len(self.hostnames)


def _int_env(environ: Mapping[str, str], name: str) -> Optional[int]:
    """Parse an integer scheduler variable, None when unset."""
    raw = environ.get(name)
    if raw is None or raw == "":
        return None
    # SLURM_CPUS_ON_NODE may look like "16(x2)" on heterogeneous steps
    raw = raw.split("(")[0]
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} is not an integer: {environ.get(name)!r}") from None


def expand_hostnames(nodelist: str, console: Console) -> List[str]:
    """
    Expand a compressed Slurm node list such as "node[01-03]".

    Args:
        nodelist: Compressed node list from SLURM_JOB_NODELIST
        console: Console used to call scontrol

    Returns:
        Ordered list of hostnames
    """
    output = console.sh(["scontrol", "show", "hostnames", nodelist])
    hostnames = [line.strip() for line in output.splitlines() if line.strip()]
    if not hostnames:
        raise ConfigurationError(f"scontrol returned no hostnames for {nodelist!r}")
    return hostnames


def discover_allocation(
    console: Console,
    environ: Optional[Mapping[str, str]] = None,
) -> SlurmAllocation:
    """
    Build a SlurmAllocation from the batch-job environment.

    Args:
        console: Console used to expand the node list
        environ: Environment to read (defaults to os.environ)

    Returns:
        SlurmAllocation for the running job

    Raises:
        ValidationError: If not running inside a Slurm allocation or scontrol is missing
        ConfigurationError: If CPU or memory allocation cannot be determined
    """
    environ = dict(os.environ if environ is None else environ)

    job_id = environ.get("SLURM_JOB_ID") or environ.get("SLURM_JOBID")
    if not job_id:
        raise ValidationError(
            "not running inside a Slurm allocation (SLURM_JOB_ID is unset)",
            suggestions=[
                "Run spark-start from an sbatch script or salloc session",
            ],
        )

    if shutil.which("scontrol", path=environ.get("PATH")) is None:
        raise ValidationError(
            "Required tool not found: scontrol",
            suggestions=["Make sure you are on a Slurm compute node"],
        )

    nodelist = environ.get("SLURM_JOB_NODELIST") or environ.get("SLURM_NODELIST")
    if not nodelist:
        raise ConfigurationError("SLURM_JOB_NODELIST is unset")

    cpus = _int_env(environ, "SLURM_CPUS_PER_TASK")
    if cpus is None:
        cpus = _int_env(environ, "SLURM_CPUS_ON_NODE")
    if cpus is None or cpus < 1:
        raise ConfigurationError(
            "cannot determine CPUs per node",
            suggestions=["Request CPUs with #SBATCH --cpus-per-task=N"],
        )

    memory = _int_env(environ, "SLURM_MEM_PER_NODE")
    if memory is None:
        per_cpu = _int_env(environ, "SLURM_MEM_PER_CPU")
        if per_cpu is not None:
            memory = per_cpu * cpus
    if memory is None or memory < 1:
        raise ConfigurationError(
            "cannot determine memory per node",
            suggestions=["Request memory with #SBATCH --mem=N or --mem-per-cpu=N"],
        )

    hostnames = expand_hostnames(nodelist, console)
    user = environ.get("USER") or getpass.getuser()
    batch_host = environ.get("SLURMD_NODENAME") or socket.gethostname()

    allocation = SlurmAllocation(
        job_id=job_id,
        nodelist=nodelist,
        hostnames=hostnames,
        cpus_per_node=cpus,
        memory_per_node_mb=memory,
        user=user,
        batch_host=batch_host,
        environ=environ,
    )
    logger.debug("discovered %s", allocation)
    return allocation
