#!/usr/bin/env python3
"""
Worker resource accounting.

Turns the per-node CPU and memory grant into Spark worker and executor
sizes after subtracting the overhead reserved for daemons and the OS.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict

from sparkstart.core.errors import ConfigurationError
from sparkstart.slurm.allocation import SlurmAllocation


logger = logging.getLogger(__name__)


@dataclass
class ResourcePlan:
    """Per-node and cluster-wide Spark sizing."""

    worker_count: int
    cpus_per_node: int
    memory_per_node_mb: int
    worker_cores: int
    worker_memory_mb: int
    executors_per_node: int
    executor_cores: int
    executor_memory_mb: int
    total_cores: int
    default_parallelism: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def plan_resources(allocation: SlurmAllocation, config: Dict[str, Any]) -> ResourcePlan:
    """
    Compute worker and executor sizes for an allocation.

    Args:
        allocation: Discovered Slurm allocation
        config: Merged configuration (uses the "resources" section)

    Returns:
        ResourcePlan

    Raises:
        ConfigurationError: If the memory left for a worker is below the minimum
    """
    resources = config["resources"]

    worker_cores = allocation.cpus_per_node - resources["reserved_cores"]
    if worker_cores < 1:
        logger.warning(
            f"Only {allocation.cpus_per_node} CPU(s) per node with "
            f"{resources['reserved_cores']} reserved; giving each worker 1 core"
        )
        worker_cores = 1

    worker_memory_mb = allocation.memory_per_node_mb - resources["reserved_memory_mb"]
    if worker_memory_mb < resources["min_worker_memory_mb"]:
        raise ConfigurationError(
            f"{allocation.memory_per_node_mb} MB per node leaves {worker_memory_mb} MB "
            f"for the worker after reserving {resources['reserved_memory_mb']} MB "
            f"(minimum {resources['min_worker_memory_mb']} MB)",
            suggestions=[
                "Request more memory with #SBATCH --mem",
                "Lower resources.reserved_memory_mb",
            ],
        )

    executors_per_node = resources["executors_per_node"]
    executor_cores = max(1, worker_cores // executors_per_node)
    executor_memory_mb = worker_memory_mb // executors_per_node
    total_cores = worker_cores * allocation.node_count

    return ResourcePlan(
        worker_count=allocation.node_count,
        cpus_per_node=allocation.cpus_per_node,
        memory_per_node_mb=allocation.memory_per_node_mb,
        worker_cores=worker_cores,
        worker_memory_mb=worker_memory_mb,
        executors_per_node=executors_per_node,
        executor_cores=executor_cores,
        executor_memory_mb=executor_memory_mb,
        total_cores=total_cores,
        default_parallelism=total_cores * resources["parallelism_factor"],
    )
