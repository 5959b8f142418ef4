#!/usr/bin/env python3
"""
Cluster teardown.

Stops what a bootstrap started: the background srun running the workers
(signalled as a process group) and the master daemon. Missing files or
already-dead processes are not errors, so teardown can run from an EXIT trap.
The pid and discovery files are removed once their processes are stopped.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
import os
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sparkstart.core.console import Console, merged_env
from sparkstart.core.errors import CommandError, LaunchError
from sparkstart.orchestration.bootstrap import read_env_file
from sparkstart.spark.layout import ClusterLayout


logger = logging.getLogger(__name__)


@dataclass
class TeardownResult:
    """What teardown found and stopped."""

    workers_stopped: bool = False
    master_stopped: bool = False
    worker_pid: Optional[int] = None


def stop_cluster(layout: ClusterLayout, shell: Optional[Console] = None) -> TeardownResult:
    """
    Stop the workers and master recorded in a shared job directory.

    Args:
        layout: Layout of the cluster to stop
        shell: Console used to run stop-master.sh

    Returns:
        TeardownResult

    Raises:
        LaunchError: If stop-master.sh exists but fails
    """
    shell = shell or Console()
    result = TeardownResult()

    pid_file = layout.worker_pid_file
    if pid_file.exists():
        try:
            result.worker_pid = int(pid_file.read_text().strip())
        except ValueError:
            logger.warning(f"Ignoring malformed pid file {pid_file}")
        if result.worker_pid:
            result.workers_stopped = _terminate_group(result.worker_pid)
        pid_file.unlink()
    else:
        logger.info(f"No worker pid file at {pid_file}")

    discovery = layout.discovery_file
    if not discovery.exists():
        logger.info(f"No discovery file at {discovery}; master not started by this job")
        return result

    values = read_env_file(discovery)
    spark_home = values.get("SPARK_HOME")
    if not spark_home:
        logger.warning(f"{discovery} has no SPARK_HOME; cannot stop master")
        return result

    script = Path(spark_home) / "sbin" / "stop-master.sh"
    env = merged_env({
        "SPARK_HOME": spark_home,
        "SPARK_CONF_DIR": values.get("SPARK_CONF_DIR", str(layout.shared_conf_dir)),
    })
    try:
        shell.sh([script], env=env)
    except CommandError as e:
        raise LaunchError(f"stop-master.sh failed for {values.get('SPARK_MASTER_URL')}", cause=e) from e
    result.master_stopped = True
    discovery.unlink()
    logger.info(f"Removed {discovery}")
    return result


def _terminate_group(pid: int) -> bool:
    """SIGTERM the process group led by pid; False if it is already gone."""
    try:
        os.killpg(pid, signal.SIGTERM)
    except ProcessLookupError:
        logger.info(f"Worker launcher {pid} already exited")
        return False
    except PermissionError:
        logger.warning(f"Not allowed to signal process group {pid}")
        return False
    logger.info(f"Sent SIGTERM to worker launcher process group {pid}")
    return True
