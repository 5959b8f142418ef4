#!/usr/bin/env python3
"""SLURM srun/sbcast launcher.

Uses srun to run one task per allocated node and sbcast to copy files to
node-local storage. Works within sbatch scripts and salloc sessions.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from sparkstart.core.console import Console
from sparkstart.slurm.allocation import SlurmAllocation


class SrunLauncher:
    """
    Fans commands out to every node of the current allocation.

    Every step runs exactly one task per node. Extra srun arguments from the
    configuration are appended to each step (e.g. ["--overlap"]).
    """

    REQUIRED_TOOLS = ["srun", "sbcast", "scontrol"]

    def __init__(
        self,
        allocation: SlurmAllocation,
        console: Console,
        srun_args: Optional[Sequence[str]] = None,
        timeout: int = 300,
    ):
        self.allocation = allocation
        self.console = console
        self.srun_args = list(srun_args or [])
        self.timeout = timeout

    def step_args(self, cpus_per_task: Optional[int] = None) -> List[str]:
        """srun prefix placing one task on each node."""
        nodes = str(self.allocation.node_count)
        args = [
            "srun",
            f"--nodes={nodes}",
            f"--ntasks={nodes}",
            "--ntasks-per-node=1",
        ]
        if cpus_per_task:
            args.append(f"--cpus-per-task={cpus_per_task}")
        args.extend(self.srun_args)
        return args

    def run_on_all_nodes(self, command: Sequence[str]) -> str:
        """
        Run a command once on every node and wait for it.

        Raises:
            CommandError: If any task exits non-zero
        """
        return self.console.sh(self.step_args() + list(command), timeout=self.timeout)

    def broadcast(self, source: Path, destination: Path) -> str:
        """
        Copy a file to the same path on every node, preserving its mode.

        Raises:
            CommandError: If sbcast fails on any node
        """
        return self.console.sh(
            ["sbcast", "--force", "--preserve", str(source), str(destination)],
            timeout=self.timeout,
        )

    def launch_background(
        self,
        script: Path,
        log_path: Path,
        cpus_per_task: Optional[int] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> subprocess.Popen:
        """
        Start a script on every node without waiting for it.

        Returns:
            The Popen of the srun process (its pid identifies the step)
        """
        args = self.step_args(cpus_per_task) + [str(script)]
        return self.console.spawn(args, log_path, env=env)
