"""
Pytest configuration and shared fixtures for spark-start tests.

Provides a mock Slurm batch environment, a fake Spark installation and a
mocked shell console so the bootstrap can run without Slurm or Spark.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import stat
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from sparkstart.config import ConfigLoader
from sparkstart.core.console import Console


JOB_ID = "4242"
HOSTNAMES = ["node01", "node02"]
WORKER_PID = 31337


def _make_executable(path: Path, body: str = "exit 0") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


# ============================================================================
# Platform Fixtures
# ============================================================================

@pytest.fixture
def slurm_bin(tmp_path):
    """Directory with stand-in srun/sbcast/scontrol executables."""
    bin_dir = tmp_path / "bin"
    for tool in ("srun", "sbcast", "scontrol"):
        _make_executable(bin_dir / tool)
    return bin_dir


@pytest.fixture
def slurm_env(slurm_bin):
    """Scheduler variables of a 2-node job with 16 CPUs and 64 GB per node."""
    return {
        "SLURM_JOB_ID": JOB_ID,
        "SLURM_JOB_NODELIST": "node[01-02]",
        "SLURM_CPUS_PER_TASK": "16",
        "SLURM_MEM_PER_NODE": "65536",
        "SLURMD_NODENAME": "node01",
        "USER": "alice",
        "PATH": str(slurm_bin),
    }


@pytest.fixture
def spark_home(tmp_path):
    """Fake Spark distribution with executable sbin scripts."""
    home = tmp_path / "spark"
    for script in ("start-master.sh", "start-worker.sh", "stop-master.sh"):
        _make_executable(home / "sbin" / script)
    return home


@pytest.fixture
def cluster_config(tmp_path, spark_home):
    """Default configuration rooted in tmp_path."""
    return ConfigLoader.load_config(overrides={
        "spark": {"home": str(spark_home)},
        "paths": {
            "shared_root": str(tmp_path / "shared"),
            "scratch_root": str(tmp_path / "scratch"),
        },
    })


# ============================================================================
# Mock Console Fixtures
# ============================================================================

@pytest.fixture
def shell():
    """Mocked shell Console answering scontrol and recording every command."""
    console = MagicMock(spec=Console)

    def sh(command, **kwargs):
        argv = [str(arg) for arg in command]
        if argv[:3] == ["scontrol", "show", "hostnames"]:
            return "\n".join(HOSTNAMES)
        return ""

    console.sh.side_effect = sh
    console.spawn.return_value = MagicMock(pid=WORKER_PID)
    return console


@pytest.fixture
def rich_console():
    """Rich console stand-in that swallows output."""
    return MagicMock()


@pytest.fixture
def commands_run():
    """Helper returning the argv lists passed to shell.sh, in order."""
    def _commands(shell_mock):
        return [[str(arg) for arg in call.args[0]] for call in shell_mock.sh.call_args_list]
    return _commands
