#!/usr/bin/env python3
"""
Filesystem layout of a bootstrapped cluster.

Shared job directory (visible to every node and to later client jobs):
    <shared_root>/<job_id>/spark/{conf,logs}, master.env, workers.pid

Node-local scratch (created on every node):
    <scratch_root>/spark-<user>-<job_id>/{conf,local,work,pid}

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List


SPARK_DEFAULTS = "spark-defaults.conf"
SPARK_ENV = "spark-env.sh"
WORKER_SCRIPT = "spark-worker.sh"
DISCOVERY_FILE = "master.env"
WORKER_PID_FILE = "workers.pid"


@dataclass(frozen=True)
class ClusterLayout:
    """All paths used by one bootstrap."""

    shared_dir: Path
    scratch_dir: Path

    @classmethod
    def for_job(cls, shared_root: str, scratch_root: str, user: str, job_id: str) -> "ClusterLayout":
        shared = Path(shared_root).expanduser() / str(job_id) / "spark"
        scratch = Path(scratch_root).expanduser() / f"spark-{user}-{job_id}"
        return cls(shared_dir=shared, scratch_dir=scratch)

    @property
    def shared_conf_dir(self) -> Path:
        return self.shared_dir / "conf"

    @property
    def log_dir(self) -> Path:
        return self.shared_dir / "logs"

    @property
    def discovery_file(self) -> Path:
        return self.shared_dir / DISCOVERY_FILE

    @property
    def worker_pid_file(self) -> Path:
        return self.shared_dir / WORKER_PID_FILE

    @property
    def local_conf_dir(self) -> Path:
        return self.scratch_dir / "conf"

    @property
    def local_dir(self) -> Path:
        return self.scratch_dir / "local"

    @property
    def work_dir(self) -> Path:
        return self.scratch_dir / "work"

    @property
    def pid_dir(self) -> Path:
        return self.scratch_dir / "pid"

    @property
    def worker_script(self) -> Path:
        return self.local_conf_dir / WORKER_SCRIPT

    def shared_dirs(self) -> List[Path]:
        return [self.shared_dir, self.shared_conf_dir, self.log_dir]

    def node_dirs(self) -> List[Path]:
        return [self.scratch_dir, self.local_conf_dir, self.local_dir, self.work_dir, self.pid_dir]

    def worker_log(self, job_id: str) -> Path:
        return self.log_dir / f"workers-{job_id}.out"
