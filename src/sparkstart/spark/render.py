#!/usr/bin/env python3
"""
Spark configuration generation.

Renders spark-defaults.conf, spark-env.sh and the per-node worker launch
script from Jinja2 templates and writes them with restrictive permissions.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
import os
import secrets
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from sparkstart.core.errors import ProvisioningError
from sparkstart.spark.layout import SPARK_DEFAULTS, SPARK_ENV, WORKER_SCRIPT, ClusterLayout
from sparkstart.spark.resources import ResourcePlan


logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

# file name -> (template, mode)
GENERATED_FILES = {
    SPARK_DEFAULTS: ("spark-defaults.conf.j2", 0o600),
    SPARK_ENV: ("spark-env.sh.j2", 0o600),
    WORKER_SCRIPT: ("spark-worker.sh.j2", 0o700),
}


def generate_secret() -> str:
    """Shared secret for spark.authenticate (64 hex characters)."""
    return secrets.token_hex(32)


def master_url(host: str, port: int) -> str:
    return f"spark://{host}:{port}"


@dataclass
class RenderedConfig:
    """Generated files in the shared conf directory."""

    master_url: str
    files: List[Path]


class ConfigRenderer:
    """Renders the cluster configuration for one job."""

    def __init__(
        self,
        layout: ClusterLayout,
        config: Dict[str, Any],
        spark_home: Path,
        job_id: str,
        master_host: str,
    ):
        self.layout = layout
        self.config = config
        self.spark_home = spark_home
        self.job_id = job_id
        self.master_host = master_host

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.jinja_env.filters['shquote'] = lambda value: shlex.quote(str(value))

    @property
    def master_url(self) -> str:
        return master_url(self.master_host, self.config["spark"]["master_port"])

    def template_context(self, plan: ResourcePlan, secret: str) -> Dict[str, Any]:
        """Prepare context for Jinja2 template rendering."""
        spark = self.config["spark"]
        return {
            "job_id": self.job_id,
            "master_url": self.master_url,
            "master_host": self.master_host,
            "master_port": spark["master_port"],
            "master_webui_port": spark["master_webui_port"],
            "worker_webui_port": spark["worker_webui_port"],
            "daemon_memory": spark["daemon_memory"],
            "secret": secret,
            "spark_home": str(self.spark_home),
            "conf_dir": str(self.layout.local_conf_dir),
            "log_dir": str(self.layout.log_dir),
            "pid_dir": str(self.layout.pid_dir),
            "work_dir": str(self.layout.work_dir),
            "local_dir": str(self.layout.local_dir),
            "plan": plan,
            "spark_defaults": self.config.get("spark_defaults", {}),
            "env_vars": self.config.get("env_vars", {}),
        }

    def render(self, name: str, context: Dict[str, Any]) -> str:
        template_name, _ = GENERATED_FILES[name]
        return self.jinja_env.get_template(template_name).render(**context)

    def write_all(self, plan: ResourcePlan, secret: str) -> RenderedConfig:
        """
        Render every generated file into the shared conf directory.

        Files are created with their final mode so the secret is never
        world-readable, even briefly.

        Raises:
            ProvisioningError: If a file cannot be written
        """
        context = self.template_context(plan, secret)
        written = []
        for name, (_, mode) in GENERATED_FILES.items():
            path = self.layout.shared_conf_dir / name
            content = self.render(name, context)
            try:
                _write_private(path, content, mode)
            except OSError as e:
                raise ProvisioningError(
                    f"Could not write {path}: {e}", cause=e
                ) from e
            logger.debug(f"Wrote {path} (mode {mode:o})")
            written.append(path)
        return RenderedConfig(master_url=self.master_url, files=written)


def _write_private(path: Path, content: str, mode: int) -> None:
    """Write content to path, creating or truncating it with the given mode."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "w") as f:
        # O_CREAT honours umask and leaves existing files' modes alone
        os.fchmod(f.fileno(), mode)
        f.write(content)
