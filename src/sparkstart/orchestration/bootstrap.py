#!/usr/bin/env python3
"""
Spark standalone cluster bootstrap.

Runs the bootstrap phases in order, inside a Slurm allocation:

1. Validate environment (allocation, Spark installation, Slurm tools)
2. Provision shared and node-local directories
3. Generate configuration (spark-defaults.conf, spark-env.sh, worker script)
4. Distribute generated files to every node with sbcast
5. Account resources and write the host-discovery file
6. Start the Spark master on the batch host
7. Start one Spark worker per node with srun, in the background

Any failure is fatal: the phase raises and nothing is rolled back.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
import os
import shlex
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from rich.console import Console as RichConsole
from rich.table import Table

from sparkstart.core.console import Console, merged_env
from sparkstart.core.errors import (
    CommandError,
    DistributionError,
    LaunchError,
    ProvisioningError,
    ValidationError,
    create_error_context,
)
from sparkstart.slurm.allocation import SlurmAllocation, discover_allocation
from sparkstart.slurm.launcher import SrunLauncher
from sparkstart.spark.layout import ClusterLayout
from sparkstart.spark.render import ConfigRenderer, RenderedConfig, generate_secret
from sparkstart.spark.resources import ResourcePlan, plan_resources


logger = logging.getLogger(__name__)


class BootstrapStatus(Enum):
    """Bootstrap status enumeration."""

    PENDING = "pending"
    CONFIGURED = "configured"
    RUNNING = "running"
    FAILED = "failed"


@dataclass
class BootstrapResult:
    """Result of a bootstrap."""

    status: BootstrapStatus
    job_id: str
    message: str
    master_url: Optional[str] = None
    worker_pid: Optional[int] = None
    shared_dir: Optional[str] = None
    discovery_file: Optional[str] = None
    plan: Optional[ResourcePlan] = None
    files: List[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        """Check if the bootstrap reached its target state."""
        return self.status in (BootstrapStatus.RUNNING, BootstrapStatus.CONFIGURED)


def resolve_spark_home(config: Dict[str, Any], environ: Mapping[str, str]) -> Optional[Path]:
    """spark.home from config, falling back to $SPARK_HOME."""
    home = config.get("spark", {}).get("home") or environ.get("SPARK_HOME")
    return Path(home).expanduser() if home else None


def write_env_file(path: Path, values: Dict[str, Any]) -> None:
    """Write a shell-sourceable KEY=value file."""
    lines = [f"{key}={shlex.quote(str(value))}" for key, value in values.items()]
    path.write_text("\n".join(lines) + "\n")


def read_env_file(path: Path) -> Dict[str, str]:
    """Parse a file written by write_env_file."""
    values = {}
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, raw = line.split("=", 1)
        parts = shlex.split(raw)
        values[key] = parts[0] if parts else ""
    return values


class ClusterBootstrap:
    """
    Bootstraps a Spark standalone cluster on the nodes of the current job.

    Uses subprocess to call Slurm CLI commands (scontrol, srun, sbcast) and
    Spark's own sbin scripts. The caller is expected to be the batch script
    running on the first node of the allocation.
    """

    REQUIRED_TOOLS = SrunLauncher.REQUIRED_TOOLS
    SPARK_SCRIPTS = ["sbin/start-master.sh", "sbin/start-worker.sh"]

    def __init__(
        self,
        config: Dict[str, Any],
        console: Optional[RichConsole] = None,
        shell: Optional[Console] = None,
        environ: Optional[Mapping[str, str]] = None,
        dry_run: bool = False,
    ):
        """
        Initialize bootstrap.

        Args:
            config: Merged configuration from ConfigLoader
            console: Rich console for progress output
            shell: Console used to run shell commands
            environ: Environment to read scheduler variables from
            dry_run: Generate files only; skip srun, sbcast and daemons
        """
        self.config = config
        self.console = console or RichConsole()
        self.shell = shell or Console()
        self.environ = dict(os.environ if environ is None else environ)
        self.dry_run = dry_run

        self.allocation: Optional[SlurmAllocation] = None
        self.spark_home: Optional[Path] = None
        self.layout: Optional[ClusterLayout] = None
        self.plan: Optional[ResourcePlan] = None
        self.launcher: Optional[SrunLauncher] = None
        self.rendered: Optional[RenderedConfig] = None
        self.worker_process = None

    @property
    def master_host(self) -> str:
        return self.allocation.batch_host

    # Template Method - defines workflow
    def execute(self) -> BootstrapResult:
        """
        Run every bootstrap phase in order.

        Returns:
            BootstrapResult describing the running (or, in dry-run, configured) cluster

        Raises:
            SparkStartError: From the first phase that fails
        """
        self.console.print("[blue]Validating Slurm allocation and Spark installation...[/blue]")
        self.validate()

        self.console.print("[blue]Provisioning directories...[/blue]")
        self.provision()

        self.console.print("[blue]Generating Spark configuration...[/blue]")
        self.generate()

        if self.dry_run:
            self.console.print("[yellow]Dry run: skipping distribution and daemon startup[/yellow]")
            self.display_plan()
            return self._result(BootstrapStatus.CONFIGURED, "Configuration generated (dry run)")

        self.console.print(f"[blue]Distributing configuration to {self.allocation.node_count} node(s)...[/blue]")
        self.distribute()

        self.console.print("[blue]Accounting resources...[/blue]")
        self.account()

        self.console.print(f"[blue]Starting Spark master on {self.master_host}...[/blue]")
        self.start_master()

        self.console.print("[blue]Starting Spark workers...[/blue]")
        worker_pid = self.start_workers()

        result = self._result(
            BootstrapStatus.RUNNING,
            f"Spark cluster running at {self.rendered.master_url}",
        )
        result.worker_pid = worker_pid
        result.discovery_file = str(self.layout.discovery_file)
        return result

    def validate(self) -> None:
        """
        Check the bootstrap preconditions and size the workers.

        Raises:
            ValidationError: If a precondition is not met
            ConfigurationError: If the allocation cannot host a worker
        """
        self.allocation = discover_allocation(self.shell, self.environ)
        context = create_error_context("validate", phase="validate", component="ClusterBootstrap")

        self.spark_home = resolve_spark_home(self.config, self.environ)
        if self.spark_home is None:
            raise ValidationError(
                "Spark installation not found (spark.home and SPARK_HOME are unset)",
                context=context,
                suggestions=["export SPARK_HOME=/path/to/spark", "or pass --spark-home"],
            )
        for script in self.SPARK_SCRIPTS:
            path = self.spark_home / script
            if not os.access(path, os.X_OK):
                raise ValidationError(
                    f"Spark launch script not found or not executable: {path}",
                    context=context,
                    suggestions=["Check that SPARK_HOME points at a Spark 3.x distribution"],
                )

        if not self.dry_run:
            for tool in self.REQUIRED_TOOLS:
                if shutil.which(tool, path=self.environ.get("PATH")) is None:
                    raise ValidationError(
                        f"Required tool not found: {tool}",
                        context=context,
                        suggestions=["Make sure you are on a Slurm compute node"],
                    )

        self.plan = plan_resources(self.allocation, self.config)
        self.layout = ClusterLayout.for_job(
            self.config["paths"]["shared_root"],
            self.config["paths"]["scratch_root"],
            self.allocation.user,
            self.allocation.job_id,
        )
        self.launcher = SrunLauncher(
            self.allocation,
            self.shell,
            srun_args=self.config["slurm"]["srun_args"],
            timeout=self.config["slurm"]["command_timeout"],
        )
        self.console.print(
            f"[green]✓ Job {self.allocation.job_id}: {self.allocation.node_count} node(s) "
            f"x {self.allocation.cpus_per_node} CPUs / {self.allocation.memory_per_node_mb} MB[/green]"
        )

    def provision(self) -> None:
        """
        Create the shared job directory and node-local scratch on every node.

        Raises:
            ProvisioningError: If a directory cannot be created
        """
        for path in self.layout.shared_dirs():
            try:
                path.mkdir(mode=0o700, parents=True, exist_ok=True)
                # mkdir leaves the mode of an existing directory alone
                path.chmod(0o700)
            except OSError as e:
                raise ProvisioningError(
                    f"Could not create {path}: {e}",
                    context=create_error_context("provision", phase="provision", file_path=str(path)),
                    cause=e,
                ) from e
        self.console.print(f"[green]✓ Shared job directory: {self.layout.shared_dir}[/green]")

        if self.dry_run:
            return

        command = ["mkdir", "-p", "-m", "700"] + [str(p) for p in self.layout.node_dirs()]
        try:
            self.launcher.run_on_all_nodes(command)
        except CommandError as e:
            raise ProvisioningError(
                f"Could not create node-local scratch {self.layout.scratch_dir} on all nodes",
                context=create_error_context(
                    "provision", phase="provision", node=self.allocation.nodelist
                ),
                suggestions=["Check paths.scratch_root is writable on the compute nodes"],
                cause=e,
            ) from e
        self.console.print(f"[green]✓ Node-local scratch: {self.layout.scratch_dir}[/green]")

    def generate(self) -> None:
        """Render configuration files with a fresh shared secret."""
        renderer = ConfigRenderer(
            layout=self.layout,
            config=self.config,
            spark_home=self.spark_home,
            job_id=self.allocation.job_id,
            master_host=self.master_host,
        )
        self.rendered = renderer.write_all(self.plan, generate_secret())
        for path in self.rendered.files:
            self.console.print(f"[green]✓ Generated {path}[/green]")

    def distribute(self) -> None:
        """
        Broadcast every generated file to the node-local conf directory.

        Raises:
            DistributionError: If sbcast fails
        """
        for source in self.rendered.files:
            destination = self.layout.local_conf_dir / source.name
            try:
                self.launcher.broadcast(source, destination)
            except CommandError as e:
                raise DistributionError(
                    f"Could not broadcast {source.name} to {self.allocation.nodelist}",
                    context=create_error_context(
                        "distribute", phase="distribute", file_path=str(source)
                    ),
                    cause=e,
                ) from e
        self.console.print(
            f"[green]✓ Distributed {len(self.rendered.files)} file(s) to {self.layout.local_conf_dir}[/green]"
        )

    def account(self) -> None:
        """Report the resource plan and write the host-discovery file."""
        self.display_plan()
        spark = self.config["spark"]
        write_env_file(self.layout.discovery_file, {
            "SPARK_MASTER_URL": self.rendered.master_url,
            "SPARK_MASTER_HOST": self.master_host,
            "SPARK_MASTER_PORT": spark["master_port"],
            "SPARK_MASTER_WEBUI_URL": f"http://{self.master_host}:{spark['master_webui_port']}",
            "SPARK_HOME": self.spark_home,
            "SPARK_CONF_DIR": self.layout.shared_conf_dir,
            "SPARK_LOCAL_CONF_DIR": self.layout.local_conf_dir,
            "SPARK_WORKER_COUNT": self.plan.worker_count,
            "SPARK_TOTAL_CORES": self.plan.total_cores,
            "SPARK_EXECUTOR_CORES": self.plan.executor_cores,
            "SPARK_EXECUTOR_MEMORY": f"{self.plan.executor_memory_mb}m",
        })
        self.console.print(f"[green]✓ Host discovery file: {self.layout.discovery_file}[/green]")

    def display_plan(self) -> None:
        """Print the per-node and cluster-wide sizing."""
        self.console.print(build_plan_table(self.allocation, self.plan))

    def daemon_env(self) -> Dict[str, str]:
        return merged_env({
            "SPARK_HOME": str(self.spark_home),
            "SPARK_CONF_DIR": str(self.layout.local_conf_dir),
        })

    def start_master(self) -> None:
        """
        Start the Spark master daemon on this host.

        Raises:
            LaunchError: If start-master.sh fails
        """
        script = self.spark_home / "sbin" / "start-master.sh"
        try:
            self.shell.sh([script], env=self.daemon_env(), timeout=self.config["slurm"]["command_timeout"])
        except CommandError as e:
            raise LaunchError(
                "Spark master failed to start",
                context=create_error_context(
                    "start_master", phase="start_master", node=self.master_host
                ),
                suggestions=[f"Check the master log in {self.layout.log_dir}"],
                cause=e,
            ) from e
        self.console.print(f"[green]✓ Spark master started: {self.rendered.master_url}[/green]")
        # downstream job scripts grep for this line
        print(f"SPARK_MASTER_URL: {self.rendered.master_url}", flush=True)

    def start_workers(self) -> int:
        """
        Launch one worker per node with srun in the background.

        Returns:
            pid of the srun process

        Raises:
            LaunchError: If srun cannot be started
        """
        log_path = self.layout.worker_log(self.allocation.job_id)
        try:
            proc = self.launcher.launch_background(
                self.layout.worker_script,
                log_path,
                cpus_per_task=self.allocation.cpus_per_node,
                env=self.daemon_env(),
            )
        except CommandError as e:
            raise LaunchError(
                "Could not launch Spark workers",
                context=create_error_context("start_workers", phase="start_workers"),
                cause=e,
            ) from e

        self.worker_process = proc
        self.layout.worker_pid_file.write_text(f"{proc.pid}\n")
        self.console.print(
            f"[green]✓ Launched {self.allocation.node_count} worker(s) via srun "
            f"(pid {proc.pid}, log {log_path})[/green]"
        )
        return proc.pid

    def _result(self, status: BootstrapStatus, message: str) -> BootstrapResult:
        return BootstrapResult(
            status=status,
            job_id=self.allocation.job_id,
            message=message,
            master_url=self.rendered.master_url if self.rendered else None,
            shared_dir=str(self.layout.shared_dir),
            plan=self.plan,
            files=[str(p) for p in self.rendered.files] if self.rendered else [],
        )


def build_plan_table(allocation: SlurmAllocation, plan: ResourcePlan) -> Table:
    """Rich table summarising an allocation and its resource plan."""
    table = Table(
        title=f"Spark resources for job {allocation.job_id}",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Setting", style="cyan")
    table.add_column("Value", justify="right", style="green")

    table.add_row("Nodes", ", ".join(allocation.hostnames))
    table.add_row("CPUs per node", str(plan.cpus_per_node))
    table.add_row("Memory per node", f"{plan.memory_per_node_mb} MB")
    table.add_row("Worker cores", str(plan.worker_cores))
    table.add_row("Worker memory", f"{plan.worker_memory_mb} MB")
    table.add_row("Executors per node", str(plan.executors_per_node))
    table.add_row("Executor cores", str(plan.executor_cores))
    table.add_row("Executor memory", f"{plan.executor_memory_mb} MB")
    table.add_row("Total cores", str(plan.total_cores))
    table.add_row("Default parallelism", str(plan.default_parallelism))
    return table
