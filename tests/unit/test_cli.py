"""Test the CLI module.

This module tests the Typer-based command-line interface: command wiring,
option handling and the mapping of errors to exit codes. The bootstrap and
Slurm discovery are patched out so no scheduler is needed.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

# built-in modules
import importlib
import json
from unittest.mock import MagicMock, patch

# third-party modules
import pytest
from typer.testing import CliRunner

# project modules
from sparkstart import __version__
from sparkstart.cli import (
    CATEGORY_EXIT_CODES,
    ExitCode,
    app,
    build_overrides,
    exit_code_for,
)
from sparkstart.core.errors import (
    ConfigurationError,
    DistributionError,
    ErrorCategory,
    LaunchError,
    ValidationError,
)
from sparkstart.orchestration import BootstrapResult, BootstrapStatus
from sparkstart.slurm import SlurmAllocation


start_module = importlib.import_module("sparkstart.cli.commands.start")
plan_module = importlib.import_module("sparkstart.cli.commands.plan")


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def allocation():
    return SlurmAllocation(
        job_id="4242",
        nodelist="node[01-02]",
        hostnames=["node01", "node02"],
        cpus_per_node=16,
        memory_per_node_mb=65536,
        user="alice",
        batch_host="node01",
    )


class TestUtilities:
    """Test CLI helper functions."""

    def test_build_overrides(self):
        overrides = build_overrides(spark__home="/opt/spark", spark__master_port=None, paths__scratch_root="/s")
        assert overrides == {"spark": {"home": "/opt/spark"}, "paths": {"scratch_root": "/s"}}

    def test_build_overrides_empty(self):
        assert build_overrides(spark__home=None) == {}

    def test_exit_codes(self):
        assert exit_code_for(ValidationError("x")) == ExitCode.VALIDATION_FAILURE
        assert exit_code_for(ConfigurationError("x")) == ExitCode.INVALID_ARGS
        assert exit_code_for(DistributionError("x")) == ExitCode.PROVISION_FAILURE
        assert exit_code_for(LaunchError("x")) == ExitCode.LAUNCH_FAILURE
        assert exit_code_for(RuntimeError("x")) == ExitCode.FAILURE

    def test_every_category_has_exit_code(self):
        assert set(CATEGORY_EXIT_CODES) == set(ErrorCategory)


class TestMainCallback:
    """Test the top-level app."""

    def test_version(self, runner):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_help_lists_commands(self, runner):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("start", "plan", "stop"):
            assert command in result.stdout


class TestStartCommand:
    """Test the start command."""

    def test_success(self, runner, tmp_path):
        bootstrap = MagicMock()
        bootstrap.execute.return_value = BootstrapResult(
            status=BootstrapStatus.RUNNING,
            job_id="4242",
            message="Spark cluster running at spark://node01:7077",
            discovery_file=str(tmp_path / "master.env"),
        )
        bootstrap.worker_process = None

        with patch.object(start_module, "ClusterBootstrap", return_value=bootstrap) as factory:
            result = runner.invoke(app, ["start", "--spark-home", "/opt/spark", "--master-port", "7078"])

        assert result.exit_code == 0, result.stdout
        assert "spark://node01:7077" in result.stdout
        config = factory.call_args[0][0]
        assert config["spark"]["home"] == "/opt/spark"
        assert config["spark"]["master_port"] == 7078
        assert factory.call_args.kwargs["dry_run"] is False

    def test_dry_run_flag(self, runner):
        bootstrap = MagicMock()
        bootstrap.execute.return_value = BootstrapResult(
            status=BootstrapStatus.CONFIGURED, job_id="4242", message="Configuration generated (dry run)"
        )

        with patch.object(start_module, "ClusterBootstrap", return_value=bootstrap) as factory:
            result = runner.invoke(app, ["start", "--dry-run"])

        assert result.exit_code == 0
        assert factory.call_args.kwargs["dry_run"] is True

    def test_config_json_applied(self, runner):
        bootstrap = MagicMock()
        bootstrap.execute.return_value = BootstrapResult(
            status=BootstrapStatus.CONFIGURED, job_id="4242", message="ok"
        )

        with patch.object(start_module, "ClusterBootstrap", return_value=bootstrap) as factory:
            runner.invoke(app, ["start", "--config", '{"resources": {"reserved_cores": 2}}'])

        assert factory.call_args[0][0]["resources"]["reserved_cores"] == 2

    def test_not_in_allocation(self, runner):
        bootstrap = MagicMock()
        bootstrap.execute.side_effect = ValidationError("not running inside a Slurm allocation")

        with patch.object(start_module, "ClusterBootstrap", return_value=bootstrap):
            result = runner.invoke(app, ["start"])

        assert result.exit_code == ExitCode.VALIDATION_FAILURE

    def test_launch_failure(self, runner):
        bootstrap = MagicMock()
        bootstrap.execute.side_effect = LaunchError("Spark master failed to start")

        with patch.object(start_module, "ClusterBootstrap", return_value=bootstrap):
            result = runner.invoke(app, ["start"])

        assert result.exit_code == ExitCode.LAUNCH_FAILURE

    def test_invalid_config_json(self, runner):
        with patch.object(start_module, "ClusterBootstrap") as factory:
            result = runner.invoke(app, ["start", "--config", "{broken"])

        assert result.exit_code == ExitCode.INVALID_ARGS
        factory.assert_not_called()

    def test_wait_propagates_worker_failure(self, runner):
        bootstrap = MagicMock()
        bootstrap.execute.return_value = BootstrapResult(
            status=BootstrapStatus.RUNNING, job_id="4242", message="running"
        )
        bootstrap.worker_process.wait.return_value = 1

        with patch.object(start_module, "ClusterBootstrap", return_value=bootstrap):
            result = runner.invoke(app, ["start", "--wait"])

        assert result.exit_code == ExitCode.LAUNCH_FAILURE
        bootstrap.worker_process.wait.assert_called_once()


class TestPlanCommand:
    """Test the plan command."""

    def test_json_output(self, runner, allocation):
        with patch.object(plan_module, "discover_allocation", return_value=allocation):
            result = runner.invoke(app, ["plan", "--json"])

        assert result.exit_code == 0, result.stdout
        payload = json.loads(result.stdout)
        assert payload["job_id"] == "4242"
        assert payload["hostnames"] == ["node01", "node02"]
        assert payload["worker_cores"] == 15
        assert payload["worker_memory_mb"] == 63488

    def test_table_output(self, runner, allocation):
        with patch.object(plan_module, "discover_allocation", return_value=allocation):
            result = runner.invoke(app, ["plan"])

        assert result.exit_code == 0
        assert "Worker cores" in result.stdout

    def test_outside_allocation(self, runner):
        with patch.object(
            plan_module,
            "discover_allocation",
            side_effect=ValidationError("not running inside a Slurm allocation"),
        ):
            result = runner.invoke(app, ["plan"])

        assert result.exit_code == ExitCode.VALIDATION_FAILURE


class TestStopCommand:
    """Test the stop command."""

    def test_requires_job_id(self, runner, monkeypatch):
        monkeypatch.delenv("SLURM_JOB_ID", raising=False)
        result = runner.invoke(app, ["stop"])
        assert result.exit_code == ExitCode.VALIDATION_FAILURE

    def test_nothing_to_stop(self, runner, tmp_path):
        result = runner.invoke(app, ["stop", "--job-id", "4242", "--shared-root", str(tmp_path)])

        assert result.exit_code == 0
        assert "Nothing to stop" in result.stdout
