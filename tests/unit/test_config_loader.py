#!/usr/bin/env python3
"""
Unit tests for ConfigLoader.

Tests the configuration loader's ability to:
1. Apply built-in defaults
2. Layer file, inline JSON and CLI overrides in priority order
3. Reject invalid values with ConfigurationError

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import json

import pytest
import yaml

from sparkstart.config import ConfigLoader
from sparkstart.core.errors import ConfigurationError


class TestConfigLoaderBasics:
    """Test defaults and merging."""

    def test_defaults_applied(self, monkeypatch):
        """An empty configuration gets the preset defaults."""
        monkeypatch.setenv("TMPDIR", "/scratch/tmp")
        config = ConfigLoader.load_config()

        assert config["spark"]["master_port"] == 7077
        assert config["spark"]["master_webui_port"] == 8080
        assert config["resources"]["reserved_cores"] == 1
        assert config["resources"]["reserved_memory_mb"] == 2048
        assert config["paths"]["shared_root"] == "~/.spark-local"
        assert config["paths"]["scratch_root"] == "/scratch/tmp"
        assert "_comment" not in config

    def test_scratch_root_falls_back_to_tmp(self, monkeypatch):
        monkeypatch.delenv("TMPDIR", raising=False)
        config = ConfigLoader.load_config()
        assert config["paths"]["scratch_root"] == "/tmp"

    def test_deep_merge_nested(self):
        """Nested dicts merge, lists and scalars are replaced."""
        base = {"a": {"x": 1, "y": 2}, "l": [1, 2]}
        override = {"a": {"y": 3}, "l": [9]}

        result = ConfigLoader.deep_merge(base, override)

        assert result == {"a": {"x": 1, "y": 3}, "l": [9]}
        assert base["a"]["y"] == 2

    def test_layer_priority(self, tmp_path):
        """File < inline JSON < explicit overrides."""
        config_file = tmp_path / "cluster.yaml"
        config_file.write_text(yaml.safe_dump({
            "spark": {"master_port": 7000, "daemon_memory": "2g"},
            "resources": {"reserved_cores": 2},
        }))

        config = ConfigLoader.load_config(
            config_file=str(config_file),
            config_json=json.dumps({"spark": {"master_port": 7100}}),
            overrides={"spark": {"master_port": 7200}},
        )

        assert config["spark"]["master_port"] == 7200
        assert config["spark"]["daemon_memory"] == "2g"
        assert config["resources"]["reserved_cores"] == 2
        assert config["resources"]["reserved_memory_mb"] == 2048

    def test_json_file(self, tmp_path):
        config_file = tmp_path / "cluster.json"
        config_file.write_text(json.dumps({"spark_defaults": {"spark.eventLog.enabled": "true"}}))

        config = ConfigLoader.load_config(config_file=str(config_file))

        assert config["spark_defaults"] == {"spark.eventLog.enabled": "true"}

    def test_empty_yaml_file(self, tmp_path):
        config_file = tmp_path / "empty.yml"
        config_file.write_text("")
        assert ConfigLoader.load_file(str(config_file)) == {}

    @pytest.mark.parametrize("value", ["", "{}", "  {}  "])
    def test_parse_json_empty(self, value):
        assert ConfigLoader.parse_json(value) == {}


class TestConfigLoaderErrors:
    """Test rejection of bad input."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            ConfigLoader.load_file(str(tmp_path / "nope.yaml"))

    def test_unsupported_format(self, tmp_path):
        config_file = tmp_path / "cluster.toml"
        config_file.write_text("a = 1\n")
        with pytest.raises(ConfigurationError, match="Unsupported"):
            ConfigLoader.load_file(str(config_file))

    def test_file_not_a_mapping(self, tmp_path):
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            ConfigLoader.load_file(str(config_file))

    def test_invalid_inline_json(self):
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            ConfigLoader.parse_json("{not json")

    def test_inline_json_not_an_object(self):
        with pytest.raises(ConfigurationError):
            ConfigLoader.parse_json("[1, 2]")

    def test_negative_reserved_cores(self):
        with pytest.raises(ConfigurationError, match="reserved_cores"):
            ConfigLoader.load_config(overrides={"resources": {"reserved_cores": -1}})

    def test_zero_executors_per_node(self):
        with pytest.raises(ConfigurationError, match="executors_per_node"):
            ConfigLoader.load_config(overrides={"resources": {"executors_per_node": 0}})

    def test_boolean_is_not_an_integer(self):
        with pytest.raises(ConfigurationError, match="must be an integer"):
            ConfigLoader.load_config(overrides={"spark": {"master_port": True}})

    def test_port_out_of_range(self):
        with pytest.raises(ConfigurationError, match="not a valid port"):
            ConfigLoader.load_config(overrides={"spark": {"master_webui_port": 70000}})

    def test_srun_args_must_be_list(self):
        with pytest.raises(ConfigurationError, match="srun_args"):
            ConfigLoader.load_config(overrides={"slurm": {"srun_args": "--overlap"}})

    def test_env_vars_must_be_mapping(self):
        with pytest.raises(ConfigurationError, match="env_vars"):
            ConfigLoader.load_config(config_json='{"env_vars": ["A=1"]}')
