#!/usr/bin/env python3
"""
Configuration loader with multi-layer merging.

Layers (low to high priority):
1. System defaults (built-in presets)
2. User file (--config-file)
3. User CLI (--config, then explicit flags)

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import json
import logging
import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from sparkstart.core.errors import ConfigurationError


logger = logging.getLogger(__name__)


class ConfigLoader:
    """Smart configuration loader with preset support."""

    PRESET_DIR = Path(__file__).parent / "presets"

    # (section, key, minimum) for every integer setting
    INTEGER_FIELDS = [
        ("spark", "master_port", 1),
        ("spark", "master_webui_port", 1),
        ("spark", "worker_webui_port", 1),
        ("resources", "reserved_cores", 0),
        ("resources", "reserved_memory_mb", 0),
        ("resources", "min_worker_memory_mb", 1),
        ("resources", "executors_per_node", 1),
        ("resources", "parallelism_factor", 1),
        ("slurm", "command_timeout", 1),
    ]

    @classmethod
    def load_preset(cls, preset_path: str) -> Dict[str, Any]:
        """
        Load a preset JSON file.

        Args:
            preset_path: Relative path to preset file from PRESET_DIR

        Returns:
            Dict containing preset configuration, or empty dict if not found
        """
        full_path = cls.PRESET_DIR / preset_path
        if not full_path.exists():
            return {}

        try:
            with open(full_path, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Could not load preset {preset_path}: {e}")
            return {}

    @classmethod
    def deep_merge(cls, base: Dict, override: Dict) -> Dict:
        """
        Deep merge two dictionaries. Override wins conflicts.
        Nested dicts are merged, lists/primitives are replaced.

        Args:
            base: Base dictionary
            override: Override dictionary

        Returns:
            Merged dictionary
        """
        result = deepcopy(base)

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls.deep_merge(result[key], value)
            else:
                result[key] = deepcopy(value)

        return result

    @classmethod
    def load_file(cls, config_path: str) -> Dict[str, Any]:
        """
        Load a user configuration file (YAML or JSON).

        Raises:
            ConfigurationError: If the file is missing, unparsable or not a mapping
        """
        path = Path(config_path).expanduser()
        if not path.exists():
            raise ConfigurationError(
                f"Config file not found: {config_path}",
                suggestions=["Check the --config-file path"],
            )

        try:
            with open(path) as f:
                if path.suffix in ['.yml', '.yaml']:
                    data = yaml.safe_load(f)
                elif path.suffix == '.json':
                    data = json.load(f)
                else:
                    raise ConfigurationError(
                        f"Unsupported config format: {path.suffix}",
                        suggestions=["Use a .json, .yaml or .yml file"],
                    )
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Could not parse {config_path}: {e}", cause=e) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a mapping")
        return data

    @classmethod
    def parse_json(cls, config_json: str) -> Dict[str, Any]:
        """Parse an inline JSON configuration string."""
        if not config_json or config_json.strip() in ("", "{}"):
            return {}
        try:
            data = json.loads(config_json)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in --config: {e}",
                suggestions=["Quote the JSON, e.g. --config '{\"resources\": {\"reserved_cores\": 2}}'"],
                cause=e,
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError("--config must be a JSON object")
        return data

    @classmethod
    def load_config(
        cls,
        config_file: Optional[str] = None,
        config_json: str = "",
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Load complete configuration with all layers applied.

        Args:
            config_file: Optional JSON/YAML file path
            config_json: Optional inline JSON string
            overrides: Values from explicit CLI flags (highest priority)

        Returns:
            Complete validated configuration
        """
        config = cls.load_preset("defaults.json")
        config.pop("_comment", None)

        if config_file:
            config = cls.deep_merge(config, cls.load_file(config_file))
        config = cls.deep_merge(config, cls.parse_json(config_json))
        if overrides:
            config = cls.deep_merge(config, overrides)

        paths = config.setdefault("paths", {})
        if not paths.get("scratch_root"):
            paths["scratch_root"] = os.environ.get("TMPDIR") or "/tmp"

        cls.validate(config)
        return config

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate types and ranges of the merged configuration.

        Raises:
            ConfigurationError: On the first invalid value
        """
        for section, key, minimum in cls.INTEGER_FIELDS:
            value = config.get(section, {}).get(key)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(
                    f"{section}.{key} must be an integer, got {value!r}"
                )
            if value < minimum:
                raise ConfigurationError(
                    f"{section}.{key} must be >= {minimum}, got {value}"
                )

        for key in ("master_port", "master_webui_port", "worker_webui_port"):
            if config["spark"][key] > 65535:
                raise ConfigurationError(f"spark.{key} is not a valid port: {config['spark'][key]}")

        if not isinstance(config.get("slurm", {}).get("srun_args"), list):
            raise ConfigurationError("slurm.srun_args must be a list of strings")

        for section in ("spark_defaults", "env_vars"):
            if not isinstance(config.get(section), dict):
                raise ConfigurationError(f"{section} must be a mapping")
