#!/usr/bin/env python3
"""
CLI Package for spark-start

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .app import app, cli_main
from .constants import CATEGORY_EXIT_CODES, DEFAULT_SHARED_ROOT, ExitCode
from .utils import (
    build_overrides,
    exit_code_for,
    load_configuration,
    setup_logging,
)

__all__ = [
    "app",
    "cli_main",
    "ExitCode",
    "CATEGORY_EXIT_CODES",
    "DEFAULT_SHARED_ROOT",
    "build_overrides",
    "exit_code_for",
    "load_configuration",
    "setup_logging",
]
