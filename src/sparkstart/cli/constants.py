#!/usr/bin/env python3
"""
Constants and configuration for the spark-start CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from sparkstart.core.errors import ErrorCategory


# Exit codes
class ExitCode:
    """Exit codes for CLI commands."""

    SUCCESS = 0
    FAILURE = 1
    VALIDATION_FAILURE = 2
    PROVISION_FAILURE = 3
    LAUNCH_FAILURE = 4
    INVALID_ARGS = 5


# Error category -> exit code
CATEGORY_EXIT_CODES = {
    ErrorCategory.VALIDATION: ExitCode.VALIDATION_FAILURE,
    ErrorCategory.CONFIGURATION: ExitCode.INVALID_ARGS,
    ErrorCategory.PROVISIONING: ExitCode.PROVISION_FAILURE,
    ErrorCategory.DISTRIBUTION: ExitCode.PROVISION_FAILURE,
    ErrorCategory.LAUNCH: ExitCode.LAUNCH_FAILURE,
    ErrorCategory.COMMAND: ExitCode.LAUNCH_FAILURE,
}

# Default values
DEFAULT_SHARED_ROOT = "~/.spark-local"
