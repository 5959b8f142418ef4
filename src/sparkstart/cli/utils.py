#!/usr/bin/env python3
"""
Utility functions for the spark-start CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from sparkstart.config import ConfigLoader
from sparkstart.core.errors import (
    ErrorHandler,
    SparkStartError,
    get_error_handler,
    set_error_handler,
)
from .constants import CATEGORY_EXIT_CODES, ExitCode


# Initialize Rich console
console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Setup Rich logging configuration and unified error handler."""
    log_level = logging.DEBUG if verbose else logging.INFO

    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=verbose,
        markup=True,
        rich_tracebacks=True,
    )

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[rich_handler],
        force=True,
    )

    error_handler = ErrorHandler(console=console, verbose=verbose)
    set_error_handler(error_handler)


def load_configuration(
    config_file: Optional[str],
    config_json: str,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Load layered configuration, exiting with INVALID_ARGS on errors."""
    try:
        return ConfigLoader.load_config(
            config_file=config_file,
            config_json=config_json,
            overrides=overrides,
        )
    except SparkStartError as e:
        fail(e)


def build_overrides(**flags: Any) -> Dict[str, Any]:
    """Map explicit CLI flags onto configuration sections, skipping unset ones."""
    overrides: Dict[str, Any] = {}
    for dotted, value in flags.items():
        if value is None:
            continue
        section, key = dotted.split("__", 1)
        overrides.setdefault(section, {})[key] = value
    return overrides


def exit_code_for(error: BaseException) -> int:
    """Exit code for an error raised by a command."""
    if isinstance(error, SparkStartError):
        return CATEGORY_EXIT_CODES.get(error.category, ExitCode.FAILURE)
    return ExitCode.FAILURE


def fail(error: BaseException) -> None:
    """Render an error through the unified handler and exit."""
    handler = get_error_handler() or ErrorHandler(console=console)
    handler.handle_error(error)
    raise typer.Exit(exit_code_for(error))
