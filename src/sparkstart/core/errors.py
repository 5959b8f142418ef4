#!/usr/bin/env python3
"""
Unified error handling for sparkstart.

Every failure during a bootstrap is fatal. Errors carry a category, an
optional context describing where they happened, and suggestions that the
CLI renders in a Rich panel before exiting.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text


class ErrorCategory(Enum):
    """Error categories used for display and exit code mapping."""

    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    PROVISIONING = "provisioning"
    DISTRIBUTION = "distribution"
    LAUNCH = "launch"
    COMMAND = "command"


@dataclass
class ErrorContext:
    """Where an error happened."""

    operation: str
    phase: Optional[str] = None
    component: Optional[str] = None
    node: Optional[str] = None
    file_path: Optional[str] = None
    additional_info: Optional[Dict[str, Any]] = None


class SparkStartError(Exception):
    """Base class for all sparkstart errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        context: Optional[ErrorContext] = None,
        recoverable: bool = False,
        suggestions: Optional[List[str]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.context = context
        self.recoverable = recoverable
        self.suggestions = suggestions or []
        self.cause = cause


class ValidationError(SparkStartError):
    """Precondition not met (not in an allocation, Spark missing, ...)."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.VALIDATION, recoverable=True, **kwargs)


class ConfigurationError(SparkStartError):
    """Invalid configuration or scheduler-provided value."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.CONFIGURATION, recoverable=True, **kwargs)


class ProvisioningError(SparkStartError):
    """Directory setup failed locally or on a node."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.PROVISIONING, recoverable=False, **kwargs)


class DistributionError(SparkStartError):
    """Broadcasting generated files to the nodes failed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.DISTRIBUTION, recoverable=False, **kwargs)


class LaunchError(SparkStartError):
    """A Spark daemon could not be started."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.LAUNCH, recoverable=False, **kwargs)


class CommandError(SparkStartError):
    """A shell command exited non-zero or timed out."""

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        returncode: Optional[int] = None,
        output: str = "",
        **kwargs,
    ):
        super().__init__(message, ErrorCategory.COMMAND, recoverable=False, **kwargs)
        self.command = command
        self.returncode = returncode
        self.output = output


_CATEGORY_DISPLAY = {
    ErrorCategory.VALIDATION: ("⚠️", "Validation Error", "yellow"),
    ErrorCategory.CONFIGURATION: ("⚙️", "Configuration Error", "yellow"),
    ErrorCategory.PROVISIONING: ("📁", "Provisioning Error", "red"),
    ErrorCategory.DISTRIBUTION: ("📡", "Distribution Error", "red"),
    ErrorCategory.LAUNCH: ("🚀", "Launch Error", "red"),
    ErrorCategory.COMMAND: ("💻", "Command Error", "red"),
}


class ErrorHandler:
    """Renders errors to a Rich console and logs them."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or Console()
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)

    def handle_error(
        self,
        error: BaseException,
        context: Optional[ErrorContext] = None,
        show_traceback: Optional[bool] = None,
    ) -> None:
        """Display an error panel, with traceback in verbose mode."""
        if show_traceback is None:
            show_traceback = self.verbose

        if isinstance(error, SparkStartError):
            emoji, title, style = _CATEGORY_DISPLAY[error.category]
            panel_title = f"{emoji} {title}"
            context = error.context or context
            suggestions = error.suggestions
            cause = error.cause
        else:
            panel_title = f"💥 {type(error).__name__}"
            style = "red"
            suggestions = []
            cause = error.__cause__

        body = Text(str(error), style=f"bold {style}")
        if context is not None:
            details = [f"operation: {context.operation}"]
            for label in ("phase", "component", "node", "file_path"):
                value = getattr(context, label)
                if value:
                    details.append(f"{label}: {value}")
            body.append("\n\n" + "\n".join(details), style="dim")
        while cause is not None:
            body.append(f"\n\ncaused by {type(cause).__name__}: {cause}", style="dim red")
            cause = getattr(cause, "cause", None) or cause.__cause__
        if suggestions:
            body.append("\n\nSuggestions:", style="bold cyan")
            for suggestion in suggestions:
                body.append(f"\n  • {suggestion}", style="cyan")

        self.console.print(Panel(body, title=panel_title, border_style=style))
        self.logger.debug("error: %s", error)

        if show_traceback:
            self.console.print_exception()


_error_handler: Optional[ErrorHandler] = None


def set_error_handler(handler: Optional[ErrorHandler]) -> None:
    """Install the process-wide error handler."""
    global _error_handler
    _error_handler = handler


def get_error_handler() -> Optional[ErrorHandler]:
    """Return the process-wide error handler, if any."""
    return _error_handler


def handle_error(error: BaseException, context: Optional[ErrorContext] = None) -> None:
    """Route an error to the global handler, falling back to logging."""
    if _error_handler is None:
        logging.error("%s", error)
        return
    _error_handler.handle_error(error, context=context)


def create_error_context(operation: str, **kwargs) -> ErrorContext:
    """Convenience constructor for ErrorContext."""
    return ErrorContext(operation=operation, **kwargs)
