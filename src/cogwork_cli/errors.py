"""CLI error handling for cogwork-cli.

Wraps cogwork-core exceptions into user-friendly messages with exit codes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import click
from rich.markup import escape

from cogwork_cli.output import error

if TYPE_CHECKING:
    from cogwork_core.errors import CogworkError


# Exit codes following sysexits.h convention
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # User error (configuration, missing asset, broken source)
EXIT_SYSTEM_ERROR = 2  # System error (permissions, write failure, port in use)


class CLIError(click.ClickException):
    """CLI-specific exception with exit code support.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI (default: 1).
    """

    def __init__(self, message: str, exit_code: int = EXIT_USER_ERROR) -> None:
        super().__init__(message)
        self.exit_code = exit_code

    def show(self, file: object = None) -> None:
        """Display the error message using Rich formatting."""
        error(escape(self.format_message()))


def format_cogwork_error(err: CogworkError) -> str:
    """Format a cogwork error, listing per-asset failures of a BuildError."""
    from cogwork_core.errors import BuildError

    if not isinstance(err, BuildError):
        return err.user_message
    lines = [err.user_message]
    for pipeline, logical_name, failure in err.failures:
        lines.append(f"  - {pipeline}/{logical_name}: {failure.user_message}")
    return "\n".join(lines)


def handle_cogwork_error(err: CogworkError) -> NoReturn:
    """Raise a CLIError for a cogwork error.

    Raises:
        CLIError: Always, with exit code EXIT_USER_ERROR.
    """
    raise CLIError(format_cogwork_error(err), exit_code=EXIT_USER_ERROR) from err


def handle_os_error(err: OSError, operation: str = "access") -> NoReturn:
    """Raise a CLIError for a filesystem or socket failure.

    Raises:
        CLIError: Always, with exit code EXIT_SYSTEM_ERROR.
    """
    target = f" {err.filename}" if err.filename else ""
    reason = err.strerror or str(err)
    raise CLIError(f"Cannot {operation}{target}: {reason}", exit_code=EXIT_SYSTEM_ERROR) from err
