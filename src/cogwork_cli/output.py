"""Rich console output utilities for cogwork-cli.

Colored success/error/warning messages that respect the NO_COLOR
environment variable and the ``--no-color`` flag.
"""

from __future__ import annotations

import os
from typing import Any

from rich.console import Console

_force_no_color = os.environ.get("NO_COLOR") is not None


def create_console(no_color: bool = False) -> Console:
    """Create a Rich Console with the requested color settings.

    Args:
        no_color: If True, disable colored output. NO_COLOR also disables it.

    Returns:
        Configured Console instance.
    """
    force_terminal = None
    if no_color or _force_no_color:
        force_terminal = False
    return Console(force_terminal=force_terminal, no_color=no_color or _force_no_color)


console = create_console()


def success(message: str, **kwargs: Any) -> None:
    """Print a success message with a green checkmark.

    Example:
        >>> success("Built 12 assets")
        ✓ Built 12 assets
    """
    console.print(f"[green]✓[/green] {message}", **kwargs)


def error(message: str, **kwargs: Any) -> None:
    """Print an error message with a red X.

    Example:
        >>> error("Asset 'main.css' not found in pipeline 'assets'")
        ✗ Asset 'main.css' not found in pipeline 'assets'
    """
    console.print(f"[red]✗[/red] {message}", **kwargs)


def warning(message: str, **kwargs: Any) -> None:
    """Print a warning message with a yellow triangle."""
    console.print(f"[yellow]⚠[/yellow] {message}", **kwargs)


def info(message: str, **kwargs: Any) -> None:
    """Print an informational message."""
    console.print(message, **kwargs)


def set_no_color(no_color: bool) -> None:
    """Replace the module console, enabling or disabling colors."""
    global console
    console = create_console(no_color=no_color)
