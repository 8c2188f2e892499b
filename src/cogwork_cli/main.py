"""CLI entry point for cogwork.

The root group loads subcommands lazily so ``cogwork --help`` stays fast
without importing the transform engines.
"""

from __future__ import annotations

import importlib
from typing import Any

import click
import rich_click as rclick

from cogwork_cli import __version__
from cogwork_cli.output import set_no_color

rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LazyGroup(rclick.RichGroup):
    """Click group that imports a command's module only when it is used.

    Attributes:
        lazy_subcommands: Mapping of command names to ``module.attribute``.
    """

    def __init__(
        self,
        *args: Any,
        lazy_subcommands: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.lazy_subcommands: dict[str, str] = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        commands = set(super().list_commands(ctx))
        commands.update(self.lazy_subcommands)
        return sorted(commands)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        cmd = super().get_command(ctx, cmd_name)  # type: ignore[arg-type]
        if cmd is not None:
            return cmd

        if cmd_name not in self.lazy_subcommands:
            return None

        module_name, attr_name = self.lazy_subcommands[cmd_name].rsplit(".", 1)
        mod = importlib.import_module(module_name)
        return getattr(mod, attr_name)  # type: ignore[no-any-return]


LAZY_COMMANDS = {
    "build": "cogwork_cli.commands.build.build",
    "server": "cogwork_cli.commands.server.server",
    "new": "cogwork_cli.commands.new.new",
}


@click.command(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.version_option(version=__version__, prog_name="cogwork")
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=lambda ctx, param, value: set_no_color(value) if value else None,
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Minimum level of structured log output.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Emit logs as JSON lines.",
)
def cli(log_level: str, log_json: bool) -> None:
    """cogwork - Asset pipelines for static sites.

    Compile stylesheets, scripts and pages through named pipelines,
    serve them live, or write them out as a static site.

    **Getting Started:**

    - `cogwork new mysite` - Create a new project
    - `cogwork server` - Serve the project with live compilation
    - `cogwork build` - Write every pipeline to the output directory
    """
    from cogwork_core.observability import configure_logging

    configure_logging(log_level=log_level.upper(), json_format=log_json)


if __name__ == "__main__":
    cli()
