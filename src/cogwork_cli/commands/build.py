"""cogwork build command - Write every compiled pipeline to disk."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click

from cogwork_cli.errors import handle_cogwork_error, handle_os_error
from cogwork_cli.output import info, success, warning
from cogwork_core.compiler import StaticCompiler
from cogwork_core.config import CONFIG_FILE_NAME
from cogwork_core.environment import Environment
from cogwork_core.errors import CogworkError


@click.command("build")
@click.option(
    "-r",
    "--root",
    "root",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Project root [default: .]",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help=f"Configuration script [default: <root>/{CONFIG_FILE_NAME}]",
)
@click.option(
    "-o",
    "--output",
    "output_path",
    type=click.Path(file_okay=False),
    default=None,
    help="Output directory [default: config.output_path]",
)
@click.option(
    "--compress/--no-compress",
    default=None,
    help="Override compression of javascripts and stylesheets.",
)
@click.option(
    "--continue-on-error",
    is_flag=True,
    default=False,
    help="Report failed assets as warnings and exit successfully.",
)
def build(
    root: str,
    config_file: str | None,
    output_path: str | None,
    compress: bool | None,
    continue_on_error: bool,
) -> None:
    """Compile every pipeline into a static site.

    Each pipeline with a URL writes every discoverable asset to
    `<output>/<pipeline url>/<logical name>`.

    Examples:

        cogwork build

        cogwork build --output dist --compress

        cogwork build --root site --continue-on-error
    """
    overrides: dict[str, Any] = {}
    if compress is not None:
        overrides["compress"] = compress

    try:
        environment = Environment(
            root,
            config_file=Path(config_file).resolve() if config_file else CONFIG_FILE_NAME,
        )
        environment.apply_options(overrides)
        compiler = StaticCompiler(
            environment,
            Path(output_path) if output_path else None,
            continue_on_error=continue_on_error,
        )
        info(f"Building {environment.root} into {compiler.output_path}")
        result = compiler.compile()
    except CogworkError as e:
        handle_cogwork_error(e)
    except OSError as e:
        handle_os_error(e, "write")

    for pipeline, logical_name, failure in result.failures:
        warning(f"Skipped {pipeline}/{logical_name}: {failure.user_message}")

    noun = "asset" if len(result.written) == 1 else "assets"
    success(f"Built {len(result.written)} {noun} to {result.output_path}")
