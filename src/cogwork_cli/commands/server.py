"""cogwork server command - Serve pipelines with live compilation."""

from __future__ import annotations

from pathlib import Path

import click

from cogwork_cli.errors import handle_cogwork_error, handle_os_error
from cogwork_cli.output import info
from cogwork_core.config import CONFIG_FILE_NAME, Mode
from cogwork_core.environment import Environment
from cogwork_core.errors import CogworkError
from cogwork_core.server import serve


@click.command("server")
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
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind.")
@click.option("-p", "--port", type=int, default=3000, show_default=True, help="Port to bind.")
@click.option(
    "--production",
    is_flag=True,
    default=False,
    help="Hide error details from responses.",
)
def server(root: str, config_file: str | None, host: str, port: int, production: bool) -> None:
    """Serve the project, compiling assets on request.

    Assets are rebuilt when their sources (or anything they depend on)
    change.

    Examples:

        cogwork server

        cogwork server --port 8080 --production
    """
    try:
        environment = Environment(
            root,
            config_file=Path(config_file).resolve() if config_file else CONFIG_FILE_NAME,
        )
        if production:
            environment.apply_options({"mode": Mode.PRODUCTION})
    except CogworkError as e:
        handle_cogwork_error(e)

    info(f"Serving {environment.root} at http://{host}:{port}/ (Ctrl+C to stop)")
    try:
        serve(environment, host, port)
    except KeyboardInterrupt:
        info("Server stopped")
    except OSError as e:
        handle_os_error(e, f"listen on {host}:{port}")
