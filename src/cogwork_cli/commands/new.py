"""cogwork new command - Scaffold a new project."""

from __future__ import annotations

from pathlib import Path

import click
from jinja2.sandbox import SandboxedEnvironment

from cogwork_cli.errors import CLIError, handle_os_error
from cogwork_cli.output import info, success, warning

CONFIG_TEMPLATE = """\
# Configuration for {{ name }}.
#
# Runs once when the environment is created. In scope: config, environment,
# append_pipeline, prepend_pipeline, helpers, helper, context_helper and
# every pipeline by name (assets, pages, views).

config.output_path = "public"

# Compress javascripts and stylesheets in static builds.
# config.compress = True

# assets.append_path("node_modules")


@helper
def site_name():
    return "{{ name }}"
"""

JAVASCRIPT = """\
//= require_tree .

var {{ identifier }} = {};
"""

STYLESHEET = """\
@import 'variables';

body {
  color: $text-color;
  font-family: $font-family;
}
"""

VARIABLES = """\
$text-color: #222;
$font-family: sans-serif;
"""

INDEX_PAGE = """\
---
title: {{ name }}
---
# Welcome to {{ name }}

Edit `pages/index.html.md` to change this page.
"""

# Rendered at request time, so written without substitution.
LAYOUT = """\
<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>{{ title | default(site_name()) }}</title>
    <link rel="stylesheet" href="{{ asset_path('application.css') }}">
  </head>
  <body>
{{ content }}
    <script src="{{ asset_path('application.js') }}"></script>
  </body>
</html>
"""

GITIGNORE = """\
/public/
"""

# (relative path, content, rendered with the project name)
SCAFFOLD: tuple[tuple[str, str, bool], ...] = (
    ("cogwork.py", CONFIG_TEMPLATE, True),
    ("assets/javascripts/application.js", JAVASCRIPT, True),
    ("assets/stylesheets/application.css.scss", STYLESHEET, False),
    ("assets/stylesheets/_variables.scss", VARIABLES, False),
    ("pages/index.html.md", INDEX_PAGE, True),
    ("views/layouts/main.html.j2", LAYOUT, False),
    (".gitignore", GITIGNORE, False),
)


def _identifier(name: str) -> str:
    cleaned = "".join(c if c.isalnum() else "_" for c in name).strip("_") or "app"
    return f"_{cleaned}" if cleaned[0].isdigit() else cleaned


@click.command("new")
@click.argument("path", type=click.Path(file_okay=False))
@click.option(
    "-n",
    "--name",
    "name",
    type=str,
    default=None,
    help="Project name [default: directory name]",
)
@click.option(
    "--force",
    is_flag=True,
    default=False,
    help="Overwrite existing files",
)
def new(path: str, name: str | None, force: bool) -> None:
    """Scaffold a new cogwork project.

    Creates a configuration script, the default asset, page and view
    directories, a sample page, its layout, a stylesheet and a script.

    Examples:

        cogwork new mysite

        cogwork new . --name blog --force
    """
    root = Path(path)
    if name is None:
        name = root.resolve().name

    if not name.replace("-", "").replace("_", "").isalnum():
        raise CLIError(
            f"Invalid project name: {name}\n"
            "Project name must be alphanumeric (hyphens and underscores allowed)."
        )

    existing = [rel for rel, _, _ in SCAFFOLD if (root / rel).exists()]
    if existing and not force:
        raise CLIError(f"{root / existing[0]} already exists.\nUse --force to overwrite.")

    env = SandboxedEnvironment(keep_trailing_newline=True)
    variables = {"name": name, "identifier": _identifier(name)}

    try:
        for rel, content, rendered in SCAFFOLD:
            target = root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            if rendered:
                content = env.from_string(content).render(**variables)
            target.write_text(content, encoding="utf-8")
            info(f"  create {rel}")
    except OSError as e:
        handle_os_error(e, "write")

    if existing:
        warning(f"Overwrote {len(existing)} existing file(s)")
    success(f"Created project: {name}")
