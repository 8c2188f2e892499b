"""Shared pytest fixtures for cogwork tests.

Provides structlog capture, temporary project trees and CliRunner
helpers used across unit and integration tests.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
import structlog
from click.testing import CliRunner

from cogwork_core.config import MODE_ENV_VAR
from cogwork_core.environment import Environment

# Source tree of the sample project
SAMPLE_PROJECT: dict[str, str] = {
    "assets/javascripts/main.js": "//= require dep\n",
    "assets/javascripts/dep.js": "var app = {};",
    "assets/stylesheets/main.css.scss": "@import 'dep';\nbody { color: $color; }",
    "assets/stylesheets/_dep.scss": "$color: red;",
    "pages/index.html.md": "# Hello World\n",
    "pages/about.html.md": "---\nlayout: site\ntitle: About\n---\n# About us\n",
    "views/layouts/site.html.j2": "<title>{{ title }}</title>\n<main>{{ content }}</main>\n",
}


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


@pytest.fixture(autouse=True)
def development_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep COGWORK_ENV from the outer shell out of the tests."""
    monkeypatch.delenv(MODE_ENV_VAR, raising=False)


@pytest.fixture
def logging_calls(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, object]]:
    """Record configure_logging calls made by the CLI group.

    Keeps CLI invocations from replacing the test structlog configuration.
    """
    calls: list[dict[str, object]] = []
    monkeypatch.setattr(
        "cogwork_core.observability.configure_logging",
        lambda **kwargs: calls.append(kwargs),
    )
    return calls


@pytest.fixture
def write_tree(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Factory fixture writing ``{relative path: content}`` under tmp_path.

    Returns:
        Function that writes the files and returns tmp_path.
    """

    def _write(files: dict[str, str]) -> Path:
        for rel, content in files.items():
            target = tmp_path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return tmp_path

    return _write


@pytest.fixture
def project(write_tree: Callable[[dict[str, str]], Path]) -> Path:
    """Create the sample project and return its root.

    Contains a bundled script, an SCSS stylesheet with a partial, a page
    without layout, a page with a layout, and the layout itself.
    """
    return write_tree(SAMPLE_PROJECT)


@pytest.fixture
def environment(project: Path) -> Environment:
    """Environment for the sample project."""
    return Environment(project)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def isolated_runner(cli_runner: CliRunner) -> Generator[CliRunner, None, None]:
    """Create a Click test runner with an isolated filesystem.

    Yields:
        CliRunner instance with isolated filesystem.
    """
    with cli_runner.isolated_filesystem():
        yield cli_runner
