"""SCSS and Sass compilation with libsass.

The file's own directory and every path of the pipeline are passed as
include paths, so ``@import 'dep'`` finds ``_dep.scss`` anywhere on the
search path. Imported files are recorded as dependencies so edits to a
partial invalidate every stylesheet importing it.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING

import sass

from cogwork_core.transforms.base import Transform

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cogwork_core.context import ProcessingContext

SASS_EXTENSIONS = (".scss", ".sass")

IMPORT_PATTERN = re.compile(r"""@import\s+([^;\n]+)""")
IMPORT_NAME_PATTERN = re.compile(r"""['"]([^'"]+)['"]""")


def import_candidates(name: str) -> list[str]:
    """File names libsass may load for ``@import name``."""
    path = Path(name)
    if path.suffix in (*SASS_EXTENSIONS, ".css"):
        return [str(path.with_name(f"_{path.name}")), name]
    stems = (path.with_name(f"_{path.name}"), path)
    return [f"{stem}{ext}" for stem in stems for ext in (*SASS_EXTENSIONS, ".css")]


def find_imports(source: str, include_paths: Iterable[Path], seen: set[Path] | None = None) -> set[Path]:
    """Return every file reachable through ``@import`` from ``source``.

    Args:
        source: Stylesheet source.
        include_paths: Directories searched, in order.
        seen: Files already visited.

    Returns:
        Set of imported files, transitively.
    """
    seen = set() if seen is None else seen
    include_paths = list(include_paths)
    for statement in IMPORT_PATTERN.findall(source):
        for name in IMPORT_NAME_PATTERN.findall(statement):
            if name.startswith(("http://", "https://", "//")) or name.endswith(".css"):
                continue
            found = _locate(name, include_paths)
            if found is None or found in seen:
                continue
            seen.add(found)
            text = found.read_text(encoding="utf-8")
            find_imports(text, [found.parent, *include_paths], seen)
    return seen


def _locate(name: str, include_paths: list[Path]) -> Path | None:
    for directory in include_paths:
        for candidate in import_candidates(name):
            path = directory / candidate
            if path.is_file():
                return path.resolve()
    return None


class SassTransform(Transform):
    """Compiles SCSS (or indented Sass) to CSS.

    Attributes:
        output_style: libsass output style (nested, expanded, compact,
            compressed).
    """

    name = "sass"

    def __init__(self, output_style: str = "nested") -> None:
        self.output_style = output_style

    def apply(self, data: bytes, context: ProcessingContext) -> bytes:
        source = data.decode("utf-8")
        include_paths = [context.directory, *context.pipeline.path_set]
        indented = context.path.name.endswith(".sass") or ".sass." in context.path.name
        if not indented:
            for dependency in find_imports(source, include_paths):
                context.depend_on(dependency)

        try:
            css = sass.compile(
                string=source,
                include_paths=[str(p) for p in include_paths],
                output_style=self.output_style,
                indented=indented,
            )
        except sass.CompileError as exc:
            raise ValueError(str(exc).strip()) from exc

        return css.encode("utf-8")
