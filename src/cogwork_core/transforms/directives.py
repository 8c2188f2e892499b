"""Require directives for javascripts and stylesheets.

A script or stylesheet may declare, in its leading comment header, other
assets it depends on::

    //= require jquery
    //= require_tree ./components
    /*
     *= require_self
     *= require_directory ./vendor
     */

The DirectivePreprocessor strips these lines and records the bundle layout
in the context. The BundlePostprocessor, run after the file's engines,
concatenates every required asset (each included once per bundle) with
the file's own processed body. Each part ends with a newline.
"""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

import structlog

from cogwork_core.errors import AssetNotFoundError
from cogwork_core.resolver import iter_logical_names
from cogwork_core.transforms.base import Transform

if TYPE_CHECKING:
    from cogwork_core.context import ProcessingContext

logger = structlog.get_logger(__name__)

HEADER_PATTERN = re.compile(
    r"""\A(?:
        \s*
        (?:
            (?:/\*(?:.|\n)*?\*/)   # block comment
          | (?:(?://.*(?:\n|\Z))+) # line comments
          | (?:(?:\#.*(?:\n|\Z))+) # hash comments
        )
    )+""",
    re.VERBOSE,
)

DIRECTIVE_PATTERN = re.compile(r"^\W*=\s*(\w+)(?:[ \t]+(.*?))?\s*(?:\*/)?\s*$")

DIRECTIVES = frozenset({"require", "require_self", "require_directory", "require_tree"})


def parse_directives(source: str) -> tuple[list[tuple[str, str]], str]:
    """Extract directives from the leading comment header.

    Args:
        source: Decoded file content.

    Returns:
        Tuple of (directives as ``(name, argument)`` pairs, source with
        the directive lines removed).

    Example:
        >>> parse_directives("//= require dep\\nvar a;")
        ([('require', 'dep')], 'var a;')
    """
    match = HEADER_PATTERN.match(source)
    if match is None:
        return [], source

    directives: list[tuple[str, str]] = []
    kept: list[str] = []
    for line in match.group(0).splitlines(keepends=True):
        found = DIRECTIVE_PATTERN.match(line.rstrip("\r\n"))
        if found:
            directives.append((found.group(1), (found.group(2) or "").strip("'\" ")))
        else:
            kept.append(line)
    return directives, "".join(kept) + source[match.end():]


def _normalize(argument: str, context: ProcessingContext) -> PurePosixPath:
    """Turn a directive argument into a path relative to the search paths.

    ``./x`` and ``../x`` are relative to the requiring file's logical
    directory; anything else is relative to the search paths.
    """
    name = PurePosixPath(argument)
    if argument != "." and not argument.startswith(("./", "../")):
        return name

    parts: list[str] = []
    for part in (PurePosixPath(context.logical_name).parent / name).parts:
        if part == "..":
            if not parts:
                raise AssetNotFoundError(argument, pipeline=context.pipeline.name)
            parts.pop()
        elif part != ".":
            parts.append(part)
    return PurePosixPath(*parts)


class DirectivePreprocessor(Transform):
    """Strips require directives and records the bundle layout."""

    name = "directives"

    def apply(self, data: bytes, context: ProcessingContext) -> bytes:
        directives, body = parse_directives(data.decode("utf-8"))
        for directive, argument in directives:
            if directive not in DIRECTIVES:
                msg = f"unknown directive '{directive}'"
                raise ValueError(msg)
            if directive == "require_self":
                context.requires.append(None)
            elif directive == "require":
                context.requires.append(self._require(argument, context))
            else:
                recursive = directive == "require_tree"
                context.requires.extend(self._require_directory(argument, context, recursive=recursive))
        if directives:
            logger.debug("directives_parsed", path=str(context.path), count=len(directives))
        return body.encode("utf-8")

    def _require(self, argument: str, context: ProcessingContext) -> tuple[Path, str]:
        name = _normalize(argument, context)
        if not name.suffix:
            name = name.with_name(name.name + context.output_extension)
        logical = str(name)
        return context.pipeline.find(logical), logical

    def _require_directory(
        self,
        argument: str,
        context: ProcessingContext,
        *,
        recursive: bool,
    ) -> list[tuple[Path, str]]:
        directory = _normalize(argument, context)
        for root in context.pipeline.paths:
            base = root / directory
            context.depend_on(base)
            if recursive and base.is_dir():
                for sub in sorted(p for p in base.rglob("*") if p.is_dir()):
                    context.depend_on(sub)
        engines = context.pipeline.transforms.engine_extensions
        found: list[tuple[Path, str]] = []
        for logical in iter_logical_names(context.pipeline.path_set, engines):
            candidate = PurePosixPath(logical)
            if candidate.suffix != context.output_extension:
                continue
            if recursive:
                inside = directory in candidate.parents
            else:
                inside = candidate.parent == directory
            if inside:
                found.append((context.pipeline.find(logical), logical))
        return sorted(found, key=lambda item: item[1])


class BundlePostprocessor(Transform):
    """Concatenates required assets around the processed body."""

    name = "bundle"

    def apply(self, data: bytes, context: ProcessingContext) -> bytes:
        requires = list(context.requires)
        if None not in requires:
            requires.append(None)

        parts: list[bytes] = []
        for item in requires:
            if item is None:
                parts.append(data)
                continue
            physical, logical = item
            if physical in context.bundled:
                continue
            context.bundled.add(physical)
            child = context.child(context.pipeline, physical, logical)
            parts.append(context.pipeline.run_chain(child))

        return b"".join(_terminated(part) for part in parts)


def _terminated(part: bytes) -> bytes:
    if part and not part.endswith(b"\n"):
        return part + b"\n"
    return part
