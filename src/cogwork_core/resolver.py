"""Logical asset name to physical file resolution.

A logical name such as ``main.css`` or ``layouts/main.html`` matches any
file in ``<path>/<subdir>`` named exactly ``main.css`` or ``main.css``
followed by further extensions (``main.css.scss``, ``main.css.scss.j2``).
Those trailing extensions encode the engine chain the file is built with.

Rules:
- Paths are searched in PathSet precedence order
- The first path containing any match wins
- Several matches inside one directory are a collision, never a tie-break
- Unregistered trailing extensions (``main.css.map``) only match when no
  exact or engine-built file is present
"""

from __future__ import annotations

from collections.abc import Container, Iterator
from pathlib import Path, PurePosixPath

import structlog

from cogwork_core.errors import AssetCollisionError, AssetNotFoundError
from cogwork_core.paths import PathSet

logger = structlog.get_logger(__name__)

PARTIAL_PREFIX = "_"


def split_logical_name(logical_name: str) -> tuple[PurePosixPath, str]:
    """Split a logical name into its sub-directory and file name.

    Args:
        logical_name: Logical asset name (``layouts/main.html``).

    Returns:
        Tuple of (sub-directory, file name).

    Raises:
        AssetNotFoundError: If the name is empty, absolute or escapes
            the search paths with ``..``.
    """
    name = PurePosixPath(logical_name.replace("\\", "/"))
    if not name.parts or name.is_absolute() or ".." in name.parts or name.name in ("", "."):
        raise AssetNotFoundError(logical_name)
    return name.parent, name.name


def output_extension(logical_name: str) -> str:
    """Return the final output extension of a logical name (``.css``)."""
    return PurePosixPath(logical_name).suffix


def find_in_directory(directory: Path, filename: str, engines: Container[str] = ()) -> list[Path]:
    """List files in ``directory`` that match ``filename``.

    Files named exactly ``filename`` or carrying only registered engine
    extensions after it take precedence. Files with other trailing
    extensions (``main.css.map``, ``app.js.coffee``) match only when there
    is no such file.

    Args:
        directory: Directory to scan. Missing directories yield nothing.
        filename: Base name plus output extension (``main.css``).
        engines: Registered engine extensions (``.scss``).

    Returns:
        Sorted matching files.
    """
    if not directory.is_dir():
        return []
    prefix = f"{filename}."
    matches = sorted(
        entry
        for entry in directory.iterdir()
        if (entry.name == filename or entry.name.startswith(prefix)) and entry.is_file()
    )
    known = [m for m in matches if all(ext in engines for ext in engine_extensions(m, filename))]
    return known or matches


def resolve(
    path_set: PathSet,
    logical_name: str,
    *,
    pipeline: str | None = None,
    engines: Container[str] = (),
) -> Path:
    """Resolve a logical name to exactly one physical file.

    Args:
        path_set: Search paths in precedence order.
        logical_name: Logical asset name.
        pipeline: Pipeline name used in error messages.
        engines: Registered engine extensions, see find_in_directory.

    Returns:
        The physical file.

    Raises:
        AssetNotFoundError: If no path contains a match.
        AssetCollisionError: If the winning directory holds several matches.
    """
    try:
        subdir, filename = split_logical_name(logical_name)
    except AssetNotFoundError:
        raise AssetNotFoundError(logical_name, pipeline=pipeline) from None

    for root in path_set:
        directory = root / subdir
        matches = find_in_directory(directory, filename, engines)
        if len(matches) > 1:
            raise AssetCollisionError(logical_name, directory, matches)
        if matches:
            logger.debug("asset_found", logical_name=logical_name, path=str(matches[0]))
            return matches[0]

    raise AssetNotFoundError(logical_name, pipeline=pipeline)


def engine_extensions(physical: Path, logical_name: str) -> list[str]:
    """Return the extensions after the logical name, in file order.

    Example:
        >>> engine_extensions(Path("main.css.scss.j2"), "main.css")
        ['.scss', '.j2']
    """
    filename = PurePosixPath(logical_name).name
    rest = physical.name[len(filename):]
    return [f".{ext}" for ext in rest.split(".") if ext]


def logical_name_for(relative: PurePosixPath, engines: Container[str]) -> str | None:
    """Compute the logical name a source file builds to.

    Engine extensions are stripped from the right until a non-engine
    extension remains; that one is the output extension.

    Args:
        relative: File path relative to its search path.
        engines: Registered engine extensions (``.scss``).

    Returns:
        The logical name, or None for partials, hidden files and files
        without an output extension.
    """
    if any(part.startswith((".", PARTIAL_PREFIX)) for part in relative.parts):
        return None
    base, *exts = relative.name.split(".")
    exts = [f".{e}" for e in exts]
    while exts and exts[-1] in engines:
        exts.pop()
    if not base or not exts:
        return None
    return str(relative.parent / (base + "".join(exts)))


def iter_logical_names(path_set: PathSet, engines: Container[str]) -> Iterator[str]:
    """Yield every discoverable logical name once, in precedence order.

    Args:
        path_set: Search paths to walk.
        engines: Registered engine extensions.

    Yields:
        Logical names, first occurrence only.
    """
    seen: set[str] = set()
    for root in path_set:
        if not root.is_dir():
            continue
        for file in sorted(p for p in root.rglob("*") if p.is_file()):
            name = logical_name_for(PurePosixPath(file.relative_to(root).as_posix()), engines)
            if name is None or name in seen:
                continue
            seen.add(name)
            yield name
