"""Ordered, deduplicated search paths for asset lookup."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


class PathSet:
    """Ordered set of absolute directory roots.

    Paths live in two groups. Prepended paths always take precedence over
    appended paths; within each group the first-inserted path wins. Adding
    a path that is already present, in either group, changes nothing.

    Directories do not need to exist; missing ones simply never match.

    Attributes:
        root: Directory relative paths are expanded against.

    Example:
        >>> paths = PathSet(Path("/site"))
        >>> paths.append("assets/js")
        >>> paths.prepend("/vendor/js")
        >>> [str(p) for p in paths]
        ['/vendor/js', '/site/assets/js']
    """

    def __init__(self, root: Path | str = ".") -> None:
        self.root = Path(root).resolve()
        self._prepended: list[Path] = []
        self._appended: list[Path] = []

    def _expand(self, path: Path | str) -> Path:
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = self.root / p
        return p.resolve()

    def append(self, path: Path | str) -> None:
        """Add a path after every existing path (no-op if present)."""
        p = self._expand(path)
        if p in self:
            return
        self._appended.append(p)
        logger.debug("path_appended", path=str(p))

    def prepend(self, path: Path | str) -> None:
        """Add a path ahead of every appended path (no-op if present)."""
        p = self._expand(path)
        if p in self:
            return
        self._prepended.append(p)
        logger.debug("path_prepended", path=str(p))

    def clear(self) -> None:
        """Remove every path, including defaults."""
        self._prepended.clear()
        self._appended.clear()

    @property
    def paths(self) -> tuple[Path, ...]:
        """All paths in precedence order."""
        return (*self._prepended, *self._appended)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        p = self._expand(path)
        return p in self._prepended or p in self._appended

    def __iter__(self) -> Iterator[Path]:
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self._prepended) + len(self._appended)

    def __repr__(self) -> str:
        return f"PathSet({[str(p) for p in self.paths]!r})"
