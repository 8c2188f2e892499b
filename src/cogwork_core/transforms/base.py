"""Transform interface, registry and chain.

A transform takes raw bytes plus a ProcessingContext and returns bytes.
Transforms come in three kinds:
- engines, keyed by a source extension (``.scss``), one per extension
  after the output extension, applied rightmost first;
- preprocessors, keyed by output extension, applied before the engines;
- postprocessors, keyed by output extension, applied after the engines.

Unknown engine extensions map to the identity transform.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from cogwork_core.errors import AssetNotFoundError, CogworkError, TransformError
from cogwork_core.resolver import engine_extensions, output_extension

if TYPE_CHECKING:
    from cogwork_core.context import ProcessingContext

logger = structlog.get_logger(__name__)

# Key for pre/postprocessors that apply to every output extension
ANY_EXTENSION = "*"


class Transform(ABC):
    """Converts bytes from one format to another.

    Subclasses set ``name`` and implement ``apply``. A transform may raise
    any exception to reject its input; the chain reports it as a
    TransformError naming the transform.
    """

    name: str = "transform"

    @abstractmethod
    def apply(self, data: bytes, context: ProcessingContext) -> bytes:
        """Transform ``data`` in the given context."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class IdentityTransform(Transform):
    """Pass-through used for extensions without a registered engine."""

    def __init__(self, extension: str = "") -> None:
        self.name = f"identity{extension}"

    def apply(self, data: bytes, context: ProcessingContext) -> bytes:
        return data


class FunctionTransform(Transform):
    """Adapts a plain ``(bytes, context) -> bytes`` callable."""

    def __init__(self, name: str, func: Callable[[bytes, ProcessingContext], bytes]) -> None:
        self.name = name
        self._func = func

    def apply(self, data: bytes, context: ProcessingContext) -> bytes:
        return self._func(data, context)


def normalize_extension(extension: str) -> str:
    """Return ``extension`` with a single leading dot, lowercased."""
    if extension == ANY_EXTENSION:
        return extension
    return "." + extension.lstrip(".").lower()


def _as_transform(name: str, transform: Transform | Callable[[bytes, ProcessingContext], bytes]) -> Transform:
    if isinstance(transform, Transform):
        return transform
    return FunctionTransform(name, transform)


@dataclass(frozen=True)
class TransformChain:
    """Ordered transforms for one physical file.

    Attributes:
        transforms: Transforms in application order.
    """

    transforms: tuple[Transform, ...]

    @property
    def signature(self) -> tuple[str, ...]:
        """Identity of the chain, used as part of cache keys."""
        return tuple(t.name for t in self.transforms)

    def __iter__(self) -> Iterator[Transform]:
        return iter(self.transforms)

    def __len__(self) -> int:
        return len(self.transforms)

    def apply(self, data: bytes, context: ProcessingContext) -> bytes:
        """Run every transform in order.

        Raises:
            TransformError: If a transform rejects its input, including a
                nested name it requires that cannot be found. Other cogwork
                errors (missing layouts, collisions) propagate unchanged.
        """
        for transform in self.transforms:
            try:
                data = transform.apply(data, context)
            except AssetNotFoundError as exc:
                raise TransformError(transform.name, context.path, exc.user_message) from exc
            except CogworkError:
                raise
            except Exception as exc:
                raise TransformError(transform.name, context.path, str(exc)) from exc
        return data


class TransformRegistry:
    """Engines and pre/postprocessors known to a pipeline.

    Example:
        >>> registry = TransformRegistry()
        >>> registry.register_engine(".scss", SassTransform())
        >>> registry.transforms_for(Path("main.css.scss"), "main.css")
        [<SassTransform sass>]
    """

    def __init__(self) -> None:
        self._engines: dict[str, Transform] = {}
        self._preprocessors: dict[str, list[Transform]] = {}
        self._postprocessors: dict[str, list[Transform]] = {}

    @property
    def engine_extensions(self) -> frozenset[str]:
        """Extensions with a registered engine."""
        return frozenset(self._engines)

    def register_engine(
        self,
        extension: str,
        transform: Transform | Callable[[bytes, ProcessingContext], bytes],
    ) -> None:
        """Register the engine for a source extension; replaces any previous one."""
        ext = normalize_extension(extension)
        self._engines[ext] = _as_transform(ext.lstrip("."), transform)

    def register_preprocessor(
        self,
        extension: str,
        transform: Transform | Callable[[bytes, ProcessingContext], bytes],
    ) -> None:
        """Register a transform run before the engines of ``extension`` output."""
        ext = normalize_extension(extension)
        self._preprocessors.setdefault(ext, []).append(_as_transform(f"pre{ext}", transform))

    def register_postprocessor(
        self,
        extension: str,
        transform: Transform | Callable[[bytes, ProcessingContext], bytes],
    ) -> None:
        """Register a transform run after the engines of ``extension`` output."""
        ext = normalize_extension(extension)
        self._postprocessors.setdefault(ext, []).append(_as_transform(f"post{ext}", transform))

    def engine_for(self, extension: str) -> Transform:
        """Return the engine for ``extension``, or the identity transform."""
        ext = normalize_extension(extension)
        return self._engines.get(ext) or IdentityTransform(ext)

    def _processors(self, table: dict[str, list[Transform]], extension: str) -> list[Transform]:
        return [*table.get(ANY_EXTENSION, []), *table.get(normalize_extension(extension), [])]

    def transforms_for(self, physical: Path, logical_name: str) -> list[Transform]:
        """Return the transforms that build ``physical`` as ``logical_name``.

        Preprocessors of the output extension come first, then one engine
        per trailing extension from right to left, then postprocessors.
        """
        out = output_extension(logical_name)
        engines = [self.engine_for(ext) for ext in reversed(engine_extensions(physical, logical_name))]
        return [
            *self._processors(self._preprocessors, out),
            *engines,
            *self._processors(self._postprocessors, out),
        ]

    def chain_for(self, physical: Path, logical_name: str) -> TransformChain:
        """Return the TransformChain for ``physical`` built as ``logical_name``."""
        return TransformChain(tuple(self.transforms_for(physical, logical_name)))
