"""Per-resolution processing context.

A ProcessingContext is created for every file run through a transform
chain. It carries the owning environment and pipeline, the locals gathered
from front matter, the dependencies recorded for cache invalidation and the
helper capability bag templates see.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any

import structlog

from cogwork_core.cache import Fingerprint, fingerprint
from cogwork_core.errors import AssetNotFoundError
from cogwork_core.resolver import output_extension

if TYPE_CHECKING:
    from collections.abc import Callable

    from cogwork_core.environment import Environment
    from cogwork_core.pipeline import Pipeline

logger = structlog.get_logger(__name__)

# Attribute marking helpers that take the processing context first
CONTEXT_HELPER_ATTR = "__cogwork_context_helper__"


def context_helper(func: Callable[..., Any]) -> Callable[..., Any]:
    """Mark a helper as receiving the ProcessingContext as first argument.

    Example:
        >>> @context_helper
        ... def page_name(context):
        ...     return context.logical_name
    """
    setattr(func, CONTEXT_HELPER_ATTR, True)
    return func


@dataclass
class ProcessingContext:
    """State threaded through one transform chain run.

    Attributes:
        environment: Owning environment (helpers, global config).
        pipeline: Pipeline the file is being built by.
        path: Physical file being processed.
        logical_name: Logical name the file is being built as.
        locals: Template variables; front matter is merged in here.
        dependencies: Files and directories whose changes invalidate the
            result, with their fingerprint when first recorded.
        bundled: Files already included in the current bundle.
        requires: Bundle layout recorded by the directive preprocessor.
    """

    environment: Environment
    pipeline: Pipeline
    path: Path
    logical_name: str
    locals: dict[str, Any] = field(default_factory=dict)
    dependencies: dict[Path, Fingerprint] = field(default_factory=dict)
    bundled: set[Path] = field(default_factory=set)
    requires: list[tuple[Path, str] | None] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.depend_on(self.path)
        self.bundled.add(self.path)

    @property
    def output_extension(self) -> str:
        """Output extension of the logical name (``.css``)."""
        return output_extension(self.logical_name)

    @property
    def directory(self) -> Path:
        """Directory containing the physical file."""
        return self.path.parent

    def depend_on(self, path: Path) -> None:
        """Record a file or directory whose changes must invalidate this result.

        The fingerprint is taken now, before the dependency is read, so an
        edit made during the build still invalidates the entry.
        """
        path = Path(path)
        if path not in self.dependencies:
            self.dependencies[path] = fingerprint(path)

    def child(
        self,
        pipeline: Pipeline,
        path: Path,
        logical_name: str,
        locals: dict[str, Any] | None = None,
    ) -> ProcessingContext:
        """Create a context for a nested build sharing dependencies and bundle state."""
        return ProcessingContext(
            environment=self.environment,
            pipeline=pipeline,
            path=path,
            logical_name=logical_name,
            locals=dict(locals or {}),
            dependencies=self.dependencies,
            bundled=self.bundled,
        )

    @property
    def helpers(self) -> dict[str, Callable[..., Any]]:
        """Capability bag of callables visible to templates.

        Built-in helpers come first; environment helpers registered later
        override them.
        """
        bag: dict[str, Callable[..., Any]] = {
            "render": self.render,
            "asset_path": self.asset_path,
        }
        for name, func in self.environment.helper_namespace.items():
            if getattr(func, CONTEXT_HELPER_ATTR, False):
                bag[name] = _bind(func, self)
            else:
                bag[name] = func
        return bag

    def template_variables(self) -> dict[str, Any]:
        """Variables a template is rendered with: helpers, then locals."""
        return {**self.helpers, "context": self, **self.locals}

    def render(self, name: str, **locals: Any) -> str:
        """Render a partial from the views pipeline.

        ``render("nav")`` from ``index.html`` looks for ``_nav.html`` first,
        then ``nav.html``. Locals of the current context are visible,
        overridden by the given ones.

        Args:
            name: Partial name, with or without output extension.
            **locals: Extra template variables.

        Returns:
            The rendered partial.
        """
        views = self.environment.get_pipeline("views")
        candidate = PurePosixPath(name)
        if not candidate.suffix:
            candidate = candidate.with_name(candidate.name + self.output_extension)

        partial = str(candidate.with_name(f"_{candidate.name}"))
        for root in views.paths:
            self.depend_on((root / candidate).parent)
        for logical in (partial, str(candidate)):
            try:
                physical = views.find(logical)
            except AssetNotFoundError:
                continue
            child = self.child(views, physical, logical, {**self.locals, **locals})
            return views.run_chain(child).decode("utf-8")
        raise AssetNotFoundError(str(candidate), pipeline=views.name)

    def asset_path(self, name: str) -> str:
        """Return the URL an asset is served at (``/assets/main.css``).

        Raises:
            AssetNotFoundError: If no served pipeline contains the asset.
        """
        for pipeline in self.environment.pipelines:
            if pipeline.url is None:
                continue
            try:
                pipeline.find(name)
            except AssetNotFoundError:
                continue
            return pipeline.url_for(name)
        raise AssetNotFoundError(name)


def _bind(func: Callable[..., Any], context: ProcessingContext) -> Callable[..., Any]:
    def bound(*args: Any, **kwargs: Any) -> Any:
        return func(context, *args, **kwargs)

    bound.__name__ = getattr(func, "__name__", "helper")
    bound.__doc__ = getattr(func, "__doc__", None)
    return bound
