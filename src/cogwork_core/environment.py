"""The cogwork Environment.

An Environment owns the global configuration, the helper namespace shown
to templates, and an ordered collection of named pipelines.

Initialization order:
1. default configuration (EnvironmentConfig)
2. default pipelines: ``assets``, ``pages``, ``views``, with their
   standard search paths
3. keyword options given to the constructor
4. the configuration script (``cogwork.py`` in the root), if present

The configuration script can only add to the default search paths unless
it clears them explicitly.
"""

from __future__ import annotations

import inspect
import traceback
import types
from collections.abc import Callable, Iterable, Iterator, Mapping
from importlib.metadata import entry_points
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from cogwork_core.compressors import CompressorRegistry
from cogwork_core.config import CONFIG_FILE_NAME, EnvironmentConfig, PipelineOptions
from cogwork_core.context import ProcessingContext, context_helper
from cogwork_core.errors import CogworkError, ConfigurationError, NameCollisionError
from cogwork_core.pipeline import Pipeline
from cogwork_core.transforms import (
    ANY_EXTENSION,
    BundlePostprocessor,
    DirectivePreprocessor,
    FrontMatterTransform,
    LayoutTransform,
    default_engines,
)

logger = structlog.get_logger(__name__)

# Directories whose sub-directories become asset search paths
DEFAULT_ASSET_ROOTS = ("assets", "lib/assets", "vendor/assets")
DEFAULT_PAGES_PATH = "pages"
DEFAULT_VIEWS_PATH = "views"

# Entry point group for packages that ship asset directories
ASSET_PATHS_ENTRY_POINT = "cogwork.asset_paths"

# Instance attributes that pipeline names may not shadow
INSTANCE_ATTRIBUTES = frozenset({"root", "config", "compressors", "helper_namespace"})


def _format_validation_error(err: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(x) for x in e['loc']) or 'value'}: {e['msg']}" for e in err.errors()
    )


def plugin_asset_paths() -> list[Path]:
    """Collect asset directories advertised through entry points.

    Each entry point in the ``cogwork.asset_paths`` group loads either an
    iterable of paths or a callable returning one.
    """
    paths: list[Path] = []
    for ep in entry_points(group=ASSET_PATHS_ENTRY_POINT):
        provided = ep.load()
        if callable(provided):
            provided = provided()
        paths.extend(Path(p) for p in provided)
        logger.debug("plugin_asset_paths_loaded", entry_point=ep.name)
    return paths


class Environment:
    """Configuration, helpers and pipelines of one cogwork project.

    Pipelines are looked up with ``get_pipeline(name)``, ``environment[name]``
    or attribute access (``environment.assets``).

    Attributes:
        root: Project root; relative paths resolve against it.
        config: Global configuration.
        compressors: Named compressors per category.
        helper_namespace: Helpers visible to every template.

    Example:
        >>> environment = Environment("site", compress=True)
        >>> environment.assets.resolve("main.js")
        b'var app={};'
    """

    def __init__(
        self,
        root: Path | str = ".",
        *,
        config_file: Path | str | None = CONFIG_FILE_NAME,
        **options: Any,
    ) -> None:
        """Initialize the environment.

        Args:
            root: Project root directory.
            config_file: Configuration script, relative to ``root``. None
                disables loading one.
            **options: EnvironmentConfig fields applied before the script.

        Raises:
            ConfigurationError: If an option or the script is invalid.
            NameCollisionError: If the script registers a reserved name.
        """
        self.root = Path(root).resolve()
        self.config = EnvironmentConfig()
        self.compressors = CompressorRegistry.with_defaults()
        self.helper_namespace: dict[str, Callable[..., Any]] = {}
        self._pipelines: dict[str, Pipeline] = {}

        self._append_default_pipelines()
        self.apply_options(options)

        if config_file is not None:
            path = self.root / config_file
            if path.is_file():
                self.configure(path)
            else:
                logger.debug("config_file_missing", path=str(path))

    # Defaults

    def _append_default_pipelines(self) -> None:
        assets = self.append_pipeline("assets", url="/assets")
        for directory in DEFAULT_ASSET_ROOTS:
            base = self.root / directory
            if base.is_dir():
                for child in sorted(p for p in base.iterdir() if p.is_dir()):
                    assets.append_path(child)
        for path in plugin_asset_paths():
            assets.append_path(path)
        for ext in (".js", ".css"):
            assets.register_preprocessor(ext, DirectivePreprocessor())
            assets.register_postprocessor(ext, BundlePostprocessor())

        pages = self.append_pipeline("pages", url="/", paths=(DEFAULT_PAGES_PATH,))
        pages.register_preprocessor(ANY_EXTENSION, FrontMatterTransform())
        pages.register_postprocessor(ANY_EXTENSION, LayoutTransform())

        views = self.append_pipeline("views", compile=False, paths=(DEFAULT_VIEWS_PATH,))
        views.register_preprocessor(ANY_EXTENSION, FrontMatterTransform())

    # Configuration

    def apply_options(self, options: Mapping[str, Any]) -> None:
        """Apply EnvironmentConfig fields; later calls override earlier ones.

        Raises:
            ConfigurationError: If an option is unknown or invalid.
        """
        if not options:
            return
        try:
            self.config = EnvironmentConfig.model_validate({**self.config.model_dump(), **options})
        except PydanticValidationError as err:
            raise ConfigurationError(
                f"Invalid options: {_format_validation_error(err)}",
            ) from err

    def configure(self, source: Path | str) -> None:
        """Evaluate a configuration script.

        The script runs once with ``config``, ``environment``,
        ``append_pipeline``, ``prepend_pipeline``, ``helpers``, ``helper``,
        ``context_helper`` and every existing pipeline in scope.

        Args:
            source: A Path to a script file, or the script's code.

        Raises:
            ConfigurationError: If the script fails or sets invalid values.
            NameCollisionError: If the script registers a reserved name.
        """
        if isinstance(source, Path):
            filename = str(source)
            code = source.read_text(encoding="utf-8")
        else:
            filename = "<config>"
            code = source

        namespace: dict[str, Any] = {
            "__name__": "cogwork_config",
            "__file__": filename,
            "config": self.config,
            "environment": self,
            "append_pipeline": self.append_pipeline,
            "prepend_pipeline": self.prepend_pipeline,
            "helpers": self.helpers,
            "helper": self.helper,
            "context_helper": context_helper,
            "Path": Path,
            **self._pipelines,
        }

        try:
            exec(compile(code, filename, "exec"), namespace)  # noqa: S102
        except CogworkError:
            raise
        except PydanticValidationError as err:
            raise ConfigurationError(
                f"Invalid configuration: {_format_validation_error(err)}",
                file_path=filename,
            ) from err
        except Exception as exc:
            raise ConfigurationError(
                f"Configuration script failed: {exc.__class__.__name__}: {exc}",
                file_path=filename,
                internal_details=traceback.format_exc(),
            ) from exc

        logger.info("configuration_loaded", file=filename, pipelines=self.pipeline_names)

    # Pipelines

    def _check_name(self, name: str) -> None:
        if not name.isidentifier():
            raise NameCollisionError(name, reason="is not a valid identifier")
        if name in RESERVED_NAMES:
            raise NameCollisionError(name)
        if name in self._pipelines:
            raise NameCollisionError(name, reason="is already registered")

    def _create_pipeline(
        self,
        name: str,
        options: PipelineOptions | Mapping[str, Any] | None,
        kwargs: Mapping[str, Any],
    ) -> Pipeline:
        name = str(name)
        self._check_name(name)
        if isinstance(options, PipelineOptions):
            resolved = options.model_copy(update=dict(kwargs)) if kwargs else options
        else:
            try:
                resolved = PipelineOptions.model_validate({**(options or {}), **kwargs})
            except PydanticValidationError as err:
                raise ConfigurationError(
                    f"Invalid options for pipeline '{name}': {_format_validation_error(err)}",
                ) from err
        return Pipeline(name, self, resolved, default_engines())

    def append_pipeline(
        self,
        name: str,
        options: PipelineOptions | Mapping[str, Any] | None = None,
        configure: Callable[[Pipeline], Any] | None = None,
        **kwargs: Any,
    ) -> Pipeline:
        """Create a pipeline after every existing one.

        Args:
            name: Pipeline name; must not collide with an accessor.
            options: PipelineOptions or a mapping of its fields.
            configure: Called with the new pipeline for further setup.
            **kwargs: PipelineOptions fields, overriding ``options``.

        Returns:
            The new pipeline.

        Raises:
            NameCollisionError: If ``name`` is reserved or already used.
            ConfigurationError: If the options are invalid.
        """
        pipeline = self._create_pipeline(name, options, kwargs)
        self._pipelines[pipeline.name] = pipeline
        if configure is not None:
            configure(pipeline)
        logger.debug("pipeline_appended", pipeline=pipeline.name, root=str(pipeline.root))
        return pipeline

    def prepend_pipeline(
        self,
        name: str,
        options: PipelineOptions | Mapping[str, Any] | None = None,
        configure: Callable[[Pipeline], Any] | None = None,
        **kwargs: Any,
    ) -> Pipeline:
        """Create a pipeline before every existing one.

        Same arguments and errors as ``append_pipeline``.
        """
        pipeline = self._create_pipeline(name, options, kwargs)
        self._pipelines = {pipeline.name: pipeline, **self._pipelines}
        if configure is not None:
            configure(pipeline)
        logger.debug("pipeline_prepended", pipeline=pipeline.name, root=str(pipeline.root))
        return pipeline

    def get_pipeline(self, name: str) -> Pipeline:
        """Return the pipeline registered as ``name``.

        Raises:
            KeyError: If there is none.
        """
        try:
            return self._pipelines[name]
        except KeyError:
            available = ", ".join(self._pipelines) or "none"
            msg = f"Unknown pipeline '{name}'. Available: {available}"
            raise KeyError(msg) from None

    @property
    def pipelines(self) -> tuple[Pipeline, ...]:
        """Pipelines in order."""
        return tuple(self._pipelines.values())

    @property
    def pipeline_names(self) -> list[str]:
        """Pipeline names in order."""
        return list(self._pipelines)

    def __getitem__(self, name: str) -> Pipeline:
        return self.get_pipeline(name)

    def __contains__(self, name: object) -> bool:
        return name in self._pipelines

    def __iter__(self) -> Iterator[Pipeline]:
        return iter(self.pipelines)

    def __getattr__(self, name: str) -> Pipeline:
        pipelines = self.__dict__.get("_pipelines", {})
        if name in pipelines:
            return pipelines[name]
        msg = f"{type(self).__name__!r} object has no attribute {name!r}"
        raise AttributeError(msg)

    # Helpers

    def helpers(self, source: Any = None, /, **named: Callable[..., Any]) -> Any:
        """Register helpers visible in every template.

        Accepts a module (its public functions), a class (public methods of
        an instance), a mapping of names to callables, a single function,
        or keyword arguments. The last registration of a name wins.

        Returns ``source`` so it can be used as a decorator.

        Example:
            >>> @environment.helpers
            ... def hello():
            ...     return "world"
        """
        found: dict[str, Callable[..., Any]] = {}
        if isinstance(source, types.ModuleType):
            for name, value in vars(source).items():
                if name.startswith("_") or not callable(value) or inspect.isclass(value):
                    continue
                if getattr(value, "__module__", source.__name__) != source.__name__:
                    continue
                found[name] = value
        elif inspect.isclass(source):
            instance = source()
            for name, _ in inspect.getmembers(source, callable):
                if not name.startswith("_"):
                    found[name] = getattr(instance, name)
        elif isinstance(source, Mapping):
            found.update(source)
        elif source is not None:
            if not callable(source):
                msg = f"Cannot register helpers from {type(source).__name__}"
                raise TypeError(msg)
            found[source.__name__] = source

        found.update(named)
        self.helper_namespace.update(found)
        logger.debug("helpers_registered", names=sorted(found))
        return source

    def helper(self, func: Callable[..., Any] | None = None, *, name: str | None = None) -> Any:
        """Decorator registering one helper, optionally under another name.

        Example:
            >>> @environment.helper(name="year")
            ... def current_year():
            ...     return 2024
        """

        def register(f: Callable[..., Any]) -> Callable[..., Any]:
            self.helper_namespace[name or f.__name__] = f
            return f

        if func is None:
            return register
        return register(func)

    # Processing

    def context_for(
        self,
        pipeline: Pipeline,
        physical: Path,
        logical_name: str,
        locals: Mapping[str, Any] | None = None,
    ) -> ProcessingContext:
        """Create the processing context for one build."""
        return ProcessingContext(
            environment=self,
            pipeline=pipeline,
            path=physical,
            logical_name=logical_name,
            locals=dict(locals or {}),
        )

    @property
    def output_path(self) -> Path:
        """Absolute static build output directory."""
        return (self.root / self.config.output_path).resolve()

    def iter_pipelines(self, names: Iterable[str] | None = None) -> Iterator[Pipeline]:
        """Yield the named pipelines, or all of them, in order."""
        if names is None:
            yield from self.pipelines
            return
        for name in names:
            yield self.get_pipeline(name)


RESERVED_NAMES = frozenset(
    name for name in dir(Environment) if not name.startswith("_")
) | INSTANCE_ATTRIBUTES
