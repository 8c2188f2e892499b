"""Named asset pipelines.

A Pipeline bundles a PathSet, a TransformRegistry and a BuildCache under a
name such as ``assets``, ``pages`` or ``views``, and turns logical asset
names into compiled bytes.
"""

from __future__ import annotations

import mimetypes
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any

import structlog

from cogwork_core import resolver
from cogwork_core.cache import BuildCache, CacheEntry
from cogwork_core.compressors import CATEGORY_FOR_EXTENSION, DEFAULT_COMPRESSORS, Compressor
from cogwork_core.config import PipelineOptions
from cogwork_core.errors import CogworkError, ConfigurationError, TransformError
from cogwork_core.observability import asset_operation
from cogwork_core.paths import PathSet
from cogwork_core.transforms import TransformChain, TransformRegistry, default_engines

if TYPE_CHECKING:
    from cogwork_core.context import ProcessingContext
    from cogwork_core.environment import Environment
    from cogwork_core.transforms import Transform

logger = structlog.get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def content_type_for(logical_name: str) -> str:
    """Guess the content type of a logical name from its output extension."""
    guessed, _ = mimetypes.guess_type(PurePosixPath(logical_name).name)
    return guessed or DEFAULT_CONTENT_TYPE


@dataclass(frozen=True)
class Asset:
    """A compiled asset.

    Attributes:
        logical_name: Name the asset was requested as.
        path: Physical source file.
        content: Compiled bytes.
        content_type: MIME type derived from the output extension.
        metadata: Front matter gathered while building.
    """

    logical_name: str
    path: Path
    content: bytes
    content_type: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __bytes__(self) -> bytes:
        return self.content

    def __str__(self) -> str:
        return self.content.decode("utf-8")


class Pipeline:
    """Search paths plus transforms plus cache, under a name.

    Attributes:
        name: Unique name within the environment.
        environment: Owning environment.
        options: Options the pipeline was created with.
        root: Directory relative paths resolve against.
        path_set: Search paths.
        transforms: Engines and pre/postprocessors.
        cache: Compiled results.

    Example:
        >>> assets = environment.get_pipeline("assets")
        >>> assets.append_path("bower_components")
        >>> assets.resolve("main.css")
        b'body {\\n  color: red; }\\n'
    """

    def __init__(
        self,
        name: str,
        environment: Environment,
        options: PipelineOptions | None = None,
        transforms: TransformRegistry | None = None,
    ) -> None:
        self.name = name
        self.environment = environment
        self.options = options or PipelineOptions()
        root = self.options.root
        if root is None:
            self.root = environment.root
        else:
            self.root = (environment.root / root.expanduser()).resolve()
        self.path_set = PathSet(self.root)
        for path in self.options.paths:
            self.path_set.append(path)
        self.transforms = transforms if transforms is not None else default_engines()
        self.cache = BuildCache()

    def __repr__(self) -> str:
        return f"<Pipeline {self.name} root={self.root}>"

    # Configuration

    @property
    def url(self) -> str | None:
        """URL prefix the pipeline is served under, or None."""
        return self.options.url

    @property
    def compiled(self) -> bool:
        """Whether the static compiler writes this pipeline."""
        return self.options.compile and self.options.url is not None

    @property
    def paths(self) -> tuple[Path, ...]:
        """Search paths in precedence order."""
        return self.path_set.paths

    def append_path(self, path: Path | str) -> None:
        """Append a search path, relative to the pipeline root."""
        self.path_set.append(path)
        self.cache.clear()

    def prepend_path(self, path: Path | str) -> None:
        """Prepend a search path, relative to the pipeline root."""
        self.path_set.prepend(path)
        self.cache.clear()

    def clear_paths(self) -> None:
        """Remove every search path, including the defaults."""
        self.path_set.clear()
        self.cache.clear()

    def register_engine(self, extension: str, transform: Transform | Callable[..., bytes]) -> None:
        """Register the engine for a source extension."""
        self.transforms.register_engine(extension, transform)
        self.cache.clear()

    def register_preprocessor(self, extension: str, transform: Transform | Callable[..., bytes]) -> None:
        """Register a preprocessor for an output extension."""
        self.transforms.register_preprocessor(extension, transform)
        self.cache.clear()

    def register_postprocessor(self, extension: str, transform: Transform | Callable[..., bytes]) -> None:
        """Register a postprocessor for an output extension."""
        self.transforms.register_postprocessor(extension, transform)
        self.cache.clear()

    # Resolution

    def find(self, logical_name: str) -> Path:
        """Return the physical file for a logical name.

        Raises:
            AssetNotFoundError: If no search path contains a match.
            AssetCollisionError: If the match is ambiguous.
        """
        return resolver.resolve(
            self.path_set,
            logical_name,
            pipeline=self.name,
            engines=self.transforms.engine_extensions,
        )

    def chain_for(self, physical: Path, logical_name: str) -> TransformChain:
        """Return the transform chain building ``physical`` as ``logical_name``."""
        return self.transforms.chain_for(physical, logical_name)

    def run_chain(self, context: ProcessingContext) -> bytes:
        """Read the context's file and run its transform chain, uncached."""
        chain = self.chain_for(context.path, context.logical_name)
        return chain.apply(context.path.read_bytes(), context)

    def render(
        self,
        physical: Path,
        logical_name: str,
        locals: Mapping[str, Any] | None = None,
    ) -> bytes:
        """Run the chain for ``physical`` with extra locals, bypassing the cache."""
        context = self.environment.context_for(self, physical, logical_name, locals)
        return self.run_chain(context)

    # Compression

    def compressor_for(self, category: str) -> tuple[str, Compressor] | None:
        """Return the ``(name, compressor)`` configured for a category.

        Pipeline options override the environment's; a named compressor
        enables compression on its own.
        """
        config = self.environment.config
        attr = "js_compressor" if category == "javascript" else "css_compressor"
        default = DEFAULT_COMPRESSORS.get(category)

        name = getattr(self.options, attr)
        if name is None:
            if self.options.compress is False:
                return None
            name = getattr(config, attr)
            if name is None and (self.options.compress or config.compress):
                name = default
        if name is None:
            return None

        try:
            return name, self.environment.compressors.get(category, name)
        except KeyError as exc:
            raise ConfigurationError(exc.args[0]) from None

    def compress(self, data: bytes, category: str) -> bytes:
        """Apply the configured compressor for ``category``, if any."""
        selected = self.compressor_for(category)
        if selected is None:
            return data
        _, compressor = selected
        return compressor(data)

    # Building

    def build(self, physical: Path, logical_name: str, *, compress: bool = True) -> CacheEntry:
        """Build ``physical`` as ``logical_name`` through the cache.

        Args:
            physical: Source file.
            logical_name: Name it is built as.
            compress: Apply the configured compressor after the chain.

        Returns:
            The fresh cache entry.
        """
        chain = self.chain_for(physical, logical_name)
        category = CATEGORY_FOR_EXTENSION.get(resolver.output_extension(logical_name))
        selected = self.compressor_for(category) if (compress and category) else None
        signature = (logical_name, chain.signature, selected[0] if selected else None)

        def builder() -> CacheEntry:
            context = self.environment.context_for(self, physical, logical_name)
            content = chain.apply(physical.read_bytes(), context)
            if selected is not None:
                name, compressor = selected
                try:
                    content = compressor(content)
                except Exception as exc:
                    raise TransformError(f"compressor:{name}", physical, str(exc)) from exc
            fingerprints = dict(context.dependencies)
            logger.debug(
                "asset_built",
                pipeline=self.name,
                logical_name=logical_name,
                size=len(content),
            )
            return CacheEntry(
                path=physical,
                signature=signature,
                content=content,
                fingerprints=fingerprints,
                metadata=dict(context.locals),
            )

        return self.cache.get_or_build(physical, signature, builder)

    def find_asset(self, logical_name: str) -> Asset:
        """Resolve, build and describe a logical name.

        Raises:
            AssetNotFoundError: If no file matches.
            AssetCollisionError: If the match is ambiguous.
            TransformError: If a transform rejects the file.
            LayoutNotFoundError: If a declared layout is missing.
        """
        with asset_operation("resolve", pipeline=self.name, logical_name=logical_name):
            physical = self.find(logical_name)
            entry = self.build(physical, logical_name)
        return Asset(
            logical_name=logical_name,
            path=physical,
            content=entry.content,
            content_type=content_type_for(logical_name),
            metadata=entry.metadata,
        )

    def resolve(self, logical_name: str) -> bytes:
        """Return the compiled bytes of a logical name."""
        return self.find_asset(logical_name).content

    def __getitem__(self, logical_name: str) -> bytes:
        return self.resolve(logical_name)

    def __contains__(self, logical_name: object) -> bool:
        if not isinstance(logical_name, str):
            return False
        try:
            self.find(logical_name)
        except CogworkError:
            return False
        return True

    def logical_names(self) -> list[str]:
        """Every discoverable logical name, in precedence order."""
        return list(resolver.iter_logical_names(self.path_set, self.transforms.engine_extensions))

    def url_for(self, logical_name: str) -> str:
        """URL ``logical_name`` is served at under this pipeline."""
        prefix = (self.url or "").rstrip("/")
        return f"{prefix}/{logical_name}"
