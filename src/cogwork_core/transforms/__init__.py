"""Content transforms keyed by file extension.

This package provides:
- Transform, TransformChain, TransformRegistry: the transform interface
- FrontMatterTransform: YAML front matter extraction
- DirectivePreprocessor, BundlePostprocessor: ``require`` bundling
- JinjaTransform, MarkdownTransform: template and markup engines
- SassTransform: SCSS/Sass compilation
- LayoutTransform: page layout wrapping
"""

from __future__ import annotations

from cogwork_core.transforms.base import (
    ANY_EXTENSION,
    FunctionTransform,
    IdentityTransform,
    Transform,
    TransformChain,
    TransformRegistry,
)
from cogwork_core.transforms.directives import BundlePostprocessor, DirectivePreprocessor
from cogwork_core.transforms.front_matter import FrontMatterTransform, split_front_matter
from cogwork_core.transforms.layout import LayoutTransform
from cogwork_core.transforms.sass import SASS_EXTENSIONS, SassTransform
from cogwork_core.transforms.templates import (
    JINJA_EXTENSIONS,
    MARKDOWN_EXTENSIONS,
    JinjaTransform,
    MarkdownTransform,
)


def default_engines() -> TransformRegistry:
    """Return a registry holding the built-in engines.

    Pre- and postprocessors are pipeline specific and added by the
    environment when it creates its default pipelines.
    """
    registry = TransformRegistry()
    jinja = JinjaTransform()
    for ext in JINJA_EXTENSIONS:
        registry.register_engine(ext, jinja)
    markdown = MarkdownTransform()
    for ext in MARKDOWN_EXTENSIONS:
        registry.register_engine(ext, markdown)
    sass = SassTransform()
    for ext in SASS_EXTENSIONS:
        registry.register_engine(ext, sass)
    return registry


__all__ = [
    "ANY_EXTENSION",
    "BundlePostprocessor",
    "DirectivePreprocessor",
    "FrontMatterTransform",
    "FunctionTransform",
    "IdentityTransform",
    "JinjaTransform",
    "LayoutTransform",
    "MarkdownTransform",
    "SassTransform",
    "Transform",
    "TransformChain",
    "TransformRegistry",
    "default_engines",
    "split_front_matter",
]
