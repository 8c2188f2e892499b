"""cogwork-core: Asset pipelines for static sites.

This package provides:
- Environment: configuration, helpers and named pipelines
- Pipeline: logical name resolution, transform chains and caching
- StaticCompiler: writes compiled pipelines to an output directory
- AssetServer: WSGI application serving pipelines live
"""

from __future__ import annotations

__version__ = "0.1.0"

# Caching
from cogwork_core.cache import BuildCache, CacheEntry

# Static build
from cogwork_core.compiler import BuildResult, StaticCompiler

# Compression
from cogwork_core.compressors import CompressorRegistry

# Configuration
from cogwork_core.config import EnvironmentConfig, Mode, PipelineOptions
from cogwork_core.context import ProcessingContext, context_helper

# Environment
from cogwork_core.environment import Environment

# Error types
from cogwork_core.errors import (
    AssetCollisionError,
    AssetNotFoundError,
    BuildError,
    CogworkError,
    ConfigurationError,
    LayoutNotFoundError,
    NameCollisionError,
    TransformError,
)
from cogwork_core.paths import PathSet
from cogwork_core.pipeline import Asset, Pipeline

# Serving
from cogwork_core.server import AssetServer, serve

# Transforms
from cogwork_core.transforms import Transform, TransformChain, TransformRegistry

__all__ = [
    "__version__",
    # Environment
    "Environment",
    "Pipeline",
    "Asset",
    "PathSet",
    "ProcessingContext",
    "context_helper",
    # Configuration
    "EnvironmentConfig",
    "PipelineOptions",
    "Mode",
    # Transforms
    "Transform",
    "TransformChain",
    "TransformRegistry",
    "CompressorRegistry",
    # Caching
    "BuildCache",
    "CacheEntry",
    # Build and serve
    "StaticCompiler",
    "BuildResult",
    "AssetServer",
    "serve",
    # Errors
    "CogworkError",
    "AssetNotFoundError",
    "AssetCollisionError",
    "TransformError",
    "NameCollisionError",
    "LayoutNotFoundError",
    "ConfigurationError",
    "BuildError",
]
