"""Pydantic configuration models for cogwork-core.

This module provides:
- Mode: Enum for development/production behaviour
- EnvironmentConfig: Global, mutable settings edited by ``cogwork.py``
- PipelineOptions: Immutable options a pipeline is created with
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Environment variable selecting the default mode
MODE_ENV_VAR = "COGWORK_ENV"

# Default configuration script name, looked up in the environment root
CONFIG_FILE_NAME = "cogwork.py"


class Mode(str, Enum):
    """Runtime mode.

    - DEVELOPMENT: Server error pages include error details
    - PRODUCTION: Server error pages are generic
    """

    DEVELOPMENT = "development"
    PRODUCTION = "production"


def default_mode() -> Mode:
    """Read the default mode from COGWORK_ENV, falling back to development."""
    value = os.environ.get(MODE_ENV_VAR, Mode.DEVELOPMENT.value).lower()
    try:
        return Mode(value)
    except ValueError:
        return Mode.DEVELOPMENT


class EnvironmentConfig(BaseModel):
    """Global configuration of an Environment.

    Scalar settings may be reassigned any number of times while the
    configuration script runs; the last assignment wins. Every assignment
    is validated.

    Attributes:
        output_path: Directory the static compiler writes to, relative to
            the environment root unless absolute.
        compress: Compress javascripts and stylesheets with the default
            compressors.
        js_compressor: Named javascript compressor. Setting it enables
            javascript compression.
        css_compressor: Named stylesheet compressor. Setting it enables
            stylesheet compression.
        layout: Default layout for pages. ``None`` disables layouts.
        mode: Development or production.

    Example:
        >>> config = EnvironmentConfig()
        >>> config.output_path = "site"
        >>> config.output_path
        PosixPath('site')
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    output_path: Path = Field(
        default=Path("public"),
        description="Directory the static compiler writes to",
    )
    compress: bool = Field(
        default=False,
        description="Compress javascripts and stylesheets",
    )
    js_compressor: str | None = Field(
        default=None,
        description="Named javascript compressor",
    )
    css_compressor: str | None = Field(
        default=None,
        description="Named stylesheet compressor",
    )
    layout: str | None = Field(
        default="main",
        description="Default layout applied to pages",
    )
    mode: Mode = Field(
        default_factory=default_mode,
        description="development or production",
    )

    @property
    def production(self) -> bool:
        """True when running in production mode."""
        return self.mode is Mode.PRODUCTION


class PipelineOptions(BaseModel):
    """Options a pipeline is created with.

    Attributes:
        root: Directory relative paths of the pipeline resolve against.
            Relative to the environment root unless absolute.
        url: URL prefix the pipeline is served and compiled under.
            ``None`` means the pipeline is neither served nor compiled.
        compile: Whether the static compiler writes this pipeline.
        compress: Per-pipeline override of ``EnvironmentConfig.compress``.
        js_compressor: Per-pipeline javascript compressor override.
        css_compressor: Per-pipeline stylesheet compressor override.
        paths: Directories appended to the pipeline's path set.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    root: Path | None = Field(default=None, description="Pipeline root directory")
    url: str | None = Field(default=None, description="URL prefix")
    compile: bool = Field(default=True, description="Include in static builds")
    compress: bool | None = Field(default=None, description="Compression override")
    js_compressor: str | None = Field(default=None, description="Javascript compressor")
    css_compressor: str | None = Field(default=None, description="Stylesheet compressor")
    paths: tuple[Path, ...] = Field(default=(), description="Search paths to append")

    @field_validator("url")
    @classmethod
    def normalize_url(cls, v: str | None) -> str | None:
        """Ensure the URL prefix starts with a slash and has no trailing one."""
        if v is None:
            return None
        return "/" + v.strip("/")
