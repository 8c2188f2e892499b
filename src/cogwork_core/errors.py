"""Custom exception hierarchy for cogwork-core.

This module defines the exception classes raised while configuring an
environment and resolving assets:
- CogworkError: Base exception for all cogwork errors
- AssetNotFoundError: No physical file matches a logical name
- AssetCollisionError: Several files in one directory match a logical name
- TransformError: A transform rejected its input
- NameCollisionError: A pipeline name conflicts with a reserved identifier
- LayoutNotFoundError: A declared layout does not exist
- ConfigurationError: The configuration script or an option is invalid
- BuildError: One or more assets failed during a static build

User-facing messages are safe to display; technical details passed as
``internal_details`` are logged via structlog and never shown.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = structlog.get_logger(__name__)


class CogworkError(Exception):
    """Base exception for cogwork.

    Args:
        user_message: Safe message to display to the user.
        internal_details: Optional technical details, logged but never
            exposed to the user.

    Example:
        >>> raise CogworkError(
        ...     "Configuration invalid",
        ...     internal_details="NameError: name 'foo' is not defined",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        """Initialize CogworkError with user message and optional internal details.

        Args:
            user_message: Safe message to display to the user.
            internal_details: Technical details for internal logging only.
        """
        super().__init__(user_message)
        self.user_message = user_message

        if internal_details:
            logger.error(
                "cogwork_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class AssetNotFoundError(CogworkError):
    """Raised when no physical file matches a logical asset name.

    Recoverable: the server answers 404, the caller may try another name.

    Attributes:
        logical_name: The requested logical asset name.
        pipeline: Name of the pipeline that was searched (if known).

    Example:
        >>> raise AssetNotFoundError("main.css", pipeline="assets")
        # User sees: "Asset 'main.css' not found in pipeline 'assets'"
    """

    def __init__(self, logical_name: str, *, pipeline: str | None = None) -> None:
        """Initialize AssetNotFoundError.

        Args:
            logical_name: The requested logical asset name.
            pipeline: Name of the pipeline that was searched.
        """
        message = f"Asset '{logical_name}' not found"
        if pipeline:
            message = f"{message} in pipeline '{pipeline}'"
        super().__init__(message)
        self.logical_name = logical_name
        self.pipeline = pipeline


class AssetCollisionError(CogworkError):
    """Raised when several files in the same directory match a logical name.

    The match is ambiguous and is never resolved by an arbitrary tie-break.

    Attributes:
        logical_name: The requested logical asset name.
        directory: Directory holding the competing files.
        candidates: The competing physical files, sorted.
    """

    def __init__(
        self,
        logical_name: str,
        directory: Path,
        candidates: Sequence[Path],
    ) -> None:
        """Initialize AssetCollisionError.

        Args:
            logical_name: The requested logical asset name.
            directory: Directory holding the competing files.
            candidates: The competing physical files.
        """
        names = ", ".join(sorted(p.name for p in candidates))
        super().__init__(
            f"Asset '{logical_name}' is ambiguous: {names}",
            internal_details=f"directory={directory}",
        )
        self.logical_name = logical_name
        self.directory = directory
        self.candidates = tuple(sorted(candidates))


class TransformError(CogworkError):
    """Raised when a transform rejects its input.

    The underlying exception is chained as ``__cause__`` by the caller.

    Attributes:
        transform: Identifier of the failing transform.
        path: Physical file being processed.
        reason: Short description of the failure.
    """

    def __init__(self, transform: str, path: Path, reason: str) -> None:
        """Initialize TransformError.

        Args:
            transform: Identifier of the failing transform.
            path: Physical file being processed.
            reason: Short description of the failure.
        """
        super().__init__(f"{transform} failed on {Path(path).name}: {reason}")
        self.transform = transform
        self.path = Path(path)
        self.reason = reason


class NameCollisionError(CogworkError):
    """Raised when a pipeline name conflicts with an existing accessor.

    Attributes:
        name: The conflicting name.
    """

    def __init__(self, name: str, *, reason: str = "is reserved") -> None:
        """Initialize NameCollisionError.

        Args:
            name: The conflicting name.
            reason: Why the name is unavailable.
        """
        super().__init__(f"Cannot register pipeline '{name}': name {reason}")
        self.name = name


class LayoutNotFoundError(CogworkError):
    """Raised when a page declares a layout that cannot be resolved.

    Attributes:
        layout: The declared layout name.
        page: Physical file of the page that declared it.
    """

    def __init__(self, layout: str, page: Path) -> None:
        """Initialize LayoutNotFoundError.

        Args:
            layout: The declared layout name.
            page: Physical file of the page.
        """
        super().__init__(f"Layout '{layout}' not found for {Path(page).name}")
        self.layout = layout
        self.page = Path(page)


class ConfigurationError(CogworkError):
    """Raised when a configuration script or option is invalid.

    Attributes:
        file_path: Path to the configuration file (if known).
    """

    def __init__(
        self,
        user_message: str,
        *,
        file_path: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        """Initialize ConfigurationError with context.

        Args:
            user_message: Safe message to display to the user.
            file_path: Path to the configuration file (optional).
            internal_details: Technical details for internal logging only.
        """
        full_message = f"{user_message} (in {file_path})" if file_path else user_message
        super().__init__(full_message, internal_details=internal_details)
        self.file_path = file_path


class BuildError(CogworkError):
    """Raised by the static compiler after every asset has been attempted.

    Attributes:
        failures: ``(pipeline, logical_name, error)`` for each failed asset.
    """

    def __init__(self, failures: Sequence[tuple[str, str, CogworkError]]) -> None:
        """Initialize BuildError.

        Args:
            failures: One entry per failed asset.
        """
        count = len(failures)
        noun = "asset" if count == 1 else "assets"
        super().__init__(f"Build failed: {count} {noun} could not be compiled")
        self.failures = list(failures)
