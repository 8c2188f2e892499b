"""Static compilation of every pipeline to an output directory.

Each compiled pipeline writes every discoverable logical name to
``<output>/<pipeline url>/<logical name>``, preserving relative layout.
Every asset is attempted; failures are collected and reported together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from cogwork_core.errors import BuildError, CogworkError
from cogwork_core.observability import span

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cogwork_core.environment import Environment
    from cogwork_core.pipeline import Pipeline

logger = structlog.get_logger(__name__)


@dataclass
class BuildResult:
    """Outcome of a static build.

    Attributes:
        output_path: Directory written to.
        written: Files written, in build order.
        failures: ``(pipeline, logical_name, error)`` per failed asset.
    """

    output_path: Path
    written: list[Path] = field(default_factory=list)
    failures: list[tuple[str, str, CogworkError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every asset compiled."""
        return not self.failures


class StaticCompiler:
    """Writes compiled pipelines to disk.

    Attributes:
        environment: Environment to compile.
        output_path: Destination directory.
        continue_on_error: Return normally even if some assets failed.

    Example:
        >>> result = StaticCompiler(environment).compile()
        >>> len(result.written)
        12
    """

    def __init__(
        self,
        environment: Environment,
        output_path: Path | None = None,
        *,
        continue_on_error: bool = False,
    ) -> None:
        self.environment = environment
        self.output_path = (output_path or environment.output_path).resolve()
        self.continue_on_error = continue_on_error

    def target_for(self, pipeline: Pipeline, logical_name: str) -> Path:
        """Output file for ``logical_name`` of ``pipeline``."""
        prefix = (pipeline.url or "").strip("/")
        return self.output_path / prefix / logical_name

    def compile(self, pipelines: Iterable[str] | None = None) -> BuildResult:
        """Compile every discoverable asset of the compiled pipelines.

        Args:
            pipelines: Names to restrict the build to. Defaults to every
                pipeline with a URL and ``compile`` enabled.

        Returns:
            The build result.

        Raises:
            BuildError: If any asset failed and ``continue_on_error`` is
                off. Raised after every asset has been attempted.
        """
        result = BuildResult(output_path=self.output_path)
        with span("build", attributes={"build.output": str(self.output_path)}):
            for pipeline in self.environment.iter_pipelines(pipelines):
                if not pipeline.compiled:
                    continue
                self._compile_pipeline(pipeline, result)

        logger.info(
            "build_finished",
            output=str(self.output_path),
            written=len(result.written),
            failed=len(result.failures),
        )
        if result.failures and not self.continue_on_error:
            raise BuildError(result.failures)
        return result

    def _compile_pipeline(self, pipeline: Pipeline, result: BuildResult) -> None:
        for logical_name in pipeline.logical_names():
            try:
                asset = pipeline.find_asset(logical_name)
            except CogworkError as exc:
                logger.warning(
                    "asset_failed",
                    pipeline=pipeline.name,
                    logical_name=logical_name,
                    error=exc.user_message,
                )
                result.failures.append((pipeline.name, logical_name, exc))
                continue

            target = self.target_for(pipeline, logical_name)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(asset.content)
            result.written.append(target)
            logger.debug("asset_written", pipeline=pipeline.name, path=str(target))
