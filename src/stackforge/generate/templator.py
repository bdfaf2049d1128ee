"""Concurrent template rendering with create-once and overwrite semantics.

Every render is an independent unit of work dispatched onto the event
loop. Callers wait on GenerationPipeline.wait(), the single barrier after
which every file is written (or has failed) and dependent steps such as
repository provisioning may run. A failing render never stops its
siblings; its error is logged and collected in the GenerationResult.

Example:
    >>> pipeline = GenerationPipeline()
    >>> pipeline.template_file_if_does_not_exist(out, "README.md", "# {{ name }}", data)
    >>> pipeline.template_file_and_overwrite(out, "Makefile", makefile_src, data)
    >>> result = await pipeline.wait()
    >>> result.complete
    True
"""

from __future__ import annotations

import asyncio
import uuid
from enum import Enum
from pathlib import Path
from typing import Any

import structlog
from jinja2 import Environment, StrictUndefined, Template, TemplateError
from pydantic import BaseModel, Field

from stackforge.errors import RenderError

logger = structlog.get_logger(__name__)

TemplateSource = str | bytes | Template


class RenderStatus(str, Enum):
    """Outcome of a single render.

    Attributes:
        WRITTEN: File was (re)written
        SKIPPED: File already existed and was left alone
        FAILED: Rendering or writing failed
    """

    WRITTEN = "written"
    SKIPPED = "skipped"
    FAILED = "failed"


class RenderOutcome(BaseModel):
    """Result of one render unit."""

    path: Path
    status: RenderStatus
    error: str | None = None


class GenerationResult(BaseModel):
    """Aggregated result of every render dispatched to a pipeline."""

    outcomes: list[RenderOutcome] = Field(default_factory=list)

    @property
    def errors(self) -> list[RenderError]:
        return [
            RenderError(o.path, o.error or "unknown error")
            for o in self.outcomes
            if o.status == RenderStatus.FAILED
        ]

    @property
    def written(self) -> list[Path]:
        return [o.path for o in self.outcomes if o.status == RenderStatus.WRITTEN]

    @property
    def skipped(self) -> list[Path]:
        return [o.path for o in self.outcomes if o.status == RenderStatus.SKIPPED]

    @property
    def complete(self) -> bool:
        """True when no render failed."""
        return all(o.status != RenderStatus.FAILED for o in self.outcomes)


def clean_identifier(identifier: str) -> str:
    """Drop dashes so a name is usable as a Go/JS identifier."""
    return identifier.replace("-", "")


def create_environment() -> Environment:
    """Jinja2 environment used for module templates.

    Undefined variables are errors so a template referencing a parameter
    the module never resolved fails loudly instead of rendering blanks.
    """
    env = Environment(
        autoescape=False,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    env.filters["clean_identifier"] = clean_identifier
    env.globals["generate_uuid"] = lambda: str(uuid.uuid4())
    return env


class Templator:
    """Renders templates and writes them to disk.

    Attributes:
        env: Jinja2 environment for string templates and file names
    """

    def __init__(self, env: Environment | None = None) -> None:
        self.env = env or create_environment()

    def render(self, template: TemplateSource, data: dict[str, Any]) -> str | bytes:
        """Render template source; bytes are passed through untouched."""
        if isinstance(template, bytes):
            return template
        if isinstance(template, str):
            template = self.env.from_string(template)
        return template.render(**data)

    def render_name(self, name: str, data: dict[str, Any]) -> str:
        if "{{" not in name and "{%" not in name:
            return name
        return self.env.from_string(name).render(**data)

    async def template_file_if_does_not_exist(
        self, directory: Path, name: str, template: TemplateSource, data: dict[str, Any]
    ) -> RenderOutcome:
        """Write the file only if it does not exist yet.

        An existing file is left untouched and reported as SKIPPED with a
        warning; this is not a failure.
        """
        return await asyncio.to_thread(self._write, directory, name, template, data, False)

    async def template_file_and_overwrite(
        self, directory: Path, name: str, template: TemplateSource, data: dict[str, Any]
    ) -> RenderOutcome:
        """Write the file, replacing any existing content."""
        return await asyncio.to_thread(self._write, directory, name, template, data, True)

    def _write(
        self,
        directory: Path,
        name: str,
        template: TemplateSource,
        data: dict[str, Any],
        overwrite: bool,
    ) -> RenderOutcome:
        path = directory / name
        try:
            path = directory / self.render_name(name, data)
            if not overwrite and path.exists():
                logger.warning("file_exists_skipping", path=str(path))
                return RenderOutcome(path=path, status=RenderStatus.SKIPPED)

            content = self.render(template, data)
            path.parent.mkdir(parents=True, exist_ok=True)
            mode = ("w" if overwrite else "x") + ("b" if isinstance(content, bytes) else "")
            if isinstance(content, bytes):
                with open(path, mode) as f:
                    f.write(content)
            else:
                with open(path, mode, encoding="utf-8") as f:
                    f.write(content)
        except FileExistsError:
            logger.warning("file_exists_skipping", path=str(path))
            return RenderOutcome(path=path, status=RenderStatus.SKIPPED)
        except (TemplateError, OSError) as e:
            logger.error(
                "render_failed", path=str(path), error=str(e), error_type=type(e).__name__
            )
            return RenderOutcome(path=path, status=RenderStatus.FAILED, error=str(e))

        logger.debug("file_rendered", path=str(path), overwrite=overwrite)
        return RenderOutcome(path=path, status=RenderStatus.WRITTEN)


class GenerationPipeline:
    """Fan-out of render units joined by a single barrier.

    Dispatch methods must be called from a running event loop; they return
    immediately and the work proceeds concurrently.
    """

    def __init__(self, templator: Templator | None = None) -> None:
        self.templator = templator or Templator()
        self._pending: list[tuple[Path, asyncio.Task[RenderOutcome]]] = []

    def template_file_if_does_not_exist(
        self, directory: Path, name: str, template: TemplateSource, data: dict[str, Any]
    ) -> None:
        task = asyncio.create_task(
            self.templator.template_file_if_does_not_exist(directory, name, template, data)
        )
        self._pending.append((directory / name, task))

    def template_file_and_overwrite(
        self, directory: Path, name: str, template: TemplateSource, data: dict[str, Any]
    ) -> None:
        task = asyncio.create_task(
            self.templator.template_file_and_overwrite(directory, name, template, data)
        )
        self._pending.append((directory / name, task))

    async def wait(self) -> GenerationResult:
        """Wait for every dispatched render and aggregate the outcomes."""
        pending, self._pending = self._pending, []
        results = await asyncio.gather(*(task for _, task in pending), return_exceptions=True)

        outcomes: list[RenderOutcome] = []
        for (path, _), returned in zip(pending, results):
            if isinstance(returned, BaseException):
                logger.error("render_failed", path=str(path), error=str(returned))
                outcomes.append(
                    RenderOutcome(path=path, status=RenderStatus.FAILED, error=str(returned))
                )
            else:
                outcomes.append(returned)

        result = GenerationResult(outcomes=outcomes)
        logger.info(
            "generation_complete",
            written=len(result.written),
            skipped=len(result.skipped),
            failed=len(result.errors),
        )
        return result
