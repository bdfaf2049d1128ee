"""Template generation pipeline."""

from __future__ import annotations

__all__ = [
    "GenerationPipeline",
    "GenerationResult",
    "ProjectGenerator",
    "RenderOutcome",
    "RenderStatus",
    "Templator",
    "create_environment",
]

from stackforge.generate.generator import ProjectGenerator
from stackforge.generate.templator import (
    GenerationPipeline,
    GenerationResult,
    RenderOutcome,
    RenderStatus,
    Templator,
    create_environment,
)
