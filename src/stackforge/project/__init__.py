"""Project configuration, summarization and the init flow."""

from __future__ import annotations

__all__ = [
    "ProjectConfig",
    "ProjectInitializer",
    "ResolvedModule",
    "build_project_config",
    "repository_url",
    "summarize_conditions",
    "summarize_parameters",
]

from stackforge.project.config import ProjectConfig, ResolvedModule
from stackforge.project.init import ProjectInitializer
from stackforge.project.summarizer import (
    build_project_config,
    repository_url,
    summarize_conditions,
    summarize_parameters,
)
