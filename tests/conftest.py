"""Shared pytest fixtures.

Provides a scripted prompt surface that replays canned answers through the
same validation loop as the terminal surface, and a factory that lays out
module directories (descriptor plus template tree) on disk.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest
import yaml

from stackforge.config import RegistryConfig
from stackforge.errors import PromptAbortedError
from stackforge.prompts.surface import PromptSurface


class ScriptedPromptSurface(PromptSurface):
    """Prompt surface answering from a fixed script.

    Attributes:
        answers: Remaining answers, consumed in order by text and choice prompts
        asked: Labels of every prompt read, in order
        infos: Help texts shown
        rejections: Validator messages reported back to the user
    """

    def __init__(self, answers: Sequence[str] = ()) -> None:
        self.answers = list(answers)
        self.asked: list[str] = []
        self.infos: list[str] = []
        self.rejections: list[str] = []

    def show_info(self, text: str) -> None:
        self.infos.append(text)

    def report_invalid(self, message: str) -> None:
        self.rejections.append(message)

    def _next(self, label: str) -> str:
        self.asked.append(label)
        if not self.answers:
            raise PromptAbortedError(f"No scripted answer left for {label!r}")
        return self.answers.pop(0)

    def _read_text(self, label: str, default: str) -> str:
        answer = self._next(label)
        return answer or default

    def _read_choice(self, label: str, options: Sequence[str]) -> str:
        return self._next(label)


@pytest.fixture
def scripted_surface() -> Callable[..., ScriptedPromptSurface]:
    """Factory for scripted prompt surfaces."""

    def _make(*answers: str) -> ScriptedPromptSurface:
        return ScriptedPromptSurface(answers)

    return _make


@pytest.fixture
def make_module(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a module directory with a descriptor and templates.

    Returns:
        Callable(name, descriptor=None, templates=None, descriptor_name=...)
        returning the module directory
    """

    def _make(
        name: str,
        descriptor: dict[str, Any] | None = None,
        templates: dict[str, str | bytes] | None = None,
        descriptor_name: str = "stackforge-module.yml",
    ) -> Path:
        module_dir = tmp_path / "modules-src" / name
        module_dir.mkdir(parents=True, exist_ok=True)
        content = {"name": name, **(descriptor or {})}
        (module_dir / descriptor_name).write_text(yaml.safe_dump(content), encoding="utf-8")
        for relative, body in (templates or {}).items():
            path = module_dir / "templates" / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(body, bytes):
                path.write_bytes(body)
            else:
                path.write_text(body, encoding="utf-8")
        return module_dir

    return _make


@pytest.fixture
def registry_config(tmp_path: Path) -> RegistryConfig:
    """Registry configuration caching modules below tmp_path."""
    return RegistryConfig(modules_cache_dir=tmp_path / "cache")
