"""Interactive prompt surface.

The surface is the only place that talks to the user. Free-text prompts
re-solicit input until the validator accepts it; selection prompts only
ever return one of the offered options. Reading raw input is left to
subclasses so tests can script answers while keeping the same loop.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

import structlog
from rich.console import Console
from rich.prompt import IntPrompt, Prompt

from stackforge.errors import PromptAbortedError
from stackforge.prompts.validators import Validator

logger = structlog.get_logger(__name__)


class PromptSurface(ABC):
    """Base prompt surface with the validation loop."""

    def ask_text(self, label: str, default: str = "", validate: Validator | None = None) -> str:
        """Ask for free text until the validator accepts the answer.

        Raises:
            PromptAbortedError: If input can no longer be read
        """
        while True:
            answer = self._read_text(label, default)
            if validate is None:
                return answer
            try:
                validate(answer)
            except ValueError as e:
                logger.debug("prompt_input_rejected", label=label, reason=str(e))
                self.report_invalid(str(e))
                continue
            return answer

    def ask_select(self, label: str, options: Sequence[str]) -> str:
        """Ask the user to pick one of the options.

        Raises:
            PromptAbortedError: If there is nothing to choose from or input fails
        """
        if not options:
            raise PromptAbortedError(f"No options available for {label!r}")
        choice = self._read_choice(label, options)
        if choice not in options:
            raise PromptAbortedError(f"{choice!r} is not one of the options for {label!r}")
        return choice

    def show_info(self, text: str) -> None:
        """Show help text before a prompt."""

    def report_invalid(self, message: str) -> None:
        """Tell the user why an answer was rejected."""

    @abstractmethod
    def _read_text(self, label: str, default: str) -> str: ...

    @abstractmethod
    def _read_choice(self, label: str, options: Sequence[str]) -> str: ...


class RichPromptSurface(PromptSurface):
    """Terminal prompt surface built on rich."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def show_info(self, text: str) -> None:
        self.console.print(f":information_source:  [dim]{text}[/dim]")

    def report_invalid(self, message: str) -> None:
        self.console.print(f"[red]:exclamation: {message}[/red]")

    def _read_text(self, label: str, default: str) -> str:
        try:
            if default:
                return Prompt.ask(label, default=default, console=self.console)
            return Prompt.ask(label, console=self.console)
        except (EOFError, KeyboardInterrupt) as e:
            raise PromptAbortedError(f"Prompt {label!r} aborted") from e

    def _read_choice(self, label: str, options: Sequence[str]) -> str:
        self.console.print(f"[bold]{label}[/bold]")
        for index, option in enumerate(options, start=1):
            self.console.print(f"  [cyan]{index}[/cyan]) {option}")
        try:
            selected = IntPrompt.ask(
                "Choose",
                choices=[str(i) for i in range(1, len(options) + 1)],
                default=1,
                console=self.console,
            )
        except (EOFError, KeyboardInterrupt) as e:
            raise PromptAbortedError(f"Prompt {label!r} aborted") from e
        return options[selected - 1]
