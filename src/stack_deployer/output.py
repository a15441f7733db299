"""User-facing progress and result reporting.

An output handle is created by the caller for one command invocation and
passed down explicitly; handlers and steps never keep a reference to it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm

logger = logging.getLogger(__name__)


class UserOutput(ABC):
    """Abstract channel for messages meant for the person running a command."""

    @abstractmethod
    def progress(self, index: int, total: int, message: str) -> None:
        """
        Report that step `index` of `total` is starting.

        Args:
            index: 1-based position of the step
            total: Number of steps in the command
            message: Short description of the step
        """
        pass

    @abstractmethod
    def info(self, message: str) -> None:
        pass

    @abstractmethod
    def success(self, message: str) -> None:
        pass

    @abstractmethod
    def warn(self, message: str) -> None:
        pass

    @abstractmethod
    def error(self, message: str) -> None:
        pass

    @abstractmethod
    def detail(self, text: str) -> None:
        """Show a longer block of text such as troubleshooting help."""
        pass

    @abstractmethod
    def confirm(self, question: str, default: bool = False) -> bool:
        pass


class ConsoleOutput(UserOutput):
    """Terminal output rendered with rich."""

    def __init__(
        self,
        console: Optional[Console] = None,
        *,
        quiet: bool = False,
        interactive: bool = True,
    ) -> None:
        self.console = console or Console(stderr=True)
        self.quiet = quiet
        self.interactive = interactive

    def progress(self, index: int, total: int, message: str) -> None:
        if not self.quiet:
            self.console.print(f"[cyan]\\[{index}/{total}][/cyan] {escape(message)}")

    def info(self, message: str) -> None:
        if not self.quiet:
            self.console.print(escape(message))

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def warn(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {escape(message)}[/yellow]")

    def error(self, message: str) -> None:
        self.console.print(f"[bold red]✗ {escape(message)}[/bold red]")

    def detail(self, text: str) -> None:
        self.console.print(escape(text), style="dim")

    def confirm(self, question: str, default: bool = False) -> bool:
        if not self.interactive:
            return default
        return Confirm.ask(question, default=default, console=self.console)


@dataclass
class RecordingOutput(UserOutput):
    """Collects every message; used by tests and non-interactive callers."""

    messages: List[Tuple[str, str]] = field(default_factory=list)
    answers: List[bool] = field(default_factory=list)

    def progress(self, index: int, total: int, message: str) -> None:
        self.messages.append(("progress", f"[{index}/{total}] {message}"))

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def warn(self, message: str) -> None:
        self.messages.append(("warn", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def detail(self, text: str) -> None:
        self.messages.append(("detail", text))

    def confirm(self, question: str, default: bool = False) -> bool:
        self.messages.append(("confirm", question))
        if self.answers:
            return self.answers.pop(0)
        return default

    def of_level(self, level: str) -> List[str]:
        return [text for kind, text in self.messages if kind == level]


class NullOutput(UserOutput):
    """Discards all messages."""

    def progress(self, index: int, total: int, message: str) -> None:
        pass

    def info(self, message: str) -> None:
        pass

    def success(self, message: str) -> None:
        pass

    def warn(self, message: str) -> None:
        pass

    def error(self, message: str) -> None:
        pass

    def detail(self, text: str) -> None:
        pass

    def confirm(self, question: str, default: bool = False) -> bool:
        logger.debug("Auto-answering '%s' with %s", question, default)
        return default
