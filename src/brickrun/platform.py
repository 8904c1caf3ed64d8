"""Platform hooks: default document scope and user-facing notifications."""

from __future__ import annotations

from typing import Protocol

from rich.console import Console
from rich.panel import Panel

from brickrun.dom import Document


class Platform(Protocol):
    """Host environment a pipeline runs in."""

    @property
    def document(self) -> Document:
        """Top-level document; also the default root scope."""

    def alert(self, message: str) -> None:
        """Show a message to the user.

        Args:
            message: Text to display.
        """


class NullPlatform:
    """Platform with an empty document and silent alerts."""

    def __init__(self, document: Document | None = None) -> None:
        """Create platform.

        Args:
            document: Document to expose; defaults to an empty one.
        """
        self._document = document or Document()

    @property
    def document(self) -> Document:
        """Top-level document."""
        return self._document

    def alert(self, message: str) -> None:
        """Discard the message."""
        del message


class ConsolePlatform(NullPlatform):
    """Platform that shows alerts on a Rich console."""

    def __init__(
        self, document: Document | None = None, *, console: Console | None = None
    ) -> None:
        """Create console platform.

        Args:
            document: Document to expose.
            console: Rich console for alerts.
        """
        super().__init__(document)
        self._console = console or Console()

    def alert(self, message: str) -> None:
        """Print the message in a panel."""
        self._console.print(Panel(message, title="Alert", border_style="yellow"))
