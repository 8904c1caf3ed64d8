"""CLI output rendering with Rich views."""

from __future__ import annotations

from collections.abc import Iterable

from rich.console import Console
from rich.json import JSON
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from brickrun.bricks import Brick, HtmlOutput
from brickrun.errors import (
    InputValidationError,
    PipelineError,
    UnexpectedError,
    serialize_error,
)


class CliRenderer:
    """Render run outputs, errors and listings to a console."""

    def __init__(self, *, console: Console) -> None:
        """Store console used for rendering.

        Args:
            console: Rich console used for output rendering.
        """
        self._console = console

    def render_output(self, output: object) -> None:
        """Render a pipeline output.

        Args:
            output: Value returned by the run.
        """
        if isinstance(output, HtmlOutput):
            self._console.print(
                Panel(
                    Text(output.html),
                    title=escape(output.title or "Rendered HTML"),
                    border_style="green",
                    expand=True,
                )
            )
            return
        self._console.print(
            Panel(
                JSON.from_data(output, default=repr),
                title="Output",
                border_style="green",
                expand=True,
            )
        )

    def render_cancelled(self) -> None:
        """Render the notice for a cancelled run."""
        self._console.print(
            Panel("Run cancelled", title="Cancelled", border_style="yellow")
        )

    def render_error(self, exc: PipelineError) -> None:
        """Render a failed run.

        Args:
            exc: Typed pipeline error.
        """
        if isinstance(exc, InputValidationError):
            self._render_violations(exc)
        heading = "Unexpected error" if isinstance(exc, UnexpectedError) else "Error"
        self._console.print(
            Panel(
                Text(exc.message),
                title=escape(f"{heading} [{exc.code}]"),
                border_style="bold red",
                expand=True,
            )
        )
        payload = serialize_error(exc)
        if payload.get("data") or payload.get("cause"):
            self._console.print(
                Panel(
                    JSON.from_data(payload),
                    title="Data",
                    border_style="cyan",
                    expand=True,
                )
            )

    def render_bricks(self, bricks: Iterable[Brick]) -> None:
        """Render registered bricks as a table.

        Args:
            bricks: Bricks to list.
        """
        table = Table(title="Bricks", show_header=True, header_style="bold cyan")
        table.add_column("Id", style="bold", no_wrap=True)
        table.add_column("Kind", style="magenta")
        table.add_column("Root-aware")
        table.add_column("Description", style="green")
        for brick in bricks:
            table.add_row(
                brick.id,
                str(brick.kind),
                "yes" if brick.is_root_aware() else "no",
                escape(brick.description),
            )
        self._console.print(table)

    def render_check(self, rows: Iterable[tuple[str, str, bool]]) -> None:
        """Render pipeline check results.

        Args:
            rows: (step label, brick id, registered) tuples.
        """
        table = Table(title="Pipeline Check", show_header=True, header_style="bold cyan")
        table.add_column("Step", style="bold")
        table.add_column("Brick", no_wrap=True)
        table.add_column("Status")
        for label, brick_id, registered in rows:
            table.add_row(
                escape(label),
                escape(brick_id),
                "[green]ok[/green]" if registered else "[red]missing[/red]",
            )
        self._console.print(table)

    def _render_violations(self, exc: InputValidationError) -> None:
        table = Table(
            title=f"Invalid inputs: {exc.brick_id}",
            show_header=True,
            header_style="bold red",
        )
        table.add_column("Path", style="bold", no_wrap=True)
        table.add_column("Reason")
        for violation in exc.violations:
            table.add_row(escape(violation.path), escape(violation.reason))
        self._console.print(table)
