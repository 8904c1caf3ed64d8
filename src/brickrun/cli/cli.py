"""Typer CLI entrypoint for brickrun."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from brickrun.bricks import register_builtin_bricks
from brickrun.cli.rendering import CliRenderer
from brickrun.config import RuntimeConfig, RuntimeConfigError, load_runtime_config
from brickrun.context import ExecutionContext
from brickrun.dom import Document, parse_html
from brickrun.errors import (
    ConfigurationError,
    PipelineError,
    UnexpectedError,
    is_cancel,
)
from brickrun.executor import RunOptions, run_pipeline
from brickrun.pipeline import Pipeline, iter_invocations, load_pipeline
from brickrun.platform import ConsolePlatform
from brickrun.registry import BrickRegistry
from brickrun.run_logger import RunLogger

app = typer.Typer(help="Brick pipeline runner")
_CONSOLE = Console()
_LOGGING_CONFIGURED = False

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_UNEXPECTED = 2


def _configure_logging(config: RuntimeConfig) -> None:
    """Configure Rich-backed logging once for CLI commands."""
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if _LOGGING_CONFIGURED:
        return
    logging.basicConfig(
        level=str(config.log_level),
        format="%(message)s",
        handlers=[RichHandler(show_path=False, rich_tracebacks=True)],
    )
    _LOGGING_CONFIGURED = True


def _default_registry() -> BrickRegistry:
    """Return a registry holding the built-in bricks."""
    return register_builtin_bricks(BrickRegistry())


def _load_config(config_file: Path | None) -> RuntimeConfig:
    """Load runtime config or exit with a readable message.

    Raises:
        Exit: When the config file is invalid.
    """
    try:
        return load_runtime_config(config_file)
    except RuntimeConfigError as exc:
        _CONSOLE.print(
            f"[bold red]Invalid runtime config: {escape(str(exc))}[/bold red]"
        )
        raise typer.Exit(code=EXIT_FAILED) from exc


def _load_definition(path: Path) -> Pipeline:
    """Load a pipeline definition or exit with a readable message.

    Raises:
        Exit: When the definition cannot be loaded.
    """
    try:
        return load_pipeline(path)
    except ConfigurationError as exc:
        CliRenderer(console=_CONSOLE).render_error(exc)
        raise typer.Exit(code=EXIT_FAILED) from exc


def _load_input(raw: str | None, input_file: Path | None) -> object:
    """Decode the initial pipeline input from an option or a file.

    Raises:
        BadParameter: When the payload can not be decoded.
    """
    if raw is not None and input_file is not None:
        raise typer.BadParameter("Use either --input or --input-file, not both")
    try:
        if raw is not None:
            return json.loads(raw)
        if input_file is not None:
            text = input_file.read_text(encoding="utf-8")
            if input_file.suffix.lower() == ".json":
                return json.loads(text)
            return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise typer.BadParameter(f"Invalid input payload: {exc}") from exc
    return None


def _exit_code(exc: PipelineError) -> int:
    if is_cancel(exc):
        return EXIT_OK
    if isinstance(exc, UnexpectedError):
        return EXIT_UNEXPECTED
    return EXIT_FAILED


def _execute(  # noqa: PLR0913
    *,
    pipeline: Pipeline,
    input_value: object,
    document: Document,
    config: RuntimeConfig,
    registry: BrickRegistry,
    write_html: Path | None,
) -> int:
    """Run one pipeline and render the outcome.

    Returns:
        Process exit code.
    """
    renderer = CliRenderer(console=_CONSOLE)
    options = RunOptions(
        registry=registry,
        logger=RunLogger(context={"run_id": uuid.uuid4().hex[:12]}),
        platform=ConsolePlatform(document, console=_CONSOLE),
        config=config,
    )
    context = ExecutionContext.create(input_value)
    try:
        output = asyncio.run(run_pipeline(pipeline, context, options))
    except PipelineError as exc:
        code = _exit_code(exc)
        if code == EXIT_OK:
            renderer.render_cancelled()
        else:
            renderer.render_error(exc)
        return code
    finally:
        if write_html is not None:
            write_html.write_text(document.to_html(), encoding="utf-8")
    renderer.render_output(output)
    return EXIT_OK


@app.command("run")
def run_command(  # noqa: PLR0913
    pipeline_file: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, help="Pipeline YAML/JSON file."),
    ],
    input_json: Annotated[
        str | None,
        typer.Option("--input", help="Initial input as a JSON value."),
    ] = None,
    input_file: Annotated[
        Path | None,
        typer.Option(
            exists=True, dir_okay=False, help="Initial input YAML/JSON file."
        ),
    ] = None,
    html: Annotated[
        Path | None,
        typer.Option(exists=True, dir_okay=False, help="HTML document to run on."),
    ] = None,
    write_html: Annotated[
        Path | None,
        typer.Option(dir_okay=False, help="Write the resulting document here."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            dir_okay=False,
            help="Path to runtime config YAML/JSON file.",
        ),
    ] = None,
) -> None:
    """Run a pipeline and print its output.

    Args:
        pipeline_file: Pipeline definition path.
        input_json: Optional JSON initial input.
        input_file: Optional initial input file.
        html: Optional HTML document used as the root scope.
        write_html: Optional path for the document after the run.
        config_file: Optional runtime config path.

    Raises:
        Exit: Raised with the run status code for shell integration.
    """
    config = _load_config(config_file)
    _configure_logging(config)
    pipeline = _load_definition(pipeline_file)
    input_value = _load_input(input_json, input_file)
    document = (
        parse_html(html.read_text(encoding="utf-8")) if html is not None else Document()
    )
    exit_code = _execute(
        pipeline=pipeline,
        input_value=input_value,
        document=document,
        config=config,
        registry=_default_registry(),
        write_html=write_html,
    )
    raise typer.Exit(code=exit_code)


@app.command("check")
def check_command(
    pipeline_file: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, help="Pipeline YAML/JSON file."),
    ],
) -> None:
    """Verify every brick a pipeline references is registered.

    Args:
        pipeline_file: Pipeline definition path.

    Raises:
        Exit: Non-zero when any brick is missing.
    """
    pipeline = _load_definition(pipeline_file)
    registry = _default_registry()
    rows = [
        (step.display_name, step.id, step.id in registry)
        for step in iter_invocations(pipeline)
    ]
    CliRenderer(console=_CONSOLE).render_check(rows)
    missing = sum(1 for _, _, registered in rows if not registered)
    if missing:
        _CONSOLE.print(f"[bold red]{missing} unknown brick(s)[/bold red]")
        raise typer.Exit(code=EXIT_FAILED)
    _CONSOLE.print(f"[green]{len(rows)} step(s) ok[/green]")


@app.command("bricks")
def bricks_command() -> None:
    """List the registered bricks."""
    CliRenderer(console=_CONSOLE).render_bricks(_default_registry())
