"""Unit tests for brickrun CLI command entrypoints."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from brickrun.cli.cli import app

_RUNNER = CliRunner()


def _write_pipeline(path: Path, definition: object) -> Path:
    """Write a pipeline definition as YAML.

    Args:
        path: Target file path.
        definition: Persisted pipeline.

    Returns:
        The written path.
    """
    path.write_text(yaml.safe_dump(definition, sort_keys=False), encoding="utf-8")
    return path


@pytest.mark.unit
def test_run_prints_output(tmp_path: Path) -> None:
    """`brickrun run` should print the pipeline output."""
    # Arrange - identity pipeline reading the input
    pipeline = _write_pipeline(
        tmp_path / "pipeline.yaml",
        [
            {
                "id": "@brickrun/identity",
                "config": {"greeting": {"__type__": "var", "__value__": "@input.name"}},
            }
        ],
    )

    # Act - run with JSON input
    result = _RUNNER.invoke(app, ["run", str(pipeline), "--input", '{"name": "ada"}'])

    # Assert - exit 0 and output rendered
    assert result.exit_code == 0
    assert '"greeting": "ada"' in result.stdout


@pytest.mark.unit
def test_run_cancel_exits_zero(tmp_path: Path) -> None:
    """Cancellation is a graceful stop, not a failure."""
    pipeline = _write_pipeline(tmp_path / "cancel.yaml", [{"id": "@brickrun/cancel"}])

    result = _RUNNER.invoke(app, ["run", str(pipeline)])

    assert result.exit_code == 0
    assert "cancelled" in result.stdout


@pytest.mark.unit
def test_run_validation_failure_exits_one(tmp_path: Path) -> None:
    """Invalid brick inputs exit 1 and list the violations."""
    pipeline = _write_pipeline(
        tmp_path / "invalid.yaml", [{"id": "@brickrun/error", "config": {}}]
    )

    result = _RUNNER.invoke(app, ["run", str(pipeline)])

    assert result.exit_code == 1
    assert "#/message" in result.stdout
    assert "input_validation_error" in result.stdout


@pytest.mark.unit
def test_run_business_failure_exits_one(tmp_path: Path) -> None:
    """Business errors exit 1 with their message."""
    pipeline = _write_pipeline(
        tmp_path / "error.yaml",
        [{"id": "@brickrun/error", "config": {"message": "Out of stock"}}],
    )

    result = _RUNNER.invoke(app, ["run", str(pipeline)])

    assert result.exit_code == 1
    assert "Out of stock" in result.stdout


@pytest.mark.unit
def test_run_applies_pipeline_to_html_document(tmp_path: Path) -> None:
    """`--html` supplies the document and `--write-html` saves the result."""
    # Arrange - HTML page and a disable pipeline
    page = tmp_path / "page.html"
    page.write_text("<body><button>Buy</button></body>", encoding="utf-8")
    out = tmp_path / "out.html"
    pipeline = _write_pipeline(
        tmp_path / "disable.yaml",
        {"pipeline": [{"id": "@brickrun/html/disable", "root": "button"}]},
    )

    # Act - run
    result = _RUNNER.invoke(
        app,
        ["run", str(pipeline), "--html", str(page), "--write-html", str(out)],
    )

    # Assert - written document has the disabled button
    assert result.exit_code == 0
    assert out.read_text(encoding="utf-8") == (
        "<body><button disabled>Buy</button></body>"
    )


@pytest.mark.unit
def test_run_reads_input_file(tmp_path: Path) -> None:
    """Input can come from a JSON file."""
    pipeline = _write_pipeline(
        tmp_path / "echo.yaml",
        [
            {
                "id": "@brickrun/identity",
                "config": {"n": {"__type__": "var", "__value__": "@input.n"}},
            }
        ],
    )
    payload = tmp_path / "input.json"
    payload.write_text(json.dumps({"n": 41}), encoding="utf-8")

    result = _RUNNER.invoke(app, ["run", str(pipeline), "--input-file", str(payload)])

    assert result.exit_code == 0
    assert '"n": 41' in result.stdout


@pytest.mark.unit
def test_run_rejects_invalid_runtime_config(tmp_path: Path) -> None:
    """A bad runtime config aborts before the run."""
    pipeline = _write_pipeline(tmp_path / "p.yaml", [{"id": "@brickrun/identity"}])
    config = tmp_path / "config.json"
    config.write_text('{"max_depth": "deep"}', encoding="utf-8")

    result = _RUNNER.invoke(app, ["run", str(pipeline), "--config", str(config)])

    assert result.exit_code == 1
    assert "Invalid runtime config" in result.stdout


@pytest.mark.unit
def test_check_reports_unknown_nested_brick(tmp_path: Path) -> None:
    """`brickrun check` walks nested sub-pipelines."""
    pipeline = _write_pipeline(
        tmp_path / "check.yaml",
        [
            {
                "id": "@brickrun/map",
                "config": {
                    "elements": [1],
                    "body": {
                        "__type__": "pipeline",
                        "__value__": [{"id": "acme/missing"}],
                    },
                },
            }
        ],
    )

    result = _RUNNER.invoke(app, ["check", str(pipeline)])

    assert result.exit_code == 1
    assert "acme/missing" in result.stdout
    assert "missing" in result.stdout


@pytest.mark.unit
def test_check_passes_for_known_bricks(tmp_path: Path) -> None:
    """A pipeline of registered bricks checks clean."""
    pipeline = _write_pipeline(tmp_path / "ok.yaml", [{"id": "@brickrun/cancel"}])

    result = _RUNNER.invoke(app, ["check", str(pipeline)])

    assert result.exit_code == 0
    assert "1 step(s) ok" in result.stdout


@pytest.mark.unit
def test_bricks_lists_builtins() -> None:
    """`brickrun bricks` should list the built-in bricks."""
    result = _RUNNER.invoke(app, ["bricks"])

    assert result.exit_code == 0
    assert "@brickrun/cancel" in result.stdout
    assert "@brickrun/map" in result.stdout
