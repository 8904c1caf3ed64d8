"""Brick pipeline execution runtime."""

from brickrun.bricks import Brick, BrickKind, BrickOptions, register_builtin_bricks
from brickrun.config import RuntimeConfig, load_runtime_config
from brickrun.context import ExecutionContext
from brickrun.errors import (
    BusinessError,
    CancelError,
    ConfigurationError,
    InputValidationError,
    PipelineError,
    UnexpectedError,
    is_cancel,
    serialize_error,
)
from brickrun.executor import PipelineExecutor, RunOptions, run_pipeline
from brickrun.pipeline import Invocation, Pipeline, load_pipeline, parse_pipeline
from brickrun.registry import BrickRegistry

__all__ = [
    "Brick",
    "BrickKind",
    "BrickOptions",
    "BrickRegistry",
    "BusinessError",
    "CancelError",
    "ConfigurationError",
    "ExecutionContext",
    "InputValidationError",
    "Invocation",
    "Pipeline",
    "PipelineError",
    "PipelineExecutor",
    "RunOptions",
    "RuntimeConfig",
    "UnexpectedError",
    "is_cancel",
    "load_pipeline",
    "load_runtime_config",
    "parse_pipeline",
    "register_builtin_bricks",
    "run_pipeline",
]
