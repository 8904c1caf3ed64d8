"""Runtime configuration loading."""

from brickrun.config.runtime_config import (
    LogLevel,
    RendererTailPolicy,
    RuntimeConfig,
    RuntimeConfigError,
    load_runtime_config,
)

__all__ = [
    "LogLevel",
    "RendererTailPolicy",
    "RuntimeConfig",
    "RuntimeConfigError",
    "load_runtime_config",
]
