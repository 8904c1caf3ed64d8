"""Runtime config models and loading helpers."""

from __future__ import annotations

import json
from enum import StrEnum
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class LogLevel(StrEnum):
    """Supported log level names."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class RendererTailPolicy(StrEnum):
    """What to do with steps that follow a renderer."""

    WARN = "warn"
    ERROR = "error"


class RuntimeConfig(BaseModel):
    """Root runtime configuration model."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    log_level: LogLevel = LogLevel.INFO
    max_depth: int = Field(default=32, ge=1, le=1000)
    renderer_tail: RendererTailPolicy = RendererTailPolicy.WARN


class RuntimeConfigError(RuntimeError):
    """Raised when runtime config cannot be decoded or validated."""


def _decode_config_payload(path: Path) -> dict[str, object]:
    """Decode runtime config payload from JSON or YAML.

    Args:
        path: Config file path.

    Returns:
        Parsed mapping payload.

    Raises:
        RuntimeConfigError: If decode fails or payload is not an object.
    """
    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise RuntimeConfigError(f"Invalid runtime config JSON: {exc}") from exc
    else:
        try:
            payload = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise RuntimeConfigError(f"Invalid runtime config YAML: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise RuntimeConfigError(
            "Invalid runtime config payload: root must be an object"
        )
    return payload


def load_runtime_config(path: Path | None) -> RuntimeConfig:
    """Load runtime config from disk, defaulting when missing.

    Args:
        path: Config file path, or None for defaults.

    Returns:
        Parsed config payload, or defaults when file does not exist.

    Raises:
        RuntimeConfigError: If payload decode or validation fails.
    """
    if path is None or not path.exists():
        return RuntimeConfig()
    payload = _decode_config_payload(path)
    try:
        return RuntimeConfig.model_validate(payload)
    except ValidationError as exc:
        raise RuntimeConfigError(f"Invalid runtime config payload: {exc}") from exc
