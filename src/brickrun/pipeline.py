"""Pipeline definition models and YAML/JSON (de)serialization."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeAlias

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from brickrun.errors import PipelineDefinitionError

TYPE_KEY = "__type__"
VALUE_KEY = "__value__"
TEMPLATE_ALIASES = frozenset({"template", "nunjucks", "mustache", "handlebars"})


@dataclass(frozen=True)
class LiteralExpression:
    """Value used as-is, even if it looks like an expression."""

    value: Any

    def to_definition(self) -> dict[str, Any]:
        """Return persisted form."""
        return {TYPE_KEY: "literal", VALUE_KEY: self.value}


@dataclass(frozen=True)
class VariableExpression:
    """Reference to a variable path such as `@input.items[0]`."""

    path: str

    def to_definition(self) -> dict[str, Any]:
        """Return persisted form."""
        return {TYPE_KEY: "var", VALUE_KEY: self.path}


@dataclass(frozen=True)
class TemplateExpression:
    """String rendered through the sandboxed template grammar."""

    template: str

    def to_definition(self) -> dict[str, Any]:
        """Return persisted form."""
        return {TYPE_KEY: "template", VALUE_KEY: self.template}


@dataclass(frozen=True)
class PipelineExpression:
    """Embedded pipeline, evaluated by the executor."""

    pipeline: Pipeline

    def to_definition(self) -> dict[str, Any]:
        """Return persisted form."""
        return {TYPE_KEY: "pipeline", VALUE_KEY: dump_pipeline(self.pipeline)}


Expression: TypeAlias = (
    LiteralExpression | VariableExpression | TemplateExpression | PipelineExpression
)

EXPRESSION_TYPES = (
    LiteralExpression,
    VariableExpression,
    TemplateExpression,
    PipelineExpression,
)


class Invocation(BaseModel):
    """One pipeline step: a brick reference plus its configuration."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(min_length=1)
    config: dict[str, Any] = Field(default_factory=dict)
    root: str | None = None
    is_root_aware: bool = False
    label: str | None = None
    output_key: str | None = Field(default=None, pattern=r"^[A-Za-z_][\w-]*$")
    condition: Any = Field(default=None, alias="if")

    @field_validator("config", mode="before")
    @classmethod
    def _parse_config(cls, value: object) -> object:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            return value
        return {str(k): parse_config_value(v) for k, v in value.items()}

    @field_validator("condition", mode="before")
    @classmethod
    def _parse_condition(cls, value: object) -> object:
        return parse_config_value(value)

    @property
    def display_name(self) -> str:
        """Label if set, otherwise the brick id."""
        return self.label or self.id

    def to_definition(self) -> dict[str, Any]:
        """Return the persisted (camelCase) mapping for this invocation."""
        payload: dict[str, Any] = {
            "id": self.id,
            "config": {k: dump_config_value(v) for k, v in self.config.items()},
        }
        if self.root is not None:
            payload["root"] = self.root
        if self.is_root_aware:
            payload["isRootAware"] = True
        if self.label is not None:
            payload["label"] = self.label
        if self.output_key is not None:
            payload["outputKey"] = self.output_key
        if self.condition is not None:
            payload["if"] = dump_config_value(self.condition)
        return payload


Pipeline: TypeAlias = tuple[Invocation, ...]


def to_expression(kind: str, value: Any) -> Expression:
    """Build an expression from its tag and payload.

    Args:
        kind: One of `literal`, `var`, `template` (or an alias), `pipeline`.
        value: Tag payload; pipelines may be raw definitions.

    Returns:
        Expression instance.

    Raises:
        PipelineDefinitionError: On unknown tags or ill-typed payloads.
    """
    if kind == "literal":
        return LiteralExpression(value)
    if kind == "var":
        if not isinstance(value, str):
            raise PipelineDefinitionError(
                "Variable expression payload must be a string", value=value
            )
        return VariableExpression(value.strip())
    if kind in TEMPLATE_ALIASES:
        if not isinstance(value, str):
            raise PipelineDefinitionError(
                "Template expression payload must be a string", value=value
            )
        return TemplateExpression(value)
    if kind == "pipeline":
        if isinstance(value, tuple) and all(isinstance(v, Invocation) for v in value):
            return PipelineExpression(value)
        return PipelineExpression(parse_pipeline(value))
    raise PipelineDefinitionError(f"Unknown expression type: {kind!r}", value=kind)


def is_expression(value: object) -> bool:
    """Return whether a value is an expression object."""
    return isinstance(value, EXPRESSION_TYPES)


def parse_config_value(raw: object) -> object:
    """Recursively turn persisted expression mappings into expressions.

    Args:
        raw: Literal JSON value, expression mapping, or container of either.

    Returns:
        Value with every `{"__type__": ...}` mapping replaced.
    """
    if is_expression(raw):
        return raw
    if isinstance(raw, Mapping):
        if TYPE_KEY in raw:
            return to_expression(str(raw[TYPE_KEY]), raw.get(VALUE_KEY))
        return {str(k): parse_config_value(v) for k, v in raw.items()}
    if isinstance(raw, list | tuple):
        return [parse_config_value(v) for v in raw]
    return raw


def dump_config_value(value: object) -> object:
    """Inverse of `parse_config_value`."""
    if is_expression(value):
        return value.to_definition()  # type: ignore[union-attr]
    if isinstance(value, Mapping):
        return {k: dump_config_value(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [dump_config_value(v) for v in value]
    return value


def parse_pipeline(raw: object) -> Pipeline:
    """Build a pipeline from its persisted form.

    Args:
        raw: A list of invocation mappings, or a single mapping.

    Returns:
        Ordered tuple of invocations.

    Raises:
        PipelineDefinitionError: If the payload is not a valid definition.
    """
    if isinstance(raw, Mapping):
        items: Sequence[object] = [raw]
    elif isinstance(raw, list | tuple):
        items = raw
    else:
        raise PipelineDefinitionError(
            "Pipeline definition must be a list of invocations or one invocation",
            value=type(raw).__name__,
        )
    steps: list[Invocation] = []
    for index, item in enumerate(items):
        if isinstance(item, Invocation):
            steps.append(item)
            continue
        try:
            steps.append(Invocation.model_validate(item))
        except ValidationError as exc:
            raise PipelineDefinitionError(
                f"Invalid invocation at index {index}: {exc.error_count()} error(s)",
                data={"index": index, "errors": exc.errors(include_url=False)},
            ) from exc
    return tuple(steps)


def dump_pipeline(pipeline: Pipeline) -> list[dict[str, Any]]:
    """Return the persisted form of a pipeline."""
    return [step.to_definition() for step in pipeline]


def load_pipeline(path: Path) -> Pipeline:
    """Load a pipeline definition from a YAML or JSON file.

    Args:
        path: Definition file path.

    Returns:
        Parsed pipeline.

    Raises:
        PipelineDefinitionError: If the file cannot be decoded or validated.
    """
    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise PipelineDefinitionError(f"Invalid pipeline JSON: {exc}") from exc
    else:
        try:
            payload = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise PipelineDefinitionError(f"Invalid pipeline YAML: {exc}") from exc
    if isinstance(payload, Mapping) and "pipeline" in payload:
        payload = payload["pipeline"]
    return parse_pipeline(payload)


def iter_invocations(pipeline: Pipeline) -> list[Invocation]:
    """Flatten a pipeline and every nested sub-pipeline, depth first."""
    found: list[Invocation] = []
    for step in pipeline:
        found.append(step)
        for value in _walk(step.config):
            if isinstance(value, PipelineExpression):
                found.extend(iter_invocations(value.pipeline))
    return found


def _walk(value: object) -> list[object]:
    if isinstance(value, Mapping):
        return [item for v in value.values() for item in _walk(v)]
    if isinstance(value, list | tuple) and not is_expression(value):
        return [item for v in value for item in _walk(v)]
    return [value]
