"""Tagged recursive input/output contracts for bricks."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Annotated, Any, Literal

from jsonschema import Draft202012Validator, SchemaError
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from brickrun.errors import ConfigurationError


class _SchemaBase(BaseModel):
    """Fields shared by every schema variant."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    description: str | None = None
    default: Any = None


class AnySchema(_SchemaBase):
    """Accepts any value."""

    type: Literal["any"] = "any"


class NullSchema(_SchemaBase):
    """Accepts only null."""

    type: Literal["null"] = "null"


class BooleanSchema(_SchemaBase):
    """Accepts booleans."""

    type: Literal["boolean"] = "boolean"


class StringSchema(_SchemaBase):
    """Accepts strings, optionally constrained."""

    type: Literal["string"] = "string"
    enum: tuple[str, ...] | None = None
    pattern: str | None = None
    min_length: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=0)
    format: str | None = None

    @field_validator("pattern")
    @classmethod
    def _compile_pattern(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(f"invalid regular expression: {exc}") from exc
        return value


class NumberSchema(_SchemaBase):
    """Accepts numbers; `integer` additionally rejects fractional values."""

    type: Literal["number", "integer"] = "number"
    enum: tuple[float, ...] | None = None
    minimum: float | None = None
    maximum: float | None = None


class ArraySchema(_SchemaBase):
    """Accepts sequences whose items match `items`."""

    type: Literal["array"] = "array"
    items: Schema | None = None
    min_items: int | None = Field(default=None, ge=0)
    max_items: int | None = Field(default=None, ge=0)


class ObjectSchema(_SchemaBase):
    """Accepts mappings with named, optionally required, properties."""

    type: Literal["object"] = "object"
    properties: dict[str, Schema] = Field(default_factory=dict)
    required: tuple[str, ...] = ()
    additional_properties: bool | Schema = True


class OneOfSchema(_SchemaBase):
    """Accepts values matching at least one alternative."""

    type: Literal["one_of"] = "one_of"
    alternatives: tuple[Schema, ...] = Field(min_length=1)


class PipelineSchema(_SchemaBase):
    """Accepts a deferred sub-pipeline handed to a control-flow brick."""

    type: Literal["pipeline"] = "pipeline"


Schema = Annotated[
    AnySchema
    | NullSchema
    | BooleanSchema
    | StringSchema
    | NumberSchema
    | ArraySchema
    | ObjectSchema
    | OneOfSchema
    | PipelineSchema,
    Field(discriminator="type"),
]

for _model in (ArraySchema, ObjectSchema, OneOfSchema):
    _model.model_rebuild()

_SCHEMA_ADAPTER: TypeAdapter[Schema] = TypeAdapter(Schema)


def parse_schema(raw: Mapping[str, Any]) -> Schema:
    """Parse a JSON Schema-flavoured mapping into a typed schema.

    Args:
        raw: Mapping using camelCase keys (`additionalProperties`, ...).

    Returns:
        Typed schema model.

    Raises:
        ConfigurationError: If the mapping is not a supported schema.
    """
    payload = dict(raw)
    payload.setdefault("type", "object" if "properties" in payload else "any")
    try:
        schema = _SCHEMA_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid schema: {exc.error_count()} error(s)",
            data={"errors": exc.errors(include_url=False)},
        ) from exc
    try:
        Draft202012Validator.check_schema(to_json_schema(schema))
    except SchemaError as exc:
        raise ConfigurationError(
            f"Invalid schema: {exc.message}",
            data={"path": "/".join(str(p) for p in exc.absolute_path)},
        ) from exc
    return schema


def dump_schema(schema: Schema) -> dict[str, Any]:
    """Serialize a schema back into its JSON Schema-flavoured mapping."""
    return schema.model_dump(mode="json", by_alias=True, exclude_none=True)


def to_json_schema(schema: Schema) -> dict[str, Any]:  # noqa: PLR0911
    """Translate a contract into standard JSON Schema (draft 2020-12).

    `any` becomes the empty schema, `one_of` becomes `anyOf` and `pipeline`
    becomes the `deferredPipeline` keyword understood by the validator.

    Args:
        schema: Typed contract.

    Returns:
        JSON Schema mapping.
    """
    if isinstance(schema, AnySchema):
        return {}
    if isinstance(schema, PipelineSchema):
        return {"deferredPipeline": True}
    if isinstance(schema, OneOfSchema):
        return {"anyOf": [to_json_schema(alt) for alt in schema.alternatives]}
    if isinstance(schema, ArraySchema):
        payload = _constraints(schema, "min_items", "max_items")
        if schema.items is not None:
            payload["items"] = to_json_schema(schema.items)
        return payload
    if isinstance(schema, ObjectSchema):
        payload = {
            "type": "object",
            "properties": {
                name: to_json_schema(prop) for name, prop in schema.properties.items()
            },
        }
        if schema.required:
            payload["required"] = list(schema.required)
        extra = schema.additional_properties
        payload["additionalProperties"] = (
            extra if isinstance(extra, bool) else to_json_schema(extra)
        )
        return payload
    if isinstance(schema, StringSchema):
        return _constraints(schema, "enum", "pattern", "min_length", "max_length")
    if isinstance(schema, NumberSchema):
        return _constraints(schema, "enum", "minimum", "maximum")
    return {"type": schema.type}


def _constraints(
    schema: StringSchema | NumberSchema | ArraySchema, *names: str
) -> dict[str, Any]:
    payload: dict[str, Any] = {"type": schema.type}
    for name in names:
        value = getattr(schema, name)
        if value is None:
            continue
        payload[to_camel(name)] = list(value) if isinstance(value, tuple) else value
    return payload


def properties_to_schema(
    properties: Mapping[str, Schema],
    required: Sequence[str] = (),
    *,
    additional_properties: bool = True,
) -> ObjectSchema:
    """Build an object schema from named property schemas.

    Args:
        properties: Property name to schema.
        required: Names that must be present.
        additional_properties: Whether undeclared properties are allowed.

    Returns:
        Object schema.
    """
    return ObjectSchema(
        properties=dict(properties),
        required=tuple(required),
        additional_properties=additional_properties,
    )


def pipeline_properties(schema: Schema | None) -> frozenset[str]:
    """Return top-level property names declared as sub-pipelines.

    Args:
        schema: Brick input contract.

    Returns:
        Names whose values should stay deferred for the brick.
    """
    if not isinstance(schema, ObjectSchema):
        return frozenset()
    return frozenset(
        name
        for name, prop in schema.properties.items()
        if isinstance(prop, PipelineSchema)
    )

