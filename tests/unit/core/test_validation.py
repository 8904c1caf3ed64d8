"""Unit tests for contract validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from brickrun.errors import ConfigurationError
from brickrun.expressions import DeferredPipeline
from brickrun.schema import (
    AnySchema,
    ArraySchema,
    NullSchema,
    NumberSchema,
    ObjectSchema,
    OneOfSchema,
    PipelineSchema,
    StringSchema,
    parse_schema,
    properties_to_schema,
    to_json_schema,
)
from brickrun.validation import validate


@pytest.mark.unit
def test_validate_accepts_matching_object() -> None:
    """Values that satisfy every constraint produce no violations."""
    # Arrange - object contract with nested array
    schema = properties_to_schema(
        {
            "name": StringSchema(min_length=1),
            "tags": ArraySchema(items=StringSchema()),
        },
        required=["name"],
    )

    # Act - validate
    result = validate({"name": "button", "tags": ["a", "b"]}, schema)

    # Assert - valid
    assert result.valid
    assert result.violations == ()


@pytest.mark.unit
def test_validate_reports_paths_sorted_by_path() -> None:
    """Violations are reported with pointer paths, sorted by path."""
    # Arrange - contract with required, enum and item types
    schema = properties_to_schema(
        {
            "mode": StringSchema(enum=("a", "b")),
            "items": ArraySchema(items=NumberSchema(type="integer")),
        },
        required=["mode", "missing"],
    )

    # Act - validate bad value
    result = validate({"mode": "c", "items": [1, "two", 3.5]}, schema)

    # Assert - every violation, in path order
    assert [v.path for v in result.violations] == [
        "#/items/1",
        "#/items/2",
        "#/missing",
        "#/mode",
    ]
    reasons = [v.reason for v in result.violations]
    assert "is not of type 'integer'" in reasons[0]
    assert "is not of type 'integer'" in reasons[1]
    assert reasons[2] == "is required"
    assert "is not one of" in reasons[3]


@pytest.mark.unit
def test_validate_missing_variable_counts_as_absent() -> None:
    """A None value for a required property is a single "is required"."""
    # Arrange - required string property
    schema = properties_to_schema({"message": StringSchema()}, required=["message"])

    # Act - value resolved to None
    result = validate({"message": None}, schema)

    # Assert - one violation
    assert [v.as_dict() for v in result.violations] == [
        {"path": "#/message", "reason": "is required"}
    ]


@pytest.mark.unit
def test_validate_rejects_additional_properties_when_closed() -> None:
    """Closed objects reject undeclared properties."""
    # Arrange - closed object
    schema = ObjectSchema(additional_properties=False)

    # Act - validate with an extra key
    result = validate({"extra": 1}, schema)

    # Assert - reported at the property path
    assert [v.path for v in result.violations] == ["#/extra"]
    assert result.violations[0].reason == "is not an allowed property"


@pytest.mark.unit
def test_validate_number_bounds_and_booleans() -> None:
    """Booleans are not numbers and bounds are inclusive."""
    # Arrange - bounded number
    schema = NumberSchema(minimum=0, maximum=10)

    # Act - validate several values
    results = [validate(value, schema).valid for value in (0, 10, 11, True)]

    # Assert - only in-range numbers pass
    assert results == [True, True, False, False]


@pytest.mark.unit
def test_validate_one_of_and_null() -> None:
    """One-of accepts any matching alternative."""
    # Arrange - string or null
    schema = OneOfSchema(alternatives=(StringSchema(), NullSchema()))

    # Act / Assert - string and null pass, number fails
    assert validate("x", schema).valid
    assert validate(None, schema).valid
    assert "is not valid under any of the given schemas" in (
        validate(3, schema).violations[0].reason
    )


@pytest.mark.unit
def test_validate_pipeline_property_requires_deferred_pipeline() -> None:
    """Pipeline-typed properties only accept deferred sub-pipelines."""
    # Arrange - pipeline schema
    schema = PipelineSchema()

    # Act / Assert
    assert validate(DeferredPipeline(()), schema).valid
    assert not validate([], schema).valid


@pytest.mark.unit
def test_validate_without_schema_accepts_anything() -> None:
    """A brick without an input contract accepts any config."""
    assert validate({"anything": object()}, None).valid


@pytest.mark.unit
def test_parse_schema_reads_json_schema_flavoured_mapping() -> None:
    """Persisted contracts use camelCase keys and default to objects."""
    # Arrange - raw contract
    raw = {
        "properties": {"count": {"type": "integer", "minimum": 1}},
        "required": ["count"],
        "additionalProperties": False,
    }

    # Act - parse and validate
    schema = parse_schema(raw)
    result = validate({"count": 0, "other": True}, schema)

    # Assert - object schema with constraints applied
    assert isinstance(schema, ObjectSchema)
    assert [v.path for v in result.violations] == ["#/count", "#/other"]


@pytest.mark.unit
def test_validate_reports_pattern_mismatch() -> None:
    """String patterns are regular expressions searched in the value."""
    # Arrange - digits-only property
    schema = properties_to_schema({"code": StringSchema(pattern=r"^\d+$")})

    # Act - validate good and bad values
    good = validate({"code": "123"}, schema)
    bad = validate({"code": "12a"}, schema)

    # Assert - only the bad value is reported
    assert good.valid
    assert [v.path for v in bad.violations] == ["#/code"]
    assert "does not match" in bad.violations[0].reason


@pytest.mark.unit
def test_invalid_pattern_is_rejected_when_schema_is_built() -> None:
    """A malformed regular expression never reaches validation."""
    # Act / Assert - direct construction fails
    with pytest.raises(PydanticValidationError):
        StringSchema(pattern="(")

    # Act / Assert - persisted contracts fail with a configuration error
    with pytest.raises(ConfigurationError):
        parse_schema({"properties": {"s": {"type": "string", "pattern": "("}}})


@pytest.mark.unit
def test_required_null_and_any_properties_accept_explicit_null() -> None:
    """A required property that accepts null is present when set to None."""
    # Arrange - required null and any properties
    schema = properties_to_schema(
        {"nothing": NullSchema(), "anything": AnySchema()},
        required=["nothing", "anything"],
    )

    # Act - validate explicit nulls, then an empty object
    present = validate({"nothing": None, "anything": None}, schema)
    missing = validate({}, schema)

    # Assert - only the empty object misses them
    assert present.valid
    assert [(v.path, v.reason) for v in missing.violations] == [
        ("#/anything", "is required"),
        ("#/nothing", "is required"),
    ]


@pytest.mark.unit
def test_validate_accepts_tuples_and_nested_absent_values() -> None:
    """Tuples are arrays and None counts as absent inside nested objects."""
    # Arrange - array of objects with an optional string
    schema = ArraySchema(
        items=properties_to_schema({"label": StringSchema()}, required=["id"])
    )
    value = ({"id": 1, "label": None}, {"id": 2, "label": "two"})

    # Act - validate
    result = validate(value, schema)

    # Assert - valid and input untouched
    assert result.valid
    assert value[0] == {"id": 1, "label": None}


@pytest.mark.unit
def test_to_json_schema_emits_standard_keywords() -> None:
    """Contracts translate to draft 2020-12 JSON Schema."""
    # Arrange - contract using every translated variant
    schema = properties_to_schema(
        {
            "body": PipelineSchema(),
            "value": OneOfSchema(alternatives=(StringSchema(), NullSchema())),
            "tags": ArraySchema(items=StringSchema(min_length=1), max_items=3),
            "extra": AnySchema(),
        },
        required=["body"],
        additional_properties=False,
    )

    # Act - translate
    payload = to_json_schema(schema)

    # Assert - standard keywords only, pipeline as its own keyword
    assert payload == {
        "type": "object",
        "properties": {
            "body": {"deferredPipeline": True},
            "value": {"anyOf": [{"type": "string"}, {"type": "null"}]},
            "tags": {
                "type": "array",
                "maxItems": 3,
                "items": {"type": "string", "minLength": 1},
            },
            "extra": {},
        },
        "required": ["body"],
        "additionalProperties": False,
    }
