"""Structural validation of resolved values against brick contracts."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from jsonschema import Draft202012Validator, ValidationError, validators

from brickrun.expressions import DeferredPipeline
from brickrun.schema import (
    AnySchema,
    ArraySchema,
    NullSchema,
    ObjectSchema,
    Schema,
    to_json_schema,
)


@dataclass(frozen=True)
class Violation:
    """One contract violation at a JSON-pointer style path."""

    path: str
    reason: str

    def as_dict(self) -> dict[str, str]:
        """Return JSON-safe representation."""
        return {"path": self.path, "reason": self.reason}


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one value."""

    violations: tuple[Violation, ...] = field(default_factory=tuple)

    @property
    def valid(self) -> bool:
        """Whether no violations were found."""
        return not self.violations


def _is_array(checker: object, instance: object) -> bool:
    del checker
    return isinstance(instance, Sequence) and not isinstance(
        instance, (str, bytes, bytearray)
    )


def _is_object(checker: object, instance: object) -> bool:
    del checker
    return isinstance(instance, Mapping)


def _deferred_pipeline(
    validator: Any, expected: bool, instance: object, schema: Mapping[str, Any]
) -> Iterator[ValidationError]:
    del validator, schema
    if expected and not isinstance(instance, DeferredPipeline):
        yield ValidationError(f"expected pipeline, got {type(instance).__name__}")


ContractValidator = validators.extend(
    Draft202012Validator,
    validators={"deferredPipeline": _deferred_pipeline},
    type_checker=Draft202012Validator.TYPE_CHECKER.redefine_many(
        {"array": _is_array, "object": _is_object}
    ),
)


def validate(value: object, schema: Schema | None) -> ValidationResult:
    """Validate a value against a contract without mutating it.

    Args:
        value: Resolved value to check.
        schema: Contract; `None` accepts anything.

    Returns:
        Validation result with violations sorted by path.
    """
    if schema is None:
        return ValidationResult()
    validator = ContractValidator(to_json_schema(schema))
    found: dict[tuple[tuple[object, ...], str], None] = {}
    for error in validator.iter_errors(_drop_absent(value, schema)):
        for parts, reason in _violations(error):
            found.setdefault((parts, reason))
    ordered = sorted(found, key=lambda item: _sort_key(item[0]))
    return ValidationResult(
        tuple(Violation(_pointer(parts), reason) for parts, reason in ordered)
    )


def _drop_absent(value: object, schema: Schema) -> object:
    """Copy `value` without declared properties that resolved to `None`.

    Missing variables resolve to `None`, so they count as absent unless the
    property accepts null.
    """
    if isinstance(schema, ObjectSchema) and isinstance(value, Mapping):
        kept: dict[object, object] = {}
        for name, item in value.items():
            prop = schema.properties.get(name)
            if prop is None:
                kept[name] = item
            elif item is not None or isinstance(prop, (NullSchema, AnySchema)):
                kept[name] = _drop_absent(item, prop)
        return kept
    if (
        isinstance(schema, ArraySchema)
        and schema.items is not None
        and _is_array(None, value)
    ):
        assert isinstance(value, Sequence)
        return [_drop_absent(item, schema.items) for item in value]
    return value


def _violations(error: ValidationError) -> list[tuple[tuple[object, ...], str]]:
    """Turn one validator error into per-property (path, reason) pairs."""
    parts = tuple(error.absolute_path)
    instance = error.instance
    if error.validator == "required" and isinstance(instance, Mapping):
        return [
            ((*parts, name), "is required")
            for name in error.validator_value
            if name not in instance
        ]
    if error.validator == "additionalProperties" and isinstance(instance, Mapping):
        declared = error.schema.get("properties", {})
        return [
            ((*parts, name), "is not an allowed property")
            for name in instance
            if name not in declared
        ]
    return [(parts, error.message)]


def _pointer(parts: Sequence[object]) -> str:
    return "#" + "".join(f"/{_escape(str(part))}" for part in parts)


def _sort_key(parts: Sequence[object]) -> tuple[tuple[int, object], ...]:
    return tuple(
        (0, part) if isinstance(part, int) else (1, str(part)) for part in parts
    )


def _escape(name: str) -> str:
    return name.replace("~", "~0").replace("/", "~1")
