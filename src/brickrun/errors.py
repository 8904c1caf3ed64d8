"""Pipeline error taxonomy with stable codes."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from brickrun.schema import Schema
    from brickrun.validation import Violation


class PipelineErrorCode(StrEnum):
    """Stable pipeline runtime error codes."""

    CONFIGURATION = "configuration_error"
    BRICK_NOT_FOUND = "brick_not_found"
    TEMPLATE_SYNTAX = "template_syntax_error"
    TEMPLATE_RENDER = "template_render_error"
    DEFINITION_INVALID = "pipeline_definition_invalid"
    INPUT_VALIDATION = "input_validation_error"
    BUSINESS = "business_error"
    CANCELLED = "cancelled"
    UNEXPECTED = "unexpected_error"


class PipelineError(RuntimeError):
    """Pipeline failure with stable deterministic code."""

    default_code = PipelineErrorCode.UNEXPECTED

    def __init__(
        self,
        message: str,
        *,
        code: PipelineErrorCode | None = None,
        data: dict[str, object] | None = None,
    ) -> None:
        """Create pipeline failure.

        Args:
            message: Human-readable error message.
            code: Stable error code; defaults to the class code.
            data: Optional structured payload for diagnostics.
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.data = data or {}


class ConfigurationError(PipelineError):
    """Authoring defect detected before any brick behavior runs."""

    default_code = PipelineErrorCode.CONFIGURATION

    def __init__(
        self,
        message: str,
        *,
        brick_id: str | None = None,
        prop: str | None = None,
        value: object = None,
        code: PipelineErrorCode | None = None,
        data: dict[str, object] | None = None,
    ) -> None:
        """Create configuration failure.

        Args:
            message: Human-readable error message.
            brick_id: Brick whose configuration is defective, when known.
            prop: Offending property name, when known.
            value: Offending property value, when known.
            code: Stable error code override.
            data: Additional structured payload.
        """
        payload: dict[str, object] = {"brick_id": brick_id, "prop": prop}
        if value is not None:
            payload["value"] = value
        payload.update(data or {})
        super().__init__(message, code=code, data=payload)
        self.brick_id = brick_id
        self.prop = prop
        self.value = value


class BrickNotFoundError(ConfigurationError):
    """Raised when a brick id is not present in the registry."""

    default_code = PipelineErrorCode.BRICK_NOT_FOUND

    def __init__(self, brick_id: str) -> None:
        """Create not-found failure.

        Args:
            brick_id: Brick id that failed lookup.
        """
        super().__init__(
            f"Brick does not exist: {brick_id!r}",
            brick_id=brick_id,
            prop="id",
        )


class TemplateSyntaxError(ConfigurationError):
    """Raised when a template string cannot be parsed."""

    default_code = PipelineErrorCode.TEMPLATE_SYNTAX

    def __init__(self, message: str, *, template: str, position: int) -> None:
        """Create template syntax failure.

        Args:
            message: Parser message.
            template: Offending template source.
            position: Character offset where parsing failed.
        """
        super().__init__(
            f"Invalid template at position {position}: {message}",
            data={"template": template, "position": position},
        )
        self.template = template
        self.position = position



class TemplateRenderError(ConfigurationError):
    """Raised when a template filter fails on the value it receives."""

    default_code = PipelineErrorCode.TEMPLATE_RENDER

    def __init__(self, message: str, *, template: str, filter_name: str) -> None:
        """Create template render failure.

        Args:
            message: Failure detail.
            template: Template source being rendered.
            filter_name: Filter that failed.
        """
        super().__init__(
            f"Template filter {filter_name!r} failed: {message}",
            data={"template": template, "filter": filter_name},
        )
        self.template = template
        self.filter_name = filter_name


class PipelineDefinitionError(ConfigurationError):
    """Raised when a persisted pipeline definition cannot be decoded."""

    default_code = PipelineErrorCode.DEFINITION_INVALID


class InputValidationError(PipelineError):
    """Resolved config failed the target brick's input contract."""

    default_code = PipelineErrorCode.INPUT_VALIDATION

    def __init__(
        self,
        brick_id: str,
        *,
        violations: tuple[Violation, ...],
        input: dict[str, Any],  # noqa: A002
        schema: Schema | None,
    ) -> None:
        """Create input validation failure.

        Args:
            brick_id: Brick whose contract was violated.
            violations: Ordered, non-empty violations.
            input: Resolved config that failed validation.
            schema: Input contract the config was checked against.
        """
        first = violations[0]
        super().__init__(
            f"Invalid inputs for brick {brick_id!r}: {first.path}: {first.reason}",
            data={
                "brick_id": brick_id,
                "violations": [v.as_dict() for v in violations],
            },
        )
        self.brick_id = brick_id
        self.violations = violations
        self.input = input
        self.schema = schema


class BusinessError(PipelineError):
    """Expected, user-meaningful failure raised by brick behavior."""

    default_code = PipelineErrorCode.BUSINESS


class CancelError(BusinessError):
    """Intentional, graceful termination of the current pipeline run."""

    default_code = PipelineErrorCode.CANCELLED

    def __init__(self, message: str = "Action cancelled", **kwargs: Any) -> None:
        """Create cancellation signal.

        Args:
            message: Human-readable reason.
            **kwargs: Forwarded to `PipelineError`.
        """
        super().__init__(message, **kwargs)


class UnexpectedError(PipelineError):
    """Any failure outside the known taxonomy, wrapped with brick context."""

    default_code = PipelineErrorCode.UNEXPECTED


def is_cancel(exc: BaseException) -> bool:
    """Return whether an exception means "stopped", not "failed".

    Args:
        exc: Exception raised by a run.

    Returns:
        True for `CancelError` (directly or as the cause of a wrapper).
    """
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, CancelError):
            return True
        seen.add(id(current))
        current = current.__cause__
    return False


def serialize_error(exc: BaseException) -> dict[str, object]:
    """Serialize an exception into a JSON-safe mapping.

    Args:
        exc: Exception to serialize.

    Returns:
        Mapping with name, message, code and diagnostic data.
    """
    if isinstance(exc, PipelineError):
        payload: dict[str, object] = {
            "name": type(exc).__name__,
            "message": exc.message,
            "code": str(exc.code),
            "data": _json_safe(exc.data),
        }
    else:
        payload = {
            "name": type(exc).__name__,
            "message": str(exc),
            "code": str(PipelineErrorCode.UNEXPECTED),
            "data": {},
        }
    if exc.__cause__ is not None:
        payload["cause"] = serialize_error(exc.__cause__)
    return payload


def _json_safe(value: object) -> object:
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return repr(value)
