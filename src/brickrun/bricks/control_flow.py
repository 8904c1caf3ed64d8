"""Control-flow bricks: run deferred sub-pipelines through the executor."""

from __future__ import annotations

from typing import Any

from brickrun.bricks.base import BrickOptions, TransformerBrick
from brickrun.context import ELEMENT_VARIABLE, ERROR_VARIABLE
from brickrun.errors import PipelineError, is_cancel, serialize_error
from brickrun.expressions import is_truthy
from brickrun.schema import (
    AnySchema,
    ArraySchema,
    PipelineSchema,
    properties_to_schema,
)

_ITERATION_SCHEMA = properties_to_schema(
    {
        "elements": ArraySchema(description="Values to iterate over"),
        "body": PipelineSchema(description="Pipeline run once per element"),
    },
    required=["elements", "body"],
)


class MapValues(TransformerBrick):
    """Run a body once per element and collect every output, in order."""

    input_schema = _ITERATION_SCHEMA
    output_schema = ArraySchema()

    def __init__(self) -> None:
        """Create map brick."""
        super().__init__(
            "@brickrun/map",
            "Map Values",
            "Run a pipeline for each element and return the outputs",
        )

    async def transform(self, args: dict[str, Any], options: BrickOptions) -> object:
        """Run the body sequentially; the first failure aborts the rest."""
        outputs: list[object] = []
        for index, element in enumerate(args["elements"]):
            options.logger.debug("Mapping element", index=index)
            outputs.append(
                await options.run_pipeline(args["body"], {ELEMENT_VARIABLE: element})
            )
        return outputs


class ForEach(TransformerBrick):
    """Run a body once per element; return the last output."""

    input_schema = _ITERATION_SCHEMA

    def __init__(self) -> None:
        """Create for-each brick."""
        super().__init__(
            "@brickrun/for-each", "For Each", "Run a pipeline for each element"
        )

    async def transform(self, args: dict[str, Any], options: BrickOptions) -> object:
        """Return the last body output, or None for no elements."""
        output: object = None
        for element in args["elements"]:
            output = await options.run_pipeline(
                args["body"], {ELEMENT_VARIABLE: element}
            )
        return output


class ForEachElement(TransformerBrick):
    """Run a body once per target element, scoped to that element."""

    input_schema = properties_to_schema(
        {"body": PipelineSchema(description="Pipeline run once per element")},
        required=["body"],
    )
    output_schema = ArraySchema()

    def __init__(self) -> None:
        """Create for-each-element brick."""
        super().__init__(
            "@brickrun/for-each-element",
            "For Each Element",
            "Run a pipeline for each matched element, rooted at that element",
        )

    def is_root_aware(self) -> bool:
        """Target elements come from root resolution."""
        return True

    async def transform(self, args: dict[str, Any], options: BrickOptions) -> object:
        """Return body outputs in document order."""
        outputs: list[object] = []
        for element in options.targets:
            outputs.append(
                await options.run_pipeline(
                    args["body"],
                    {ELEMENT_VARIABLE: element.text.strip()},
                    root=element,
                )
            )
        return outputs


class IfElse(TransformerBrick):
    """Branch on a condition."""

    input_schema = properties_to_schema(
        {
            "condition": AnySchema(description="Value interpreted as a condition"),
            "if": PipelineSchema(description="Run when the condition holds"),
            "else": PipelineSchema(description="Run otherwise"),
        },
        required=["if"],
    )

    def __init__(self) -> None:
        """Create if-else brick."""
        super().__init__("@brickrun/if-else", "If-Else", "Run a pipeline conditionally")

    async def transform(self, args: dict[str, Any], options: BrickOptions) -> object:
        """Run `if` or `else`; return None when no branch applies."""
        if is_truthy(args.get("condition")):
            return await options.run_pipeline(args["if"])
        if args.get("else") is not None:
            return await options.run_pipeline(args["else"])
        return None


class TryExcept(TransformerBrick):
    """Recover from a failing pipeline, except for cancellation."""

    input_schema = properties_to_schema(
        {
            "try": PipelineSchema(description="Pipeline to attempt"),
            "except": PipelineSchema(description="Pipeline run on failure"),
        },
        required=["try"],
    )

    def __init__(self) -> None:
        """Create try-except brick."""
        super().__init__(
            "@brickrun/try-except",
            "Try-Except",
            "Run a pipeline and handle its errors",
        )

    async def transform(self, args: dict[str, Any], options: BrickOptions) -> object:
        """Run `try`; on failure run `except` with `@error` bound.

        Raises:
            CancelError: Cancellation is never caught.
        """
        try:
            return await options.run_pipeline(args["try"])
        except PipelineError as exc:
            if is_cancel(exc):
                raise
            options.logger.warning("Recovering from pipeline error", exc=exc)
            if args.get("except") is None:
                return None
            return await options.run_pipeline(
                args["except"], {ERROR_VARIABLE: serialize_error(exc)}
            )
