"""Test-only bricks and run helpers for unit tests."""

from __future__ import annotations

import asyncio
from typing import Any

from brickrun.bricks import (
    Brick,
    BrickOptions,
    EffectBrick,
    TransformerBrick,
    register_builtin_bricks,
)
from brickrun.config import RuntimeConfig
from brickrun.context import ExecutionContext
from brickrun.dom import Document, Element
from brickrun.executor import RunOptions, run_pipeline
from brickrun.pipeline import parse_pipeline
from brickrun.platform import NullPlatform, Platform
from brickrun.registry import BrickRegistry
from brickrun.schema import NumberSchema, StringSchema, properties_to_schema


class EchoBrick(TransformerBrick):
    """Return the resolved config; accepts only a string `message`."""

    input_schema = properties_to_schema(
        {"message": StringSchema()}, required=["message"]
    )

    def __init__(self) -> None:
        super().__init__("test/echo", "Echo")

    async def transform(self, args: dict[str, Any], options: BrickOptions) -> object:
        del options
        return dict(args)


class RecordingEffect(EffectBrick):
    """Record every resolved config it receives."""

    def __init__(self) -> None:
        super().__init__("test/record", "Record")
        self.calls: list[dict[str, Any]] = []

    async def effect(self, args: dict[str, Any], options: BrickOptions) -> None:
        del options
        self.calls.append(dict(args))


class AddBrick(TransformerBrick):
    """Add `amount` to the numeric current data."""

    input_schema = properties_to_schema(
        {"value": NumberSchema(), "amount": NumberSchema()},
        required=["value", "amount"],
    )

    def __init__(self) -> None:
        super().__init__("test/add", "Add")

    async def transform(self, args: dict[str, Any], options: BrickOptions) -> object:
        del options
        return args["value"] + args["amount"]


class ExplodingBrick(TransformerBrick):
    """Raise a plain exception from brick code."""

    def __init__(self) -> None:
        super().__init__("test/explode", "Explode")

    async def transform(self, args: dict[str, Any], options: BrickOptions) -> object:
        del args, options
        raise ValueError("boom")


def build_registry(*extra: Brick) -> BrickRegistry:
    """Return a registry with built-ins, test bricks and any extra bricks."""
    registry = register_builtin_bricks(BrickRegistry())
    registry.register([EchoBrick(), AddBrick(), ExplodingBrick()])
    registry.register(extra)
    return registry


def run_definition(
    definition: object,
    input_value: object = None,
    *,
    registry: BrickRegistry | None = None,
    document: Document | None = None,
    config: RuntimeConfig | None = None,
    options: dict[str, object] | None = None,
    root: Element | None = None,
    platform: Platform | None = None,
) -> object:
    """Parse a persisted pipeline and run it to completion."""
    pipeline = parse_pipeline(definition)
    document = document or Document()
    run_options = RunOptions(
        registry=registry if registry is not None else build_registry(),
        platform=platform or NullPlatform(document),
        config=config or RuntimeConfig(),
    )
    context = ExecutionContext.create(
        input_value, document=document, options=options
    ).with_root(root)
    return asyncio.run(run_pipeline(pipeline, context, run_options))


def var(path: str) -> dict[str, str]:
    """Persisted variable expression."""
    return {"__type__": "var", "__value__": path}


def template(source: str) -> dict[str, str]:
    """Persisted template expression."""
    return {"__type__": "template", "__value__": source}


def sub_pipeline(*steps: dict[str, Any]) -> dict[str, Any]:
    """Persisted sub-pipeline expression."""
    return {"__type__": "pipeline", "__value__": list(steps)}
