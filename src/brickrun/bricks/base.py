"""Brick capability interface and the options bundle passed to bricks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar, Protocol

from brickrun.context import ExecutionContext
from brickrun.dom import Document, Element
from brickrun.expressions import DeferredPipeline
from brickrun.platform import Platform
from brickrun.run_logger import RunLogger
from brickrun.schema import Schema, dump_schema


class BrickKind(StrEnum):
    """Behavior kind of a brick."""

    EFFECT = "effect"
    TRANSFORMER = "transformer"
    RENDERER = "renderer"


class PipelineRunner(Protocol):
    """Executor re-entry point handed to control-flow bricks."""

    async def __call__(
        self,
        body: DeferredPipeline,
        variables: Mapping[str, object] | None = None,
        *,
        root: Element | None = None,
    ) -> object:
        """Run a deferred sub-pipeline against a derived context.

        Args:
            body: Deferred sub-pipeline.
            variables: Extra variables for the derived context.
            root: Root override for the derived context.
        """


@dataclass(frozen=True)
class BrickOptions:
    """Everything a brick may use besides its validated arguments."""

    context: ExecutionContext
    targets: tuple[Element, ...]
    logger: RunLogger
    platform: Platform
    run_pipeline: PipelineRunner

    @property
    def root(self) -> Element:
        """Current root scope."""
        return self.context.scope

    @property
    def document(self) -> Document:
        """Top-level document."""
        return self.context.require_document()


class Brick(ABC):
    """Registered unit of behavior with declared contracts."""

    kind: ClassVar[BrickKind]
    input_schema: Schema | None = None
    output_schema: Schema | None = None

    def __init__(self, id: str, name: str, description: str = "") -> None:  # noqa: A002
        """Create brick identity.

        Args:
            id: Stable registry id, e.g. `@brickrun/cancel`.
            name: Human name.
            description: One-line description.
        """
        self.id = id
        self.name = name
        self.description = description

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"

    def is_root_aware(self) -> bool:
        """Whether the brick targets document elements via root resolution."""
        return False

    @abstractmethod
    async def run(self, args: dict[str, Any], options: BrickOptions) -> object:
        """Execute with validated arguments.

        Args:
            args: Resolved config that satisfied `input_schema`.
            options: Options bundle.
        """

    def describe(self) -> dict[str, object]:
        """Return a JSON-safe summary for listings."""
        return {
            "id": self.id,
            "name": self.name,
            "kind": str(self.kind),
            "description": self.description,
            "root_aware": self.is_root_aware(),
            "input_schema": (
                dump_schema(self.input_schema) if self.input_schema else None
            ),
        }


class EffectBrick(Brick):
    """Brick run for its side effect; produces no output of interest."""

    kind = BrickKind.EFFECT

    async def run(self, args: dict[str, Any], options: BrickOptions) -> object:
        """Run the effect and return None."""
        await self.effect(args, options)
        return None

    @abstractmethod
    async def effect(self, args: dict[str, Any], options: BrickOptions) -> None:
        """Perform the side effect.

        Args:
            args: Validated arguments.
            options: Options bundle.
        """


class TransformerBrick(Brick):
    """Brick producing a new value."""

    kind = BrickKind.TRANSFORMER

    async def run(self, args: dict[str, Any], options: BrickOptions) -> object:
        """Return the transformed value."""
        return await self.transform(args, options)

    @abstractmethod
    async def transform(self, args: dict[str, Any], options: BrickOptions) -> object:
        """Compute the output value.

        Args:
            args: Validated arguments.
            options: Options bundle.
        """


class RendererBrick(Brick):
    """Brick producing presentational output; ends its pipeline branch."""

    kind = BrickKind.RENDERER

    async def run(self, args: dict[str, Any], options: BrickOptions) -> object:
        """Return the rendered output."""
        return await self.render(args, options)

    @abstractmethod
    async def render(self, args: dict[str, Any], options: BrickOptions) -> object:
        """Produce the presentational output.

        Args:
            args: Validated arguments.
            options: Options bundle.
        """
