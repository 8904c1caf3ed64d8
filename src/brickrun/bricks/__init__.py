"""Brick interface and the built-in brick set."""

from __future__ import annotations

from typing import TYPE_CHECKING

from brickrun.bricks.base import (
    Brick,
    BrickKind,
    BrickOptions,
    EffectBrick,
    PipelineRunner,
    RendererBrick,
    TransformerBrick,
)
from brickrun.bricks.control_flow import (
    ForEach,
    ForEachElement,
    IfElse,
    MapValues,
    TryExcept,
)
from brickrun.bricks.effects import (
    AlertEffect,
    CancelEffect,
    DisableEffect,
    ErrorEffect,
    LogEffect,
    ReplaceTextEffect,
)
from brickrun.bricks.renderers import HtmlOutput, HtmlRenderer
from brickrun.bricks.transformers import IdentityTransformer, ReadTextTransformer

if TYPE_CHECKING:
    from brickrun.registry import BrickRegistry


def builtin_bricks() -> list[Brick]:
    """Return fresh instances of every built-in brick."""
    return [
        CancelEffect(),
        ErrorEffect(),
        AlertEffect(),
        LogEffect(),
        DisableEffect(),
        ReplaceTextEffect(),
        IdentityTransformer(),
        ReadTextTransformer(),
        HtmlRenderer(),
        MapValues(),
        ForEach(),
        ForEachElement(),
        IfElse(),
        TryExcept(),
    ]


def register_builtin_bricks(registry: BrickRegistry) -> BrickRegistry:
    """Register the built-in bricks.

    Args:
        registry: Registry to populate.

    Returns:
        The same registry, for chaining.
    """
    registry.register(builtin_bricks())
    return registry


__all__ = [
    "AlertEffect",
    "Brick",
    "BrickKind",
    "BrickOptions",
    "CancelEffect",
    "DisableEffect",
    "EffectBrick",
    "ErrorEffect",
    "ForEach",
    "ForEachElement",
    "HtmlOutput",
    "HtmlRenderer",
    "IdentityTransformer",
    "IfElse",
    "LogEffect",
    "MapValues",
    "PipelineRunner",
    "ReadTextTransformer",
    "RendererBrick",
    "ReplaceTextEffect",
    "TransformerBrick",
    "TryExcept",
    "builtin_bricks",
    "register_builtin_bricks",
]
