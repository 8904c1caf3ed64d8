"""Built-in effect bricks."""

from __future__ import annotations

import re
from typing import Any

from brickrun.bricks.base import BrickOptions, EffectBrick
from brickrun.dom import Element, Text, owner_document
from brickrun.errors import BusinessError, CancelError
from brickrun.schema import (
    BooleanSchema,
    ObjectSchema,
    StringSchema,
    properties_to_schema,
)


class CancelEffect(EffectBrick):
    """Stop the pipeline on purpose."""

    input_schema = ObjectSchema(additional_properties=False)

    def __init__(self) -> None:
        """Create cancel effect."""
        super().__init__(
            "@brickrun/cancel",
            "Cancel Current Action",
            "Cancel the current action, without reporting an error",
        )

    async def effect(self, args: dict[str, Any], options: BrickOptions) -> None:
        """Raise `CancelError`."""
        del args
        options.logger.debug("Cancelling pipeline run")
        raise CancelError("Action cancelled")


class ErrorEffect(EffectBrick):
    """Fail the pipeline with a user-facing business error."""

    input_schema = properties_to_schema(
        {"message": StringSchema(description="Error message to show")},
        required=["message"],
    )

    def __init__(self) -> None:
        """Create error effect."""
        super().__init__(
            "@brickrun/error", "Raise Error", "Raise a business error with a message"
        )

    async def effect(self, args: dict[str, Any], options: BrickOptions) -> None:
        """Raise `BusinessError` with the configured message."""
        del options
        raise BusinessError(args["message"])


class AlertEffect(EffectBrick):
    """Show a message through the platform."""

    input_schema = properties_to_schema(
        {"message": StringSchema(description="Message to display")},
        required=["message"],
    )

    def __init__(self) -> None:
        """Create alert effect."""
        super().__init__("@brickrun/alert", "Alert", "Show a message to the user")

    async def effect(self, args: dict[str, Any], options: BrickOptions) -> None:
        """Forward the message to `Platform.alert`."""
        options.platform.alert(str(args["message"]))


class LogEffect(EffectBrick):
    """Write a message to the run logger."""

    input_schema = properties_to_schema(
        {
            "message": StringSchema(description="Message to log"),
            "level": StringSchema(
                enum=("debug", "info", "warning", "error"), default="info"
            ),
        },
        required=["message"],
    )

    def __init__(self) -> None:
        """Create log effect."""
        super().__init__("@brickrun/log", "Log", "Log a message")

    async def effect(self, args: dict[str, Any], options: BrickOptions) -> None:
        """Log at the requested level."""
        level = args.get("level") or "info"
        getattr(options.logger, level)(args["message"])


class DisableEffect(EffectBrick):
    """Disable the target elements."""

    input_schema = ObjectSchema()

    def __init__(self) -> None:
        """Create disable effect."""
        super().__init__(
            "@brickrun/html/disable", "Disable Element", "Disable one or more elements"
        )

    def is_root_aware(self) -> bool:
        """Target elements come from root resolution."""
        return True

    async def effect(self, args: dict[str, Any], options: BrickOptions) -> None:
        """Set the `disabled` attribute on each target."""
        del args
        for element in options.targets:
            element.attrs["disabled"] = None
        options.logger.debug("Disabled elements", count=len(options.targets))


class ReplaceTextEffect(EffectBrick):
    """Replace text inside target subtrees without changing their structure."""

    input_schema = properties_to_schema(
        {
            "pattern": StringSchema(
                description="A string or regular expression to match"
            ),
            "replacement": StringSchema(description="Replacement text"),
            "isRegex": BooleanSchema(
                description="Whether the pattern is a regular expression",
                default=False,
            ),
        },
        required=["pattern", "replacement"],
    )

    def __init__(self) -> None:
        """Create replace-text effect."""
        super().__init__(
            "@brickrun/html/replace-text",
            "Replace Text",
            "Replace text within a document or subtree",
        )

    def is_root_aware(self) -> bool:
        """Target elements come from root resolution."""
        return True

    async def effect(self, args: dict[str, Any], options: BrickOptions) -> None:
        """Replace matches in every text node of the targets."""
        pattern: str = args["pattern"]
        replacement: str = args["replacement"]
        nodes = _text_nodes(_limit_to_body(options.targets))
        if not args.get("isRegex"):
            for node in nodes:
                node.data = node.data.replace(pattern, replacement)
            return
        try:
            compiled = re.compile(pattern)
        except re.error as exc:
            raise BusinessError(f"Invalid regular expression: {exc}") from exc
        for node in nodes:
            try:
                node.data = compiled.sub(replacement, node.data)
            except re.error as exc:
                raise BusinessError(f"Invalid replacement pattern: {exc}") from exc


def _limit_to_body(targets: tuple[Element, ...]) -> list[Element]:
    """Swap targets containing `body` for the body, to skip `head`/`title`."""
    limited: list[Element] = []
    for element in targets:
        document = owner_document(element)
        body = document.body if document is not None else None
        if body is not None and element is not body and element.contains(body):
            limited.append(body)
        else:
            limited.append(element)
    return limited


def _text_nodes(roots: list[Element]) -> list[Text]:
    seen: set[int] = set()
    nodes: list[Text] = []
    for root in roots:
        for node in root.text_nodes():
            if id(node) not in seen:
                seen.add(id(node))
                nodes.append(node)
    return nodes
