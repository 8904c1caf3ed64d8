"""Built-in transformer bricks."""

from __future__ import annotations

from typing import Any

from brickrun.bricks.base import BrickOptions, TransformerBrick
from brickrun.schema import ArraySchema, ObjectSchema, StringSchema


class IdentityTransformer(TransformerBrick):
    """Return the resolved config as the output value."""

    input_schema = ObjectSchema()

    def __init__(self) -> None:
        """Create identity transformer."""
        super().__init__(
            "@brickrun/identity",
            "Identity",
            "Return the configured values as the output",
        )

    async def transform(self, args: dict[str, Any], options: BrickOptions) -> object:
        """Return args unchanged."""
        del options
        return args


class ReadTextTransformer(TransformerBrick):
    """Read the text content of the target elements."""

    input_schema = ObjectSchema()
    output_schema = ArraySchema(items=StringSchema())

    def __init__(self) -> None:
        """Create read-text transformer."""
        super().__init__(
            "@brickrun/html/read-text",
            "Read Text",
            "Read the text content of one or more elements",
        )

    def is_root_aware(self) -> bool:
        """Target elements come from root resolution."""
        return True

    async def transform(self, args: dict[str, Any], options: BrickOptions) -> object:
        """Return stripped text of each target, in document order."""
        del args
        return [element.text.strip() for element in options.targets]
