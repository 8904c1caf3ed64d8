"""Built-in renderer bricks."""

from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Any

from brickrun.bricks.base import BrickOptions, RendererBrick
from brickrun.schema import BooleanSchema, StringSchema, properties_to_schema


@dataclass(frozen=True)
class HtmlOutput:
    """Presentational HTML produced by a renderer."""

    html: str
    title: str | None = None


class HtmlRenderer(RendererBrick):
    """Render HTML (or escaped text) as the branch's final output."""

    input_schema = properties_to_schema(
        {
            "html": StringSchema(description="HTML to render"),
            "title": StringSchema(description="Optional panel title"),
            "escape": BooleanSchema(
                description="Treat the content as plain text", default=False
            ),
        },
        required=["html"],
    )

    def __init__(self) -> None:
        """Create HTML renderer."""
        super().__init__("@brickrun/html/render", "Render HTML", "Render HTML content")

    async def render(self, args: dict[str, Any], options: BrickOptions) -> object:
        """Return an `HtmlOutput`."""
        del options
        content: str = args["html"]
        if args.get("escape"):
            content = html.escape(content)
        return HtmlOutput(html=content, title=args.get("title"))
