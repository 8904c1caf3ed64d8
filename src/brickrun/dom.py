"""In-memory document model used as the target scope of DOM bricks."""

from __future__ import annotations

import html
import re
from collections.abc import Iterator
from dataclasses import dataclass
from html.parser import HTMLParser
from typing import TypeAlias

from brickrun.errors import ConfigurationError

VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "source",
        "track",
        "wbr",
    }
)


class Node:
    """Tree node with a parent link."""

    def __init__(self) -> None:
        """Create detached node."""
        self.parent: Element | None = None


class Text(Node):
    """Text node."""

    def __init__(self, data: str) -> None:
        """Create text node.

        Args:
            data: Text content.
        """
        super().__init__()
        self.data = data

    def __repr__(self) -> str:
        return f"Text({self.data!r})"


class Element(Node):
    """Element node with attributes and ordered children."""

    def __init__(
        self,
        tag: str,
        attrs: dict[str, str | None] | None = None,
        children: list[Node] | None = None,
    ) -> None:
        """Create element.

        Args:
            tag: Lower-case tag name.
            attrs: Attribute mapping; None values are boolean attributes.
            children: Initial children, re-parented to this element.
        """
        super().__init__()
        self.tag = tag.lower()
        self.attrs: dict[str, str | None] = dict(attrs or {})
        self.children: list[Node] = []
        for child in children or []:
            self.append(child)

    def __repr__(self) -> str:
        return f"<{self.tag}{_format_attrs(self.attrs)}>"

    def append(self, child: Node) -> Node:
        """Append a child node and return it."""
        child.parent = self
        self.children.append(child)
        return child

    @property
    def classes(self) -> tuple[str, ...]:
        """Class names from the `class` attribute."""
        return tuple((self.attrs.get("class") or "").split())

    @property
    def text(self) -> str:
        """Concatenated text of all descendant text nodes."""
        return "".join(node.data for node in self.text_nodes())

    @property
    def disabled(self) -> bool:
        """Whether the `disabled` attribute is present."""
        return "disabled" in self.attrs

    def iter_elements(self) -> Iterator[Element]:
        """Yield descendant elements in document order (excluding self)."""
        for child in self.children:
            if isinstance(child, Element):
                yield child
                yield from child.iter_elements()

    def text_nodes(self) -> list[Text]:
        """Return descendant text nodes in document order."""
        found: list[Text] = []
        for child in self.children:
            if isinstance(child, Text):
                found.append(child)
            elif isinstance(child, Element):
                found.extend(child.text_nodes())
        return found

    def contains(self, node: Node) -> bool:
        """Whether node is this element or one of its descendants."""
        current: Node | None = node
        while current is not None:
            if current is self:
                return True
            current = current.parent
        return False

    def select(self, selector: str) -> list[Element]:
        """Return descendants matching a CSS selector, in document order.

        Args:
            selector: Selector group (tag, #id, .class, [attr], [attr=v],
                descendant and `>` child combinators, `,` alternatives).

        Returns:
            Matching elements without duplicates.

        Raises:
            ConfigurationError: If the selector is not supported.
        """
        groups = parse_selector(selector)
        return [
            element
            for element in self.iter_elements()
            if any(_matches(element, group, self) for group in groups)
        ]

    def to_html(self) -> str:
        """Serialize this element and its subtree."""
        inner = "".join(_serialize(child) for child in self.children)
        if self.tag in VOID_ELEMENTS:
            return f"<{self.tag}{_format_attrs(self.attrs)}>"
        return f"<{self.tag}{_format_attrs(self.attrs)}>{inner}</{self.tag}>"


class Document(Element):
    """Top-level document; the global search scope."""

    def __init__(self, children: list[Node] | None = None) -> None:
        """Create document.

        Args:
            children: Top-level nodes.
        """
        super().__init__("#document", children=children)

    def __repr__(self) -> str:
        return "<#document>"

    @property
    def body(self) -> Element | None:
        """First `body` element, if any."""
        for element in self.iter_elements():
            if element.tag == "body":
                return element
        return None

    def to_html(self) -> str:
        """Serialize the document's children."""
        return "".join(_serialize(child) for child in self.children)


def owner_document(node: Node) -> Document | None:
    """Return the document a node belongs to, if attached."""
    current: Node | None = node
    while current is not None:
        if isinstance(current, Document):
            return current
        current = current.parent
    return None


@dataclass(frozen=True)
class _Compound:
    tag: str | None
    ids: tuple[str, ...]
    classes: tuple[str, ...]
    attrs: tuple[tuple[str, str | None], ...]


# Each group is a list of (combinator, compound) read left to right; the
# first combinator is always "".
_Group: TypeAlias = tuple[tuple[str, _Compound], ...]

_TOKEN_RE = re.compile(
    r"\s*(?:"
    r"(?P<combinator>>)|"
    r"(?P<tag>\*|[A-Za-z][\w-]*)|"
    r"#(?P<id>[\w-]+)|"
    r"\.(?P<cls>[\w-]+)|"
    r"\[\s*(?P<attr>[\w-]+)\s*(?:=\s*(?:\"(?P<dq>[^\"]*)\"|'(?P<sq>[^']*)'|(?P<bare>[\w-]+))\s*)?\]"
    r")"
)


def parse_selector(selector: str) -> tuple[_Group, ...]:
    """Parse a selector string into groups.

    Args:
        selector: Selector text.

    Returns:
        One group per comma-separated alternative.

    Raises:
        ConfigurationError: If the selector is empty or unsupported.
    """
    groups: list[_Group] = []
    for raw in selector.split(","):
        text = raw.strip()
        if not text:
            raise ConfigurationError(
                f"Invalid selector: {selector!r}", prop="selector", value=selector
            )
        groups.append(_parse_group(text, selector))
    return tuple(groups)


def _parse_group(text: str, selector: str) -> _Group:
    steps: list[tuple[str, _Compound]] = []
    pending = ""
    tag: str | None = None
    ids: list[str] = []
    classes: list[str] = []
    attrs: list[tuple[str, str | None]] = []
    pos = 0
    has_part = False

    def flush(combinator: str) -> None:
        nonlocal tag, ids, classes, attrs, has_part
        if not has_part:
            raise ConfigurationError(
                f"Invalid selector: {selector!r}", prop="selector", value=selector
            )
        steps.append(
            (combinator, _Compound(tag, tuple(ids), tuple(classes), tuple(attrs)))
        )
        tag, ids, classes, attrs, has_part = None, [], [], [], False

    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None or match.end() == pos:
            raise ConfigurationError(
                f"Unsupported selector: {selector!r}", prop="selector", value=selector
            )
        leading_space = match.start() < len(text) and text[pos].isspace()
        if has_part and leading_space and match.group("combinator") is None:
            flush(pending)
            pending = " "
        if match.group("combinator"):
            flush(pending)
            pending = ">"
        elif match.group("tag"):
            if has_part:
                raise ConfigurationError(
                    f"Unsupported selector: {selector!r}",
                    prop="selector",
                    value=selector,
                )
            tag = None if match.group("tag") == "*" else match.group("tag").lower()
            has_part = True
        elif match.group("id"):
            ids.append(match.group("id"))
            has_part = True
        elif match.group("cls"):
            classes.append(match.group("cls"))
            has_part = True
        else:
            value = match.group("dq")
            if value is None:
                value = match.group("sq")
            if value is None:
                value = match.group("bare")
            attrs.append((match.group("attr").lower(), value))
            has_part = True
        pos = match.end()
    flush(pending)
    return tuple(steps)


def _matches_compound(element: Element, compound: _Compound) -> bool:
    if compound.tag is not None and element.tag != compound.tag:
        return False
    if any(element.attrs.get("id") != ident for ident in compound.ids):
        return False
    element_classes = element.classes
    if any(cls not in element_classes for cls in compound.classes):
        return False
    for name, value in compound.attrs:
        if name not in element.attrs:
            return False
        if value is not None and element.attrs[name] != value:
            return False
    return True


def _matches(element: Element, group: _Group, scope: Element) -> bool:
    """Match right to left; ancestors are limited to the search scope."""
    return _match_from(element, group, len(group) - 1, scope)


def _match_from(element: Element, group: _Group, index: int, scope: Element) -> bool:
    combinator, compound = group[index]
    if not _matches_compound(element, compound):
        return False
    if index == 0:
        return True
    if combinator == ">":
        parent = element.parent
        if parent is None or parent is scope or not scope.contains(parent):
            return False
        return _match_from(parent, group, index - 1, scope)
    ancestor = element.parent
    while ancestor is not None and ancestor is not scope:
        if _match_from(ancestor, group, index - 1, scope):
            return True
        ancestor = ancestor.parent
    return False


def _format_attrs(attrs: dict[str, str | None]) -> str:
    parts = []
    for name, value in attrs.items():
        if value is None:
            parts.append(f" {name}")
        else:
            parts.append(f' {name}="{html.escape(value, quote=True)}"')
    return "".join(parts)


def _serialize(node: Node) -> str:
    if isinstance(node, Text):
        return html.escape(node.data, quote=False)
    if isinstance(node, Element):
        return node.to_html()
    return ""


class _TreeBuilder(HTMLParser):
    """Build a `Document` from HTML text."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.document = Document()
        self._stack: list[Element] = [self.document]

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        element = Element(tag, dict(attrs))
        self._stack[-1].append(element)
        if element.tag not in VOID_ELEMENTS:
            self._stack.append(element)

    def handle_startendtag(
        self, tag: str, attrs: list[tuple[str, str | None]]
    ) -> None:
        self._stack[-1].append(Element(tag, dict(attrs)))

    def handle_endtag(self, tag: str) -> None:
        name = tag.lower()
        for index in range(len(self._stack) - 1, 0, -1):
            if self._stack[index].tag == name:
                del self._stack[index:]
                return

    def handle_data(self, data: str) -> None:
        self._stack[-1].append(Text(data))


def parse_html(markup: str) -> Document:
    """Parse HTML text into a `Document`.

    Args:
        markup: HTML source.

    Returns:
        Document tree; unmatched end tags are ignored.
    """
    builder = _TreeBuilder()
    builder.feed(markup)
    builder.close()
    return builder.document
