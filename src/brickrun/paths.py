"""Variable path parsing and lookup (`@input.items[0].name`)."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from functools import lru_cache
from typing import TypeAlias

from brickrun.errors import ConfigurationError

PathSegment: TypeAlias = str | int

_HEAD_RE = re.compile(r"@?[A-Za-z_][\w-]*")
_ATTR_RE = re.compile(r"\.([A-Za-z_][\w-]*)")
_INDEX_RE = re.compile(r"\[\s*(?:(-?\d+)|'([^']*)'|\"([^\"]*)\")\s*\]")

PATH_PATTERN = re.compile(
    r"@?[A-Za-z_][\w-]*"
    r"(?:\.[A-Za-z_][\w-]*|\[\s*(?:-?\d+|'[^']*'|\"[^\"]*\")\s*\])*"
)


@lru_cache(maxsize=1024)
def parse_path(path: str) -> tuple[PathSegment, ...]:
    """Split a variable path into segments.

    Args:
        path: Path such as `@input.items[0]["odd key"]`.

    Returns:
        Tuple of mapping keys (str) and sequence indexes (int).

    Raises:
        ConfigurationError: If the path is malformed.
    """
    text = path.strip()
    head = _HEAD_RE.match(text)
    if head is None:
        raise ConfigurationError(
            f"Invalid variable path: {path!r}", prop="path", value=path
        )
    segments: list[PathSegment] = [head.group(0)]
    pos = head.end()
    while pos < len(text):
        attr = _ATTR_RE.match(text, pos)
        if attr is not None:
            segments.append(attr.group(1))
            pos = attr.end()
            continue
        index = _INDEX_RE.match(text, pos)
        if index is not None:
            number, single, double = index.groups()
            if number is not None:
                segments.append(int(number))
            else:
                segments.append(single if single is not None else double)
            pos = index.end()
            continue
        raise ConfigurationError(
            f"Invalid variable path: {path!r} (at position {pos})",
            prop="path",
            value=path,
        )
    return tuple(segments)


def resolve_path(variables: Mapping[str, object], path: str) -> object:
    """Look up a path in the variable environment.

    A missing segment yields None rather than an error, so optional values
    can be referenced freely; contracts reject missing required values.

    Args:
        variables: Variable environment keyed by name (`@input`, ...).
        path: Variable path.

    Returns:
        Resolved value, or None when any segment is missing.
    """
    current: object = variables
    for segment in parse_path(path):
        current = _step(current, segment)
        if current is None:
            return None
    return current


def _step(value: object, segment: PathSegment) -> object:
    if isinstance(value, Mapping):
        if segment in value:
            return value[segment]
        return value.get(str(segment))
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        if isinstance(segment, int) or (isinstance(segment, str) and segment.isdigit()):
            index = int(segment)
            if -len(value) <= index < len(value):
                return value[index]
            return None
        if segment == "length":
            return len(value)
        return None
    if isinstance(value, str) and segment == "length":
        return len(value)
    return None
