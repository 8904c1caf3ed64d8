"""Sandboxed template grammar: variable substitution plus formatting helpers.

Placeholders have the form ``{{ <head> | <filter>(<args>) | ... }}`` where
``<head>`` is a variable path (``@input.user.name``) or a literal and each
filter is looked up in a fixed table. There is no attribute access on host
objects, no calls other than the table filters, and no control statements.
"""

from __future__ import annotations

import inspect
import json
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache

from brickrun.errors import TemplateRenderError, TemplateSyntaxError
from brickrun.paths import PATH_PATTERN, resolve_path

_OPEN = "{{"
_CLOSE = "}}"
_WS_RE = re.compile(r"\s*")
_NAME_RE = re.compile(r"[A-Za-z_]\w*")
_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")
_STRING_RE = re.compile(r"'((?:[^'\\]|\\.)*)'|\"((?:[^\"\\]|\\.)*)\"")
_KEYWORDS: dict[str, object] = {
    "true": True,
    "false": False,
    "null": None,
    "none": None,
}


@dataclass(frozen=True)
class _Literal:
    value: object


@dataclass(frozen=True)
class _Variable:
    path: str


@dataclass(frozen=True)
class _Filter:
    name: str
    args: tuple[object, ...]


@dataclass(frozen=True)
class _Placeholder:
    head: _Literal | _Variable
    filters: tuple[_Filter, ...]


@dataclass(frozen=True)
class CompiledTemplate:
    """Parsed template: literal text and placeholders in source order."""

    source: str
    parts: tuple[str | _Placeholder, ...]

    def render(self, variables: Mapping[str, object]) -> str:
        """Render against a variable environment.

        Args:
            variables: Variable environment (`@input`, ...).

        Returns:
            Rendered text; missing values render as the empty string.
        """
        chunks: list[str] = []
        for part in self.parts:
            if isinstance(part, str):
                chunks.append(part)
            else:
                chunks.append(to_text(_evaluate(part, variables, self.source)))
        return "".join(chunks)


def _evaluate(
    placeholder: _Placeholder, variables: Mapping[str, object], source: str
) -> object:
    head = placeholder.head
    if isinstance(head, _Variable):
        value = resolve_path(variables, head.path)
    else:
        value = head.value
    for item in placeholder.filters:
        try:
            value = FILTERS[item.name](value, *item.args)
        except (TypeError, ValueError, OverflowError) as exc:
            raise TemplateRenderError(
                str(exc), template=source, filter_name=item.name
            ) from exc
    return value


def to_text(value: object) -> str:
    """Render a resolved value as template text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def _default(value: object, fallback: object = "") -> object:
    return fallback if value is None or value == "" else value


def _length(value: object) -> int:
    if value is None:
        return 0
    if isinstance(value, (str, Mapping, Sequence)):
        return len(value)
    return 0


def _join(value: object, separator: str = ",") -> str:
    if isinstance(value, Sequence) and not isinstance(value, str):
        return str(separator).join(to_text(item) for item in value)
    return to_text(value)


def _round(value: object, ndigits: int = 0) -> object:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    rounded = round(float(value), int(ndigits))
    return int(rounded) if int(ndigits) == 0 else rounded


def _truncate(value: object, length: int = 255, end: str = "...") -> str:
    text = to_text(value)
    if len(text) <= int(length):
        return text
    return text[: max(int(length) - len(end), 0)] + end


def _replace(value: object, old: str, new: str) -> str:
    return to_text(value).replace(str(old), str(new))


FILTERS: dict[str, Callable[..., object]] = {
    "upper": lambda value: to_text(value).upper(),
    "lower": lambda value: to_text(value).lower(),
    "title": lambda value: to_text(value).title(),
    "capitalize": lambda value: to_text(value).capitalize(),
    "trim": lambda value: to_text(value).strip(),
    "default": _default,
    "length": _length,
    "join": _join,
    "json": lambda value: json.dumps(value, sort_keys=True, default=str),
    "round": _round,
    "truncate": _truncate,
    "replace": _replace,
}


@lru_cache(maxsize=512)
def compile_template(source: str) -> CompiledTemplate:
    """Parse a template string.

    Args:
        source: Template text.

    Returns:
        Compiled template, cached by source.

    Raises:
        TemplateSyntaxError: On unterminated placeholders, unknown filters
            or any expression outside the grammar.
    """
    parts: list[str | _Placeholder] = []
    pos = 0
    while True:
        start = source.find(_OPEN, pos)
        if start < 0:
            if pos < len(source):
                parts.append(source[pos:])
            break
        if start > pos:
            parts.append(source[pos:start])
        end = source.find(_CLOSE, start + len(_OPEN))
        if end < 0:
            raise TemplateSyntaxError(
                "unterminated placeholder", template=source, position=start
            )
        parts.append(_Parser(source, start + len(_OPEN), end).parse())
        pos = end + len(_CLOSE)
    return CompiledTemplate(source=source, parts=tuple(parts))


def render_template(source: str, variables: Mapping[str, object]) -> str:
    """Compile (cached) and render a template."""
    return compile_template(source).render(variables)


class _Parser:
    """Recursive-descent parser for the inside of one placeholder."""

    def __init__(self, source: str, start: int, end: int) -> None:
        self._source = source
        self._pos = start
        self._end = end

    def parse(self) -> _Placeholder:
        self._skip_ws()
        head = self._head()
        filters: list[_Filter] = []
        self._skip_ws()
        while self._peek("|"):
            self._pos += 1
            self._skip_ws()
            filters.append(self._filter())
            self._skip_ws()
        if self._pos != self._end:
            self._fail("unexpected input")
        return _Placeholder(head=head, filters=tuple(filters))

    def _head(self) -> _Literal | _Variable:
        literal = self._try_literal()
        if literal is not None:
            return literal
        match = PATH_PATTERN.match(self._source, self._pos, self._end)
        if match is None:
            self._fail("expected variable or literal")
        assert match is not None
        self._pos = match.end()
        return _Variable(match.group(0))

    def _filter(self) -> _Filter:
        match = _NAME_RE.match(self._source, self._pos, self._end)
        if match is None:
            self._fail("expected filter name")
        assert match is not None
        name = match.group(0)
        if name not in FILTERS:
            self._fail(f"unknown filter {name!r}")
        self._pos = match.end()
        self._skip_ws()
        args: list[object] = []
        if self._peek("("):
            self._pos += 1
            self._skip_ws()
            while not self._peek(")"):
                literal = self._try_literal()
                if literal is None:
                    self._fail("filter arguments must be literals")
                assert literal is not None
                args.append(literal.value)
                self._skip_ws()
                if self._peek(","):
                    self._pos += 1
                    self._skip_ws()
                elif not self._peek(")"):
                    self._fail("expected ',' or ')'")
            self._pos += 1
        try:
            inspect.signature(FILTERS[name]).bind(None, *args)
        except TypeError as exc:
            self._fail(f"bad arguments for filter {name!r}: {exc}")
        return _Filter(name=name, args=tuple(args))

    def _try_literal(self) -> _Literal | None:
        string = _STRING_RE.match(self._source, self._pos, self._end)
        if string is not None:
            self._pos = string.end()
            raw = string.group(1) if string.group(1) is not None else string.group(2)
            return _Literal(re.sub(r"\\(.)", r"\1", raw))
        number = _NUMBER_RE.match(self._source, self._pos, self._end)
        if number is not None:
            self._pos = number.end()
            text = number.group(0)
            return _Literal(float(text) if "." in text else int(text))
        name = _NAME_RE.match(self._source, self._pos, self._end)
        if name is not None and name.group(0).lower() in _KEYWORDS:
            after = name.end()
            if after >= self._end or self._source[after] not in ".[":
                self._pos = after
                return _Literal(_KEYWORDS[name.group(0).lower()])
        return None

    def _peek(self, char: str) -> bool:
        return self._pos < self._end and self._source[self._pos] == char

    def _skip_ws(self) -> None:
        match = _WS_RE.match(self._source, self._pos, self._end)
        if match is not None:
            self._pos = match.end()

    def _fail(self, message: str) -> None:
        raise TemplateSyntaxError(message, template=self._source, position=self._pos)
