"""Unit tests for the immutable execution context."""

from __future__ import annotations

import pytest

from brickrun.context import (
    ELEMENT_VARIABLE,
    INPUT_VARIABLE,
    OPTIONS_VARIABLE,
    ExecutionContext,
)
from brickrun.dom import parse_html
from brickrun.errors import ConfigurationError


@pytest.mark.unit
def test_create_binds_options_and_input() -> None:
    """The initial context exposes `@input` and `@options`."""
    document = parse_html("<p>x</p>")
    context = ExecutionContext.create(
        {"a": 1}, document=document, options={"debug": True}
    )
    environment = context.environment
    assert environment[INPUT_VARIABLE] == {"a": 1}
    assert environment[OPTIONS_VARIABLE] == {"debug": True}
    assert context.scope is document


@pytest.mark.unit
def test_scope_requires_a_bound_document() -> None:
    """A context created without a document has no scope until one is bound."""
    # Arrange - context without a document
    context = ExecutionContext.create("data")

    # Act / Assert - unbound, then bound
    with pytest.raises(ConfigurationError, match="no document bound"):
        _ = context.scope
    document = parse_html("<p>x</p>")
    assert context.with_document(document).scope is document
    assert context.document is None


@pytest.mark.unit
def test_with_output_derives_new_context() -> None:
    """Threading an output never mutates the previous context."""
    # Arrange - initial context
    context = ExecutionContext.create(1)

    # Act - derive with a named output
    derived = context.with_output(2, output_key="total")

    # Assert - new input and variable, previous context unchanged
    assert derived.input == 2
    assert derived.variables["@total"] == 2
    assert context.input == 1
    assert "@total" not in context.variables


@pytest.mark.unit
def test_variables_are_read_only() -> None:
    """Context variables can not be mutated in place."""
    context = ExecutionContext.create()
    with pytest.raises(TypeError):
        context.variables["@x"] = 1  # type: ignore[index]


@pytest.mark.unit
def test_nested_binds_input_and_depth() -> None:
    """Sub-pipeline contexts keep `@input` and go one level deeper."""
    # Arrange - context with a document
    document = parse_html("<div><p>x</p></div>")
    paragraph = document.select("p")[0]
    context = ExecutionContext.create("data", document=document)

    # Act - nest with an element variable and root override
    nested = context.nested({ELEMENT_VARIABLE: 3}, root=paragraph)

    # Assert - variables, root and depth
    assert nested.variables[INPUT_VARIABLE] == "data"
    assert nested.variables[ELEMENT_VARIABLE] == 3
    assert nested.scope is paragraph
    assert nested.depth == 1
    assert nested.nested().scope is paragraph
