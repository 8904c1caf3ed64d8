"""Expression evaluation against a variable environment."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass

from brickrun.paths import resolve_path
from brickrun.pipeline import (
    LiteralExpression,
    Pipeline,
    PipelineExpression,
    TemplateExpression,
    VariableExpression,
)
from brickrun.templates import render_template


@dataclass(frozen=True)
class DeferredPipeline:
    """Sub-pipeline left unevaluated for the executor or a control-flow brick."""

    pipeline: Pipeline


_FALSY_STRINGS = frozenset({"", "false", "f", "no", "n", "off", "0"})


def is_truthy(value: object) -> bool:
    """Interpret a resolved value as a condition.

    Rendered templates are always text, so common "false" spellings count
    as false.

    Args:
        value: Resolved condition value.

    Returns:
        Boolean interpretation.
    """
    if isinstance(value, str):
        return value.strip().lower() not in _FALSY_STRINGS
    return bool(value)


def evaluate(expression: object, variables: Mapping[str, object]) -> object:
    """Resolve one expression; non-expressions are returned unchanged.

    Args:
        expression: Expression object or plain value.
        variables: Variable environment.

    Returns:
        Resolved value, or a `DeferredPipeline` for sub-pipelines.
    """
    if isinstance(expression, LiteralExpression):
        return copy.deepcopy(expression.value)
    if isinstance(expression, VariableExpression):
        return resolve_path(variables, expression.path)
    if isinstance(expression, TemplateExpression):
        return render_template(expression.template, variables)
    if isinstance(expression, PipelineExpression):
        return DeferredPipeline(expression.pipeline)
    return expression


def evaluate_config(value: object, variables: Mapping[str, object]) -> object:
    """Recursively resolve expressions nested in mappings and lists.

    Containers are rebuilt, so callers never share mutable state with the
    pipeline definition.

    Args:
        value: Config value (mapping, list, expression or literal).
        variables: Variable environment.

    Returns:
        Fully resolved value; sub-pipelines stay deferred.
    """
    if isinstance(value, Mapping):
        return {k: evaluate_config(v, variables) for k, v in value.items()}
    if isinstance(value, list):
        return [evaluate_config(v, variables) for v in value]
    return evaluate(value, variables)
