"""Immutable execution context threaded through a pipeline run."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType

from brickrun.dom import Document, Element
from brickrun.errors import ConfigurationError

INPUT_VARIABLE = "@input"
OPTIONS_VARIABLE = "@options"
ELEMENT_VARIABLE = "@element"
ERROR_VARIABLE = "@error"


def _frozen(values: Mapping[str, object] | None) -> Mapping[str, object]:
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True)
class ExecutionContext:
    """Snapshot one invocation runs against.

    Steps never mutate a context; they derive a new one.
    """

    input: object = None
    variables: Mapping[str, object] = field(default_factory=dict)
    document: Document | None = None
    root: Element | None = None
    depth: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "variables", _frozen(self.variables))

    @classmethod
    def create(
        cls,
        input: object = None,  # noqa: A002
        *,
        document: Document | None = None,
        options: Mapping[str, object] | None = None,
        variables: Mapping[str, object] | None = None,
    ) -> ExecutionContext:
        """Build the initial context for a run.

        Args:
            input: Initial current data, bound to `@input`.
            document: Top-level document; also the initial root. When None,
                the executor binds the platform's document.
            options: Caller options, bound to `@options`.
            variables: Extra named variables; names should start with `@`.

        Returns:
            Root context.
        """
        merged = dict(variables or {})
        merged[OPTIONS_VARIABLE] = dict(options or {})
        return cls(input=input, variables=merged, document=document)

    @property
    def scope(self) -> Element:
        """Current root scope; the document when no root was narrowed."""
        return self.root if self.root is not None else self.require_document()

    def require_document(self) -> Document:
        """Return the bound document.

        Raises:
            ConfigurationError: If no document has been bound yet.
        """
        if self.document is None:
            raise ConfigurationError("Execution context has no document bound")
        return self.document

    def with_document(self, document: Document) -> ExecutionContext:
        """Return a context bound to a top-level document."""
        return replace(self, document=document)

    @property
    def environment(self) -> Mapping[str, object]:
        """Variables visible to expressions, with `@input` bound."""
        return MappingProxyType({**self.variables, INPUT_VARIABLE: self.input})

    def with_output(
        self, output: object, *, output_key: str | None = None
    ) -> ExecutionContext:
        """Thread a step output forward as the next current data.

        Args:
            output: Step output.
            output_key: Optional variable name (without `@`) to bind.

        Returns:
            Derived context.
        """
        variables = self.variables
        if output_key:
            variables = {**variables, f"@{output_key}": output}
        return replace(self, input=output, variables=variables)

    def with_root(self, root: Element | None) -> ExecutionContext:
        """Return a context scoped to another root."""
        return replace(self, root=root)

    def nested(
        self,
        extra: Mapping[str, object] | None = None,
        *,
        root: Element | None = None,
    ) -> ExecutionContext:
        """Derive the context for a sub-pipeline run.

        The current data stays bound to `@input`, one level deeper.

        Args:
            extra: Additional variables (e.g. `@element`).
            root: Root override; keeps the current root when None.

        Returns:
            Derived context.
        """
        variables = {**self.variables, INPUT_VARIABLE: self.input, **(extra or {})}
        return replace(
            self,
            variables=variables,
            root=root if root is not None else self.root,
            depth=self.depth + 1,
        )
