"""Target scope resolution for root-aware (DOM-targeting) bricks."""

from __future__ import annotations

from brickrun.dom import Element
from brickrun.errors import ConfigurationError


def resolve_root(
    *,
    selector: str | None,
    is_root_aware: bool = False,
    default_root: Element,
    document: Element,
    brick_id: str,
    selector_prop: str = "root",
) -> tuple[Element, ...]:
    """Return the elements a root-aware brick acts on.

    Root-aware invocations target the current root, or search within it when
    a selector is given. Other invocations must name a selector, which is
    searched in the whole document regardless of the current root.

    Args:
        selector: Optional selector.
        is_root_aware: Whether the invocation opted in to root awareness.
        default_root: Current root scope.
        document: Top-level document.
        brick_id: Brick id, reported on configuration errors.
        selector_prop: Property holding the selector, reported on
            configuration errors.

    Returns:
        Target elements in document order.

    Raises:
        ConfigurationError: If a selector is required but missing.
    """
    if is_root_aware:
        if not selector:
            return (default_root,)
        return tuple(default_root.select(selector))
    if not selector:
        raise ConfigurationError(
            "Selector is required",
            brick_id=brick_id,
            prop=selector_prop,
            value=selector,
        )
    return tuple(document.select(selector))
