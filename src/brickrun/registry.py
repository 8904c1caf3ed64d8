"""Brick registry: the catalogue of brick implementations by id."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from brickrun.bricks.base import Brick
from brickrun.errors import BrickNotFoundError

_LOGGER = logging.getLogger(__name__)


class BrickRegistry:
    """In-process registry: brick id -> brick. Holds no execution state."""

    def __init__(self, bricks: Iterable[Brick] = ()) -> None:
        """Create registry, optionally pre-populated.

        Args:
            bricks: Initial bricks to register.
        """
        self._bricks: dict[str, Brick] = {}
        self.register(bricks)

    def register(self, bricks: Iterable[Brick]) -> None:
        """Register bricks; a repeated id replaces the earlier brick.

        Args:
            bricks: Bricks to register, in order.
        """
        for brick in bricks:
            if brick.id in self._bricks:
                _LOGGER.debug("Replacing registered brick %s", brick.id)
            self._bricks[brick.id] = brick

    def lookup(self, brick_id: str) -> Brick:
        """Return the brick registered under an id.

        Args:
            brick_id: Registry id.

        Returns:
            Registered brick.

        Raises:
            BrickNotFoundError: If the id is not registered.
        """
        brick = self._bricks.get(brick_id)
        if brick is None:
            raise BrickNotFoundError(brick_id)
        return brick

    def clear(self) -> None:
        """Remove every brick. Intended for test isolation."""
        self._bricks.clear()

    def ids(self) -> tuple[str, ...]:
        """Return registered ids, sorted."""
        return tuple(sorted(self._bricks))

    def __contains__(self, brick_id: object) -> bool:
        return brick_id in self._bricks

    def __len__(self) -> int:
        return len(self._bricks)

    def __iter__(self) -> Iterator[Brick]:
        return iter([self._bricks[key] for key in self.ids()])
