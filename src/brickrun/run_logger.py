"""Structured run logger handed to bricks."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType

_LOGGER = logging.getLogger(__name__)


class RunLogger:
    """Leveled logger carrying structured run context.

    Sink failures are reported to the module logger and never propagate, so
    logging can not abort a pipeline run.
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        *,
        context: Mapping[str, object] | None = None,
    ) -> None:
        """Create run logger.

        Args:
            logger: Backing stdlib logger; defaults to `brickrun.run`.
            context: Structured fields attached to every record.
        """
        self._logger = logger or logging.getLogger("brickrun.run")
        self._context = MappingProxyType(dict(context or {}))

    @property
    def context(self) -> Mapping[str, object]:
        """Structured fields attached to every record."""
        return self._context

    def child(self, **context: object) -> RunLogger:
        """Return a logger with additional context fields."""
        return RunLogger(self._logger, context={**self._context, **context})

    def debug(self, message: str, **data: object) -> None:
        """Log at debug level."""
        self._emit(logging.DEBUG, message, data)

    def info(self, message: str, **data: object) -> None:
        """Log at info level."""
        self._emit(logging.INFO, message, data)

    def warning(self, message: str, **data: object) -> None:
        """Log at warning level."""
        self._emit(logging.WARNING, message, data)

    def error(
        self, message: str, *, exc: BaseException | None = None, **data: object
    ) -> None:
        """Log at error level, with traceback when `exc` is given."""
        self._emit(logging.ERROR, message, data, exc=exc)

    def _emit(
        self,
        level: int,
        message: str,
        data: Mapping[str, object],
        *,
        exc: BaseException | None = None,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        try:
            fields = {**self._context, **data}
            suffix = " ".join(f"{k}={v!r}" for k, v in fields.items())
            self._logger.log(
                level,
                f"{message} {suffix}" if suffix else message,
                exc_info=exc,
                extra={"brickrun": fields},
            )
        except Exception:  # noqa: BLE001
            _LOGGER.debug("Run logger sink failed", exc_info=True)
