"""Progress reporting for long-running backup and restore calls.

Callers pass a plain callback ``(message, percent) -> None``.  A phase
reports its own 0-100 progress through ``ProgressReporter.phase``, which
maps it into the slice of the overall operation that phase owns.
"""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int], None]


class ProgressReporter:
    """Forward progress to a callback, clamped to a non-decreasing 0-100."""

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self._callback = callback
        self._last = 0

    @property
    def last(self) -> int:
        return self._last

    def report(self, message: str, percent: float) -> None:
        value = max(self._last, min(100, int(percent)))
        self._last = value
        logger.debug("progress %d%%: %s", value, message)
        if self._callback is not None:
            self._callback(message, value)

    def phase(self, start: int, end: int) -> ProgressCallback:
        """Return a callback mapping a phase's 0-100 into ``[start, end]``."""

        def _scaled(message: str, percent: int) -> None:
            fraction = max(0, min(100, percent)) / 100
            self.report(message, start + (end - start) * fraction)

        return _scaled


def emit(progress: ProgressCallback | None, message: str, percent: int) -> None:
    if progress is not None:
        progress(message, percent)
