"""Cooperative cancellation and progress reporting for long running computations."""

import threading
from logging import getLogger
from typing import Protocol

logger = getLogger(__name__)


class ProgressCallback(Protocol):
    """Receive progress updates from long running computations."""

    def __call__(self, percent: float, description: str) -> None:
        """Report progress.

        :param percent: percent complete, in the range ``[0, 100]``.
        :param description: the computation stage.

        """
        ...


class CancellationToken:
    """Flag checked by long running computations to stop early.

    The token may be cancelled from another thread. Computations check it at loop boundaries
    and unwind, reporting an aborted result.

    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        logger.info("Cancellation requested.")
        self._event.set()

    def reset(self) -> None:
        """Clear a previous cancellation request."""
        self._event.clear()

    @property
    def cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._event.is_set()


class ProgressTracker:
    """Send progress updates to a callback, if any, for a single computation stage."""

    def __init__(self, callback: ProgressCallback | None, description: str, total: int, interval: int = 1):
        self.callback = callback
        self.description = description
        self.total = max(total, 1)
        self.interval = interval
        self.completed = 0
        self._notify(0.0)

    def advance(self, n: int = 1) -> None:
        """Increase the number of completed steps and report the progress every `interval` steps."""
        previous = self.completed
        self.completed += n
        if self.completed // self.interval != previous // self.interval:
            self._notify(min(100.0 * self.completed / self.total, 100.0))

    def finish(self) -> None:
        """Report the stage as complete."""
        self._notify(100.0)

    def _notify(self, percent: float) -> None:
        if self.callback is not None:
            self.callback(round(percent, 2), self.description)
