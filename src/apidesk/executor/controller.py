"""Cancellation controller -- "stop whatever is running" as an external action."""

from __future__ import annotations

import logging

from apidesk.executor.slot import ExecutionSlot

logger = logging.getLogger(__name__)


class CancellationController:
    """Cancels the current occupant of an :class:`~apidesk.executor.slot.ExecutionSlot`.

    Thread-safe and cheap enough to call from a signal handler or a UI
    thread while the executor runs on an event loop elsewhere.

    Args:
        slot: The slot shared with the :class:`~apidesk.executor.RequestExecutor`.
    """

    def __init__(self, slot: ExecutionSlot) -> None:
        self._slot = slot

    def cancel(self) -> None:
        """Cancel the running request.

        The pending :meth:`~apidesk.executor.RequestExecutor.execute` call
        resolves to :class:`~apidesk.models.Cancelled` unless its outcome
        was already decided.

        Raises:
            NoActiveRequestError: If no request is running.
        """
        handle = self._slot.cancel_current()
        logger.info("Cancellation requested for request #%d", handle.id)
