"""Execution slot -- the single owner of "which request is running".

The slot holds at most one :class:`ExecutionHandle`. Acquiring the slot
cancels whatever occupied it before, so a newly started request always
preempts the previous one instead of queueing behind it.

Every read and write of the occupant happens under one
:class:`threading.Lock`. The event loop running the executor and a UI or
signal-handler thread issuing a cancel can therefore share the slot
without further coordination: "look at the occupant, cancel it, install the
new one" is a single atomic step.

Cancellation is cooperative. :meth:`ExecutionHandle.cancel` only raises a
flag and wakes the coroutine waiting in :meth:`ExecutionHandle.wait`; the
executor decides what to do with the in-flight call.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from typing import Optional

from apidesk.exceptions import NoActiveRequestError

logger = logging.getLogger(__name__)

_handle_ids = itertools.count(1)


class ExecutionHandle:
    """Cancellation token for exactly one execution.

    The flag is a :class:`threading.Event` so :attr:`cancelled` is accurate
    from any thread. Waiters park on an :class:`asyncio.Event` belonging to
    the loop that created the handle; :meth:`cancel` wakes them with
    ``loop.call_soon_threadsafe``.

    Args:
        loop: Event loop of the executing coroutine. ``None`` when the
            handle is created outside a running loop, in which case
            :meth:`cancel` must be called from the thread that waits.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self.id = next(_handle_ids)
        self._loop = loop
        self._flag = threading.Event()
        self._event = asyncio.Event()
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"<ExecutionHandle #{self.id} {state}>"

    @property
    def cancelled(self) -> bool:
        """Whether cancellation has been signalled."""
        return self._flag.is_set()

    def cancel(self) -> bool:
        """Signal cancellation.

        Safe to call from any thread, any number of times.

        Returns:
            ``True`` if this call raised the signal, ``False`` if it was
            already raised.
        """
        with self._lock:
            if self._flag.is_set():
                return False
            self._flag.set()

        loop = self._loop
        if loop is None:
            self._event.set()
            return True
        try:
            loop.call_soon_threadsafe(self._event.set)
        except RuntimeError:
            # Loop already closed: no coroutine is left waiting on this handle.
            logger.debug("Handle #%d cancelled after its loop closed", self.id)
        return True

    async def wait(self) -> None:
        """Block until :meth:`cancel` has been called."""
        if self._flag.is_set():
            return
        await self._event.wait()


class ExecutionSlot:
    """Holds zero or one :class:`ExecutionHandle`.

    Example::

        slot = ExecutionSlot()
        handle = slot.acquire()       # preempts any previous occupant
        try:
            ...                       # run the request, watching handle
        finally:
            slot.release(handle)      # no-op if a newer request took over
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Optional[ExecutionHandle] = None

    def __repr__(self) -> str:
        current = self.current
        status = "free" if current is None else f"occupied(#{current.id})"
        return f"<ExecutionSlot {status}>"

    @property
    def current(self) -> Optional[ExecutionHandle]:
        """The occupying handle, or ``None`` when the slot is free."""
        with self._lock:
            return self._current

    @property
    def is_busy(self) -> bool:
        """Whether a request currently occupies the slot."""
        return self.current is not None

    def acquire(self) -> ExecutionHandle:
        """Install a fresh handle, cancelling the previous occupant first.

        Never waits for the previous execution to wind down; it is only
        signalled.

        Returns:
            The new handle, now the sole occupant.
        """
        try:
            loop: Optional[asyncio.AbstractEventLoop] = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        handle = ExecutionHandle(loop)

        with self._lock:
            previous = self._current
            if previous is not None:
                previous.cancel()
            self._current = handle

        if previous is not None:
            logger.debug("Request #%d preempted by #%d", previous.id, handle.id)
        return handle

    def release(self, handle: ExecutionHandle) -> bool:
        """Clear the slot if *handle* still occupies it.

        A stale handle, one that has since been superseded, leaves the
        newer occupant in place.

        Returns:
            ``True`` if the slot was cleared.
        """
        with self._lock:
            if self._current is not handle:
                return False
            self._current = None
        return True

    def cancel_current(self) -> ExecutionHandle:
        """Signal the occupant and clear the slot.

        Returns:
            The handle that was cancelled.

        Raises:
            NoActiveRequestError: If the slot is empty.
        """
        with self._lock:
            handle = self._current
            if handle is None:
                raise NoActiveRequestError()
            handle.cancel()
            self._current = None
        return handle

    def close(self) -> Optional[ExecutionHandle]:
        """Cancel any occupant as part of shutdown. Does nothing when empty.

        Returns:
            The handle that was cancelled, if there was one.
        """
        try:
            return self.cancel_current()
        except NoActiveRequestError:
            return None
