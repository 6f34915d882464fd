"""Single-flight cancellable request executor.

Three cooperating pieces:

* :class:`ExecutionSlot` -- holds at most one :class:`ExecutionHandle`;
  acquiring it preempts the previous occupant.
* :class:`RequestExecutor` -- sends a request through :mod:`httpx`, racing
  it against the handle's cancellation signal.
* :class:`CancellationController` -- cancels whatever occupies the slot.

Example::

    from apidesk.executor import CancellationController, ExecutionSlot, RequestExecutor

    slot = ExecutionSlot()
    controller = CancellationController(slot)
    async with RequestExecutor(slot=slot) as executor:
        result = await executor.execute(spec)
"""

from apidesk.executor.controller import CancellationController
from apidesk.executor.executor import RequestExecutor
from apidesk.executor.slot import ExecutionHandle, ExecutionSlot

__all__ = [
    "CancellationController",
    "ExecutionHandle",
    "ExecutionSlot",
    "RequestExecutor",
]
