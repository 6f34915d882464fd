"""Run commands -- send ad-hoc and saved requests.

``apidesk run METHOD URL`` sends a request built from the command line;
``apidesk send ID`` sends a request saved in the document. Both go through
a :class:`~apidesk.backend.Backend`, so the single-flight and cancellation
rules of the executor apply: pressing Ctrl-C while the request is in
flight cancels it through the backend's cancellation controller and the
command exits with code 130.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Awaitable, Callable, Optional

import typer

from apidesk.backend import Backend
from apidesk.exceptions import ApideskError, NoActiveRequestError
from apidesk.models import Cancelled, ExecutionResult
from apidesk.output import debug, error

logger = logging.getLogger(__name__)


def _make_backend(ctx: typer.Context) -> Backend:
    """Build the backend for this invocation from the global config and ``--data-file``."""
    from apidesk.config import load_global_config

    data_file = ctx.obj.get("data_file") if ctx.obj else None
    return Backend.from_config(load_global_config(), data_file)


def parse_header(raw: str) -> tuple[str, str]:
    """Split a ``Key: Value`` command-line header."""
    key, sep, value = raw.partition(":")
    if not sep:
        raise typer.BadParameter(
            f"Expected 'Key: Value', got: {raw!r}", param_hint="'--header'"
        )
    return key.strip(), value.strip()


def _interrupt_handler(backend: Backend, task: asyncio.Future) -> Callable[[], None]:
    """Loop callback for Ctrl-C: cancel the in-flight request.

    Between requests there is nothing to cancel, so the pending *task* is
    cancelled instead and the command still ends as cancelled.
    """

    def _handler() -> None:
        try:
            backend.cancel_request()
        except NoActiveRequestError:
            logger.debug("Interrupt with no request in flight; stopping the command")
            task.cancel()

    return _handler


def _install_interrupt_handler(
    loop: asyncio.AbstractEventLoop, callback: Callable[[], None]
) -> bool:
    """Register *callback* for SIGINT on *loop*; ``False`` where the loop cannot."""
    try:
        loop.add_signal_handler(signal.SIGINT, callback)
    except (NotImplementedError, RuntimeError, ValueError) as exc:
        # Windows loops and loops off the main thread
        logger.debug("Ctrl-C routing unavailable: %s", exc)
        return False
    return True


def _execute(
    ctx: typer.Context,
    action: Callable[[Backend], Awaitable[ExecutionResult]],
) -> None:
    """Run *action* on a fresh backend, render its result and exit accordingly."""
    from apidesk.render import exit_code_for, render_result

    try:
        backend = _make_backend(ctx)
    except ApideskError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    async def _main() -> ExecutionResult:
        async with backend:
            loop = asyncio.get_running_loop()
            task = asyncio.ensure_future(action(backend))
            installed = _install_interrupt_handler(loop, _interrupt_handler(backend, task))
            try:
                return await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
                return Cancelled()
            finally:
                if installed:
                    loop.remove_signal_handler(signal.SIGINT)

    try:
        result = asyncio.run(_main())
    except ApideskError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    debug(f"Result: {result.kind}")
    render_result(result)
    code = exit_code_for(result)
    if code:
        raise typer.Exit(code=code)


def run_command(
    ctx: typer.Context,
    method: str = typer.Argument(help="HTTP method: GET, POST, PUT, PATCH or DELETE."),
    url: str = typer.Argument(help="Absolute request URL."),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Request header as 'Key: Value' (repeatable)."
    ),
    data: Optional[str] = typer.Option(
        None, "--data", "-d", help="Raw request body."
    ),
    deadline: Optional[float] = typer.Option(
        None, "--deadline", help="Cancel the request after this many seconds."
    ),
) -> None:
    """Send an ad-hoc HTTP request.

    Headers with an empty name or value are not sent. The parsed JSON body
    of a 2xx/3xx response is written to stdout; the status line goes to
    stderr.

    Exit codes: 0 success, 5 HTTP 4xx/5xx, 6 transport failure,
    130 cancelled.

    Example::

        apidesk run GET https://httpbin.org/get
        apidesk run POST https://httpbin.org/post -H 'Content-Type: application/json' -d '{"a": 1}'
    """
    headers = [parse_header(h) for h in header or []]

    async def _action(backend: Backend) -> ExecutionResult:
        return await backend.run_request(method, url, headers, data, deadline=deadline)

    _execute(ctx, _action)


def send_command(
    ctx: typer.Context,
    request_id: str = typer.Argument(help="Id of the saved request."),
    deadline: Optional[float] = typer.Option(
        None, "--deadline", help="Cancel the request after this many seconds."
    ),
) -> None:
    """Send a saved request by id.

    Collections are searched first, then top-level requests.

    Example::

        apidesk send 6c1f0e0a
    """

    async def _action(backend: Backend) -> ExecutionResult:
        return await backend.run_saved_request(request_id, deadline=deadline)

    _execute(ctx, _action)
