"""Single-flight cancellable request executor.

This module provides :class:`RequestExecutor`, which sends one outbound
HTTP request per :meth:`~RequestExecutor.execute` call through a pooled
:class:`httpx.AsyncClient` and guarantees, via a shared
:class:`~apidesk.executor.slot.ExecutionSlot`, that at most one request is
in flight at a time.

Each execution:

1. rejects an unsupported method before touching the slot or transport;
2. acquires the slot, which cancels any previous occupant;
3. builds the request, forwarding only headers with a non-empty key and
   value;
4. races the send against the handle's cancellation signal;
5. normalises the outcome into exactly one
   :data:`~apidesk.models.ExecutionResult` variant;
6. releases the slot on every exit path.

Once a handle has been cancelled its execution reports
:class:`~apidesk.models.Cancelled`, even if the response arrived in the
same instant. The abandoned send task is cancelled and its eventual
outcome discarded.

No retries are performed here; retry policy belongs to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx

from apidesk.executor.slot import ExecutionHandle, ExecutionSlot
from apidesk.models import (
    Cancelled,
    ExecutionResult,
    HTTPMethod,
    HttpError,
    RequestConfig,
    RequestSpec,
    Success,
    TransportError,
)

logger = logging.getLogger(__name__)

UNSUPPORTED_METHOD = "unsupported method"
PARSE_FAILURE = "Failed to parse response"


class RequestExecutor:
    """Run :class:`~apidesk.models.RequestSpec` objects one at a time.

    Must be used as an async context manager so that the underlying
    transport is opened and closed, and so that any request still running
    at shutdown is cancelled.

    Args:
        config: Transport settings (timeout, SSL verification, redirects).
        slot: The slot to coordinate through. A private one is created when
            omitted; pass a shared one to cancel from a
            :class:`~apidesk.executor.controller.CancellationController`.
        transport: Optional :mod:`httpx` transport, mainly for tests
            (:class:`httpx.MockTransport`).

    Example::

        async with RequestExecutor() as executor:
            result = await executor.execute(
                RequestSpec(method="GET", url="https://example.test/ok")
            )
    """

    def __init__(
        self,
        config: Optional[RequestConfig] = None,
        slot: Optional[ExecutionSlot] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or RequestConfig()
        self._slot = slot or ExecutionSlot()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._abandoned: set[asyncio.Future[Any]] = set()

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> RequestExecutor:
        self._client = httpx.AsyncClient(
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=self._config.follow_redirects,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        handle = self._slot.close()
        if handle is not None:
            logger.info("Cancelled request #%d at shutdown", handle.id)
        if self._abandoned:
            await asyncio.gather(*self._abandoned, return_exceptions=True)
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def slot(self) -> ExecutionSlot:
        """The slot this executor coordinates through."""
        return self._slot

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def execute(
        self,
        spec: RequestSpec,
        deadline: Optional[float] = None,
    ) -> ExecutionResult:
        """Send *spec* and return its normalised outcome.

        Starting an execution cancels the one currently running, if any;
        that earlier call then resolves to :class:`~apidesk.models.Cancelled`
        for its own caller.

        Args:
            spec: The request to send.
            deadline: Optional number of seconds after which the execution
                is cancelled exactly as if the user had cancelled it.

        Returns:
            :class:`~apidesk.models.Success` for 2xx/3xx with a JSON (or
            empty) body, :class:`~apidesk.models.HttpError` for 4xx/5xx,
            :class:`~apidesk.models.TransportError` for network, URL and
            body-parsing failures or an unsupported method, and
            :class:`~apidesk.models.Cancelled` when cancellation won.
        """
        assert self._client is not None, "Executor not initialised -- use as async context manager"

        method = HTTPMethod.parse(spec.method)
        if method is None:
            logger.warning("Rejected request with unsupported method %r", spec.method)
            return TransportError(message=UNSUPPORTED_METHOD)

        handle = self._slot.acquire()
        logger.debug("Request #%d: %s %s", handle.id, method.value, spec.url)

        timer: Optional[asyncio.TimerHandle] = None
        if deadline is not None:
            timer = asyncio.get_running_loop().call_later(deadline, handle.cancel)
        try:
            result = await self._race(handle, method, spec)
        finally:
            if timer is not None:
                timer.cancel()
            self._slot.release(handle)

        logger.debug("Request #%d finished: %s", handle.id, result.kind)
        return result

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _race(
        self,
        handle: ExecutionHandle,
        method: HTTPMethod,
        spec: RequestSpec,
    ) -> ExecutionResult:
        """Race the outbound call against *handle*'s cancellation signal."""
        assert self._client is not None

        try:
            request = self._build_request(method, spec)
        except (httpx.InvalidURL, ValueError) as exc:
            return TransportError(message=_describe(exc))

        send = asyncio.ensure_future(self._client.send(request))
        stop = asyncio.ensure_future(handle.wait())
        try:
            await asyncio.wait({send, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            # Also reached when the awaiting task itself is cancelled.
            stop.cancel()
            if not send.done():
                send.cancel()
                self._abandon(send)

        if handle.cancelled:
            _consume(send)
            logger.info("Request #%d cancelled", handle.id)
            return Cancelled()

        try:
            response = send.result()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.info("Request #%d failed: %s", handle.id, exc)
            return TransportError(message=_describe(exc))
        return self._classify(response)

    def _build_request(self, method: HTTPMethod, spec: RequestSpec) -> httpx.Request:
        """Build the outbound :class:`httpx.Request`, dropping incomplete headers."""
        assert self._client is not None

        headers = spec.forwarded_headers()
        dropped = len(spec.headers) - len(headers)
        if dropped:
            logger.warning("Dropped %d header(s) with an empty key or value", dropped)

        kwargs: dict[str, Any] = {
            "method": method.value,
            "url": spec.url,
            "headers": headers,
        }
        if spec.body:
            kwargs["content"] = spec.body
        return self._client.build_request(**kwargs)

    def _classify(self, response: httpx.Response) -> ExecutionResult:
        """Map a completed response onto a result variant."""
        status = response.status_code
        if not 200 <= status < 400:
            return HttpError(status=status)

        if not response.content:
            return Success(status=status, parsed_body=None)
        try:
            body = response.json()
        except ValueError:
            return TransportError(message=PARSE_FAILURE)
        return Success(status=status, parsed_body=body)

    def _abandon(self, task: asyncio.Future[Any]) -> None:
        """Keep a reference to a cancelled send until it has wound down."""
        self._abandoned.add(task)
        task.add_done_callback(self._abandoned.discard)


def _consume(task: asyncio.Future[Any]) -> None:
    """Mark a finished task's exception as retrieved so asyncio does not warn about it."""
    if task.done() and not task.cancelled():
        task.exception()


def _describe(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__
