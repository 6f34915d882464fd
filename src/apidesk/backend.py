"""The operations the UI layer invokes, bundled behind one lifecycle.

:class:`Backend` wires a :class:`~apidesk.store.DocumentStore`, an
:class:`~apidesk.executor.ExecutionSlot`, a
:class:`~apidesk.executor.RequestExecutor` sharing that slot, and a
:class:`~apidesk.executor.CancellationController`. It is created at
startup, entered as an async context manager, and on exit cancels any
request still running before closing the HTTP transport.

The slot is scoped to the :class:`Backend` instance rather than to the
process, so independent backends (for instance in tests) never preempt
each other.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Union

import httpx
from pydantic import ValidationError

from apidesk.exceptions import InvalidRequestError, NotFoundError
from apidesk.executor import CancellationController, ExecutionSlot, RequestExecutor
from apidesk.models import (
    Document,
    ExecutionResult,
    GlobalConfig,
    RequestConfig,
    RequestSpec,
    SavedRequest,
)
from apidesk.store import DocumentStore, upsert_request


class Backend:
    """Request execution plus the saved-request document, for one UI session.

    Args:
        store: Where saved requests are persisted.
        config: Transport settings for outbound requests.
        transport: Optional :mod:`httpx` transport override (tests).

    Example::

        backend = Backend(DocumentStore(Path("dist/api.json")))
        async with backend:
            result = await backend.run_request("GET", "https://example.test/ok")
    """

    def __init__(
        self,
        store: DocumentStore,
        config: Optional[RequestConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._store = store
        self._slot = ExecutionSlot()
        self._executor = RequestExecutor(config, slot=self._slot, transport=transport)
        self._controller = CancellationController(self._slot)

    @classmethod
    def from_config(
        cls,
        config: GlobalConfig,
        data_file: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> Backend:
        """Build a backend from the global config and an optional ``--data-file`` override."""
        store = DocumentStore.from_config(data_file, config)
        return cls(store, config.request, transport=transport)

    async def __aenter__(self) -> Backend:
        await self._executor.__aenter__()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self._executor.__aexit__(*args)

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def slot(self) -> ExecutionSlot:
        return self._slot

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    async def run_request(
        self,
        method: str,
        url: str,
        headers: Iterable[Any] = (),
        body: Optional[str] = None,
        deadline: Optional[float] = None,
    ) -> ExecutionResult:
        """Send an ad-hoc request, preempting any request already running.

        Args:
            method: HTTP verb; anything outside GET/POST/PUT/PATCH/DELETE
                yields a ``TransportError("unsupported method")`` result.
            url: Absolute URL.
            headers: :class:`~apidesk.models.Header` objects, ``(key, value)``
                pairs, or ``{"key": ..., "value": ...}`` dicts. Entries with an
                empty key or value are not sent.
            body: Optional raw body.
            deadline: Optional seconds after which the request is cancelled.

        Raises:
            InvalidRequestError: If the arguments do not form a request
                (for instance a non-string URL).
        """
        try:
            spec = RequestSpec(method=method, url=url, headers=headers, body=body)
        except ValidationError as exc:
            raise InvalidRequestError(f"Malformed request: {exc}") from exc
        return await self._executor.execute(spec, deadline=deadline)

    async def run_saved_request(
        self,
        request_id: str,
        deadline: Optional[float] = None,
    ) -> ExecutionResult:
        """Look up a saved request by id and send it.

        Raises:
            NotFoundError: If no saved request has this id.
        """
        saved = self.load_document().find_request(request_id)
        if saved is None:
            raise NotFoundError(f"API with id '{request_id}' not found")
        return await self._executor.execute(saved.to_spec(), deadline=deadline)

    def cancel_request(self) -> None:
        """Cancel the running request. Callable from any thread.

        Raises:
            NoActiveRequestError: If no request is running.
        """
        self._controller.cancel()

    # ------------------------------------------------------------------ #
    # Document
    # ------------------------------------------------------------------ #

    def init_storage(self) -> bool:
        """Create the document with empty defaults if missing. Returns ``True`` if created."""
        return self._store.ensure()

    def load_document(self) -> Document:
        """Load the saved-request document (empty when the file does not exist)."""
        return self._store.load()

    def save_document(self, document: Union[Document, dict[str, Any]]) -> None:
        """Atomically overwrite the persisted document."""
        self._store.save(document)

    def upsert_request_in_document(self, document: Document, request: SavedRequest) -> None:
        """Replace the saved request with ``request.id`` inside *document*.

        Raises:
            NotFoundError: If no saved request has this id.
        """
        upsert_request(document, request)

    def save_request(self, request: SavedRequest) -> None:
        """Replace a saved request by id directly in the persisted document."""
        self._store.save_request(request)
