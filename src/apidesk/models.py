"""Canonical Pydantic models shared across all apidesk modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`OutputConfig`, and :class:`GlobalConfig`.

**Document models** -- the persisted library of saved requests:
    :class:`Header`, :class:`Parameter`, :class:`SavedRequest`,
    :class:`Collection`, and :class:`Document`.

**Execution models** -- the input and output of one request execution:
    :class:`HTTPMethod`, :class:`RequestSpec`, and the
    :data:`ExecutionResult` variants :class:`Success`, :class:`HttpError`,
    :class:`TransportError`, and :class:`Cancelled`.

All models use Pydantic v2. Document models use ``extra="allow"`` so that
keys written by other versions of the desktop UI survive a load/save cycle.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from typing import Annotated, Any, Iterator, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Configuration ---


class RequestConfig(BaseModel):
    """Default transport settings applied to every outbound request."""

    timeout: float = Field(default=30.0, description="Transport timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    follow_redirects: bool = Field(default=True, description="Follow 3xx redirects")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/apidesk/config.json``.

    Loaded and saved by :func:`~apidesk.config.load_global_config` and
    :func:`~apidesk.config.save_global_config`. ``data_file`` has the
    lowest precedence and can be overridden by the ``APIDESK_DATA_FILE``
    environment variable or the ``--data-file`` CLI flag. See
    :func:`~apidesk.config.resolve_data_file` for the full chain.
    """

    data_file: Optional[str] = Field(
        default=None, description="Path of the saved-request document"
    )
    log_level: str = Field(default="WARNING", description="Root log level")
    request: RequestConfig = Field(default_factory=RequestConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


# --- Document ---


class Header(BaseModel):
    """A single request header as entered in the UI.

    Either side may be empty while the user is still typing; only headers
    where both ``key`` and ``value`` are non-empty are sent.
    """

    model_config = ConfigDict(extra="allow")

    key: str = ""
    value: str = ""

    @property
    def is_complete(self) -> bool:
        """``True`` when both key and value are non-empty."""
        return bool(self.key) and bool(self.value)


class Parameter(BaseModel):
    """A query or path parameter row attached to a saved request."""

    model_config = ConfigDict(extra="allow")

    type: str = "query"
    key: str = ""
    value: str = ""


def _coerce_headers(value: Any) -> Any:
    """Accept ``(key, value)`` pairs and mappings alongside :class:`Header` objects."""
    if value is None:
        return []
    if isinstance(value, dict):
        return [{"key": k, "value": v} for k, v in value.items()]
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        return value
    coerced = []
    for item in value:
        if isinstance(item, (tuple, list)) and len(item) == 2:
            coerced.append({"key": item[0], "value": item[1]})
        else:
            coerced.append(item)
    return coerced


class SavedRequest(BaseModel):
    """A request definition persisted in the :class:`Document`.

    Saved requests live either inside a :class:`Collection` or in the
    document's top-level ``apis`` list. The ``id`` is assigned by the UI
    and is the key used by
    :func:`~apidesk.store.upsert_request`.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    method: str = "GET"
    url: str = ""
    headers: list[Header] = Field(default_factory=list)
    parameters: list[Parameter] = Field(default_factory=list)
    body: str = ""

    @field_validator("headers", mode="before")
    @classmethod
    def coerce_headers(cls, value: Any) -> Any:
        return _coerce_headers(value)

    def to_spec(self) -> RequestSpec:
        """Build the :class:`RequestSpec` that executes this saved request."""
        return RequestSpec(
            method=self.method,
            url=self.url,
            headers=tuple(self.headers),
            body=self.body or None,
        )


class Collection(BaseModel):
    """A named group of saved requests."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    apis: list[SavedRequest] = Field(default_factory=list)


class Document(BaseModel):
    """The whole persisted state: collections plus loose top-level requests."""

    model_config = ConfigDict(extra="allow")

    collections: list[Collection] = Field(default_factory=list)
    apis: list[SavedRequest] = Field(default_factory=list)

    def iter_requests(self) -> Iterator[tuple[Optional[Collection], SavedRequest]]:
        """Yield ``(collection, request)`` pairs in lookup order.

        Collections come first, in document order, each walked in request
        order; top-level requests follow with ``collection`` set to ``None``.
        """
        for collection in self.collections:
            for request in collection.apis:
                yield collection, request
        for request in self.apis:
            yield None, request

    def find_request(self, request_id: str) -> Optional[SavedRequest]:
        """Return the first saved request whose id matches, or ``None``."""
        for _, request in self.iter_requests():
            if request.id == request_id:
                return request
        return None


# --- Execution ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods the executor can send."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, value: str) -> Optional[HTTPMethod]:
        """Return the member matching *value* case-insensitively, or ``None``."""
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


class RequestSpec(BaseModel):
    """Immutable input to one execution.

    ``method`` is kept as a plain string: an unsupported verb is a normal
    executor outcome (a :class:`TransportError` result), not a model
    validation failure.
    """

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    headers: tuple[Header, ...] = ()
    body: Optional[str] = None

    @field_validator("headers", mode="before")
    @classmethod
    def coerce_headers(cls, value: Any) -> Any:
        return _coerce_headers(value)

    def forwarded_headers(self) -> list[tuple[str, str]]:
        """Headers that will actually be sent, in order."""
        return [(h.key, h.value) for h in self.headers if h.is_complete]


class Success(BaseModel):
    """The server answered 2xx/3xx and the body parsed as JSON."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    status: int
    parsed_body: Any = None


class HttpError(BaseModel):
    """The server answered 4xx/5xx."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["http_error"] = "http_error"
    status: int


class TransportError(BaseModel):
    """The call failed before a usable response was obtained."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["transport_error"] = "transport_error"
    message: str


class Cancelled(BaseModel):
    """Cancellation won the race against the outbound call."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["cancelled"] = "cancelled"


ExecutionResult = Annotated[
    Union[Success, HttpError, TransportError, Cancelled],
    Field(discriminator="kind"),
]
