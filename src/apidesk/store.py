"""JSON document store for saved collections and requests.

The whole request library lives in one JSON file (``dist/api.json`` under
the working directory by default)::

    {
      "collections": [{"id": ..., "name": ..., "apis": [SavedRequest, ...]}],
      "apis": [SavedRequest, ...]
    }

:class:`DocumentStore` loads and saves that file. Saves are atomic (temp
file + ``os.replace`` via :func:`~apidesk.config.atomic_write`) and the
serialised form is deterministic, so saving an unmodified document that
was just loaded reproduces the same bytes.

:func:`upsert_request` replaces a saved request in an in-memory
:class:`~apidesk.models.Document`; :meth:`DocumentStore.save_request`
combines load, upsert and save.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from apidesk.config import atomic_write, resolve_data_file
from apidesk.exceptions import NotFoundError, SerializationError, StorageError
from apidesk.models import Document, GlobalConfig, SavedRequest

logger = logging.getLogger(__name__)


def dump_document(document: Document) -> str:
    """Serialise *document* to its on-disk text form (2-space indent, trailing newline).

    Raises:
        SerializationError: If a value in the document cannot be encoded as JSON.
    """
    try:
        data = document.model_dump(mode="json")
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Cannot serialise document: {exc}") from exc


def upsert_request(document: Document, request: SavedRequest) -> None:
    """Replace the saved request with ``request.id`` in place.

    Collections are searched first, in document order and then request
    order within each collection; the top-level ``apis`` list is the
    fallback. Only the first match is replaced.

    Args:
        document: The document to modify.
        request: The new definition; its ``id`` selects the entry.

    Raises:
        NotFoundError: If no saved request has this id. The document is
            left untouched.
    """
    for collection in document.collections:
        for index, existing in enumerate(collection.apis):
            if existing.id == request.id:
                collection.apis[index] = request
                logger.debug("Updated request %s in collection %s", request.id, collection.id)
                return

    for index, existing in enumerate(document.apis):
        if existing.id == request.id:
            document.apis[index] = request
            logger.debug("Updated top-level request %s", request.id)
            return

    raise NotFoundError(f"API with id '{request.id}' not found")


class DocumentStore:
    """Read/write the saved-request document at a fixed path.

    Args:
        path: Location of the JSON document. Resolved by the caller, usually
            via :func:`~apidesk.config.resolve_data_file`.

    Example::

        store = DocumentStore(Path("dist/api.json"))
        store.ensure()
        document = store.load()
        store.save(document)
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        data_file: Optional[str] = None,
        config: Optional[GlobalConfig] = None,
    ) -> DocumentStore:
        """Open the store at the path chosen by :func:`~apidesk.config.resolve_data_file`."""
        return cls(resolve_data_file(data_file, config))

    @property
    def path(self) -> Path:
        """The filesystem path of the document."""
        return self._path

    def ensure(self) -> bool:
        """Create the directory and an empty document if they are missing.

        Returns:
            ``True`` if the file was created, ``False`` if it already existed.

        Raises:
            StorageError: If the directory or file cannot be created.
        """
        if self._path.is_file():
            return False
        logger.info("Creating empty request document at %s", self._path)
        self._write(Document())
        return True

    def load(self) -> Document:
        """Load the document from disk.

        Returns:
            The parsed :class:`~apidesk.models.Document`, or an empty one
            when the file does not exist yet.

        Raises:
            SerializationError: If the file is not valid JSON or does not
                match the document layout.
            StorageError: If the file exists but cannot be read.
        """
        if not self._path.is_file():
            logger.debug("No document at %s, starting empty", self._path)
            return Document()
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Cannot read {self._path}: {exc}") from exc
        try:
            return Document.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise SerializationError(f"Invalid document at {self._path}: {exc}") from exc

    def save(self, document: Union[Document, dict[str, Any]]) -> None:
        """Overwrite the persisted document.

        Args:
            document: A :class:`~apidesk.models.Document` or its raw dict
                form as sent by the UI.

        Raises:
            SerializationError: If a raw dict does not match the layout.
            StorageError: If the file cannot be written.
        """
        if not isinstance(document, Document):
            try:
                document = Document.model_validate(document)
            except ValidationError as exc:
                raise SerializationError(f"Invalid document: {exc}") from exc
        with self._lock:
            self._write(document)

    def save_request(self, request: SavedRequest) -> None:
        """Load the document, replace ``request`` by id, and save it back.

        Raises:
            NotFoundError: If no saved request has ``request.id``. Nothing
                is written in that case.
            SerializationError: See :meth:`load` and :meth:`save`.
            StorageError: See :meth:`load` and :meth:`save`.
        """
        with self._lock:
            document = self.load()
            upsert_request(document, request)
            self._write(document)

    def _write(self, document: Document) -> None:
        text = dump_document(document)
        try:
            atomic_write(self._path, text)
        except OSError as exc:
            raise StorageError(f"Failed to write data: {exc}") from exc
