"""Exception hierarchy for apidesk.

All exceptions inherit from :class:`ApideskError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`apidesk.exit_codes`.
The top-level error handler in :func:`apidesk.app.main` catches
``ApideskError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

HTTP error statuses, transport failures and cancellations are *not*
exceptions: the executor reports them as
:data:`~apidesk.models.ExecutionResult` variants.

Subclass hierarchy::

    ApideskError (exit 1)
    +-- InvalidRequestError   (exit 2)
    +-- NotFoundError         (exit 4)
    +-- NoActiveRequestError  (exit 8)
    +-- StorageError          (exit 9)
    |   +-- SerializationError
    +-- ConfigError           (exit 1)
"""

from apidesk.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NO_ACTIVE_REQUEST,
    EXIT_NOT_FOUND,
    EXIT_STORAGE_ERROR,
)


class ApideskError(Exception):
    """Base exception for all apidesk errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`apidesk.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidRequestError(ApideskError):
    """Raised for malformed request input, rejected before any resource is touched."""

    exit_code = EXIT_INVALID_USAGE


class NotFoundError(ApideskError):
    """Raised when no saved request matches the given id."""

    exit_code = EXIT_NOT_FOUND


class NoActiveRequestError(ApideskError):
    """Raised by cancel when the execution slot is empty."""

    exit_code = EXIT_NO_ACTIVE_REQUEST

    def __init__(self, message: str = "No request is currently running") -> None:
        super().__init__(message)


class StorageError(ApideskError):
    """Raised when the request document cannot be read or written."""

    exit_code = EXIT_STORAGE_ERROR


class SerializationError(StorageError):
    """Raised when the request document is not valid JSON or fails validation."""


class ConfigError(ApideskError):
    """Raised for configuration problems (invalid JSON, unknown keys, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
