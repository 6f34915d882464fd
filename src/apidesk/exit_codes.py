"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~apidesk.exceptions.ApideskError` subclass or, for
request outcomes, by the ``run`` and ``send`` commands.
External tooling (CI scripts, shell wrappers) can inspect the exit code to
determine the failure class without parsing stderr.

Example::

    $ apidesk run GET https://example.test/missing
    $ echo $?
    5   # EXIT_HTTP_ERROR -- the server answered 4xx/5xx
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or a malformed request."""

EXIT_NOT_FOUND = 4
"""The requested saved request was not found in the document."""

EXIT_HTTP_ERROR = 5
"""The remote API answered with an HTTP 4xx/5xx status."""

EXIT_TRANSPORT_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused, unparseable body)."""

EXIT_NO_ACTIVE_REQUEST = 8
"""A cancel was requested while no request was running."""

EXIT_STORAGE_ERROR = 9
"""The request document could not be read, parsed, or written."""

EXIT_CANCELLED = 130
"""The running request was cancelled (same code as a shell Ctrl-C)."""
