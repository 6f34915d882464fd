"""Result rendering bridge -- maps an execution result to the output system.

After an execution completes, :func:`render_result` writes the status line
to stderr and routes a successful body through
:meth:`~apidesk.output.OutputManager.format_response`. In JSON mode the
whole result object is printed instead, so scripts can read the ``kind``
discriminator. :func:`exit_code_for` gives the matching process exit code.

See Also:
    :mod:`apidesk.output` -- the output manager that renders data.
"""

from __future__ import annotations

import json

from apidesk.exit_codes import (
    EXIT_CANCELLED,
    EXIT_HTTP_ERROR,
    EXIT_SUCCESS,
    EXIT_TRANSPORT_ERROR,
)
from apidesk.models import Cancelled, ExecutionResult, HttpError, Success, TransportError
from apidesk.output import OutputFormat, get_output


def render_result(result: ExecutionResult) -> None:
    """Print *result* using the global output system.

    Args:
        result: The outcome returned by the executor.
    """
    output = get_output()

    if output.format == OutputFormat.JSON:
        output.print_data(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))
        return

    if isinstance(result, Success):
        output.info(f"HTTP {result.status}")
        if result.parsed_body is not None:
            output.format_response(result.parsed_body)
    elif isinstance(result, HttpError):
        output.error(f"HTTP {result.status}")
    elif isinstance(result, TransportError):
        output.error(result.message)
    elif isinstance(result, Cancelled):
        output.warning("Request cancelled.")


def exit_code_for(result: ExecutionResult) -> int:
    """Return the process exit code for *result*."""
    if isinstance(result, Success):
        return EXIT_SUCCESS
    if isinstance(result, HttpError):
        return EXIT_HTTP_ERROR
    if isinstance(result, TransportError):
        return EXIT_TRANSPORT_ERROR
    return EXIT_CANCELLED
