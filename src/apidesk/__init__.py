"""apidesk -- backend of a desktop API-testing tool.

This package persists a library of saved HTTP request definitions and
executes ad-hoc outbound HTTP requests on demand. At most one request is in
flight at a time; starting a new one preempts the previous, and the running
request can be cancelled from a separate control action.

Typical workflow::

    apidesk init                                  # create dist/api.json
    apidesk run GET https://httpbin.org/get       # ad-hoc request
    apidesk send 3f2a...                          # run a saved request

Modules:
    app: Typer application and CLI entry point.
    backend: The operations exposed to the UI layer.
    executor: Single-flight cancellable request executor.
    store: JSON document store for saved collections and requests.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration management.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
