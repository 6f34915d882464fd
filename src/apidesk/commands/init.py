"""Init command -- create the saved-request document.

Implements the ``apidesk init`` top-level command: resolves the document
path (``--data-file``, ``APIDESK_DATA_FILE``, the global config, or
``./dist/api.json``) and writes an empty document there if none exists.
"""

from __future__ import annotations

import typer

from apidesk.exceptions import ApideskError
from apidesk.output import error, info, success, suggest


def init_command(ctx: typer.Context) -> None:
    """Create an empty request document if it does not exist yet.

    Running it again is harmless: an existing document is left as is.

    Example::

        apidesk init
        apidesk --data-file ~/apis.json init
    """
    from apidesk.store import DocumentStore

    data_file = ctx.obj.get("data_file") if ctx.obj else None
    try:
        store = DocumentStore.from_config(data_file)
        created = store.ensure()
    except ApideskError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if created:
        success(f"Created {store.path}")
        suggest("Run: apidesk run GET <url>")
    else:
        info(f"Request document already exists at {store.path}")
