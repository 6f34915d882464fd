"""Requests commands -- browse and edit the saved-request document.

Provides the ``apidesk requests`` sub-command group. Creating and deleting
entries is left to the desktop UI; from the command line a saved request
can be listed, shown, and updated in place by id.
"""

from __future__ import annotations

from typing import Any, Optional

import typer

from apidesk.commands.run import parse_header
from apidesk.exceptions import ApideskError, NotFoundError
from apidesk.models import Header
from apidesk.output import error, format_response, get_output, success


requests_app = typer.Typer(no_args_is_help=True)


def _open_store(ctx: typer.Context):  # noqa: ANN202
    from apidesk.store import DocumentStore

    data_file = ctx.obj.get("data_file") if ctx.obj else None
    return DocumentStore.from_config(data_file)


def _fail(exc: ApideskError) -> typer.Exit:
    error(str(exc))
    return typer.Exit(code=exc.exit_code)


@requests_app.command("list")
def requests_list(ctx: typer.Context) -> None:
    """List saved requests, collection entries first.

    Example::

        apidesk requests list
        apidesk --json requests list
    """
    try:
        document = _open_store(ctx).load()
    except ApideskError as exc:
        raise _fail(exc) from None

    rows: list[list[str]] = []
    for collection, request in document.iter_requests():
        rows.append([
            request.id,
            request.method.upper(),
            request.name or "-",
            request.url,
            collection.name if collection is not None else "-",
        ])

    get_output().print_table(
        ["Id", "Method", "Name", "URL", "Collection"],
        rows,
        title=f"Saved requests ({len(rows)})",
    )


@requests_app.command("show")
def requests_show(
    ctx: typer.Context,
    request_id: str = typer.Argument(help="Id of the saved request."),
) -> None:
    """Show one saved request.

    Example::

        apidesk requests show 6c1f0e0a
    """
    try:
        request = _open_store(ctx).load().find_request(request_id)
        if request is None:
            raise NotFoundError(f"API with id '{request_id}' not found")
    except ApideskError as exc:
        raise _fail(exc) from None

    format_response(request.model_dump(mode="json"))


@requests_app.command("update")
def requests_update(
    ctx: typer.Context,
    request_id: str = typer.Argument(help="Id of the saved request."),
    name: Optional[str] = typer.Option(None, "--name", help="New display name."),
    method: Optional[str] = typer.Option(None, "--method", "-X", help="New HTTP method."),
    url: Optional[str] = typer.Option(None, "--url", help="New URL."),
    header: Optional[list[str]] = typer.Option(
        None,
        "--header",
        "-H",
        help="Replace all headers; 'Key: Value', repeatable.",
    ),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="New body."),
) -> None:
    """Update fields of a saved request in place.

    Only the given options change; everything else, including the
    request's position in its collection, is kept.

    Example::

        apidesk requests update 6c1f0e0a --url https://api.example.test/v2/users
        apidesk requests update 6c1f0e0a -H 'Accept: application/json'
    """
    changes: dict[str, Any] = {}
    if name is not None:
        changes["name"] = name
    if method is not None:
        changes["method"] = method.upper()
    if url is not None:
        changes["url"] = url
    if header:
        changes["headers"] = [Header(key=k, value=v) for k, v in map(parse_header, header)]
    if data is not None:
        changes["body"] = data

    if not changes:
        error("Nothing to update. Pass at least one of --name, --method, --url, --header, --data.")
        raise typer.Exit(code=2)

    try:
        store = _open_store(ctx)
        existing = store.load().find_request(request_id)
        if existing is None:
            raise NotFoundError(f"API with id '{request_id}' not found")
        store.save_request(existing.model_copy(update=changes))
    except ApideskError as exc:
        raise _fail(exc) from None

    success(f"Updated {request_id}")
