"""Built-in CLI sub-commands for apidesk.

This package groups the Typer sub-command modules that form the CLI's
top-level command tree:

* :mod:`~apidesk.commands.init` -- create the request document.
* :mod:`~apidesk.commands.run` -- send ad-hoc (``run``) and saved
  (``send``) requests.
* :mod:`~apidesk.commands.requests` -- list, show and update saved requests.
* :mod:`~apidesk.commands.config` -- view and modify global settings.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``requests`` and ``config``) or plain callback
functions registered directly on the root app (for single commands like
``init`` and ``run``).
"""
