"""Config commands -- view and modify global configuration.

Provides the ``apidesk config`` sub-command group for reading, updating,
and resetting the user's global configuration file
(:class:`~apidesk.models.GlobalConfig`). Settings control the default
document path, the log level, and transport options such as the timeout.
"""

from __future__ import annotations

import typer

from apidesk.exceptions import ConfigError
from apidesk.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the current configuration and the resolved document path.

    Example::

        apidesk config show
        apidesk --json config show
    """
    from apidesk.config import get_config_dir, load_global_config, resolve_data_file

    try:
        config = load_global_config()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    data_file = ctx.obj.get("data_file") if ctx.obj else None
    info(f"Config directory: {get_config_dir()}")
    info(f"Request document: {resolve_data_file(data_file, config)}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'request.timeout')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to the type of
    the field it replaces (bool, int, float, or str) and the result is
    validated against :class:`~apidesk.models.GlobalConfig` before saving.

    Raises:
        typer.Exit: With code 2 if the key path is invalid, the value
            cannot be coerced, or validation fails.

    Example::

        apidesk config set data_file ~/apis/api.json
        apidesk config set request.timeout 10
        apidesk config set request.verify_ssl false
    """
    from pydantic import ValidationError

    from apidesk.config import load_global_config, save_global_config
    from apidesk.models import GlobalConfig

    config = load_global_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    current = target[final_key]
    coerced: object
    if isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes")
    elif isinstance(current, (int, float)):
        try:
            coerced = type(current)(value)
        except ValueError:
            error(f"Expected {type(current).__name__} for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    else:
        coerced = value

    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is active.

    Example::

        apidesk config reset
        apidesk --force config reset
    """
    from apidesk.config import save_global_config
    from apidesk.models import GlobalConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
