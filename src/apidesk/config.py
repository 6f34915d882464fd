"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for apidesk:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.apidesk/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~apidesk.models.GlobalConfig`
  JSON file storing defaults (data file, log level, transport settings).
* **Data file resolution** -- :func:`resolve_data_file` picks the
  saved-request document from CLI flags, environment variables, the global
  config, or the default ``dist/api.json`` under the working directory.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) so a reader never observes a partially written file.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from apidesk.exceptions import ConfigError
from apidesk.models import GlobalConfig

_APP_NAME = "apidesk"
_CONFIG_FILENAME = "config.json"
_DATA_FILE_ENV = "APIDESK_DATA_FILE"

DEFAULT_DATA_DIRNAME = "dist"
DEFAULT_DATA_FILENAME = "api.json"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/apidesk/`` (default ``~/.config/apidesk/``).
    On macOS/Windows: ``~/.apidesk/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/apidesk/`` (default ``~/.local/share/apidesk/``).
    On macOS/Windows: ``~/.apidesk/logs/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up and the original exception propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~apidesk.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk.

    Args:
        config: The configuration to save.
    """
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def default_data_file() -> Path:
    """The document path used when nothing else is configured: ``./dist/api.json``."""
    return Path.cwd() / DEFAULT_DATA_DIRNAME / DEFAULT_DATA_FILENAME


def resolve_data_file(
    cli_data_file: Optional[str] = None,
    config: Optional[GlobalConfig] = None,
) -> Path:
    """Resolve the saved-request document path.

    Precedence (high to low):
        1. CLI flag (``cli_data_file``)
        2. Environment variable (``APIDESK_DATA_FILE``)
        3. User config (``~/.config/apidesk/config.json`` ``data_file``)
        4. ``<cwd>/dist/api.json``

    Args:
        cli_data_file: Value of the ``--data-file`` flag, if given.
        config: Already-loaded global config. Loaded from disk when ``None``.

    Returns:
        The resolved path, with ``~`` expanded.
    """
    if cli_data_file:
        return Path(cli_data_file).expanduser()

    env_data_file = os.environ.get(_DATA_FILE_ENV)
    if env_data_file:
        return Path(env_data_file).expanduser()

    if config is None:
        config = load_global_config()
    if config.data_file:
        return Path(config.data_file).expanduser()

    return default_data_file()
