"""Shared test fixtures for apidesk.

Provides fixtures for isolated config environments, sample request
documents, managed output state, and CLI runners. They are discovered by
pytest automatically and available to all test modules.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest

from apidesk.models import Document
from apidesk.output import OutputFormat, OutputManager, reset_output, set_output
from apidesk.store import DocumentStore


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When CliRunner redirects those streams and the test
    finishes, the cached references become stale. Resetting forces a fresh
    manager on next use. Log handlers bound to those streams go too.
    """
    yield
    reset_output()
    logger = logging.getLogger("apidesk")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and the request document to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path,
    clears ``APIDESK_DATA_FILE`` and changes the working directory to
    tmp_path, so the default document lands at ``tmp_path/dist/api.json``.

    Returns:
        The tmp_path root directory.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("apidesk.config._is_xdg_platform", lambda: True)
    monkeypatch.delenv("APIDESK_DATA_FILE", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_document_data() -> dict[str, Any]:
    """Raw document with one collection and one top-level request."""
    return {
        "collections": [
            {
                "id": "c1",
                "name": "Users",
                "apis": [
                    {
                        "id": "r1",
                        "name": "List users",
                        "method": "GET",
                        "url": "https://api.example.test/users",
                        "headers": [
                            {"key": "Accept", "value": "application/json"},
                            {"key": "", "value": ""},
                        ],
                        "parameters": [],
                        "body": "",
                    },
                    {
                        "id": "r2",
                        "name": "Create user",
                        "method": "POST",
                        "url": "https://api.example.test/users",
                        "headers": [],
                        "parameters": [],
                        "body": "{\"name\": \"ada\"}",
                    },
                ],
            }
        ],
        "apis": [
            {
                "id": "t1",
                "name": "Health",
                "method": "GET",
                "url": "https://api.example.test/health",
                "headers": [],
                "parameters": [{"type": "query", "key": "verbose", "value": "1"}],
                "body": "",
            }
        ],
    }


@pytest.fixture
def sample_document(sample_document_data: dict[str, Any]) -> Document:
    return Document.model_validate(sample_document_data)


@pytest.fixture
def document_path(tmp_path: Path, sample_document_data: dict[str, Any]) -> Path:
    """A request document on disk, written in its canonical form."""
    path = tmp_path / "dist" / "api.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(sample_document_data, indent=2) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def store(document_path: Path) -> DocumentStore:
    return DocumentStore(document_path)


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
