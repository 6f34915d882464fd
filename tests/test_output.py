"""Tests for the output formatting system and logging setup."""

from __future__ import annotations

import json
import logging

import pytest
from rich.logging import RichHandler

from apidesk import output as output_module
from apidesk.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    configure_logging,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("apidesk.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("apidesk.output._is_tty", lambda: True)


class TestFormatResolution:
    def test_auto_is_plain_when_piped(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_is_rich_on_terminal(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        assert OutputManager(format=OutputFormat.AUTO, no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestStreams:
    """Data goes to stdout, diagnostics to stderr."""

    def test_response_to_stdout(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON, no_color=True).format_response({"a": 1})
        captured = capfd.readouterr()
        assert json.loads(captured.out) == {"a": 1}
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_to_stderr(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("status line")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "status line" in captured.err

    def test_error_prefix(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).error("HTTP 500")
        assert "Error: HTTP 500" in capfd.readouterr().err


class TestQuietAndVerbose:
    def test_quiet_hides_info_and_success(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.success("hidden")
        mgr.suggest("hidden")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_warnings_errors_and_data(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.warning("careful")
        mgr.error("broken")
        mgr.print_data("payload")
        captured = capfd.readouterr()
        assert "careful" in captured.err
        assert "broken" in captured.err
        assert "payload" in captured.out

    def test_debug_only_when_verbose(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("trace")
        assert capfd.readouterr().err == ""
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).debug("trace")
        assert "[debug] trace" in capfd.readouterr().err


class TestFormatResponse:
    def test_plain_dict(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).format_response(
            {"name": "Alice", "age": 30}
        )
        assert capfd.readouterr().out.splitlines() == ["name\tAlice", "age\t30"]

    def test_plain_list_of_dicts(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).format_response(
            [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]
        )
        assert capfd.readouterr().out.splitlines() == ["1\ta", "2\tb"]

    def test_json_scalars(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.format_response(None)
        assert json.loads(capfd.readouterr().out) is None
        mgr.format_response("text")
        assert json.loads(capfd.readouterr().out) == "text"

    def test_rich_dict(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).format_response({"key": "value"})
        out = capfd.readouterr().out
        assert "key" in out
        assert "value" in out


class TestPrintTable:
    def test_json_records(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON, no_color=True).print_table(
            ["Id", "Method"], [["r1", "GET"]]
        )
        assert json.loads(capfd.readouterr().out) == [{"Id": "r1", "Method": "GET"}]

    def test_plain_rows(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_table(
            ["Id", "Method"], [["r1", "GET"], ["r2", "POST"]], title="ignored"
        )
        assert capfd.readouterr().out.splitlines() == ["Id\tMethod", "r1\tGET", "r2\tPOST"]

    def test_rich_table(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).print_table(
            ["Id", "URL"], [["r1", "https://api.example.test/users"]], title="Saved requests"
        )
        out = capfd.readouterr().out
        assert "Saved requests" in out
        assert "r1" in out


class TestConfigureLogging:
    def test_installs_single_rich_handler(self, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        configure_logging("INFO", mgr)
        configure_logging("DEBUG", mgr)

        logger = logging.getLogger("apidesk")
        handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
        assert len(handlers) == 1
        assert logger.level == logging.DEBUG

    def test_unknown_level_falls_back_to_warning(self, non_tty):
        configure_logging("LOUD", OutputManager(format=OutputFormat.PLAIN, no_color=True))
        assert logging.getLogger("apidesk").level == logging.WARNING

    def test_records_reach_stderr(self, capfd, non_tty):
        configure_logging("INFO", OutputManager(format=OutputFormat.PLAIN, no_color=True))
        logging.getLogger("apidesk.store").info("Creating empty request document")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "Creating empty request document" in captured.err


class TestGlobalInstance:
    def test_lazy_default(self):
        reset_output()
        assert isinstance(get_output(), OutputManager)
        assert get_output() is get_output()

    def test_set_and_reset(self):
        mgr = OutputManager(quiet=True)
        set_output(mgr)
        assert get_output() is mgr
        reset_output()
        assert output_module._output is None

    def test_convenience_functions_delegate(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.warning("via module")
        output_module.format_response({"k": "v"})
        captured = capfd.readouterr()
        assert "via module" in captured.err
        assert "k\tv" in captured.out
