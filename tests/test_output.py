"""Tests for the output formatting system.

Covers:
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- JSON output
- Error reporting with cause chains
- Logging configuration
- Global instance management
"""

from __future__ import annotations

import json
import logging

import pytest

from overdrip.exceptions import CallbackTimeoutError, ExchangeTransportError
from overdrip.output import (
    OutputManager,
    _should_disable_color,
    configure_logging,
    get_output,
    report_error,
    reset_output,
    set_output,
)
from overdrip import output as output_module


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("overdrip.output._is_tty", lambda: False)


class TestColorDisabling:
    def test_no_color_env_disables_color(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        OutputManager(no_color=True).print_data("https://example.test/auth")
        captured = capfd.readouterr()
        assert captured.out == "https://example.test/auth\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        getattr(OutputManager(no_color=True), method)("hello")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "hello" in captured.err

    def test_error_prefix(self, capfd, non_tty):
        OutputManager(no_color=True).error("boom")
        assert capfd.readouterr().err == "Error: boom\n"

    def test_rich_error_keeps_brackets(self, capfd, non_tty):
        OutputManager().error("bad value [x]")
        assert "bad value [x]" in capfd.readouterr().err


class TestQuietMode:
    def test_quiet_suppresses_info_and_success(self, capfd, non_tty):
        out = OutputManager(no_color=True, quiet=True)
        out.info("info")
        out.success("done")
        out.suggest("next")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_errors_and_data(self, capfd, non_tty):
        out = OutputManager(no_color=True, quiet=True)
        out.error("bad")
        out.warning("careful")
        out.print_data("url")
        captured = capfd.readouterr()
        assert captured.out == "url\n"
        assert "bad" in captured.err
        assert "careful" in captured.err


class TestVerboseMode:
    def test_debug_hidden_by_default(self, capfd, non_tty):
        OutputManager(no_color=True).debug("secret detail")
        assert capfd.readouterr().err == ""

    def test_debug_shown_with_verbose(self, capfd, non_tty):
        out = OutputManager(no_color=True, verbose=True)
        out.debug("detail")
        assert capfd.readouterr().err == "[debug] detail\n"


class TestJson:
    def test_json_is_indented_and_parseable(self, capfd, non_tty):
        OutputManager(no_color=True).print_json({"monitor": {"interval": 60}})
        out = capfd.readouterr().out
        assert json.loads(out) == {"monitor": {"interval": 60}}
        assert "\n  " in out


class TestReportError:
    def test_single_line_without_verbose(self, capfd, non_tty):
        set_output(OutputManager(no_color=True))
        report_error(CallbackTimeoutError("No callback received within 5 seconds"))
        assert capfd.readouterr().err == "Error: No callback received within 5 seconds\n"

    def test_phase_and_cause_with_verbose(self, capfd, non_tty):
        set_output(OutputManager(no_color=True, verbose=True))
        try:
            try:
                raise ConnectionRefusedError("refused")
            except ConnectionRefusedError as cause:
                raise ExchangeTransportError("token endpoint unreachable") from cause
        except ExchangeTransportError as exc:
            report_error(exc)

        err = capfd.readouterr().err
        assert "Error: token endpoint unreachable" in err
        assert "[debug] failed phase: exchange" in err
        assert "caused by ConnectionRefusedError: refused" in err


class TestConfigureLogging:
    def test_levels(self):
        configure_logging(verbose=False)
        assert logging.getLogger().level == logging.WARNING
        configure_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_single_handler(self):
        configure_logging(verbose=False)
        configure_logging(verbose=False)
        assert len(logging.getLogger().handlers) == 1


class TestGlobalInstance:
    def test_lazy_default(self):
        reset_output()
        assert isinstance(get_output(), OutputManager)
        assert get_output() is get_output()

    def test_set_and_reset(self):
        manager = OutputManager(quiet=True)
        set_output(manager)
        assert output_module.get_output() is manager
        reset_output()
        assert output_module.get_output() is not manager
