"""Tests for the output formatting system.

Covers format resolution, colour disabling, stdout/stderr discipline,
quiet and verbose modes, and record/table rendering.
"""

from __future__ import annotations

import json

import pytest

from arcauth import output as output_module
from arcauth.output import OutputFormat, OutputManager, get_output, reset_output, set_output


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("arcauth.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("arcauth.output._is_tty", lambda: True)


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_env_forces_plain(self, tty, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_term_dumb_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_explicit_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestRecords:
    def test_json_record(self, capsys):
        OutputManager(format=OutputFormat.JSON).print_record({"user_id": "u1", "email": None})
        captured = capsys.readouterr()
        assert json.loads(captured.out) == {"user_id": "u1", "email": None}
        assert captured.err == ""

    def test_plain_record(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_record(
            {"user_id": "u1", "email": None}
        )
        assert capsys.readouterr().out == "user_id\tu1\nemail\t-\n"

    def test_plain_table(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_table(
            ["Provider", "Available"], [["apple", "yes"]]
        )
        assert capsys.readouterr().out == "Provider\tAvailable\napple\tyes\n"

    def test_json_table(self, capsys):
        OutputManager(format=OutputFormat.JSON).print_table(["Provider"], [["apple"], ["email"]])
        assert json.loads(capsys.readouterr().out) == [{"Provider": "apple"}, {"Provider": "email"}]


class TestDiagnostics:
    def test_diagnostics_go_to_stderr(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.info("hello")
        mgr.error("broken")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "hello" in captured.err
        assert "Error: broken" in captured.err

    def test_quiet_suppresses_info_but_not_errors(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.success("hidden too")
        mgr.suggest("hidden as well")
        mgr.warning("careful")
        mgr.error("broken")
        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "Warning: careful" in err
        assert "Error: broken" in err

    def test_debug_only_when_verbose(self, capsys):
        OutputManager(no_color=True).debug("quiet")
        OutputManager(no_color=True, verbose=True).debug("loud")
        err = capsys.readouterr().err
        assert "quiet" not in err
        assert "[debug] loud" in err

    def test_suggest_prefix(self, capsys):
        OutputManager(no_color=True).suggest("Sign in again")
        assert "→ Sign in again" in capsys.readouterr().err


class TestGlobalInstance:
    def test_lazy_default(self):
        reset_output()
        assert isinstance(get_output(), OutputManager)

    def test_set_and_module_helpers(self, capsys):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.info("via helper")
        output_module.print_record({"k": "v"})
        captured = capsys.readouterr()
        assert "via helper" in captured.err
        assert captured.out == "k\tv\n"
