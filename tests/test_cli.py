"""CLI behaviour coverage for the click command group."""

from __future__ import annotations

import json
import re
import sys

import lib_cli_exit_tools
import pytest
from click.testing import CliRunner

from lib_log_audit import __init__conf__, runtime
from lib_log_audit import cli as cli_mod

from .fakes import CHROME_120_WINDOWS

ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    """Return ``text`` without ANSI colour codes.

    Examples
    --------
    >>> strip_ansi("\x1b[31mred\x1b[0m")
    'red'
    """

    return ANSI_RE.sub("", text)


def run_cli(args: list[str] | None = None) -> tuple[int, str, BaseException | None]:
    """Invoke the click group with ``CliRunner`` and capture output."""

    runner = CliRunner()
    original_argv = sys.argv
    sys.argv = [__init__conf__.shell_command]
    try:
        result = runner.invoke(cli_mod.cli, args or [], prog_name=__init__conf__.shell_command)
    finally:
        sys.argv = original_argv
    return result.exit_code, result.output, result.exception


def test_cli_without_subcommand_prints_info() -> None:
    exit_code, stdout, _ = run_cli()

    assert exit_code == 0
    assert stdout == __init__conf__.print_info()


def test_cli_info_command_matches_banner() -> None:
    exit_code, stdout, _ = run_cli(["info"])

    assert exit_code == 0
    assert stdout.startswith("Info for lib_log_audit:")
    assert f"shell_command = {__init__conf__.shell_command}" in stdout


def test_cli_version_option() -> None:
    exit_code, stdout, _ = run_cli(["--version"])

    assert exit_code == 0
    assert stdout.strip() == f"{__init__conf__.shell_command} version {__init__conf__.version}"


def test_cli_no_traceback_option(monkeypatch: pytest.MonkeyPatch) -> None:
    """`--no-traceback` should disable verbose tracebacks for subsequent commands."""

    monkeypatch.setattr(lib_cli_exit_tools.config, "traceback", True, raising=False)
    monkeypatch.setattr(lib_cli_exit_tools.config, "traceback_force_color", True, raising=False)

    exit_code, _stdout, _exception = run_cli(["--no-traceback", "info"])

    assert exit_code == 0
    assert lib_cli_exit_tools.config.traceback is False
    assert lib_cli_exit_tools.config.traceback_force_color is False


def test_cli_parse_ua_prints_decomposition() -> None:
    exit_code, stdout, _ = run_cli(["parse-ua", CHROME_120_WINDOWS])
    text = strip_ansi(stdout)

    assert exit_code == 0
    assert "Chrome" in text
    assert "Windows" in text
    assert "COMPUTER" in text
    assert "WEB_BROWSER" in text


def test_cli_parse_ua_marks_unknown_fields() -> None:
    exit_code, stdout, _ = run_cli(["parse-ua", "zzz"])

    assert exit_code == 0
    assert "device_type" in strip_ansi(stdout)
    assert " - " in strip_ansi(stdout)


def test_cli_demo_renders_captured_record() -> None:
    exit_code, stdout, exception = run_cli(["demo", "--template", "${event}|${status}|${client_ip}|${principal}"])

    assert exit_code == 0, exception
    lines = strip_ansi(stdout).splitlines()
    assert "order.create|SUCCESS|8.8.8.8|demo" in lines
    assert lines[-1] == "captured 1 record(s)"
    assert runtime.is_initialised() is False


def test_cli_demo_failure_as_json() -> None:
    exit_code, stdout, exception = run_cli(["demo", "--fail", "--json"])

    assert exit_code == 0, exception
    payload = json.loads(stdout.splitlines()[0])
    assert payload["status"] == "FAILURE"
    assert payload["description"] == "create order 42"
    assert payload["trace_id"] == "demo-trace"
    assert payload["browser"]["name"] == "Chrome"


def test_main_restores_traceback_preferences(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(lib_cli_exit_tools.config, "traceback", False, raising=False)
    monkeypatch.setattr(lib_cli_exit_tools.config, "traceback_force_color", False, raising=False)

    exit_code = cli_mod.main(["--traceback", "info"])

    assert exit_code == 0
    assert lib_cli_exit_tools.config.traceback is False
    assert lib_cli_exit_tools.config.traceback_force_color is False
