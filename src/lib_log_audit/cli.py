"""Click command group exposing metadata, user-agent inspection and a capture demo.

Purpose
-------
Give operators a quick way to check the installed package, see how a
user-agent string decomposes, and watch one guarded operation travel through
the configured sink.

Contents
--------
* :func:`cli` – root group with ``--traceback`` and ``--use-dotenv`` switches.
* ``info``, ``parse-ua`` and ``demo`` commands.
* :func:`main` – entry point delegating to :func:`lib_cli_exit_tools.run_cli`.
"""

from __future__ import annotations

import os
from typing import Sequence

import click
import lib_cli_exit_tools
from rich.console import Console
from rich.table import Table

from . import __init__conf__
from . import config as audit_config
from . import runtime
from .adapters import DEFAULT_TEMPLATE, MappingRequestContext, MemorySink, RichConsoleSink, UserAgentsParser
from .domain import LogRecord, Principal

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

_DEMO_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@click.group(invoke_without_command=True, context_settings=CLICK_CONTEXT_SETTINGS)
@click.version_option(version=__init__conf__.version, prog_name=__init__conf__.shell_command, message="%(prog)s version %(version)s")
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.option(
    "--use-dotenv/--no-use-dotenv",
    default=False,
    help="Load AUDIT_* variables from the nearest .env before running commands.",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool, use_dotenv: bool) -> None:
    """Root command storing global flags and handling ``.env`` loading."""

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback

    explicit: bool | None = None
    if ctx.get_parameter_source("use_dotenv") is not click.core.ParameterSource.DEFAULT:
        explicit = use_dotenv
    if audit_config.should_use_dotenv(explicit=explicit, env_value=os.getenv(audit_config.DOTENV_ENV_VAR)):
        audit_config.enable_dotenv()

    if ctx.invoked_subcommand is None:
        __init__conf__.print_info(writer=lambda text: click.echo(text, nl=False))


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print resolved metadata so users can inspect installation details."""

    __init__conf__.print_info(writer=lambda text: click.echo(text, nl=False))


@cli.command("parse-ua", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("user_agent")
def cli_parse_ua(user_agent: str) -> None:
    """Show how USER_AGENT decomposes into browser, operating system and device."""

    details = UserAgentsParser().parse(user_agent)
    table = Table(title="User agent", show_header=True)
    table.add_column("field")
    table.add_column("value")
    browser = details.browser
    os_ = details.operating_system
    table.add_row("browser", browser.name if browser else "-")
    table.add_row("browser_version", (browser.version or "-") if browser else "-")
    table.add_row("browser_type", browser.type.name if browser else "-")
    table.add_row("os", os_.name if os_ else "-")
    table.add_row("os_version", (os_.version or "-") if os_ else "-")
    table.add_row("device_type", details.device_type.name if details.device_type else "-")
    Console(width=100).print(table)


def _run_demo(*, fail: bool) -> list[LogRecord]:
    """Capture one guarded operation into an in-memory sink and return the records."""

    memory = MemorySink(max_records=10)
    runtime.init(sink=memory)
    try:

        @runtime.audit_log("order.create", business_type="ORDER", description="create order {order_id}")
        def create_order(order_id: int) -> int:
            if fail:
                raise RuntimeError("order rejected")
            return order_id

        request = MappingRequestContext(
            url="https://shop.example/orders",
            method="POST",
            headers={"User-Agent": _DEMO_USER_AGENT, "X-Forwarded-For": "8.8.8.8"},
            remote_addr="10.0.0.1",
        )
        with runtime.bind(request=request, principal=Principal(id="1", user_name="demo"), trace_id="demo-trace"):
            try:
                create_order(42)
            except RuntimeError:
                pass
    finally:
        runtime.shutdown()
    return memory.snapshot()


@cli.command("demo", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--template", default=DEFAULT_TEMPLATE, show_default=True, help="Console ${placeholder} template.")
@click.option("--fail", is_flag=True, default=False, help="Let the guarded operation raise.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print records as JSON lines.")
def cli_demo(template: str, fail: bool, as_json: bool) -> None:
    """Run a guarded operation through the pipeline and print the captured record."""

    records = _run_demo(fail=fail)
    console = Console(width=200)
    renderer = RichConsoleSink(template, console=console, no_color=True)
    for record in records:
        if as_json:
            click.echo(record.to_json())
        else:
            renderer.handle(record)
    click.echo(f"captured {len(records)} record(s)")


def main(argv: Sequence[str] | None = None) -> int:
    """Execute the CLI with error handling and return the exit code.

    Traceback preferences touched by ``--traceback`` are restored afterwards.
    """

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        return lib_cli_exit_tools.run_cli(
            cli,
            argv=list(argv) if argv is not None else None,
            prog_name=__init__conf__.shell_command,
        )
    finally:
        lib_cli_exit_tools.config.traceback = previous_traceback
        lib_cli_exit_tools.config.traceback_force_color = previous_force_color


__all__ = ["cli", "main"]
