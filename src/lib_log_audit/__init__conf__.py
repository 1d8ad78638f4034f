"""Static package metadata surfaced by the CLI ``info`` command."""

from __future__ import annotations

from importlib import metadata as _metadata
from typing import Callable

name = "lib_log_audit"
title = "Audit and event capture pipeline for guarded operations"
homepage = "https://github.com/bitranox/lib_log_audit"
author = "bitranox"
author_email = "bitranox@gmail.com"
shell_command = "lib_log_audit"


def _resolve_version() -> str:
    try:
        return _metadata.version(name)
    except _metadata.PackageNotFoundError:
        return "0.0.0.dev0"


version = _resolve_version()


def print_info(writer: Callable[[str], object] | None = None) -> str:
    """Render the metadata banner; send it to ``writer`` when given.

    Examples
    --------
    >>> lines = []
    >>> banner = print_info(writer=lines.append)
    >>> banner.splitlines()[0]
    'Info for lib_log_audit:'
    >>> lines == [banner]
    True
    """

    fields = [
        ("name", name),
        ("title", title),
        ("version", version),
        ("homepage", homepage),
        ("author", author),
        ("author_email", author_email),
        ("shell_command", shell_command),
    ]
    pad = max(len(label) for label, _ in fields)
    lines = [f"Info for {name}:", ""]
    lines.extend(f"    {label.ljust(pad)} = {value}" for label, value in fields)
    banner = "\n".join(lines) + "\n"
    if writer is not None:
        writer(banner)
    return banner


__all__ = ["author", "author_email", "homepage", "name", "print_info", "shell_command", "title", "version"]
