"""Opt-in ``.env`` loading for ``AUDIT_*`` configuration.

Purpose
-------
Let operators keep capture settings in a ``.env`` file next to the service
without overriding variables already present in the process environment.

Contents
--------
* :data:`DOTENV_ENV_VAR` – environment toggle honoured by the CLI.
* :func:`should_use_dotenv` – precedence between the CLI flag and the toggle.
* :func:`enable_dotenv` – locate and load the nearest ``.env`` once.
"""

from __future__ import annotations

import threading
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

DOTENV_ENV_VAR = "LIB_LOG_AUDIT_USE_DOTENV"

_TRUTHY = frozenset({"1", "true", "yes", "on"})

_LOCK = threading.Lock()
_LOADED_PATH: Path | None = None
_ATTEMPTED = False


def should_use_dotenv(*, explicit: bool | None = None, env_value: str | None = None) -> bool:
    """Return whether ``.env`` loading is requested.

    An explicit CLI choice wins; otherwise the environment toggle decides.

    Examples
    --------
    >>> should_use_dotenv(explicit=False, env_value="1")
    False
    >>> should_use_dotenv(env_value="yes")
    True
    >>> should_use_dotenv()
    False
    """

    if explicit is not None:
        return explicit
    if env_value is None:
        return False
    return env_value.strip().lower() in _TRUTHY


def enable_dotenv() -> Path | None:
    """Load the nearest ``.env`` above the working directory; existing variables win.

    Returns the resolved path of the loaded file, or ``None`` when none was
    found. Repeated calls reuse the first result.
    """

    global _LOADED_PATH, _ATTEMPTED
    with _LOCK:
        if _ATTEMPTED:
            return _LOADED_PATH
        _ATTEMPTED = True
        found = find_dotenv(usecwd=True)
        if not found:
            return None
        candidate = Path(found).resolve()
        load_dotenv(candidate, override=False)
        _LOADED_PATH = candidate
        return candidate


def _reset_dotenv_state_for_testing() -> None:
    global _LOADED_PATH, _ATTEMPTED
    with _LOCK:
        _LOADED_PATH = None
        _ATTEMPTED = False


__all__ = ["DOTENV_ENV_VAR", "enable_dotenv", "should_use_dotenv"]
