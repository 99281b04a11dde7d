"""Coordinate project command entry points.

'why': centralize developer workflows for `uv run` execution
"""
from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from typing import Final

_LOGGER = logging.getLogger("add_api_key.scripts")
_COMMANDS: Final[tuple[tuple[str, ...], ...]] = (
    ("pytest",),
    ("ruff", "check", "."),
    ("basedpyright", "check", "."),
)
_LIVE_COMMAND: Final[tuple[str, ...]] = ("python", "-m", "add_api_key.live_test.test")


def check() -> None:
    """Run tests, lint, and type checks, exiting on the first failure."""

    _ensure_logging()
    for command in _COMMANDS:
        exit_code = _run_command(command)
        if exit_code != 0:
            raise SystemExit(exit_code)


def live_check() -> None:
    """Run the live add/remove round against a real AWS account."""

    _ensure_logging()
    raise SystemExit(_run_command(_LIVE_COMMAND))


def _ensure_logging() -> None:
    if not _LOGGER.handlers:
        logging.basicConfig(level=logging.INFO, format="%(message)s")


def _run_command(command: Sequence[str]) -> int:
    """Run `command` and return its exit status without raising on failure."""

    _LOGGER.info("→ %s", " ".join(command))
    completed = subprocess.run(command, check=False)
    return completed.returncode
