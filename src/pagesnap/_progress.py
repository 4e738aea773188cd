# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""CLI progress output.

Written to stderr and only when it is a terminal, so piped stdout carries
nothing but the extraction result.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager, nullcontext

from rich.console import Console


def _stderr_console() -> Console | None:
    console = Console(stderr=True)
    return console if console.is_terminal else None


@contextmanager
def status_spinner(msg: str) -> Iterator[None]:
    """Spinner with *msg* for the duration of the block."""
    console = _stderr_console()
    with console.status(msg) if console else nullcontext():
        yield


def print_step(msg: str, *, style: str = "dim") -> None:
    console = _stderr_console()
    if console:
        console.print(msg, style=style, highlight=False)
