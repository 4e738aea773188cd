# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge for the command line.

Leaf module: no pagesnap imports. Library code only calls
``logging.getLogger(__name__)``; the CLI calls :func:`configure` once.
Both stdlib records and structlog events end up in one stderr handler,
rendered for a terminal or as JSON lines.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Third-party loggers that flood DEBUG output during a CDP-heavy pass.
_NOISY_LOGGERS = ("asyncio", "playwright")


def _pre_chain() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def build_formatter(*, json_output: bool) -> structlog.stdlib.ProcessorFormatter:
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=_pre_chain(),
    )


def _level_number(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure(*, json_output: bool = False, level: str = "INFO") -> None:
    """Install the stderr handler. Calling again replaces it.

    Args:
        json_output: True for JSON lines, False for human-readable output.
        level: Root logger level name; unknown names mean INFO.
    """
    structlog.configure(
        processors=[*_pre_chain(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(build_formatter(json_output=json_output))

    root_level = _level_number(level)
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(root_level)

    # quiet unless the root is stricter still
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(root_level, logging.WARNING))
