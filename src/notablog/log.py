"""Structured logger construction.

Loggers are built explicitly from run configuration and handed to each
component; nothing here touches structlog's global configuration.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, TextIO

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger, Processor

    from notablog.config import LoggingSettings


class _StderrProxy:
    """File-like proxy that always writes to the current ``sys.stderr``.

    Lets pytest's capture swap ``sys.stderr`` after a logger was built.
    """

    def write(self, s: str) -> int:
        return sys.stderr.write(s)

    def flush(self) -> None:
        sys.stderr.flush()

    def isatty(self) -> bool:
        return sys.stderr.isatty()


_stderr_proxy: TextIO = _StderrProxy()  # type: ignore[assignment]


def make_logger(
    settings: LoggingSettings,
    verbose: bool = False,
    stream: TextIO | None = None,
) -> FilteringBoundLogger:
    """Build a bound logger for one run.

    ``verbose`` forces DEBUG regardless of the configured level.
    """
    level = logging.DEBUG if verbose else logging.getLevelNamesMapping()[settings.level]
    out = stream if stream is not None else _stderr_proxy

    processors: list[Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if settings.format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=out.isatty()))

    return structlog.wrap_logger(
        structlog.PrintLogger(file=out),
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
    ).bind(app="notablog")
