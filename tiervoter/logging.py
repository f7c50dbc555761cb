"""Structured logging for Tierlist Voter.

Every module logs through ``get_logger(__name__)``, which tags each event
with the short module name (``pairing``, ``session``, ``store`` ...). The
host calls ``configure_logging`` once at startup, usually through
``tiervoter.config.setup_logging``; until then structlog's defaults apply.
"""

import logging
import sys

import structlog
from structlog.dev import ConsoleRenderer
from structlog.processors import (
    JSONRenderer,
    StackInfoRenderer,
    TimeStamper,
    add_log_level,
    format_exc_info,
)


def resolve_level(log_level: str, debug: bool = False) -> int:
    """Numeric level for a level name such as ``"info"`` or ``"WARNING"``.

    Debug mode always wins. Unknown names fall back to INFO.
    """
    if debug:
        return logging.DEBUG
    level = logging.getLevelName(log_level.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    cli_mode: bool = False,
    log_level: str = "INFO",
    debug: bool = False
) -> None:
    """Route voting events to stderr.

    Args:
        cli_mode: Human-readable console lines with a short clock instead of
            one JSON object per event
        log_level: Minimum level name
        debug: Force DEBUG regardless of log_level
    """
    if cli_mode:
        timestamper = TimeStamper(fmt="%H:%M:%S")
        renderer = ConsoleRenderer(colors=sys.stderr.isatty())
    else:
        timestamper = TimeStamper(fmt="iso", utc=True)
        renderer = JSONRenderer(sort_keys=True)

    structlog.configure(
        processors=[
            add_log_level,
            timestamper,
            StackInfoRenderer(),
            format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(resolve_level(log_level, debug)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    """Logger bound to the last dotted part of a module name."""
    return structlog.get_logger().bind(component=name.rsplit(".", 1)[-1])
