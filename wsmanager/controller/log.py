"""Logging configuration using loguru.

Every record the controller process emits goes through one loguru sink.
Standard-library loggers (uvicorn, redis, asyncio) are forwarded into it,
keeping their logger name as the ``source`` extra.  Reconcile passes bind
``controller`` and ``workspace``; the text format renders them when set,
and the JSON format (``WSMAN_LOG_JSON=true``) carries them as fields for
the cluster's log collector.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from typing import Any, TextIO

from loguru import logger

NOISY_LOGGERS: tuple[str, ...] = ("uvicorn.access", "asyncio", "redis")

_TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[source]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan>"
    "{extra[context]} - <level>{message}</level>"
)


def _stdlib_depth() -> int:
    """Number of frames between loguru and the code that called ``logging``."""
    frame = logging.currentframe()
    depth = 0
    # Skip this helper and the handler, then every frame inside logging itself.
    while frame is not None and (depth < 2 or frame.f_code.co_filename == logging.__file__):
        frame = frame.f_back
        depth += 1
    return depth - 1


class _StdlibForwarder(logging.Handler):
    """Re-emit stdlib records through loguru under their original logger name."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.bind(source=record.name).opt(depth=_stdlib_depth(), exception=record.exc_info).log(
            level, record.getMessage()
        )


def _patch_context(record: Any) -> None:
    # Fill the fields the text format expects; loguru calls the patcher for every record.
    extra = record["extra"]
    extra.setdefault("source", record["name"])
    context = ""
    if "controller" in extra:
        context += f" [{extra['controller']}]"
    if "workspace" in extra:
        context += f" ws={extra['workspace']}"
    extra["context"] = context


def setup_logging(
    level: str = "INFO",
    *,
    json: bool = False,
    sink: TextIO | None = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Make loguru the only logging sink of the process.

    Call once at startup, before uvicorn starts.  *sink* defaults to stderr.
    Loggers named in *quiet* are raised to WARNING.
    """
    level = level.upper()

    logger.remove()
    logger.configure(patcher=_patch_context)
    if json:
        logger.add(sink or sys.stderr, level=level, serialize=True)
    else:
        logger.add(sink or sys.stderr, level=level, format=_TEXT_FORMAT)

    logging.basicConfig(handlers=[_StdlibForwarder()], level=0, force=True)
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging initialised (level={}, json={})", level, json)
