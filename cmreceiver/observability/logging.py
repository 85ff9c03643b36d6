"""Structured logging configuration using structlog.

Application code logs through structlog.  Libraries that use the standard
``logging`` module (uvicorn, aiohttp, kubernetes-asyncio) are routed through
the same renderer so every line on stderr has one shape.
"""

from __future__ import annotations

import logging
import sys

import structlog

_NOISY_LOGGERS = ("aiohttp.access", "kubernetes_asyncio.client.rest")


def _renderer(fmt: str) -> structlog.typing.Processor:
    if fmt == "console":
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer(default=str)


def setup_logging(level: str = "info", fmt: str = "json", cache_loggers: bool = True) -> None:
    """Configure structlog and the stdlib root logger.

    ``fmt`` is ``json`` (one object per line) or ``console`` (human readable).
    One-shot commands pass ``cache_loggers=False`` so a later reconfiguration
    still reaches module-level loggers.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            timestamper,
            _renderer(fmt),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=cache_loggers,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_renderer(fmt),
            foreign_pre_chain=[
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                timestamper,
            ],
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]
