"""
Structured logging configuration using structlog.

JSON lines in production, colored console output when running at DEBUG.
Records from the pricing core carry a ``component`` key (``network``,
``quotes``, ``prices``, ``wallet``) so watcher and feed activity can be
filtered without parsing logger names.
"""

import logging
import sys
from typing import Any, Optional

import structlog

from .config import settings

_COMPONENTS = {
    "network_watcher": "network",
    "network": "network",
    "quote_feed": "quotes",
    "quotes": "quotes",
    "prices": "prices",
    "wallet": "wallet",
    "purchases": "purchases",
}


def add_component(_: Any, __: str, event_dict: structlog.types.EventDict) -> structlog.types.EventDict:
    """Derive ``component`` from the last segment of a ``storefront.*`` logger name."""

    name = event_dict.get("logger") or ""
    if name.startswith("storefront.") and "component" not in event_dict:
        component = _COMPONENTS.get(name.rsplit(".", 1)[-1])
        if component:
            event_dict["component"] = component
    return event_dict


def setup_logging(log_level: Optional[str] = None) -> None:
    """Route stdlib and structlog output through one renderer.

    Args:
        log_level: Override log level (default: from settings.log_level)
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    is_dev = level == logging.DEBUG

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_component,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if is_dev:
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    else:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # httpx logs every Coingecko poll at INFO
    for name in ("uvicorn.access", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)
