"""Structured logging configuration.

Every event carries the process role (api or worker) and the chain it talks
to, so API and worker logs from several deployments can share one sink.
"""

import logging
import sys
from typing import Any, cast

import structlog

from meetauction.config import get_settings

# Third-party loggers that are chatty at INFO or DEBUG
QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "httpx", "httpcore", "web3", "aiohttp", "arq")


def setup_logging(role: str = "api") -> None:
    """Configure structlog for one process."""
    settings = get_settings()

    log_level = logging.DEBUG if settings.app_debug else logging.INFO

    process_context = {
        "role": role,
        "chain_id": settings.chain_id,
        "contract": settings.auction_contract_address.lower(),
    }

    def add_process_context(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        for key, value in process_context.items():
            event_dict.setdefault(key, value)
        return event_dict

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_process_context,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_development:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    for logger_name in QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
