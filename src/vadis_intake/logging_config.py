"""structlog setup for the client and the ``vadis`` CLI.

Log lines are written to stderr; stdout is reserved for command output
such as ``--json``. Values normally come from ``Settings``:

    setup_logging(config.service_name, config.log_format, config.log_level)
    logger = get_logger(__name__)
    logger.info("analysis_run_started", features=8)

Events logged inside ``structlog.contextvars.bound_contextvars(project_id=...)``
carry the project id.
"""

import logging
import sys
from typing import Literal

import structlog
from structlog.types import Processor


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def setup_logging(
    service_name: str = "vadis-intake",
    log_format: Literal["json", "console"] = "console",
    log_level: str = "INFO",
) -> None:
    """Configure structlog on top of the standard library root logger.

    Safe to call more than once; each call replaces the previous handlers.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level, force=True)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        _renderer(log_format),
    ]
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service=service_name)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
