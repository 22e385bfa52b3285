"""
Structured logging for the triage service (structlog on top of stdlib logging).

Cycle-scoped fields such as cycle_id and mailbox are bound with
bind_context() and appear on every line until clear_context().
"""

import logging
import sys

import structlog

# Third-party loggers that log every request or tick at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler.scheduler", "apscheduler.executors.default")


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """
    Set up structlog and the stdlib root logger.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR
        json_output: One JSON object per line when True, coloured console output otherwise
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, usually named after the calling module."""
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """Attach key/value pairs to every log line in the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop everything bound with bind_context()."""
    structlog.contextvars.clear_contextvars()
