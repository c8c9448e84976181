"""Logging configuration for Hummingbird."""

import logging
import sys
from typing import Any

import structlog

from hummingbird.config import Config, get_config


def _redaction_processor(replacement: str):
    """Build a structlog processor that scrubs secrets from string fields."""
    from hummingbird.policy.redaction import RedactionOptions, redact_secrets

    options = RedactionOptions(replacement=replacement)

    def processor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        for key, value in event_dict.items():
            if isinstance(value, str):
                event_dict[key] = redact_secrets(value, options)
        return event_dict

    return processor


def configure_logging(config: Config | None = None) -> None:
    """Configure structured logging for Hummingbird."""
    config = config or get_config()

    log_level = getattr(logging, config.logging.level.upper(), logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if config.logging.redact_secrets and config.redaction.enabled:
        processors.append(_redaction_processor(config.redaction.replacement))

    if config.logging.format == "console":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger instance.

    Args:
        name: Optional logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()
