"""
Structured Logging Configuration
Version: 1.0.0

structlog on top of the standard library logger. Production renders one
JSON object per line; development renders coloured console output.
Entries emitted while serving a request carry its trace ID.
"""
import logging
import sys
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog


# Set by the HTTP middleware; survives awaits within one request
trace_id_var: ContextVar[Optional[str]] = ContextVar('trace_id', default=None)


def set_trace_id(trace_id: Optional[str]) -> None:
    trace_id_var.set(trace_id)


def add_trace_id(logger, method_name, event_dict):
    """Processor: attach the current request's trace ID."""
    trace_id = trace_id_var.get()
    if trace_id and 'trace_id' not in event_dict:
        event_dict['trace_id'] = trace_id
    return event_dict


def add_timestamp(logger, method_name, event_dict):
    event_dict['timestamp'] = datetime.now(timezone.utc).isoformat()
    return event_dict


def service_info_processor(service: str, version: str, environment: str):
    """Processor stamping every JSON entry with where it came from."""
    info: Dict[str, Any] = {'service': service, 'version': version, 'environment': environment}

    def add_service_info(logger, method_name, event_dict):
        for key, value in info.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_info


def configure_logging(
    json_format: bool = False,
    log_level: str = "INFO",
    service: str = "provider-orders",
    version: str = "unknown",
    environment: str = "development"
) -> None:
    """
    Configure structlog and the standard library logger.

    Args:
        json_format: JSON lines when True, console output when False
        log_level: Minimum level for both structlog and stdlib loggers
        service, version, environment: Stamped on JSON entries
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_trace_id,
        add_timestamp,
        structlog.processors.StackInfoRenderer(),
    ]

    if json_format:
        processors.extend([
            service_info_processor(service, version, environment),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ])
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

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
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # One line per upstream call is too much at INFO
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LogTimer:
    """
    Times a block and logs its outcome; the elapsed milliseconds stay
    readable on the timer after the block exits.

    Usage:
        with LogTimer(logger, "Load bookings") as timer:
            ...
        logger.info("Loaded", duration_ms=timer.duration_ms)
    """

    def __init__(self, logger, operation: str, **extra):
        self.logger = logger
        self.operation = operation
        self.extra = extra
        self.started = None
        self.duration_ms = None

    def __enter__(self):
        self.started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = round((time.perf_counter() - self.started) * 1000, 2)

        if exc_type:
            self.logger.error(
                f"{self.operation} failed",
                duration_ms=self.duration_ms,
                error=str(exc_val),
                **self.extra
            )
        else:
            self.logger.debug(
                f"{self.operation} completed",
                duration_ms=self.duration_ms,
                **self.extra
            )

        return False
