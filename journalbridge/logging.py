"""
Structured logging configuration using structlog.

Standardized log format:
{
    "ts": "2025-11-18T04:30:00.123456Z",
    "level": "error",
    "service": "journalbridge",
    "event": "event.translation_failed",
    "module": "journalbridge.services.event_broker",
    "function": "on_next",
    "line": 42,
    ...additional context...
}
"""
import structlog
import logging
from typing import Any

SERVICE_NAME = "journalbridge"


def add_module_info(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Add module, function, and line number to log entries."""
    # Skip this module's processors so the caller's frame is reported
    frame = structlog._frames._find_first_app_frame_and_name(additional_ignores=[__name__])[0]
    if frame:
        event_dict["module"] = frame.f_globals.get("__name__", "unknown")
        event_dict["function"] = frame.f_code.co_name
        event_dict["line"] = frame.f_lineno
    return event_dict


def setup_logging(json_output: bool = True, service_name: str = SERVICE_NAME, level: int = logging.INFO):
    """
    Configure structured logging with standardized fields.

    Args:
        json_output: If True, output JSON logs. If False, use console format.
        service_name: Name reported in the "service" field of every entry.
        level: Minimum level to emit.
    """

    def _service(logger: Any, method_name: str, event_dict: dict) -> dict:
        event_dict["service"] = service_name
        return event_dict

    shared_processors = [
        # Add contextvars (flush_id and friends bound by the broker)
        structlog.contextvars.merge_contextvars,
        _service,
        structlog.processors.TimeStamper(fmt="iso", key="ts"),
        structlog.processors.add_log_level,
        add_module_info,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Route third-party stdlib logging (httpx) through the same level
    logging.basicConfig(
        format="%(message)s",
        level=level,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger():
    """Get a configured structlog logger."""
    return structlog.get_logger()
