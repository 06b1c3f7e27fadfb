"""Structured logging configuration using structlog."""

import logging
import re
import sys
from pathlib import Path
from typing import Optional

import structlog

# Patterns to redact from log output
_REDACT_PATTERNS = [
    (re.compile(r"(sk-ant-[a-zA-Z0-9_-]{10})[a-zA-Z0-9_-]*"), r"\1...REDACTED"),
    # Google API keys
    (re.compile(r"(AIza[a-zA-Z0-9_-]{4})[a-zA-Z0-9_-]{20,}"), r"\1...REDACTED"),
    (re.compile(r"(api[_-]?key['\"]?\s*[:=]\s*['\"]?)[a-zA-Z0-9_-]{10,}"), r"\1REDACTED"),
]


def redact(text: str) -> str:
    for pattern, replacement in _REDACT_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def _redact_sensitive(_, __, event_dict: dict) -> dict:
    """Structlog processor to redact API keys from log output."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = redact(value)
    return event_dict


def setup_logging(
    json_mode: bool = False, level: str = "INFO", log_file: Optional[Path] = None
) -> None:
    """Configure structlog with appropriate renderer.

    Args:
        json_mode: Use JSON renderer (machine consumption).
                   False = console renderer.
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Also write JSON lines to this file.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            [
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _redact_sensitive,
    ]

    renderer = structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    def formatter_for(final_renderer) -> structlog.stdlib.ProcessorFormatter:
        return structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                final_renderer,
            ],
        )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter_for(renderer))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter_for(structlog.processors.JSONRenderer()))
        root.addHandler(file_handler)

    root.setLevel(log_level)
