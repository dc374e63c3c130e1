# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Structured logging for the workflow engine.

Service code logs through ``log_event`` with keyword fields such as
``execution_id`` and ``workflow_id``; both formatters render those fields
so a single run can be followed across the executor, the node handlers
and the API.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, extra fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_extra_fields(record),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines for local runs; extra fields trail as key=value."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _extra_fields(record)
        if fields:
            line += " " + " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
        return line


def get_logger(
    name: str,
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Path] = None
) -> logging.Logger:
    """
    Configure and return a named logger.

    Handlers are replaced on every call, so reconfiguring (for example when
    a second app is built in tests) never duplicates output.

    Args:
        name: Logger name
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: "json" or "text"
        log_file: Also write to this file
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level.upper())

    formatter = JSONFormatter() if log_format == "json" else TextFormatter()

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(formatter)
    logger.handlers = handlers

    return logger


def log_event(logger: logging.Logger, event: str, level: str = "INFO", **fields: Any) -> None:
    """Log ``event`` with ``fields`` attached as structured data."""
    logger.log(logging.getLevelName(level.upper()), event, extra=fields)


def get_api_logger() -> logging.Logger:
    """Logger for the HTTP routes."""
    return _configured_logger("flashfusion.api")


def get_service_logger(service_name: str) -> logging.Logger:
    """Logger for a service or engine component."""
    return _configured_logger(f"flashfusion.service.{service_name}")


def _configured_logger(name: str) -> logging.Logger:
    from flashfusion.core.config import get_config

    config = get_config()
    return get_logger(name, log_level=config.log_level, log_format=config.log_format)
