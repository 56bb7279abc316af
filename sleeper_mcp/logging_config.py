"""
Structured logging configuration for the Sleeper MCP Server.

Installs a JSON formatter on stderr (and optionally a rotating file) through
logging.config.dictConfig. Call setup_logging() once from the entry point.
"""

import logging
import logging.config
import json
import sys
from datetime import datetime, UTC
from typing import Optional
from pathlib import Path

# Attributes every LogRecord carries; anything else came in through `extra`.
_STANDARD_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """Custom formatter that outputs structured JSON logs."""

    def __init__(self, service_name: str = "sleeper-mcp-server", version: str = "0.1.0"):
        super().__init__()
        self.service_name = service_name
        self.version = version

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "version": self.version,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, value in vars(record).items():
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_"):
                log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_entry["stack_info"] = record.stack_info

        return json.dumps(log_entry, default=str)


def setup_logging(
    log_level: str = "INFO",
    service_name: str = "sleeper-mcp-server",
    version: str = "0.1.0",
    enable_file_logging: bool = False,
    log_file_path: Optional[str] = None,
    structured: bool = True
) -> None:
    """
    Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        service_name: Name of the service for log entries
        version: Version of the service
        enable_file_logging: Whether to enable file logging
        log_file_path: Path to log file (defaults to logs/sleeper_mcp.log)
        structured: JSON output when True, plain text otherwise
    """
    formatter = "structured" if structured else "simple"
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": StructuredFormatter,
                "service_name": service_name,
                "version": version
            },
            "simple": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S"
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": formatter,
                # stdout is reserved for the stdio transport
                "stream": sys.stderr
            }
        },
        "loggers": {
            "sleeper_mcp": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False
            },
            "httpx": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False
            },
            "uvicorn": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False
            }
        },
        "root": {
            "level": log_level,
            "handlers": ["console"]
        }
    }

    if enable_file_logging:
        if log_file_path is None:
            log_file_path = str(Path("logs") / "sleeper_mcp.log")
        Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "structured",
            "filename": log_file_path,
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 5,
            "encoding": "utf8"
        }
        config["loggers"]["sleeper_mcp"]["handlers"].append("file")
        config["root"]["handlers"].append("file")

    logging.config.dictConfig(config)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: str, message: str, **context) -> None:
    """
    Log a message with additional context fields.

    The fields show up as top-level keys in the structured output.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Log message
        **context: Additional context fields to include in log
    """
    logger.log(getattr(logging, level.upper()), message, extra=context)
