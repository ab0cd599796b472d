import contextvars
import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import yaml

from .config import LOG_FORMAT, LOGGING_CONFIG
from .schemas.options import (
    LOG_LEVEL_DEBUG,
    LOG_LEVEL_ERROR,
    LOG_LEVEL_INFO,
    LOG_LEVEL_OFF,
    LOG_LEVEL_WARN,
)

# Context variable for trace ID
trace_id_var = contextvars.ContextVar('trace_id', default=None)

# "logLevel" 0 silences everything, including CRITICAL
LEVELS = {
    LOG_LEVEL_OFF: logging.CRITICAL + 10,
    LOG_LEVEL_ERROR: logging.ERROR,
    LOG_LEVEL_WARN: logging.WARNING,
    LOG_LEVEL_INFO: logging.INFO,
    LOG_LEVEL_DEBUG: logging.DEBUG,
}

LOGGERS = ("geoip_api", "uvicorn", "uvicorn.error", "uvicorn.access")

_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def get_trace_id() -> Optional[str]:
    """Get the current trace ID from context"""
    return trace_id_var.get()


def to_logging_level(log_level: int) -> int:
    """Map a 0-4 config log level onto a stdlib logging level"""
    return LEVELS.get(log_level, logging.INFO)


class JsonFormatter(logging.Formatter):
    """JSON formatter with structured fields"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "trace_id": getattr(record, "trace_id", None) or get_trace_id(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # Request extras such as method, path, status, client_ip
        for key, value in record.__dict__.items():
            if key not in _RESERVED and key not in log_entry:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def _default_config(level: int, log_format: str) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JsonFormatter},
            "text": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S"
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": log_format,
                "stream": "ext://sys.stdout"
            }
        },
        "loggers": {name: {"level": level} for name in LOGGERS},
        "root": {
            "level": level,
            "handlers": ["console"]
        }
    }


def setup_logging(log_level: int = LOG_LEVEL_INFO, log_format: Optional[str] = None,
                  config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Setup logging configuration from a YAML file or built-in defaults

    Args:
        log_level: Config log level (0:Off, 1:Error, 2:Warn, 3:Info, 4:Debug)
        log_format: "text" or "json"; defaults to the LOG_FORMAT env var
        config_path: YAML dictConfig file; defaults to the LOGGING_CONFIG env var

    Returns:
        The dictConfig that was applied
    """
    level = to_logging_level(log_level)
    log_format = log_format or LOG_FORMAT
    if log_format not in ("text", "json"):
        log_format = "text"
    config_path = config_path or LOGGING_CONFIG

    config = None
    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            print(f"Warning: Could not load {config_path}: {e}")

    if not config:
        config = _default_config(level, log_format)

    # The configured level always wins over the file
    loggers = config.get("loggers") or {}
    for name in LOGGERS:
        loggers.setdefault(name, {})
    config["loggers"] = {name: dict(logger or {}, level=level) for name, logger in loggers.items()}
    config["root"] = dict(config.get("root") or {}, level=level)

    logging.config.dictConfig(config)
    return config
