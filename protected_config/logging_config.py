"""
Logging Configuration for protected_config.

Library modules only call logging.getLogger(__name__); nothing is
configured until a host (or the protectctl tool) calls setup_logging().

Usage:
    from protected_config.logging_config import setup_logging, get_logger

    setup_logging(verbose=True)
    logger = get_logger('protected_config.provider')
    logger.info("Load complete", extra={'extra_data': {'keys': 12}})

Log records carry key names and counts only. Values, envelopes and
passwords are never logged.
"""

import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

PACKAGE_LOGGER = 'protected_config'


class ProtectedConfigFormatter(logging.Formatter):
    """Formatter with color support and an optional JSON lines mode."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33;1m',  # Bold yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[31;1m', # Bold red
        'RESET': '\033[0m',
    }

    def __init__(self, use_colors: bool = True, json_format: bool = False):
        self.use_colors = use_colors and sys.stderr.isatty()
        self.json_format = json_format
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        if self.json_format:
            return self._format_json(record)
        return self._format_text(record)

    def _format_text(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        level_name = record.levelname

        if self.use_colors:
            color = self.COLORS.get(level_name, '')
            level_str = f"{color}{level_name:8}{self.COLORS['RESET']}"
        else:
            level_str = f"{level_name:8}"

        component = f"[{self._component(record.name)}]"
        msg = record.getMessage()

        extra_str = ""
        extra_data = getattr(record, 'extra_data', None)
        if extra_data:
            extra_str = " | " + ", ".join(f"{k}={v}" for k, v in extra_data.items())

        text = f"{timestamp} {level_str} {component:14} {msg}{extra_str}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text

    def _format_json(self, record: logging.LogRecord) -> str:
        data: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'component': self._component(record.name),
            'message': record.getMessage(),
        }

        extra_data = getattr(record, 'extra_data', None)
        if extra_data:
            data['extra'] = extra_data

        if record.exc_info:
            data['exception'] = self.formatException(record.exc_info)

        return json.dumps(data, default=str)

    @staticmethod
    def _component(logger_name: str) -> str:
        # protected_config.persister -> persister
        parts = logger_name.split('.')
        if len(parts) >= 2 and parts[0] == PACKAGE_LOGGER:
            return parts[1]
        return parts[0] if parts else 'core'


def setup_logging(
    verbose: bool = False,
    log_file: Optional[str] = None,
    json_format: bool = False,
    console: bool = True,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        verbose: Log at DEBUG level instead of INFO
        log_file: Optional file path for log output
        json_format: Emit one JSON object per line
        console: Log to stderr

    Returns:
        The configured package logger
    """
    level = logging.DEBUG if verbose else logging.INFO
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)

    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(ProtectedConfigFormatter(use_colors=True, json_format=json_format))
        package_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(ProtectedConfigFormatter(use_colors=False, json_format=json_format))
        package_logger.addHandler(file_handler)

    if not package_logger.handlers:
        package_logger.addHandler(logging.NullHandler())

    package_logger.propagate = False
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger below the package logger."""
    if not name.startswith(PACKAGE_LOGGER):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, '').lower() in ('1', 'true', 'yes')


def configure_from_environment() -> logging.Logger:
    """Configure logging from PROTECTED_CONFIG_* environment variables."""
    return setup_logging(
        verbose=_env_flag('PROTECTED_CONFIG_VERBOSE'),
        log_file=os.environ.get('PROTECTED_CONFIG_LOG_FILE'),
        json_format=_env_flag('PROTECTED_CONFIG_LOG_JSON'),
    )


__all__ = [
    'ProtectedConfigFormatter',
    'setup_logging',
    'get_logger',
    'configure_from_environment',
]
