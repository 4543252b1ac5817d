"""
Structured Logging Module

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

This module provides centralized structured logging for Screener.
It uses Python's logging module with rotating file handlers and structured
JSON-like output, so every pipeline decision (suppression, settle, poll
abort, rename) can be traced per file.

NOTICE: This software is proprietary and confidential.
See LICENSE.txt for full terms and conditions.

Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

import logging
import logging.handlers
import json
import os
from pathlib import Path
from datetime import datetime
from typing import Optional, Union

DEFAULT_LOG_DIR = Path.home() / ".screener" / "logs"


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter that outputs structured log records.

    Each log record is formatted as JSON-like structured data for easy parsing.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format a log record as structured JSON.

        Args:
            record: Log record to format

        Returns:
            str: Formatted log string
        """
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
            'thread': record.threadName
        }

        # Add any extra fields from the record
        if hasattr(record, 'extra_data'):
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class PipelineLogger:
    """
    Wrapper class for pipeline logging with structured output.

    Provides convenience methods for the per-file decisions taken by the
    debouncer, stability poller, feedback ledger and rename coordinator.
    """

    def __init__(self, name: str = 'screener', log_dir: Optional[Union[str, Path]] = None,
                 level: str = 'INFO'):
        """
        Initialize the logger.

        Args:
            name: Logger name (default: 'screener')
            log_dir: Directory for rotating log files
            level: Minimum level written to the log file
        """
        self.logger = logging.getLogger(name)

        # Only configure if not already configured
        if not self.logger.handlers:
            self._configure_logger(log_dir, level)

    def _resolve_log_dir(self, log_dir: Optional[Union[str, Path]]) -> Path:
        if log_dir:
            return Path(log_dir).expanduser()
        env_dir = os.environ.get('SCREENER_LOG_DIR')
        if env_dir:
            return Path(env_dir).expanduser()
        return DEFAULT_LOG_DIR

    def _configure_logger(self, log_dir: Optional[Union[str, Path]], level: str):
        """Configure the logger with rotating file handler and console output."""
        self.logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

        # Console handler for warnings and errors
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(
            logging.Formatter('%(levelname)s: %(message)s')
        )
        self.logger.addHandler(console_handler)

        directory = self._resolve_log_dir(log_dir)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.logger.warning(f"Log directory unavailable ({directory}): {e}; logging to console only")
            return

        # Rotating file handler (10MB max, 5 backups)
        log_file = directory / "screener.log"
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter())
        self.logger.addHandler(file_handler)

    def set_console_level(self, level: int):
        """Change the threshold of the console handler (used by --verbose)."""
        for handler in self.logger.handlers:
            if type(handler) is logging.StreamHandler:
                handler.setLevel(level)

    def info(self, message: str, **kwargs):
        """Log info message with optional extra data."""
        self.logger.info(message, extra={'extra_data': kwargs})

    def warning(self, message: str, **kwargs):
        """Log warning message with optional extra data."""
        self.logger.warning(message, extra={'extra_data': kwargs})

    def error(self, message: str, exc_info: bool = False, **kwargs):
        """Log error message with optional extra data."""
        self.logger.error(message, exc_info=exc_info, extra={'extra_data': kwargs})

    def debug(self, message: str, **kwargs):
        """Log debug message with optional extra data."""
        self.logger.debug(message, extra={'extra_data': kwargs})

    def event_suppressed(self, file_path: str, kind: str):
        """Log a notification dropped because the pipeline produced the file itself."""
        self.info(
            "Ignoring event for file produced by rename",
            file_path=file_path,
            kind=kind,
            event_type='event_suppressed'
        )

    def file_settled(self, file_path: str):
        """Log the end of a debounce window."""
        self.debug(
            "Debounced event settled, starting size polling",
            file_path=file_path,
            event_type='file_settled'
        )

    def poll_aborted(self, file_path: str, reason: str, attempt: int, error: str):
        """Log a poll cycle that ended without a stable size."""
        self.warning(
            f"Polling aborted ({reason}): {error}",
            file_path=file_path,
            reason=reason,
            attempt=attempt,
            event_type='poll_aborted'
        )

    def file_ready(self, file_path: str, size: int, attempt: int):
        """Log a file whose size settled."""
        self.info(
            "File size stable, submitting for classification",
            file_path=file_path,
            size=size,
            attempt=attempt,
            event_type='file_ready'
        )

    def classifier_failure(self, file_path: str, reason: str, error: str):
        """Log a classification request that failed."""
        self.error(
            f"Classification failed: {error}",
            file_path=file_path,
            reason=reason,
            event_type='classifier_failure'
        )

    def rename_result(self, original_path: str, final_path: Optional[str],
                      outcome: str, suggested_name: Optional[str] = None,
                      error: Optional[str] = None):
        """Log the outcome of a rename attempt."""
        fields = dict(
            original_path=original_path,
            final_path=final_path,
            outcome=outcome,
            suggested_name=suggested_name,
            error=error,
            event_type='rename_result'
        )
        if outcome in ('renamed', 'unchanged', 'collision', 'duplicate'):
            self.info(f"Rename {outcome}: {original_path} -> {final_path}", **fields)
        else:
            self.error(f"Rename {outcome}: {original_path} ({error})", **fields)


# Global logger instance
_logger_instance: Optional[PipelineLogger] = None


def get_logger(name: str = 'screener', log_dir: Optional[Union[str, Path]] = None,
               level: str = 'INFO') -> PipelineLogger:
    """
    Get or create the global logger instance.

    The first call decides the log directory and level; later calls return
    the same instance.

    Args:
        name: Logger name
        log_dir: Directory for log files (first call only)
        level: Log level (first call only)

    Returns:
        PipelineLogger: Logger instance
    """
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = PipelineLogger(name, log_dir=log_dir, level=level)
    return _logger_instance
