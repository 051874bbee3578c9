"""
Logging System with File and Console Output

Features:
- Configurable log folder (via config.properties / environment)
- Console and rotating file logging
- Structured extra context appended as JSON
- Performance metrics helper
"""

import logging
import logging.handlers
import sys
import os
from pathlib import Path
from typing import Optional, Dict, Any
import json


class SafeStreamHandler(logging.StreamHandler):
    """
    StreamHandler that never raises on unencodable characters.
    Uses 'replace' error handling to avoid UnicodeEncodeError.
    """
    def emit(self, record):
        try:
            msg = self.format(record)
            stream = self.stream
            try:
                stream.write(msg + self.terminator)
            except UnicodeEncodeError:
                encoding = getattr(stream, "encoding", None) or "utf-8"
                stream.write(msg.encode(encoding, errors="replace").decode(encoding) + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)


class ComprehensiveLogger:
    """
    Centralized logging system with file and console support.

    Usage:
        ComprehensiveLogger.initialize(log_folder="./logs", log_level="DEBUG")
        logger = ComprehensiveLogger.get_logger("my_module")
        logger.info("Message", extra={"task_id": "abc"})
    """

    _loggers: Dict[str, "TaskLogger"] = {}
    _log_folder: Optional[str] = None
    _config: Dict[str, Any] = {}

    @classmethod
    def initialize(
        cls,
        log_folder: Optional[str] = None,
        log_level: str = "INFO",
        enable_console: bool = True,
        enable_file: bool = True,
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
    ) -> None:
        """
        Initialize the logging system.

        Args:
            log_folder: Folder for log files (default: ./logs)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            enable_console: Enable console logging
            enable_file: Enable file logging
            max_bytes: Max file size before rotation (default: 10MB)
            backup_count: Number of backup files to keep
        """
        cls._log_folder = log_folder or "./logs"
        cls._config = {
            "log_level": log_level.upper(),
            "enable_console": enable_console,
            "enable_file": enable_file,
            "max_bytes": max_bytes,
            "backup_count": backup_count,
        }
        # Loggers created before initialize() pick up the new handlers
        cls._loggers = {}

        if enable_file:
            Path(cls._log_folder).mkdir(parents=True, exist_ok=True)

    @classmethod
    def get_logger(cls, name: str) -> "TaskLogger":
        """
        Get or create a logger instance.

        Args:
            name: Logger name (typically __name__)

        Returns:
            TaskLogger instance
        """
        if name not in cls._loggers:
            cls._loggers[name] = TaskLogger(name, cls._log_folder, cls._config)

        return cls._loggers[name]


class TaskLogger:
    """
    Individual logger instance with file and console support.
    """

    def __init__(
        self,
        name: str,
        log_folder: Optional[str],
        config: Dict[str, Any],
    ):
        self.name = name
        self.log_folder = log_folder or "./logs"
        self.config = config
        self.logger = logging.getLogger(name)
        self.logger.setLevel(config.get("log_level", "INFO"))

        self.logger.handlers.clear()

        if config.get("enable_console"):
            self._add_console_handler()

        if config.get("enable_file"):
            self._add_file_handler()

    def _add_console_handler(self) -> None:
        handler = SafeStreamHandler(sys.stdout)
        handler.setLevel(self.config.get("log_level", "INFO"))

        formatter = logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        self.logger.addHandler(handler)

    def _add_file_handler(self) -> None:
        """Add rotating file handler with UTF-8 encoding."""
        Path(self.log_folder).mkdir(parents=True, exist_ok=True)

        log_file = os.path.join(self.log_folder, f"{self.name}.log")

        try:
            handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=self.config.get("max_bytes", 10 * 1024 * 1024),
                backupCount=self.config.get("backup_count", 5),
                encoding='utf-8'
            )
            handler.setLevel(self.config.get("log_level", "INFO"))

            formatter = logging.Formatter(
                '%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
        except OSError as e:
            self.logger.error(f"Failed to add file handler: {e}")

    def debug(self, message: str, extra: Optional[Dict] = None):
        self._log("DEBUG", message, extra)

    def info(self, message: str, extra: Optional[Dict] = None):
        self._log("INFO", message, extra)

    def warning(self, message: str, extra: Optional[Dict] = None):
        self._log("WARNING", message, extra)

    def error(self, message: str, extra: Optional[Dict] = None):
        self._log("ERROR", message, extra)

    def _log(self, level: str, message: str, extra: Optional[Dict] = None) -> None:
        """
        Internal logging method.

        Args:
            level: Log level
            message: Log message
            extra: Extra context dict, appended as JSON
        """
        log_func = getattr(self.logger, level.lower())

        if extra:
            message = f"{message} | {json.dumps(extra, default=str)}"

        log_func(message)

    def log_performance(
        self,
        operation: str,
        duration_seconds: float,
        success: bool = True,
        metadata: Optional[Dict] = None
    ) -> None:
        """
        Log performance metrics.

        Args:
            operation: Operation name
            duration_seconds: Duration in seconds
            success: Whether operation succeeded
            metadata: Additional metadata
        """
        status = "ok" if success else "failed"
        log_message = f"{operation} {status} in {duration_seconds:.2f}s"

        extra = dict(metadata or {})
        extra.update({
            "operation": operation,
            "duration_seconds": round(duration_seconds, 4),
            "success": success
        })

        log_func = self.info if success else self.warning
        log_func(log_message, extra=extra)

    def flush(self) -> None:
        for handler in self.logger.handlers:
            handler.flush()
