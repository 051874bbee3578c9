"""
Logger module - Logging configuration and utilities

Provides get_logger(), which configures the ComprehensiveLogger from
config.properties / environment on first use:

    BID_LOG_FOLDER                 folder for rotating log files (./logs)
    BID_LOG_LEVEL                  DEBUG, INFO, WARNING, ERROR, CRITICAL
    BID_ENABLE_CONSOLE_LOGGING     true/false
    BID_ENABLE_FILE_LOGGING        true/false
    BID_LOG_MAX_BYTES              rotation size in bytes
    BID_LOG_BACKUP_COUNT           rotated files to keep
"""

import logging
import sys
import os
from typing import Optional, Any

_comprehensive_logger_initialized = False


def _ensure_comprehensive_logger_initialized():
    """
    Initialize ComprehensiveLogger with environment configuration on first use.
    This is called automatically by get_logger().
    """
    global _comprehensive_logger_initialized

    if _comprehensive_logger_initialized:
        return

    _comprehensive_logger_initialized = True

    try:
        from .comprehensive_logger import ComprehensiveLogger
        from break_it_down.config import ConfigProperties

        ConfigProperties.load_env_file()
        ComprehensiveLogger.initialize(**ConfigProperties.get_logging_config())

    except (OSError, ValueError) as e:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        logging.getLogger(__name__).warning(
            f"Failed to initialize ComprehensiveLogger: {e}. Using basic logging."
        )


def get_logger(name: str, level: Optional[str] = None) -> Any:
    """
    Get or create a logger with standard formatting and environment configuration.

    The first call initializes the ComprehensiveLogger system, which loads
    configuration and enables file and console logging.

    Args:
        name: Logger name (typically __name__)
        level: Optional logging level override for the fallback logger

    Returns:
        Configured logger instance (TaskLogger or basic Logger)
    """
    _ensure_comprehensive_logger_initialized()

    try:
        from .comprehensive_logger import ComprehensiveLogger as CL
        return CL.get_logger(name)
    except (OSError, ValueError):
        logger = logging.getLogger(name)

        if not logger.handlers:
            level = (level or os.getenv("BID_LOG_LEVEL", "INFO")).upper()
            logger.setLevel(getattr(logging, level, logging.INFO))

            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            logger.addHandler(handler)

        return logger
