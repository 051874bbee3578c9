"""
Utilities module - Logging and exception helpers
"""

from .logger import get_logger
from .comprehensive_logger import ComprehensiveLogger, TaskLogger
from .activity_logger import ActivityLogger, LogCategory
from .exceptions import (
    BreakItDownError,
    ConfigurationError,
    ValidationError,
    InvalidParameterError,
    ResourceError,
    NetworkError,
    describe_transport_error,
)

__all__ = [
    'get_logger',
    'ComprehensiveLogger',
    'TaskLogger',
    'ActivityLogger',
    'LogCategory',
    'BreakItDownError',
    'ConfigurationError',
    'ValidationError',
    'InvalidParameterError',
    'ResourceError',
    'NetworkError',
    'describe_transport_error',
]
