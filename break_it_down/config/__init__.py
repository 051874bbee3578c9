"""
Configuration module - Settings and configuration management
"""

from .app_config import AppConfig, StoreBackend, AuthBackend, parse_local_users
from .config_properties import ConfigProperties

__all__ = [
    'AppConfig',
    'StoreBackend',
    'AuthBackend',
    'parse_local_users',
    'ConfigProperties',
]
