"""
Backends module - Data store and session provider implementations
"""

from typing import Callable, Optional

from break_it_down.config import AppConfig, StoreBackend, AuthBackend
from break_it_down.models import User
from break_it_down.utils.exceptions import ConfigurationError

from .base import DataStoreClient, SessionProvider, KNOWN_TABLES
from .memory_store import InMemoryDatabase, InMemoryDataStore
from .file_store import JsonFileDatabase
from .rest_store import RestDataStore
from .local_auth import LocalSessionProvider
from .rest_auth import RestSessionProvider

StoreFactory = Callable[[User, Optional[str]], DataStoreClient]


def build_store_factory(config: AppConfig) -> StoreFactory:
    """
    Return a callable producing a DataStoreClient for (user, access_token).

    Memory and file backends share one database per factory; the rest
    backend opens a client carrying the user's token.
    """
    if config.store_backend == StoreBackend.MEMORY.value:
        database = InMemoryDatabase()
        return lambda user, token: database.client(user.id)

    if config.store_backend == StoreBackend.FILE.value:
        database = JsonFileDatabase(config.storage_dir)
        return lambda user, token: database.client(user.id)

    if config.store_backend == StoreBackend.REST.value:
        return lambda user, token: RestDataStore(config.backend_url, config.backend_anon_key, token)

    raise ConfigurationError(
        "store_backend", "unsupported data store",
        expected_value=[b.value for b in StoreBackend], actual_value=config.store_backend,
    )


def build_session_provider(config: AppConfig) -> SessionProvider:
    if config.auth_backend == AuthBackend.LOCAL.value:
        return LocalSessionProvider(config.local_users)

    if config.auth_backend == AuthBackend.REST.value:
        return RestSessionProvider(config.backend_url, config.backend_anon_key)

    raise ConfigurationError(
        "auth_backend", "unsupported session provider",
        expected_value=[b.value for b in AuthBackend], actual_value=config.auth_backend,
    )


__all__ = [
    'DataStoreClient',
    'SessionProvider',
    'KNOWN_TABLES',
    'InMemoryDatabase',
    'InMemoryDataStore',
    'JsonFileDatabase',
    'RestDataStore',
    'LocalSessionProvider',
    'RestSessionProvider',
    'StoreFactory',
    'build_store_factory',
    'build_session_provider',
]
