"""Shared fixtures; file and console logging are switched off for tests."""

import os

os.environ["BID_ENABLE_FILE_LOGGING"] = "false"
os.environ["BID_ENABLE_CONSOLE_LOGGING"] = "false"
os.environ["BID_ACTIVITY_LOG_FILE"] = ""

import pytest

from break_it_down.models import User
from break_it_down.utils.activity_logger import ActivityLogger

from .fakes import FakeDataStore, FakeSessionProvider


@pytest.fixture()
def store() -> FakeDataStore:
    return FakeDataStore()


@pytest.fixture()
def user() -> User:
    return User(id="user-1", email="me@example.com")


@pytest.fixture()
def session_provider(user: User) -> FakeSessionProvider:
    return FakeSessionProvider(users={"token-1": user})


@pytest.fixture()
def activity() -> ActivityLogger:
    return ActivityLogger(log_file=None, max_memory_entries=100)
