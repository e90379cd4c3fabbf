"""
Pytest configuration and shared fixtures for backend tests.

WHAT: Centralized test configuration with markers and isolated settings
WHY: Enable test organization, filtering, and shared test utilities
HOW: Point settings at a throwaway database before the app is imported, define fixtures
"""

import os

# Settings are read at import time; these must be set first
os.environ.setdefault("DATABASE_URL", "sqlite:///./data/test_bargain.db")
os.environ.setdefault("LOG_FILE", "./data/logs/test.log")
os.environ.setdefault("EXCHANGE_DELAY_MS", "0")
os.environ.setdefault("MAX_BARGAIN_EXCHANGES", "10")

import pytest

from duoduo_bargain.chat.provider_factory import reset_chat_client
from duoduo_bargain.core.database import init_db, drop_db
from duoduo_bargain.core.store import reset_bargain_store
from tests.fixtures.memory_store import InMemoryBargainStore


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (isolated component tests)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (multiple components)"
    )
    config.addinivalue_line(
        "markers", "orchestration: Negotiation loop tests"
    )
    config.addinivalue_line(
        "markers", "streaming: SSE publisher and stream endpoint tests"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take significant time to run"
    )


@pytest.fixture(autouse=True)
def reset_singletons():
    """
    Reset module singletons before each test.

    WHAT: Clear chat client and store caches between tests
    WHY: Prevent test pollution and ensure clean state
    HOW: Call the reset helpers before and after each test
    """
    reset_chat_client()
    reset_bargain_store()
    yield
    reset_chat_client()
    reset_bargain_store()


@pytest.fixture
def fresh_db():
    """
    Empty database for one test.

    WHAT: Recreate all tables
    WHY: SQL store and API tests must not see each other's rows
    HOW: drop_db() then init_db(), dropped again afterwards
    """
    drop_db()
    init_db()
    yield
    drop_db()


@pytest.fixture
def memory_store():
    """In-memory store with both participants registered."""
    store = InMemoryBargainStore()
    store.add_participant("bargainer-1")
    store.add_participant("publisher-1")
    return store

