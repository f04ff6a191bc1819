"""
Shared fixtures for the outscraper-aio test suite.
"""

import logging
import os
from typing import AsyncGenerator, List
from unittest.mock import patch

import pytest
import pytest_asyncio
import structlog

from outscraper_aio.client import OutscraperClient
from outscraper_aio.config import Config

TEST_API_KEY = "test-api-key"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep real credentials and config files out of the tests."""
    for name in list(os.environ):
        if name.upper().startswith("OUTSCRAPER_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def restore_logging():
    """Undo ``configure_logging`` side effects on the root logger and structlog."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def config() -> Config:
    """Default configuration without credentials."""
    return Config()


@pytest_asyncio.fixture
async def client(config) -> AsyncGenerator[OutscraperClient, None]:
    """Initialized client using the test API key."""
    async with OutscraperClient(TEST_API_KEY, config=config) as c:
        yield c


@pytest.fixture
def sleeps(client) -> List[object]:
    """
    Replace the poller's interval sleep with a recorder.

    Each entry is the cancel event passed to the sleep; the poll loop then
    continues immediately as if the interval had elapsed.
    """
    recorded: List[object] = []

    async def fake_sleep(cancel_event):
        recorded.append(cancel_event)
        return False

    with patch.object(client.poller, "_sleep", new=fake_sleep):
        yield recorded
